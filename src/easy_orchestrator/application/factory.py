"""
Application Layer - Orchestrator Factory

This module provides the dependency injection factory that builds an
Orchestrator from a configuration profile.

Key Responsibilities:
- Load configuration profiles (dev/test/prod) from YAML
- Resolve secrets and endpoints from the environment (``.env`` via python-dotenv)
- Instantiate infrastructure adapters (LiteLLM, MCP client, session store)
- Wire the planner and executor agents into a fixed AgentRegistry

Adapter construction failures (missing API key, missing server URL,
unreachable Redis) are logged and leave that backend unconfigured; the
pipeline then behaves exactly as if the backend had never been configured.
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog
import yaml
from dotenv import load_dotenv

from easy_orchestrator.core.domain.agent import Agent
from easy_orchestrator.core.domain.errors import ConfigurationError
from easy_orchestrator.core.domain.models import AgentRole
from easy_orchestrator.core.domain.orchestrator import AgentRegistry, Orchestrator
from easy_orchestrator.core.domain.planner import PlanGenerator, RuleBasedPlanStrategy
from easy_orchestrator.core.domain.task_executor import SimulationBackend, TaskExecutor
from easy_orchestrator.core.interfaces.llm import CompletionServiceProtocol
from easy_orchestrator.core.interfaces.session import SessionStoreProtocol
from easy_orchestrator.core.interfaces.tools import ToolInvokerProtocol
from easy_orchestrator.infrastructure.llm.litellm_service import LiteLLMCompletionService
from easy_orchestrator.infrastructure.persistence.memory_store import InMemorySessionStore
from easy_orchestrator.infrastructure.persistence.redis_store import RedisSessionStore
from easy_orchestrator.infrastructure.tools.mcp_client import MCPToolInvoker

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"
DEFAULT_PROFILE = "dev"

PLAN_FALLBACK_STRATEGIES = {RuleBasedPlanStrategy.name: RuleBasedPlanStrategy}


class OrchestratorFactory:
    """
    Factory for creating orchestrators with dependency injection.

    Args:
        config_dir: Directory holding ``{profile}.yaml`` files (defaults to
            the profiles bundled with the package)
        env: Environment mapping; defaults to ``os.environ`` after loading ``.env``
    """

    def __init__(self, config_dir: Optional[str] = None, env: Optional[Mapping[str, str]] = None):
        self.config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        if env is None:
            load_dotenv()
            env = os.environ
        self.env = env
        self.logger = structlog.get_logger().bind(component="orchestrator_factory")

    def resolve_profile(self, profile: Optional[str] = None) -> str:
        """Explicit profile, else ``ORCHESTRATOR_PROFILE``, else ``dev``."""
        return profile or self.env.get("ORCHESTRATOR_PROFILE") or DEFAULT_PROFILE

    def logging_settings(self, config: dict) -> tuple[str, bool]:
        """Return ``(level, json_logs)``; ``LOG_LEVEL`` overrides the profile."""
        logging_config = config.get("logging") or {}
        level = self.env.get("LOG_LEVEL") or logging_config.get("level", "INFO")
        return level, bool(logging_config.get("json", False))

    def profile_logging_settings(self, profile: Optional[str] = None) -> tuple[str, bool]:
        """Logging settings for a profile; defaults apply when the profile is missing."""
        try:
            config = self._load_profile(self.resolve_profile(profile))
        except FileNotFoundError as e:
            self.logger.warning("profile_logging_defaults", profile=profile, error=str(e))
            config = {}
        return self.logging_settings(config)

    async def create_orchestrator(self, profile: Optional[str] = None) -> Orchestrator:
        """
        Create an Orchestrator for the given profile.

        Args:
            profile: Configuration profile name (dev/test/prod)

        Returns:
            Orchestrator with planner and executor agents

        Raises:
            FileNotFoundError: If the profile YAML does not exist
        """
        profile = self.resolve_profile(profile)
        config = self._load_profile(profile)

        completion_service = self._create_completion_service(config)
        tool_invoker = self._create_tool_invoker(config)
        session_store = await self._create_session_store(config)

        self.logger.info(
            "creating_orchestrator",
            profile=profile,
            completion=completion_service is not None,
            tools=tool_invoker is not None,
            session_store=type(session_store).__name__ if session_store else None,
        )

        registry = AgentRegistry(
            planner=self._create_agent(
                AgentRole.PLANNER, config, completion_service, tool_invoker, session_store
            ),
            executor=self._create_agent(
                AgentRole.EXECUTOR, config, completion_service, tool_invoker, session_store
            ),
        )
        return Orchestrator(registry)

    def _load_profile(self, profile: str) -> dict:
        """
        Load configuration profile from YAML file.

        Raises:
            FileNotFoundError: If profile YAML not found
        """
        profile_path = self.config_dir / f"{profile}.yaml"

        if not profile_path.exists():
            self.logger.error(
                "profile_not_found",
                profile=profile,
                path=str(profile_path),
                hint="Ensure profile YAML exists in configs directory",
            )
            raise FileNotFoundError(f"Profile not found: {profile_path}")

        with open(profile_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        self.logger.debug("profile_loaded", profile=profile, config_keys=list(config.keys()))
        return config

    def _env(self, section: dict, key: str) -> Optional[str]:
        name = section.get(key)
        return self.env.get(name) if name else None

    def _create_completion_service(self, config: dict) -> Optional[CompletionServiceProtocol]:
        llm_config = config.get("llm") or {}
        provider = (self.env.get("LLM_PROVIDER") or llm_config.get("provider") or "none").lower()

        if provider == "none":
            self.logger.info("completion_service_disabled")
            return None

        try:
            return LiteLLMCompletionService(
                provider=provider,
                model=self._env(llm_config, "model_env") or llm_config.get("default_model"),
                api_key=self._env(llm_config, "api_key_env"),
                base_url=self._env(llm_config, "base_url_env") or llm_config.get("base_url"),
                temperature=llm_config.get("temperature", 0.7),
                max_tokens=llm_config.get("max_tokens", 4000),
                timeout=llm_config.get("timeout", 60),
                app_url=llm_config.get("app_url"),
                app_title=llm_config.get("app_title", "Easy Orchestrator"),
            )
        except ConfigurationError as e:
            self.logger.warning("completion_service_unavailable", provider=provider, error=str(e))
            return None

    def _create_tool_invoker(self, config: dict) -> Optional[ToolInvokerProtocol]:
        mcp_config = config.get("mcp") or {}
        server_url = self._env(mcp_config, "server_url_env") or mcp_config.get("server_url")

        try:
            return MCPToolInvoker(server_url, timeout=mcp_config.get("timeout", 30))
        except ConfigurationError as e:
            self.logger.warning("tool_invoker_unavailable", error=str(e))
            return None

    async def _create_session_store(self, config: dict) -> Optional[SessionStoreProtocol]:
        store_config = config.get("session_store") or {}
        store_type = store_config.get("type", "memory")

        if store_type == "memory":
            return InMemorySessionStore()

        if store_type != "redis":
            self.logger.warning("session_store_unknown_type", type=store_type)
            return None

        store = RedisSessionStore(
            url=self._env(store_config, "redis_url_env") or store_config.get("redis_url"),
            password=self._env(store_config, "redis_password_env"),
            db=int(store_config.get("redis_db", 0)),
        )
        if not await store.connect():
            self.logger.warning("session_store_unavailable", type=store_type, url=store.url)
            return None
        return store

    def _create_agent(
        self,
        role: AgentRole,
        config: dict,
        completion_service: Optional[CompletionServiceProtocol],
        tool_invoker: Optional[ToolInvokerProtocol],
        session_store: Optional[SessionStoreProtocol],
    ) -> Agent:
        planning = config.get("planning") or {}
        execution = config.get("execution") or {}
        simulation = execution.get("simulation") or {}

        fallback_name = planning.get("fallback")
        fallback = None
        if fallback_name:
            strategy_cls = PLAN_FALLBACK_STRATEGIES.get(fallback_name)
            if strategy_cls is None:
                self.logger.warning("plan_fallback_unknown", fallback=fallback_name)
            else:
                fallback = strategy_cls()

        plan_generator = PlanGenerator(
            completion_service=completion_service,
            temperature=planning.get("temperature", 0.3),
            max_tokens=planning.get("max_tokens", 2000),
            fallback_strategy=fallback,
        )
        task_executor = TaskExecutor(
            completion_service=completion_service,
            tool_invoker=tool_invoker,
            simulation=SimulationBackend(
                failure_rate=simulation.get("failure_rate", 0.05),
                min_delay_ms=simulation.get("min_delay_ms", 50),
                max_delay_ms=simulation.get("max_delay_ms", 150),
            ),
            temperature=execution.get("temperature", 0.3),
            max_tokens=execution.get("max_tokens", 1000),
            max_resources=execution.get("max_resources", 3),
        )
        return Agent(
            role=role,
            plan_generator=plan_generator,
            task_executor=task_executor,
            session_store=session_store,
            tool_invoker=tool_invoker,
        )

    def server_settings(self, profile: Optional[str] = None) -> dict[str, Any]:
        config = self._load_profile(self.resolve_profile(profile))
        server = config.get("server") or {}
        return {"host": server.get("host", "0.0.0.0"), "port": int(server.get("port", 3000))}

"""Easy Orchestrator - goal planning and execution with LLMs, MCP tools and session memory."""

__version__ = "0.1.0"

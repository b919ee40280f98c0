"""
Completion Service Protocol

Stateless request/response contract for a text-completion backend. The
core only ever sends one system instruction plus one user message and reads
back the generated text.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class CompletionResponse:
    """
    Generated text plus usage metadata.

    Attributes:
        content: Generated text
        usage: Token counts as reported by the provider
        model: Model that produced the response
        finish_reason: Provider finish reason, if reported
    """

    content: str
    usage: dict[str, Any] = field(default_factory=dict)
    model: str = ""
    finish_reason: str | None = None


@runtime_checkable
class CompletionServiceProtocol(Protocol):
    """
    Protocol for text-completion backends.

    Implementations raise CompletionUnavailable when no provider is
    configured and CompletionRequestFailed on transport or non-2xx errors.
    """

    async def generate_response(
        self,
        system_prompt: str,
        user_message: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> CompletionResponse:
        """
        Generate a completion for one system/user message pair.

        Args:
            system_prompt: System instruction (may be empty)
            user_message: User message
            temperature: Optional sampling temperature
            max_tokens: Optional token ceiling

        Returns:
            CompletionResponse with the generated content
        """
        ...

"""
Error Taxonomy

Every error raised by the orchestration pipeline derives from
OrchestratorError and carries a ``kind`` tag naming its category. The tag
is what ends up in failure payloads (``error_kind``), so callers can react
to the category without importing the concrete class.

Categories:
- ConfigurationError: a required backend (completion, tools) is not configured
- UpstreamRequestError: network or non-2xx failure from an external service
- MalformedResponseError: a backend answered, but the content violates the schema
- TaskFailure: a single task failed (recorded, never escalated)
- PipelineFailure: planning or agent-level execution aborted the goal
"""


class OrchestratorError(Exception):
    """Base class for all pipeline errors."""

    kind = "OrchestratorError"


class ConfigurationError(OrchestratorError):
    """A completion or tool backend is required but not configured."""

    kind = "ConfigurationError"


class CompletionUnavailable(ConfigurationError):
    """No completion provider is configured."""


class ToolInvokerUnavailable(ConfigurationError):
    """No tool server is configured."""


class PlanningUnavailable(ConfigurationError):
    """Planning was requested without a completion service."""


class UpstreamRequestError(OrchestratorError):
    """Transport or non-2xx failure talking to an external service."""

    kind = "UpstreamRequestError"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CompletionRequestFailed(UpstreamRequestError):
    """The completion backend request failed."""


class ToolCallFailed(UpstreamRequestError):
    """A tool listing or invocation failed."""


class MalformedResponseError(OrchestratorError):
    """A backend responded but its content could not be decoded."""

    kind = "MalformedResponseError"

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.raw = raw


class PlanningMalformed(MalformedResponseError):
    """The planning response is not a JSON array of task objects."""


class TaskFailure(OrchestratorError):
    """A single task failed during execution."""

    kind = "TaskFailure"

    def __init__(self, message: str, task_id: str | None = None):
        super().__init__(message)
        self.task_id = task_id


class PipelineFailure(OrchestratorError):
    """A goal was aborted during planning or agent-level execution.

    ``error_kind`` keeps the category of the root cause so the final
    payload reports e.g. ``ConfigurationError`` rather than the wrapper.
    """

    kind = "PipelineFailure"

    def __init__(self, message: str, error_kind: str | None = None, error_type: str | None = None):
        super().__init__(message)
        self.error_kind = error_kind or self.kind
        self.error_type = error_type or type(self).__name__


def error_kind_of(error: BaseException) -> str:
    """Return the taxonomy category for any exception."""
    if isinstance(error, PipelineFailure):
        return error.error_kind
    return getattr(error, "kind", type(error).__name__)

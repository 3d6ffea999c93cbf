"""
Application errors for clean API error handling.

Agent faults form one hierarchy under AgentError so the API can map them to HTTP
status codes without importing model or database client exceptions. Messages on
these errors are user-facing; the underlying cause is chained, not embedded.
"""


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. vector store, embeddings API) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AgentError(Exception):
    """Base class for faults raised out of an agent turn."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class RateLimitedError(AgentError):
    """The language model provider rejected the call with a rate limit (HTTP 429)."""


class RetryExhaustedError(AgentError):
    """Every retry attempt was rate limited."""

    def __init__(self, message: str, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(message)


class AuthFailedError(AgentError):
    """Credentials for the language model provider were rejected. Never retried."""


class RecursionLimitExceededError(AgentError):
    """The agent/tools loop ran past its step ceiling without producing a final answer."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(
            f"Recursion limit of {limit} reached without hitting a stop condition."
        )


class AgentFailedError(AgentError):
    """Catch-all for any other unexpected fault during a turn."""

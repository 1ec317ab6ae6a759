"""
Error types shared across the backend.

Every error carries a machine-readable ``code`` and a user-safe
``message``. The API layer maps them to HTTP responses or stream events;
the underlying cause stays in the server log.
"""


class ChatError(Exception):
    """
    Base class for backend errors.

    Attributes:
        code: Machine-readable error code (e.g. "STORAGE_ERROR")
        message: Message that is safe to show to a user
        http_status: Status code to use when mapped to HTTP
    """

    code = "CHAT_ERROR"
    http_status = 500

    def __init__(self, message: str, code: str | None = None, http_status: int | None = None):
        self.message = message
        if code:
            self.code = code
        if http_status:
            self.http_status = http_status
        super().__init__(message)


class RequestValidationError(ChatError):
    """Malformed, missing, oversized or unsafe request input."""

    code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(", ".join(self.errors) or "Invalid request")


class NoMessagesError(ChatError):
    """A router or handler was given a conversation with no turns."""

    code = "NO_MESSAGES"


class GatewayError(ChatError):
    """The LLM gateway call failed (network, timeout, API error)."""

    code = "GATEWAY_ERROR"
    http_status = 502


class RoutingError(ChatError):
    """The router could not get an answer from the gateway."""

    code = "ROUTING_ERROR"


class HandlerError(ChatError):
    """A specialist handler could not produce a reply."""

    code = "HANDLER_ERROR"


class UnknownAgentError(ChatError):
    """Dispatch to an agent tag with no registered handler."""

    code = "UNKNOWN_AGENT"


class StorageError(ChatError):
    """The session store is unavailable."""

    code = "STORAGE_ERROR"

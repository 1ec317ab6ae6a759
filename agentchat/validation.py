"""
Input validation and sanitization for chat requests.

All problems in a request are collected and reported together.
"""
import re
import uuid
from dataclasses import dataclass, field
from typing import Any


MAX_MESSAGE_LENGTH = 10000
MIN_MESSAGE_LENGTH = 1

UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    re.IGNORECASE,
)
USER_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
TAG_PATTERN = re.compile(r"<[^>]*>")

HTML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}


@dataclass
class ValidationResult:
    is_valid: bool
    sanitized: str | None = None
    error: str | None = None


@dataclass
class ChatRequestData:
    message: str
    session_id: str
    user_id: str | None = None


@dataclass
class ChatRequestValidation:
    is_valid: bool
    data: ChatRequestData | None = None
    errors: list[str] = field(default_factory=list)


def sanitize_html(text: str) -> str:
    """Escape the characters that could open markup."""
    return "".join(HTML_ESCAPES.get(ch, ch) for ch in text)


def validate_message(value: Any) -> ValidationResult:
    """Validate and sanitize a user message."""
    if value is None or not isinstance(value, str):
        return ValidationResult(False, error="Message is required and must be a string")

    trimmed = value.strip()

    if len(trimmed) < MIN_MESSAGE_LENGTH:
        return ValidationResult(False, error="Message cannot be empty")

    if len(trimmed) > MAX_MESSAGE_LENGTH:
        return ValidationResult(
            False,
            error=f"Message is too long. Maximum {MAX_MESSAGE_LENGTH} characters allowed",
        )

    # Markup-only input (e.g. "<script></script>") has no text left to send
    if not TAG_PATTERN.sub("", trimmed).strip():
        return ValidationResult(False, error="Message contains invalid characters")

    sanitized = sanitize_html(trimmed)
    if not sanitized:
        return ValidationResult(False, error="Message contains invalid characters")

    return ValidationResult(True, sanitized=sanitized)


def validate_session_id(value: Any) -> ValidationResult:
    """Check a session id is a canonical UUID (versions 1-5)."""
    if not value or not isinstance(value, str):
        return ValidationResult(False, error="Session ID is required")

    if not UUID_PATTERN.fullmatch(value):
        return ValidationResult(False, error="Invalid session ID format")

    return ValidationResult(True, sanitized=value)


def validate_user_id(value: Any) -> ValidationResult:
    """User ids are optional; when present they must be [A-Za-z0-9_-]+."""
    if value is None or value == "":
        return ValidationResult(True)

    if not isinstance(value, str):
        return ValidationResult(False, error="User ID must be a string")

    if not USER_ID_PATTERN.fullmatch(value):
        return ValidationResult(False, error="User ID contains invalid characters")

    return ValidationResult(True, sanitized=value)


def generate_session_id() -> str:
    return str(uuid.uuid4())


def validate_chat_request(
    message: Any,
    session_id: Any = None,
    user_id: Any = None,
) -> ChatRequestValidation:
    """
    Validate a chat request's fields.

    A missing session id is replaced by a new UUID4.
    """
    errors: list[str] = []

    message_result = validate_message(message)
    if not message_result.is_valid:
        errors.append(message_result.error or "Invalid message")

    if session_id is None or session_id == "":
        session_id = generate_session_id()
    else:
        session_result = validate_session_id(session_id)
        if not session_result.is_valid:
            errors.append(session_result.error or "Invalid session ID")

    user_result = validate_user_id(user_id)
    if not user_result.is_valid:
        errors.append(user_result.error or "Invalid user ID")

    if errors:
        return ChatRequestValidation(is_valid=False, errors=errors)

    return ChatRequestValidation(
        is_valid=True,
        data=ChatRequestData(
            message=message_result.sanitized,
            session_id=session_id,
            user_id=user_result.sanitized,
        ),
    )

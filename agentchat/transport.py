"""
HTTP framing for chat streams.

Turns request bodies into validated chat requests and StreamEvents into
``data: <json>\\n\\n`` frames (and back, for clients and tests).
"""
import json
from typing import Any, Iterable

from agentchat.agent.state import StreamEvent
from agentchat.errors import RequestValidationError
from agentchat.validation import ChatRequestData, validate_chat_request


FRAME_PREFIX = "data: "
FRAME_SEPARATOR = "\n\n"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def parse_chat_request(body: bytes) -> ChatRequestData:
    """
    Decode and validate a ``POST /chat`` body.

    Raises:
        RequestValidationError: unparsable body or invalid fields
    """
    try:
        payload = json.loads(body or b"")
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise RequestValidationError(["Invalid request format"]) from None

    if not isinstance(payload, dict):
        raise RequestValidationError(["Invalid request format"])

    result = validate_chat_request(
        payload.get("message"),
        payload.get("sessionId"),
        payload.get("userId"),
    )
    if not result.is_valid:
        raise RequestValidationError(result.errors)
    return result.data


def encode_event(event: StreamEvent) -> str:
    """One wire frame for an event."""
    return f"{FRAME_PREFIX}{event.to_json()}{FRAME_SEPARATOR}"


def sse_event(event: StreamEvent) -> dict[str, Any]:
    """Event dict for sse-starlette's EventSourceResponse."""
    return {"event": event.type, "data": event.to_json()}


def decode_frames(body: str) -> list[StreamEvent]:
    """Parse a body of ``data:`` frames back into events."""
    events = []
    for frame in body.split(FRAME_SEPARATOR):
        frame = frame.strip()
        if not frame.startswith(FRAME_PREFIX.strip()):
            continue
        data = frame[len(FRAME_PREFIX.strip()):].strip()
        if data:
            events.append(StreamEvent.model_validate_json(data))
    return events


def check_event_sequence(events: Iterable[StreamEvent]) -> list[str]:
    """
    Problems with an event sequence (empty list when well-formed).

    Well-formed: starts with ``status``, at most one terminal event, and
    nothing after it.
    """
    problems = []
    events = list(events)
    if not events or events[0].type != "status":
        problems.append("stream must start with a status event")
    terminal_seen = False
    for index, event in enumerate(events):
        if terminal_seen:
            problems.append(f"event {index} ({event.type}) follows a terminal event")
        if event.is_terminal:
            terminal_seen = True
    return problems

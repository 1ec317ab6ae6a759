"""
Logging utilities for agent debugging.

Provides colored console output to trace a message through the
router and the specialist handlers.
"""
import json
import sys
from datetime import datetime
from typing import Any

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    # Node colors
    "router": "\033[94m",     # Blue
    "chat": "\033[92m",       # Green
    "retrieval": "\033[95m",  # Magenta
    "tool": "\033[96m",       # Cyan
    "session": "\033[93m",    # Yellow
    # Status colors
    "success": "\033[92m",    # Green
    "error": "\033[91m",      # Red
    "warning": "\033[93m",    # Yellow
    "info": "\033[97m",       # White
}


def _colorize(text: str, color: str) -> str:
    """Apply color to text."""
    return f"{COLORS.get(color, '')}{text}{COLORS['reset']}"


def _timestamp() -> str:
    """Get current timestamp."""
    return datetime.now().strftime("%H:%M:%S.%f")[:-3]


def _truncate(text: str, max_length: int) -> str:
    return text[:max_length] + "..." if len(text) > max_length else text


def _format_value(value: Any, max_length: int = 200) -> str:
    """Format a value for display, truncating if necessary."""
    if value is None:
        return "None"

    if isinstance(value, (dict, list)):
        try:
            formatted = json.dumps(value, default=str)
        except (TypeError, ValueError):
            formatted = str(value)
    else:
        formatted = str(value)

    return _truncate(formatted, max_length)


def _node_color(node_name: str) -> str:
    color = node_name.lower().replace("_", "").replace(" ", "")
    return color if color in COLORS else "info"


def log_header(title: str):
    """Log a section header."""
    print(f"\n{'='*60}")
    print(_colorize(f"  {title}", "bold"))
    print(f"{'='*60}")


def log_node_start(node_name: str, query: str = None):
    """Log when a node starts executing."""
    color = _node_color(node_name)
    print(f"\n{_timestamp()} {_colorize(f'[{node_name.upper()}]', color)} {_colorize('Starting...', 'dim')}")
    if query:
        print(f"  Query: {_colorize(_truncate(query, 100), 'info')}")


def log_node_result(node_name: str, result: dict, key_fields: list[str] = None):
    """Log the result of a node."""
    color = _node_color(node_name)
    print(f"{_timestamp()} {_colorize(f'[{node_name.upper()}]', color)} {_colorize('Completed', 'success')}")

    fields = key_fields or list(result.keys())
    for field in fields:
        if field in result:
            print(f"  {field}: {_format_value(result[field])}")


def log_decision(decision: str, reason: str = None):
    """Log a routing decision."""
    print(f"  {_colorize('→ Decision:', 'bold')} {decision}")
    if reason:
        print(f"    Reason: {_colorize(reason, 'dim')}")


def log_warning(message: str, detail: Any = None):
    """Log a recoverable problem."""
    print(f"{_timestamp()} {_colorize('[WARNING]', 'warning')} {message}")
    if detail is not None:
        print(f"  Detail: {_format_value(detail)}")


def log_error(message: str, exception: Exception = None):
    """Log an error."""
    print(f"{_timestamp()} {_colorize('[ERROR]', 'error')} {message}", file=sys.stderr)
    if exception:
        cause = exception.__cause__
        print(f"  Exception: {_colorize(str(exception), 'error')}", file=sys.stderr)
        if cause:
            print(f"  Cause: {_colorize(repr(cause), 'error')}", file=sys.stderr)


def log_flow_complete(response_preview: str = None):
    """Log that the flow is complete."""
    print(f"\n{_timestamp()} {_colorize('[COMPLETE]', 'success')} Flow finished")
    if response_preview:
        print(f"  Response: {_truncate(response_preview, 150)}")
    print(f"{'='*60}\n")


def log_session_state(state):
    """Log session state for debugging."""
    print(f"\n{_colorize('━━━ SESSION STATE ━━━', 'bold')}")
    print(f"  {_colorize('Session:', 'info')} {state.session_id}")
    print(f"  {_colorize('User:', 'info')} {state.user_id or '(anonymous)'}")

    if state.messages:
        print(f"  {_colorize('Messages:', 'info')} {len(state.messages)}")
    else:
        print(f"  {_colorize('Messages:', 'dim')} (none)")

    last_agent = state.context.get("lastAgent")
    if last_agent:
        print(f"  {_colorize('Last Agent:', 'info')} {last_agent}")

    print(f"{_colorize('━━━━━━━━━━━━━━━━━━━━━', 'dim')}\n")

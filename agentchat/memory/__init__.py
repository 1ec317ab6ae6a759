"""
Session persistence keyed by session id.
"""
from agentchat.memory.session_store import (
    FileSessionStore,
    InMemorySessionStore,
    SessionStore,
    messages_to_session_state,
    session_state_to_messages,
)

__all__ = [
    "FileSessionStore",
    "InMemorySessionStore",
    "SessionStore",
    "messages_to_session_state",
    "session_state_to_messages",
]

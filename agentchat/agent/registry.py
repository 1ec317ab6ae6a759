"""
Handler Registry.

Single source of truth for agent dispatch: each specialist handler is
registered under its agent tag, and the orchestrator looks handlers up
by the router's decision. Adding an agent means registering a handler.
"""
from dataclasses import dataclass
from typing import AsyncIterator, Protocol, runtime_checkable

from agentchat.agent.state import AgentResponse, SessionState
from agentchat.errors import UnknownAgentError


@runtime_checkable
class Handler(Protocol):
    """Common contract for specialist handlers."""

    agent: str

    async def handle(self, state: SessionState) -> AgentResponse:
        ...


@runtime_checkable
class StreamingHandler(Handler, Protocol):
    """A handler that can also yield its reply incrementally."""

    def stream(self, state: SessionState) -> AsyncIterator[str]:
        ...


@dataclass
class HandlerMetadata:
    """Metadata about a registered handler."""
    name: str
    description: str
    streaming: bool


class HandlerRegistry:
    """
    Registry for all specialist handlers.

    Usage:
        registry = HandlerRegistry()
        registry.register(ChatHandler(gateway))
        handler = registry.get("chat")
    """

    def __init__(self):
        self._handlers: dict[str, Handler] = {}
        self._metadata: dict[str, HandlerMetadata] = {}

    def register(self, handler: Handler, name: str | None = None) -> Handler:
        """Register a handler under its agent tag (or an explicit name)."""
        tag = name or handler.agent
        if tag in self._handlers:
            raise ValueError(f"Handler already registered: {tag}")

        description = ""
        doc = type(handler).__doc__
        if doc:
            for line in doc.split("\n"):
                if line.strip():
                    description = line.strip()
                    break

        self._handlers[tag] = handler
        self._metadata[tag] = HandlerMetadata(
            name=tag,
            description=description,
            streaming=isinstance(handler, StreamingHandler),
        )
        return handler

    def get(self, name: str) -> Handler:
        try:
            return self._handlers[name]
        except KeyError:
            raise UnknownAgentError(f"No handler registered for agent: {name}") from None

    def names(self) -> list[str]:
        return list(self._handlers)

    def supports_streaming(self, name: str) -> bool:
        meta = self._metadata.get(name)
        return bool(meta and meta.streaming)

    def describe(self) -> list[HandlerMetadata]:
        return list(self._metadata.values())

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

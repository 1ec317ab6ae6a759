"""
Multi-agent LangGraph system for chat.

Architecture:
- Router: Classify the latest message (chat / retrieval / tool)
- Handlers: One specialist per agent tag, looked up in a registry
- Orchestrator: router → handler → END, resolved at once or streamed

Usage:
    from agentchat.agent import Orchestrator, Router, default_registry

    orchestrator = Orchestrator(Router(gateway), default_registry(gateway))
    updated = await orchestrator.resolve(state)
"""
from agentchat.agent.graph import Orchestrator, default_registry, split_words
from agentchat.agent.nodes import Router
from agentchat.agent.registry import HandlerRegistry
from agentchat.agent.state import (
    AgentResponse,
    Message,
    RoutingDecision,
    SessionState,
    StreamEvent,
)

__all__ = [
    "Orchestrator",
    "default_registry",
    "split_words",
    "Router",
    "HandlerRegistry",
    "AgentResponse",
    "Message",
    "RoutingDecision",
    "SessionState",
    "StreamEvent",
]

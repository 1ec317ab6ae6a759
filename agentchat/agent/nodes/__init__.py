"""
Nodes for the agent graph.
"""
from agentchat.agent.nodes.router import Router, parse_routing_response
from agentchat.agent.nodes.chat import ChatHandler
from agentchat.agent.nodes.retrieval import RetrievalHandler
from agentchat.agent.nodes.tool import ToolHandler

__all__ = [
    "Router",
    "parse_routing_response",
    "ChatHandler",
    "RetrievalHandler",
    "ToolHandler",
]

"""
LLM gateway used by the router and the specialist handlers.
"""
from agentchat.llm.gateway import LLMGateway, create_chat_model, get_gateway, reset_gateway

__all__ = [
    "LLMGateway",
    "create_chat_model",
    "get_gateway",
    "reset_gateway",
]

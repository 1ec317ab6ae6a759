"""
Chat Node

General conversation. Calls the gateway with the latest message and a
persona system prompt; also streams the reply fragment by fragment.
"""
from datetime import datetime, timezone
from typing import AsyncIterator

from agentchat.agent.logging import log_node_result, log_node_start
from agentchat.agent.prompts import CHAT_CONTEXT_ADDENDUM, CHAT_SYSTEM_PROMPT
from agentchat.agent.state import AgentResponse, SessionState
from agentchat.errors import GatewayError, HandlerError, NoMessagesError
from agentchat.llm import LLMGateway


def generate_system_prompt(state: SessionState | None = None) -> str:
    """Persona prompt, with a context hint once the conversation has history."""
    prompt = CHAT_SYSTEM_PROMPT
    if state is not None and len(state.messages) > 1:
        prompt += CHAT_CONTEXT_ADDENDUM
    return prompt


def _latest_content(state: SessionState) -> str:
    if not state.messages:
        raise NoMessagesError("No message to process")
    return state.messages[-1].content


class ChatHandler:
    """General conversational agent."""

    agent = "chat"

    def __init__(self, gateway: LLMGateway):
        self.gateway = gateway

    async def handle(self, state: SessionState) -> AgentResponse:
        content = _latest_content(state)
        started_at = datetime.now(timezone.utc)
        log_node_start("CHAT", content)

        try:
            reply = await self.gateway.complete(content, system_prompt=generate_system_prompt(state))
        except GatewayError as exc:
            raise HandlerError("Failed to process message") from exc

        if not reply.strip():
            raise HandlerError("Model returned an empty reply")

        log_node_result("CHAT", {"length": len(reply)})
        return AgentResponse(
            agent=self.agent,
            content=reply,
            metadata={"processing_started_at": started_at.isoformat()},
        )

    async def stream(self, state: SessionState) -> AsyncIterator[str]:
        """
        Yield reply fragments in order as the gateway produces them.

        Each call issues a new gateway request.
        """
        content = _latest_content(state)
        log_node_start("CHAT", content)

        total = 0
        try:
            async for fragment in self.gateway.stream(content, system_prompt=generate_system_prompt(state)):
                total += len(fragment)
                yield fragment
        except GatewayError as exc:
            raise HandlerError("Failed to stream message") from exc

        log_node_result("CHAT", {"streamed_chars": total})


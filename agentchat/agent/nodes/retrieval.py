"""
Retrieval Node

Knowledge-base questions. No retrieval backend is wired in yet, so the
handler answers with a placeholder that echoes the request.
"""
from agentchat.agent.logging import log_node_start
from agentchat.agent.prompts import RETRIEVAL_PLACEHOLDER
from agentchat.agent.state import AgentResponse, SessionState
from agentchat.errors import NoMessagesError


class RetrievalHandler:
    """Document/knowledge retrieval agent (placeholder)."""

    agent = "retrieval"

    async def handle(self, state: SessionState) -> AgentResponse:
        if not state.messages:
            raise NoMessagesError("No message to process")

        content = state.messages[-1].content
        log_node_start("RETRIEVAL", content)
        return AgentResponse(
            agent=self.agent,
            content=RETRIEVAL_PLACEHOLDER.format(message=content),
            metadata={"placeholder": True, "retrieved_docs": 0},
        )

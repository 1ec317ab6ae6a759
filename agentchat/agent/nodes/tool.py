"""
Tool Node

External actions and real-time data. No tools are wired in yet, so the
handler answers with a placeholder that echoes the request.
"""
from agentchat.agent.logging import log_node_start
from agentchat.agent.prompts import TOOL_PLACEHOLDER
from agentchat.agent.state import AgentResponse, SessionState
from agentchat.errors import NoMessagesError


class ToolHandler:
    """Tool-execution agent (placeholder)."""

    agent = "tool"

    async def handle(self, state: SessionState) -> AgentResponse:
        if not state.messages:
            raise NoMessagesError("No message to process")

        content = state.messages[-1].content
        log_node_start("TOOL", content)
        return AgentResponse(
            agent=self.agent,
            content=TOOL_PLACEHOLDER.format(message=content),
            metadata={"placeholder": True, "tool_calls": []},
        )

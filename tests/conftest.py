import json

import pytest

from agentchat.agent.state import Message, SessionState
from agentchat.errors import GatewayError


SESSION_ID = "123e4567-e89b-42d3-a456-426614174000"


def routing_answer(agent: str = "chat", confidence: float = 0.9, reasoning: str = "General conversation") -> str:
    return json.dumps({"nextAgent": agent, "confidence": confidence, "reasoning": reasoning})


class FakeGateway:
    """Stands in for LLMGateway: scripted completions and streams, records prompts."""

    def __init__(self, completions=None, stream_chunks=None):
        self.completions = list(completions or [])
        self.stream_chunks = list(stream_chunks or [])
        self.prompts: list[str] = []
        self.system_prompts: list[str | None] = []
        self.stream_prompts: list[str] = []

    async def complete(self, prompt, system_prompt=None, temperature=None, max_tokens=None):
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        if not self.completions:
            raise GatewayError("no scripted completion")
        item = self.completions.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def stream(self, prompt, system_prompt=None, temperature=None, max_tokens=None):
        self.stream_prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        for chunk in self.stream_chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


def make_state(*turns: tuple[str, str], session_id: str = SESSION_ID) -> SessionState:
    return SessionState(
        session_id=session_id,
        messages=[Message(role=role, content=content) for role, content in turns],
    )


@pytest.fixture
def fake_gateway():
    return FakeGateway()

import pytest
from pydantic import ValidationError

from agentchat.agent.state import Message, RoutingDecision


def test_routing_decision_reads_wire_fields() -> None:
    decision = RoutingDecision.model_validate(
        {"nextAgent": "retrieval", "confidence": 0.8, "reasoning": "needs the knowledge base"}
    )

    assert decision.next_agent == "retrieval"
    assert decision.model_dump(by_alias=True, exclude_none=True) == {
        "nextAgent": "retrieval",
        "confidence": 0.8,
        "reasoning": "needs the knowledge base",
    }


@pytest.mark.parametrize("label", ["rag", "tools", "CHAT", ""])
def test_routing_decision_rejects_unknown_agents(label) -> None:
    with pytest.raises(ValidationError):
        RoutingDecision.model_validate({"nextAgent": label, "confidence": 0.8, "reasoning": "x"})


def test_message_content_must_have_text() -> None:
    with pytest.raises(ValidationError):
        Message(role="assistant", content=" \n")

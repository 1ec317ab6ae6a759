import asyncio

import pytest

from agentchat.agent.nodes.router import (
    Router,
    RoutingInvalid,
    RoutingOk,
    RoutingParseFailed,
    create_routing_prompt,
    is_high_confidence,
    parse_routing_response,
)
from agentchat.agent.state import SessionState
from agentchat.errors import GatewayError, NoMessagesError, RoutingError
from tests.conftest import SESSION_ID, FakeGateway, make_state, routing_answer


def test_valid_decision_is_returned_unchanged() -> None:
    gateway = FakeGateway(completions=[routing_answer("chat", 0.95, "This is a general conversational query")])
    decision = asyncio.run(Router(gateway).classify(make_state(("user", "Hello, how are you today?"))))

    assert decision.next_agent == "chat"
    assert decision.confidence == 0.95
    assert decision.reasoning == "This is a general conversational query"
    assert decision.fallback is None


@pytest.mark.parametrize("agent", ["retrieval", "tool"])
def test_routes_to_specialists(agent) -> None:
    gateway = FakeGateway(completions=[routing_answer(agent, 0.88, "needs a specialist")])
    decision = asyncio.run(Router(gateway).classify(make_state(("user", "What is the weather in New York?"))))

    assert decision.next_agent == agent


def test_json_wrapped_in_prose_is_found() -> None:
    raw = 'Sure! Here is my answer:\n```json\n{"nextAgent": "tool", "confidence": 1.0, "reasoning": "time"}\n```'
    result = parse_routing_response(raw)

    assert isinstance(result, RoutingOk)
    assert result.decision.next_agent == "tool"
    assert result.decision.confidence == 1.0


def test_parse_failure_is_distinct_from_invalid_fields() -> None:
    assert isinstance(parse_routing_response("invalid json"), RoutingParseFailed)
    assert isinstance(parse_routing_response("{not: valid}"), RoutingParseFailed)
    assert isinstance(parse_routing_response('{"nextAgent": "chat", "confidence": 0.9}'), RoutingInvalid)


@pytest.mark.parametrize(
    "payload",
    [
        '{"nextAgent": "rag", "confidence": 0.9, "reasoning": "old label"}',
        '{"nextAgent": "chat", "confidence": 1.5, "reasoning": "too confident"}',
        '{"nextAgent": "chat", "confidence": "0.9", "reasoning": "string confidence"}',
        '{"nextAgent": "chat", "confidence": 0.9, "reasoning": ""}',
        '{"nextAgent": "chat", "confidence": 0.9, "reasoning": "   "}',
    ],
)
def test_semantically_invalid_answers(payload) -> None:
    assert isinstance(parse_routing_response(payload), RoutingInvalid)


def test_missing_reasoning_falls_back_to_chat() -> None:
    gateway = FakeGateway(completions=['{"nextAgent": "tool", "confidence": 0.9}'])
    decision = asyncio.run(Router(gateway).classify(make_state(("user", "Hello"))))

    assert decision.next_agent == "chat"
    assert decision.confidence == 0.5
    assert decision.fallback == "invalid"
    assert "defaulting to chat" in decision.reasoning


def test_unparseable_answer_falls_back_to_chat() -> None:
    gateway = FakeGateway(completions=["invalid json"])
    decision = asyncio.run(Router(gateway).classify(make_state(("user", "Hello"))))

    assert decision.next_agent == "chat"
    assert decision.fallback == "parse_failed"


def test_gateway_failure_raises_routing_error() -> None:
    gateway = FakeGateway(completions=[GatewayError("API Error")])

    with pytest.raises(RoutingError, match="Failed to route message") as info:
        asyncio.run(Router(gateway).classify(make_state(("user", "Hello"))))
    assert isinstance(info.value.__cause__, GatewayError)


def test_empty_conversation_cannot_be_routed() -> None:
    gateway = FakeGateway(completions=[routing_answer()])

    with pytest.raises(NoMessagesError, match="No messages to route"):
        asyncio.run(Router(gateway).classify(SessionState(session_id=SESSION_ID)))
    assert gateway.prompts == []


def test_prompt_without_history() -> None:
    prompt = create_routing_prompt(make_state(("user", "What time is it?")))

    assert "No previous conversation history." in prompt
    assert 'Current message: "What time is it?"' in prompt
    for label in ('"chat"', '"retrieval"', '"tool"'):
        assert label in prompt
    assert "nextAgent" in prompt


def test_prompt_includes_prior_turns_in_order() -> None:
    state = make_state(
        ("user", "Tell me about Python"),
        ("assistant", "Python is a programming language..."),
        ("user", "Can you check the current time?"),
    )
    prompt = create_routing_prompt(state)

    assert "1. User: Tell me about Python" in prompt
    assert "2. Assistant: Python is a programming language..." in prompt
    assert "No previous conversation history." not in prompt
    assert prompt.index("Tell me about Python") < prompt.index("Python is a programming")


def test_high_confidence_threshold() -> None:
    result = parse_routing_response(routing_answer(confidence=0.7))
    assert is_high_confidence(result.decision)
    result = parse_routing_response(routing_answer(confidence=0.69))
    assert not is_high_confidence(result.decision)


def test_low_confidence_decision_is_logged(capsys) -> None:
    gateway = FakeGateway(completions=[routing_answer("retrieval", 0.4, "might need documents")])
    decision = asyncio.run(Router(gateway).classify(make_state(("user", "Hmm"))))

    assert decision.next_agent == "retrieval"
    assert "Low-confidence routing decision" in capsys.readouterr().out


def test_confident_decision_logs_no_warning(capsys) -> None:
    gateway = FakeGateway(completions=[routing_answer("chat", 0.95)])
    asyncio.run(Router(gateway).classify(make_state(("user", "Hello"))))

    assert "[WARNING]" not in capsys.readouterr().out

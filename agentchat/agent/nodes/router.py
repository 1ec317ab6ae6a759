"""
Router Node

Classifies the latest message into one of the specialist agents with a
single LLM call.

Decoding the answer is two-stage: a structural parse (find and load the
JSON object) and then field validation. A gateway failure is raised as
RoutingError; a bad answer becomes the default ``chat`` decision.
"""
import json
import re
from dataclasses import dataclass

from pydantic import ValidationError

from agentchat.agent.logging import log_decision, log_node_result, log_node_start, log_warning
from agentchat.agent.prompts import NO_HISTORY, format_router_prompt
from agentchat.agent.state import Message, RoutingDecision, SessionState
from agentchat.errors import GatewayError, NoMessagesError, RoutingError
from agentchat.llm import LLMGateway


HIGH_CONFIDENCE_THRESHOLD = 0.7
FALLBACK_CONFIDENCE = 0.5

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_DECISION_FIELDS = ("nextAgent", "confidence", "reasoning")


@dataclass
class RoutingOk:
    decision: RoutingDecision


@dataclass
class RoutingParseFailed:
    """No JSON object in the answer, or it did not parse."""
    reason: str
    raw: str


@dataclass
class RoutingInvalid:
    """Well-formed JSON with missing or out-of-range fields."""
    reason: str
    payload: dict


RoutingParseResult = RoutingOk | RoutingParseFailed | RoutingInvalid


def parse_routing_response(raw: str) -> RoutingParseResult:
    """
    Decode a router answer.

    Returns:
        RoutingOk with the decision, RoutingParseFailed when no JSON object
        could be loaded, or RoutingInvalid when its fields are wrong.
    """
    match = _JSON_OBJECT.search(raw or "")
    if not match:
        return RoutingParseFailed(reason="No JSON found in response", raw=raw or "")

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        return RoutingParseFailed(reason=f"JSON parse error: {exc}", raw=raw)

    if not isinstance(payload, dict):
        return RoutingInvalid(reason="Routing decision is not an object", payload={"value": payload})

    fields = {key: payload[key] for key in _DECISION_FIELDS if key in payload}
    try:
        decision = RoutingDecision.model_validate(fields)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return RoutingInvalid(reason=problems, payload=payload)

    return RoutingOk(decision=decision)


def fallback_decision(kind: str) -> RoutingDecision:
    """Default decision used when the router's answer is unusable."""
    reason = {
        "parse_failed": "Could not parse routing decision, defaulting to chat agent",
        "invalid": "Invalid routing decision, defaulting to chat agent",
    }[kind]
    return RoutingDecision(
        next_agent="chat",
        confidence=FALLBACK_CONFIDENCE,
        reasoning=reason,
        fallback=kind,
    )


def format_conversation_history(messages: list[Message]) -> str:
    """Format all but the latest message as a numbered, role-labelled list."""
    if len(messages) <= 1:
        return NO_HISTORY

    lines = [
        f"{index}. {msg.role.capitalize()}: {msg.content}"
        for index, msg in enumerate(messages[:-1], start=1)
    ]
    return "Previous conversation:\n" + "\n".join(lines)


def create_routing_prompt(state: SessionState) -> str:
    """Build the classification prompt for the latest message."""
    last = state.last_message()
    if last is None:
        raise NoMessagesError("No messages to route")
    return format_router_prompt(
        history=format_conversation_history(state.messages),
        message=last.content,
    )


def is_high_confidence(decision: RoutingDecision) -> bool:
    return decision.confidence >= HIGH_CONFIDENCE_THRESHOLD


class Router:
    """Chooses the specialist agent for the latest message."""

    def __init__(self, gateway: LLMGateway):
        self.gateway = gateway

    async def classify(self, state: SessionState) -> RoutingDecision:
        """
        Classify the latest message.

        Raises:
            NoMessagesError: the conversation has no messages
            RoutingError: the gateway call failed
        """
        if not state.messages:
            raise NoMessagesError("No messages to route")

        log_node_start("ROUTER", state.messages[-1].content)
        prompt = create_routing_prompt(state)

        try:
            raw = await self.gateway.complete(prompt)
        except GatewayError as exc:
            raise RoutingError("Failed to route message") from exc

        result = parse_routing_response(raw)

        if isinstance(result, RoutingParseFailed):
            log_warning("Router answer could not be parsed", result.reason)
            decision = fallback_decision("parse_failed")
        elif isinstance(result, RoutingInvalid):
            log_warning("Router answer failed validation", result.reason)
            decision = fallback_decision("invalid")
        else:
            decision = result.decision
            if not is_high_confidence(decision):
                log_warning("Low-confidence routing decision", {"nextAgent": decision.next_agent, "confidence": decision.confidence})

        log_node_result(
            "ROUTER",
            {"nextAgent": decision.next_agent, "confidence": decision.confidence},
        )
        log_decision(f"Routing to {decision.next_agent}", decision.reasoning)
        return decision

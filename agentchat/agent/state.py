"""
State definitions for the multi-agent system.
"""
import operator
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


AgentName = Literal["chat", "retrieval", "tool"]
AGENT_NAMES: tuple[str, ...] = ("chat", "retrieval", "tool")

EventType = Literal["status", "chunk", "complete", "error"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class WireModel(BaseModel):
    """Base model that reads/writes camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolCall(WireModel):
    """A tool invocation recorded on an assistant message."""
    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    error: str | None = None


class RetrievedDocument(WireModel):
    """A document reference returned by retrieval."""
    id: str
    content: str
    source: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class ToolResult(WireModel):
    """Result of one tool execution kept in session context."""
    tool_name: str
    result: Any = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class MessageMetadata(WireModel):
    """Optional metadata attached to a message."""
    tool_calls: list[ToolCall] | None = None
    retrieved_docs: list[RetrievedDocument] | None = None
    agent: str | None = None
    processing_time: float | None = None
    error: str | None = None


class Message(WireModel):
    """A single conversation message (one turn)."""
    id: str = Field(default_factory=new_id)
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime = Field(default_factory=utcnow)
    agent: str | None = None
    metadata: MessageMetadata | None = None

    @field_validator("content")
    @classmethod
    def content_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("message content cannot be empty")
        return value


class SessionState(WireModel):
    """
    Persistent session state across conversation turns.

    Messages are append-only and kept in chronological order.
    """
    session_id: str
    user_id: str | None = None
    messages: list[Message] = Field(default_factory=list)
    next_agent: AgentName | None = None
    retrieved_docs: list[RetrievedDocument] = Field(default_factory=list)
    tool_results: list[ToolResult] = Field(default_factory=list)
    # Routing decision, last active agent, handler metadata, errors
    context: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None

    def last_message(self) -> Message | None:
        """Most recent message, or None for an empty conversation."""
        return self.messages[-1] if self.messages else None

    def add_message(self, message: Message) -> None:
        self.messages.append(message)


class RoutingDecision(WireModel):
    """
    Router output.

    ``fallback`` is set only on decisions the router substituted after a
    malformed (``parse_failed``) or ill-shaped (``invalid``) answer.
    """
    next_agent: AgentName
    confidence: float = Field(ge=0.0, le=1.0, strict=True)
    reasoning: str = Field(min_length=1, strict=True)
    fallback: Literal["parse_failed", "invalid"] | None = None

    @field_validator("reasoning")
    @classmethod
    def reasoning_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reasoning cannot be blank")
        return value


class AgentResponse(BaseModel):
    """What a specialist handler returns."""
    agent: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class StreamEvent(BaseModel):
    """One unit of the orchestrator's output sequence (and of the wire)."""
    type: EventType
    agent: str
    content: str
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: dict[str, Any] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.type in ("complete", "error")

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


def merge_context(left: dict[str, Any], right: dict[str, Any]) -> dict[str, Any]:
    """Shallow-merge reducer for the graph's context channel."""
    return {**(left or {}), **(right or {})}


class GraphState(BaseModel):
    """
    State that flows through the LangGraph.

    Messages use an append reducer and context a shallow merge, so nodes
    only return what they add.
    """
    messages: Annotated[list[Message], operator.add] = Field(default_factory=list)
    session_id: str = ""
    user_id: str | None = None
    next_agent: str | None = None
    retrieved_docs: list[RetrievedDocument] = Field(default_factory=list)
    tool_results: list[ToolResult] = Field(default_factory=list)
    context: Annotated[dict[str, Any], merge_context] = Field(default_factory=dict)

    @classmethod
    def from_session(cls, state: SessionState) -> "GraphState":
        return cls(
            messages=list(state.messages),
            session_id=state.session_id,
            user_id=state.user_id,
            next_agent=state.next_agent,
            retrieved_docs=list(state.retrieved_docs),
            tool_results=list(state.tool_results),
            context=dict(state.context),
        )

    def to_session(self) -> SessionState:
        """View of the graph state as a session (used by handlers)."""
        return SessionState(
            session_id=self.session_id,
            user_id=self.user_id,
            messages=list(self.messages),
            retrieved_docs=list(self.retrieved_docs),
            tool_results=list(self.tool_results),
            context=dict(self.context),
        )

"""
LangGraph orchestration for the multi-agent chat.

One pass per message:
  router → (chat | retrieval | tool) → END

``resolve`` runs the compiled graph. ``stream`` walks the same steps
and yields StreamEvents as it goes, passing the chat handler's tokens
straight through.
"""
import asyncio
import time
from typing import Any, AsyncIterator

from langgraph.graph import END, StateGraph

from agentchat.agent.logging import (
    log_decision,
    log_error,
    log_flow_complete,
    log_header,
    log_node_result,
)
from agentchat.agent.nodes import ChatHandler, RetrievalHandler, Router, ToolHandler
from agentchat.agent.prompts import (
    HANDLER_ERROR_RESPONSE,
    ROUTER_STATUS,
    STREAM_ERROR_RESPONSE,
    agent_status,
)
from agentchat.agent.registry import HandlerRegistry
from agentchat.agent.state import (
    AgentResponse,
    GraphState,
    Message,
    MessageMetadata,
    SessionState,
    StreamEvent,
    merge_context,
)
from agentchat.errors import HandlerError, NoMessagesError, RoutingError
from agentchat.llm import LLMGateway


DEFAULT_AGENT = "chat"


def default_registry(gateway: LLMGateway) -> HandlerRegistry:
    """Registry with the standard chat/retrieval/tool handlers."""
    registry = HandlerRegistry()
    registry.register(ChatHandler(gateway))
    registry.register(RetrievalHandler())
    registry.register(ToolHandler())
    return registry


def split_words(text: str) -> list[str]:
    """Word chunks for handlers that can't stream natively."""
    return [word + " " for word in text.split(" ")]


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _assistant_message(agent: str, content: str, elapsed_ms: float, error: str | None = None) -> Message:
    return Message(
        role="assistant",
        content=content,
        agent=agent,
        metadata=MessageMetadata(agent=agent, processing_time=elapsed_ms, error=error),
    )


class Orchestrator:
    """
    Composes the router and the handler registry.

    Usage:
        orchestrator = Orchestrator(Router(gateway), default_registry(gateway))
        updated = await orchestrator.resolve(state)
        async for event in orchestrator.stream(state):
            ...
    """

    def __init__(self, router: Router, registry: HandlerRegistry, chunk_delay: float = 0.0):
        self.router = router
        self.registry = registry
        self.chunk_delay = chunk_delay
        self.graph = self.create_graph()

    # ---- graph ----

    def create_graph(self):
        """
        Build the routing graph.

        Graph structure:
        ```
        START → router → [next_agent?]
                            │
              ┌─────────────┼─────────────┐
              ▼             ▼             ▼
            chat        retrieval        tool
              │             │             │
              └─────────────┴─────────────┘
                            ▼
                           END
        ```
        """
        workflow = StateGraph(GraphState)

        workflow.add_node("router", self._router_node)
        for name in self.registry.names():
            workflow.add_node(name, self._make_agent_node(name))

        workflow.set_entry_point("router")

        workflow.add_conditional_edges(
            "router",
            self.route_decision,
            {name: name for name in self.registry.names()},
        )

        for name in self.registry.names():
            workflow.add_edge(name, END)

        return workflow.compile()

    def route_decision(self, state: GraphState) -> str:
        """Conditional edge: go to the chosen agent, or chat."""
        if state.next_agent and state.next_agent in self.registry:
            return state.next_agent
        return DEFAULT_AGENT

    async def _router_node(self, state: GraphState) -> dict:
        next_agent, context = await self._route(state.to_session())
        return {"next_agent": next_agent, "context": context}

    def _make_agent_node(self, name: str):
        async def agent_node(state: GraphState) -> dict:
            message, context = await self._dispatch(name, state.to_session())
            return {"messages": [message], "context": context}

        agent_node.__name__ = f"{name}_node"
        return agent_node

    # ---- steps shared by resolve and stream ----

    async def _route(self, state: SessionState) -> tuple[str, dict[str, Any]]:
        """
        Classify, degrading to chat when the gateway is unusable.

        Returns:
            Tuple of (agent_name, context_update)
        """
        try:
            decision = await self.router.classify(state)
        except RoutingError as exc:
            log_error("Routing failed, falling back to chat", exc)
            log_decision(f"Routing to {DEFAULT_AGENT}", "router unavailable")
            return DEFAULT_AGENT, {"routingError": f"{exc.message}: {exc.__cause__}"}

        context: dict[str, Any] = {
            "routingDecision": decision.model_dump(by_alias=True, exclude_none=True),
        }
        if decision.fallback:
            context["routingFallback"] = decision.fallback

        next_agent = decision.next_agent
        if next_agent not in self.registry:
            context["routingError"] = f"No handler registered for agent: {next_agent}"
            next_agent = DEFAULT_AGENT
        return next_agent, context

    async def _dispatch(self, name: str, state: SessionState) -> tuple[Message, dict[str, Any]]:
        """
        Run one handler and turn its reply into an assistant message.

        A failing handler yields the fixed apology instead of raising.
        """
        handler = self.registry.get(name)
        started = time.perf_counter()
        try:
            response: AgentResponse = await handler.handle(state)
            message = _assistant_message(name, response.content, _elapsed_ms(started))
        except Exception as exc:
            log_error(f"{name} handler failed", exc)
            message = _assistant_message(name, HANDLER_ERROR_RESPONSE, _elapsed_ms(started), error=type(exc).__name__)
            return message, {"lastAgent": name, f"{name}Error": str(exc)}

        log_node_result(name, {"agent": name, "length": len(response.content)})
        return message, {"lastAgent": name, "agentMetadata": response.metadata}

    # ---- entry points ----

    async def resolve(self, state: SessionState) -> SessionState:
        """
        Run one message through the graph.

        Always appends exactly one assistant message. The input state is
        not modified; the updated copy is returned.
        """
        if not state.messages:
            raise NoMessagesError("No messages to route")

        log_header(f"NEW MESSAGE ({state.session_id})")
        result = await self.graph.ainvoke(GraphState.from_session(state))

        updated = state.model_copy(
            update={
                "messages": list(result["messages"]),
                "context": dict(result["context"]),
                "next_agent": result.get("next_agent") or DEFAULT_AGENT,
            }
        )
        log_flow_complete(updated.messages[-1].content)
        return updated

    async def stream(self, state: SessionState) -> AsyncIterator[StreamEvent]:
        """
        Run one message and yield progress/content events.

        Yields one ``status`` for the router, one ``status`` for the chosen
        agent, ``chunk`` events, then a single ``complete`` or ``error``.
        On ``complete`` the assistant message and context are appended to
        ``state`` in place; the caller persists it. Nothing is appended if
        the stream is abandoned or ends with ``error``.
        """
        yield StreamEvent(type="status", agent="router", content=ROUTER_STATUS, metadata={"status": "routing"})

        agent = DEFAULT_AGENT
        emitted_chunks = False
        try:
            if not state.messages:
                raise NoMessagesError("No messages to route")

            log_header(f"NEW MESSAGE (streaming, {state.session_id})")
            agent, context = await self._route(state)
            yield StreamEvent(
                type="status",
                agent=agent,
                content=agent_status(agent),
                metadata={"status": "processing"},
            )

            started = time.perf_counter()
            error_name = None
            if self.registry.supports_streaming(agent):
                fragments = []
                try:
                    async for fragment in self.registry.get(agent).stream(state):
                        fragments.append(fragment)
                        if not emitted_chunks:
                            # Hold back whitespace until the reply has visible text
                            if not "".join(fragments).strip():
                                continue
                            fragment = "".join(fragments)
                        emitted_chunks = True
                        yield StreamEvent(type="chunk", agent=agent, content=fragment, metadata={"status": "streaming"})
                    if not emitted_chunks:
                        raise HandlerError("Model returned an empty reply")
                except Exception as exc:
                    if emitted_chunks:
                        raise
                    log_error(f"{agent} handler failed", exc)
                    error_name = type(exc).__name__
                    context.update({"lastAgent": agent, f"{agent}Error": str(exc)})

                if error_name is None:
                    reply = "".join(fragments)
                    context.update({"lastAgent": agent, "agentMetadata": {}})
                else:
                    reply = HANDLER_ERROR_RESPONSE
                message = _assistant_message(agent, reply, _elapsed_ms(started), error=error_name)
            else:
                message, handler_context = await self._dispatch(agent, state)
                context.update(handler_context)

            # Synthesized word chunks for non-incremental replies
            if not emitted_chunks:
                for piece in split_words(message.content):
                    yield StreamEvent(type="chunk", agent=agent, content=piece, metadata={"status": "streaming"})
                    if self.chunk_delay:
                        await asyncio.sleep(self.chunk_delay)

            state.add_message(message)
            state.context = merge_context(state.context, context)
            state.next_agent = agent

            log_flow_complete(message.content)
            yield StreamEvent(
                type="complete",
                agent=agent,
                content=message.content,
                metadata={"messageId": message.id},
            )
        except Exception as exc:
            log_error("Streaming failed", exc)
            yield StreamEvent(type="error", agent="system", content=STREAM_ERROR_RESPONSE)

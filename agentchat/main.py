"""
FastAPI application with streaming for the multi-agent chat.

Endpoints:
- POST /chat - Streaming chat, newline-delimited ``data:`` frames
- POST /chat/stream - Same flow as a text/event-stream (SSE)
- OPTIONS /chat - CORS preflight
- GET /health - Health check
- GET /sessions, GET/DELETE /sessions/{session_id} - Session management
- POST /sessions/purge - Delete idle sessions
"""
from contextlib import asynccontextmanager
from datetime import timedelta
from functools import lru_cache
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from sse_starlette.sse import EventSourceResponse

from agentchat.agent import Orchestrator, Router, default_registry
from agentchat.agent.logging import log_error, log_session_state, log_warning
from agentchat.agent.state import Message, SessionState, StreamEvent
from agentchat.config import get_settings
from agentchat.errors import ChatError, GatewayError, RequestValidationError, StorageError
from agentchat.llm import get_gateway
from agentchat.memory import FileSessionStore, InMemorySessionStore, SessionStore
from agentchat.transport import (
    CORS_HEADERS,
    STREAM_HEADERS,
    encode_event,
    parse_chat_request,
    sse_event,
)
from agentchat.validation import ChatRequestData, validate_session_id


LOAD_FAILED = "Failed to load session"
GENERIC_FAILURE = "Failed to process message"
SESSION_HEADER = "X-Session-Id"


# Dependencies (overridable in tests via app.dependency_overrides)

@lru_cache()
def get_session_store() -> SessionStore:
    """Session store selected by SESSION_BACKEND."""
    settings = get_settings()
    if settings.SESSION_BACKEND == "file":
        return FileSessionStore(settings.SESSION_DIR)
    return InMemorySessionStore()


@lru_cache()
def get_orchestrator() -> Orchestrator:
    """Orchestrator wired to the default gateway and handlers."""
    settings = get_settings()
    gateway = get_gateway()
    return Orchestrator(
        Router(gateway),
        default_registry(gateway),
        chunk_delay=settings.STREAM_CHUNK_DELAY,
    )


# Request helpers

def provide(request: Request, dependency):
    """
    Resolve a dependency inside an endpoint, honouring dependency_overrides.

    Used for collaborators that need the LLM key, so request validation
    runs before they are built.
    """
    factory = request.app.dependency_overrides.get(dependency, dependency)
    return factory()


async def load_conversation(store: SessionStore, data: ChatRequestData) -> SessionState:
    """
    Load the session and append the new user message.

    Raises:
        StorageError: the store could not be read
    """
    existing = await store.load(data.session_id)
    state = existing or SessionState(session_id=data.session_id, user_id=data.user_id)
    if data.user_id:
        state.user_id = data.user_id
    state.add_message(Message(role="user", content=data.message))
    return state


async def run_conversation(
    orchestrator: Orchestrator,
    store: SessionStore,
    state: SessionState,
) -> AsyncGenerator[StreamEvent, None]:
    """
    Stream one turn and persist the session once it completes.

    A failed save is logged only: the reply has already been delivered.
    """
    last_event = None
    async for event in orchestrator.stream(state):
        last_event = event
        yield event

    if last_event is None or last_event.type != "complete":
        return

    try:
        await store.save(state.session_id, state)
    except StorageError as exc:
        log_error("Failed to save session after the reply was delivered", exc)
        return
    log_session_state(state)


async def _prepare(request: Request, store: SessionStore) -> SessionState | JSONResponse:
    try:
        data = parse_chat_request(await request.body())
    except RequestValidationError as exc:
        return JSONResponse({"error": exc.message}, status_code=400, headers=CORS_HEADERS)

    try:
        return await load_conversation(store, data)
    except StorageError as exc:
        log_error(LOAD_FAILED, exc)
        return JSONResponse({"error": LOAD_FAILED}, status_code=500, headers=CORS_HEADERS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    missing = settings.validate()
    if missing:
        log_warning(f"Missing environment variables: {missing}")
        log_warning("The agent will not function properly without these.")
    else:
        print("Configuration validated successfully")

    yield


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Multi-Agent Chat",
        description="Routes chat messages to chat, retrieval and tool agents",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,  # Must be False when using allow_origins=["*"]
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=[SESSION_HEADER],
    )

    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError):
        log_error(f"{request.method} {request.url.path} failed", exc)
        message = exc.message if exc.http_status < 500 else GENERIC_FAILURE
        return JSONResponse({"error": message}, status_code=exc.http_status)

    @app.get("/health")
    async def health_check(request: Request, store: SessionStore = Depends(get_session_store)):
        """Health check endpoint."""
        missing = settings.validate()
        try:
            model = provide(request, get_gateway).model_info()
        except GatewayError:
            # No usable key: report the configured model only
            model = {"provider": settings.LLM_PROVIDER, "model": settings.LLM_MODEL}
        try:
            sessions = await store.stats()
        except StorageError:
            sessions = None

        return {
            "status": "healthy" if not missing and sessions is not None else "degraded",
            "missing_config": missing,
            "model": model,
            "sessions": sessions,
        }

    @app.options("/chat")
    async def chat_options():
        """CORS preflight for clients that send a bare OPTIONS."""
        return Response(status_code=200, headers=CORS_HEADERS)

    @app.post("/chat")
    async def chat(
        request: Request,
        store: SessionStore = Depends(get_session_store),
    ):
        """
        Streaming chat endpoint.

        Body is a sequence of ``data: <StreamEvent JSON>\\n\\n`` frames:
        status, status, chunk..., then complete or error.
        """
        prepared = await _prepare(request, store)
        if isinstance(prepared, Response):
            return prepared
        orchestrator = provide(request, get_orchestrator)

        async def generate():
            async for event in run_conversation(orchestrator, store, prepared):
                yield encode_event(event)

        return StreamingResponse(
            generate(),
            media_type="text/plain; charset=utf-8",
            headers={**STREAM_HEADERS, **CORS_HEADERS, SESSION_HEADER: prepared.session_id},
        )

    @app.post("/chat/stream")
    async def chat_stream(
        request: Request,
        store: SessionStore = Depends(get_session_store),
    ):
        """
        SSE streaming chat endpoint.

        Events are named after the StreamEvent type:
        - status / chunk / complete / error: {StreamEvent JSON}
        """
        prepared = await _prepare(request, store)
        if isinstance(prepared, Response):
            return prepared
        orchestrator = provide(request, get_orchestrator)

        async def generate():
            async for event in run_conversation(orchestrator, store, prepared):
                yield sse_event(event)

        return EventSourceResponse(generate(), headers={SESSION_HEADER: prepared.session_id})

    @app.post("/sessions/purge")
    async def purge_sessions(
        max_age_hours: float | None = Query(default=None, alias="maxAgeHours", gt=0),
        store: SessionStore = Depends(get_session_store),
    ):
        """Delete sessions idle for longer than maxAgeHours (default SESSION_MAX_AGE_HOURS)."""
        hours = max_age_hours or settings.SESSION_MAX_AGE_HOURS
        try:
            purged = await store.purge_older_than(timedelta(hours=hours))
        except StorageError as exc:
            log_error("Failed to purge sessions", exc)
            return JSONResponse({"error": "Failed to purge sessions"}, status_code=500)
        return {"purged": purged, "maxAgeHours": hours}

    @app.get("/sessions")
    async def list_sessions(
        user_id: str | None = Query(default=None, alias="userId"),
        store: SessionStore = Depends(get_session_store),
    ):
        """Session ids, optionally for one user."""
        try:
            return {"sessions": await store.list_sessions(user_id)}
        except StorageError as exc:
            log_error("Failed to list sessions", exc)
            return JSONResponse({"error": "Failed to list sessions"}, status_code=500)

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
        """Messages of one session (context and internal errors are not exposed)."""
        if not validate_session_id(session_id).is_valid:
            return JSONResponse({"error": "Invalid session ID format"}, status_code=400)
        try:
            state = await store.load(session_id)
        except StorageError as exc:
            log_error(LOAD_FAILED, exc)
            return JSONResponse({"error": LOAD_FAILED}, status_code=500)
        if state is None:
            return JSONResponse({"error": "Session not found"}, status_code=404)

        return {
            "sessionId": state.session_id,
            "userId": state.user_id,
            "messages": [
                m.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"metadata": {"error"}})
                for m in state.messages
            ],
            "lastAgent": state.context.get("lastAgent"),
            "updatedAt": state.updated_at.isoformat() if state.updated_at else None,
        }

    @app.delete("/sessions/{session_id}")
    async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)):
        """Delete one session."""
        if not validate_session_id(session_id).is_valid:
            return JSONResponse({"error": "Invalid session ID format"}, status_code=400)
        try:
            if await store.load(session_id) is None:
                return JSONResponse({"error": "Session not found"}, status_code=404)
            await store.delete(session_id)
        except StorageError as exc:
            log_error("Failed to delete session", exc)
            return JSONResponse({"error": "Failed to delete session"}, status_code=500)
        return {"deleted": session_id}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "agentchat.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
    )

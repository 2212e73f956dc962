import json
import time
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import BackgroundTasks, Depends, FastAPI, Request, Response
from fastapi.responses import PlainTextResponse, StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import ValidationError as PydanticValidationError

from agent import ConversationRouter
from api.credentials import CredentialBroker
from api.external_client import ExternalClient
from auth import get_identity
from base import CompletionProvider
from config.settings import Settings, get_settings
from errors import SessionExistsError
from memory.sessions import Session, SessionRegistry
from metrics import MESSAGE_COUNTER, OPEN_STREAMS
from models import MessageRequest
from tools import ToolDispatcher, build_registry
from utils import get_provider_class


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "level": record.levelname,
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "msg": record.getMessage(),
            "logger": record.name,
        }
        if hasattr(record, "extra_data"):
            base.update(getattr(record, "extra_data"))
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, default=str)


def configure_logging(settings: Settings) -> logging.Logger:
    logger = logging.getLogger("app")
    logger.setLevel(settings.logging.level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if settings.logging.json_logging:
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def sse_event(event: str, data: str) -> str:
    return f"event: {event}\ndata: {data}\n\n"


async def event_stream(request: Request, session: Session, sessions: SessionRegistry, heartbeat_seconds: float):
    """Announce the messages endpoint, then relay frames with pings while idle."""
    channel = session.channel
    try:
        yield sse_event("endpoint", f"/messages?sessionId={quote(session.id, safe='')}")
        async for frame in channel.frames(idle_timeout=heartbeat_seconds):
            if await request.is_disconnected():
                break
            if frame is None:
                yield sse_event("ping", "{}")
            else:
                yield sse_event("message", frame.model_dump_json())
    finally:
        channel.close()
        OPEN_STREAMS.set(len(sessions))


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[CompletionProvider] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """Wire registry, clients and router together; registration errors fail here."""
    settings = settings or get_settings()
    logger = configure_logging(settings)

    if provider is None:
        provider = get_provider_class(settings.orchestrator.provider_name)(settings.openai)

    client = ExternalClient(
        client=http_client,
        timeout_seconds=settings.integrations.timeout_seconds,
        page_size=settings.integrations.page_size,
    )
    broker = CredentialBroker(settings.credentials, client=http_client)
    registry = build_registry(client, broker, provider, settings)
    sessions = SessionRegistry()
    router = ConversationRouter(sessions, ToolDispatcher(registry), provider, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Serving {len(registry)} tools with {type(provider).__name__}")
        yield
        for session_id in sessions.ids():
            sessions.remove(session_id)
        if http_client is None:
            await client.aclose()
            await broker.aclose()

    app = FastAPI(title="HR Assistant Stream Server", version="1.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.sessions = sessions
    app.state.registry = registry
    app.state.router = router

    async def open_stream(request: Request, id: Optional[str] = None, identity: dict = Depends(get_identity)):
        session_id = (id or "").strip()
        if not session_id:
            return PlainTextResponse("session id required", status_code=400)
        try:
            session = sessions.create(session_id)
        except SessionExistsError:
            return PlainTextResponse("session already streaming", status_code=409)
        OPEN_STREAMS.set(len(sessions))
        return StreamingResponse(
            event_stream(request, session, sessions, settings.stream.heartbeat_seconds),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    app.add_api_route("/stream", open_stream, methods=["GET"])
    app.add_api_route("/sse", open_stream, methods=["GET"])

    @app.post("/messages", status_code=202)
    async def post_message(
        request: Request,
        background: BackgroundTasks,
        sessionId: Optional[str] = None,
        id: Optional[str] = None,
        identity: dict = Depends(get_identity),
    ):
        request_id = str(uuid.uuid4())
        try:
            body = await request.json()
        except ValueError:
            body = {}
        try:
            msg = MessageRequest.model_validate(body if isinstance(body, dict) else {})
        except PydanticValidationError:
            MESSAGE_COUNTER.labels(status="invalid").inc()
            return PlainTextResponse("invalid message body", status_code=400)

        session_id = sessionId or id or msg.session_id or msg.id or ""
        extra = {"extra_data": {"request_id": request_id, "session_id": session_id}}
        if sessions.lookup(session_id) is None:
            MESSAGE_COUNTER.labels(status="dropped").inc()
            logger.info("Message for unknown session dropped", extra=extra)
            return Response(status_code=202)

        MESSAGE_COUNTER.labels(status="accepted").inc()
        logger.info("Message accepted", extra=extra)
        background.add_task(router.handle, session_id, msg.content, request_id)
        return Response(status_code=202)

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthz():
        return "ok"

    @app.get("/metrics")
    def metrics():
        return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()

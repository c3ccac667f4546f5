"""
GenUI Service - Main Entry Point
HTTP transport for generation turns: SSE stream, one-shot and health
"""

from contextlib import asynccontextmanager
from typing import Any

import orjson
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST

from genui.clients import DataProviderRegistry
from genui.core import Settings, ValidationError, configure_logging, create_container, get_logger, get_settings
from genui.handlers import ChatHandler
from genui.models import ModelLoader
from genui.monitoring import MetricsCollector
from genui.session import SessionStore


logger = get_logger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup, release backends on shutdown."""
    settings: Settings = app.state.settings
    configure_logging(settings.log_level, settings.json_logs)
    logger.info("starting", backend=settings.llm_backend, port=settings.port)

    yield

    logger.info("shutting_down")
    try:
        app.state.container.get(DataProviderRegistry).close()
        ModelLoader.unload()
    except Exception as e:
        logger.error("shutdown_failed", error=str(e))
    logger.info("shutdown_complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and its dependency container."""
    settings = settings or get_settings()
    container = create_container(settings)

    app = FastAPI(
        title="GenUI Service",
        description="Generative UI: intent resolution, component trees and incremental patches",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"error": exc.message})

    def handler() -> ChatHandler:
        return container.get(ChatHandler)

    def event_stream(payload: Any) -> StreamingResponse:
        chat = handler()
        turn = chat.parse(payload)
        return StreamingResponse(chat.stream(turn), media_type="text/event-stream", headers=SSE_HEADERS)

    @app.post("/api/chat")
    async def chat_stream(request: Request) -> StreamingResponse:
        """Stream one turn as server-sent events."""
        return event_stream(await _read_json(request))

    @app.get("/api/chat")
    async def chat_stream_get(payload: str) -> StreamingResponse:
        """Same stream, with the request body in the ``payload`` query parameter."""
        return event_stream(_loads(payload))

    @app.post("/api/chat/once")
    async def chat_once(request: Request) -> dict[str, Any]:
        """Run one turn and return the patch in a single response."""
        chat = handler()
        return await chat.once(chat.parse(await _read_json(request)))

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "healthy", "sessions": len(container.get(SessionStore))}

    @app.get("/metrics")
    async def metrics() -> Response:
        collector = container.get(MetricsCollector)
        return Response(collector.get_metrics(), media_type=CONTENT_TYPE_LATEST)

    return app


def _loads(raw: str | bytes) -> Any:
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ValidationError(f"body: invalid JSON ({e})", e) from e


async def _read_json(request: Request) -> Any:
    return _loads(await request.body())


app = create_app()


def run() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("genui.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()

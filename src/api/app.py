"""
FastAPI application for the chat stream engine

Serves a single chat session backed by the in-memory conversation backend:
- Chat routes (send, switch, delete, list)
- SSE event stream of the visible message list
- Health check endpoint
"""

from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from src.api.events import EventBroadcaster
from src.api.routes import chat
from src.api.schemas.chat import HealthResponse
from src.config.settings import settings
from src.services.in_memory_backend import InMemoryChatBackend
from src.services.responder import StreamResponder
from src.session.chat_session import ChatSession
from src.utils.logger import setup_logger

SERVICE_NAME = "chat-stream-engine"
VERSION = "1.0.0"


def create_app(
    backend: Optional[InMemoryChatBackend] = None,
    llm_factory: Optional[Callable[[str], Any]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        backend: Conversation backend (a fresh in-memory one by default)
        llm_factory: Model-id -> chat model factory used by the responder
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: build backend, responder, broadcaster and session.
        Shutdown: cancel in-flight replies and session tasks.
        """
        logger.info("🚀 Chat API starting...")
        chat_backend = backend or InMemoryChatBackend()
        responder = StreamResponder(chat_backend, llm_factory=llm_factory).attach()
        broadcaster = EventBroadcaster()
        session = ChatSession(
            chat_backend,
            stream_source=chat_backend,
            loader=chat_backend,
            notify=broadcaster.on_scroll,
            on_change=broadcaster.on_change,
        )
        broadcaster.session = session

        app.state.backend = chat_backend
        app.state.responder = responder
        app.state.broadcaster = broadcaster
        app.state.session = session

        yield

        logger.info("🛑 Chat API shutting down...")
        await session.close()
        await responder.close()
        logger.info("✅ Session closed")

    app = FastAPI(
        title="Chat Stream Engine API",
        description="Streaming chat session with incremental stream reconciliation.",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat.router)

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint - API information"""
        return {
            "service": SERVICE_NAME,
            "version": VERSION,
            "status": "running",
            "docs": "/docs",
            "endpoints": {
                "health": "/health",
                "messages": "/api/chat/messages",
                "events": "/api/chat/events",
            },
        }

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check():
        """Health check endpoint"""
        return HealthResponse(status="healthy", service=SERVICE_NAME, version=VERSION)

    return app


setup_logger()
app = create_app()

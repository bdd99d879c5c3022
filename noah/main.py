"""Noah HTTP application: app factory, middleware stack and service lifecycle."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from noah.agents.registry import AgentRegistry
from noah.analytics.service import analytics_service
from noah.api import (
    artifacts_router,
    chat_router,
    database_router,
    filesystem_router,
    health_router,
    video_router,
)
from noah.chat.orchestrator import ChatOrchestrator
from noah.config import Settings, get_settings
from noah.core import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
    TrustedHostMiddleware,
    get_logger,
    setup_exception_handlers,
    setup_logging,
)
from noah.db import dispose_engine, verify_database_connection
from noah.filesystem.service import get_filesystem_service
from noah.memory.service import get_memory_service
from noah.providers import ProviderRegistry

logger = get_logger(__name__)

LOCAL_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


async def _start_services(app: FastAPI, settings: Settings) -> None:
    """Build the chat pipeline and bring up the optional MCP children."""
    # Tests may install their own provider registry before startup
    app.state.owns_provider_registry = not hasattr(app.state, "provider_registry")
    if app.state.owns_provider_registry:
        app.state.provider_registry = ProviderRegistry(settings)

    app.state.agent_registry = AgentRegistry(app.state.provider_registry, settings)

    memory = get_memory_service()
    await get_filesystem_service().initialize()
    await memory.initialize()

    app.state.chat_orchestrator = ChatOrchestrator(
        app.state.provider_registry,
        app.state.agent_registry,
        settings=settings,
        memory=memory,
    )


async def _stop_services(app: FastAPI) -> None:
    """Let queued analytics and memory writes land, then release clients and children."""
    await app.state.chat_orchestrator.drain()
    await analytics_service.drain()
    await get_filesystem_service().cleanup()
    await get_memory_service().shutdown()
    await app.state.agent_registry.aclose()
    if app.state.owns_provider_registry:
        await app.state.provider_registry.aclose()
    dispose_engine()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    setup_logging(
        level=settings.log_level,
        json_output=not settings.debug,
        log_file=settings.log_file or None,
    )
    logger.info(
        "Noah starting",
        data={
            "environment": settings.environment,
            "bind": f"{settings.host}:{settings.port}",
            "mock_providers": settings.is_mock_mode,
            "rag_enabled": settings.rag_enabled,
            "analytics_enabled": settings.analytics_enabled,
        },
    )

    # Schema is managed by Alembic (noah/scripts/run_migrations.py), never created here
    if not verify_database_connection():
        logger.warning("Analytics database unreachable; run 'alembic upgrade head' first")

    await _start_services(app, settings)
    try:
        yield
    finally:
        logger.info("Noah shutting down")
        await _stop_services(app)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Noah",
        description="Conversational assistant with research and build agents, boutique tools and analytics",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=settings.docs_url,
        redoc_url=None,
    )
    setup_exception_handlers(app)

    # Starlette runs the last-added middleware first: CORS, headers, context, size, host
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts_list)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_origin_regex=None if settings.is_production else LOCAL_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Session-Id", "X-Noah-Status", "X-Noah-Agent"],
    )

    for router in (
        health_router,
        chat_router,
        database_router,
        filesystem_router,
        artifacts_router,
        video_router,
    ):
        app.include_router(router)
    return app


app = create_app()

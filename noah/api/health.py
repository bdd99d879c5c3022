"""Liveness and readiness probes."""

from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from noah.config import get_settings
from noah.core.time import utcnow
from noah.db import verify_database_connection
from noah.filesystem.service import get_filesystem_service
from noah.memory.service import get_memory_service

router = APIRouter(tags=["health"])

VERSION = "0.1.0"


@router.get("/health")
@router.get("/healthz")
async def healthcheck() -> Dict[str, Any]:
    """Process is up. Reports which optional MCP services came up with it."""
    settings = get_settings()
    return {
        "status": "ok",
        "version": VERSION,
        "timestamp": utcnow().isoformat(),
        "environment": settings.environment,
        "mock_providers": settings.is_mock_mode,
        "filesystem": get_filesystem_service().available,
        "memory": get_memory_service().available,
    }


@router.get("/readyz")
async def readiness(request: Request) -> JSONResponse:
    """Database must answer; LLM providers are probed only with READINESS_CHECK_PROVIDERS."""
    checks = {"database": verify_database_connection()}
    payload: Dict[str, Any] = {"checks": checks}

    if get_settings().readiness_check_providers:
        registry = getattr(request.app.state, "provider_registry", None)
        probes = await registry.healthcheck_all() if registry is not None else {}
        checks["providers"] = bool(probes) and all(probes.values())
        payload["providers"] = probes

    ready = all(checks.values())
    payload.update(status="ready" if ready else "not_ready", timestamp=utcnow().isoformat())
    return JSONResponse(status_code=200 if ready else 503, content=payload)

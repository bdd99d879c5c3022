"""API routers."""

from noah.api.artifacts import router as artifacts_router
from noah.api.chat import router as chat_router
from noah.api.database import router as database_router
from noah.api.filesystem import router as filesystem_router
from noah.api.health import router as health_router
from noah.api.video import router as video_router

__all__ = [
    "artifacts_router",
    "chat_router",
    "database_router",
    "filesystem_router",
    "health_router",
    "video_router",
]

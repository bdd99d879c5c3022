"""Intro video and other static media."""

from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

from noah.config import get_settings
from noah.core.exceptions import NotFoundError
from noah.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/video", tags=["media"])

DEFAULT_VIDEO = "intro-video.mp4"


@router.get("")
async def serve_video(file: str = DEFAULT_VIDEO) -> FileResponse:
    media_dir = Path(get_settings().media_dir).resolve()
    target = (media_dir / file).resolve()
    if not target.is_relative_to(media_dir) or not target.is_file():
        logger.warning("Video not found", data={"file": file})
        raise NotFoundError("Video not found")

    return FileResponse(
        target,
        media_type="video/mp4" if target.suffix == ".mp4" else None,
        headers={"Cache-Control": "public, max-age=3600"},
    )

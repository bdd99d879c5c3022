"""File save approval workflow."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from noah.bridges.stdio import MCPToolError
from noah.core.exceptions import NotFoundError, ServiceUnavailableError
from noah.core.logging import get_logger
from noah.filesystem.service import MCPFilesystemService, get_filesystem_service

logger = get_logger(__name__)
router = APIRouter(prefix="/api/filesystem", tags=["filesystem"])

CONTENT_TYPES = {
    "html": "text/html",
    "js": "application/javascript",
    "json": "application/json",
    "css": "text/css",
    "txt": "text/plain",
    "md": "text/markdown",
    "py": "text/x-python",
}


class SaveRequestIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName", min_length=1, max_length=255, pattern=r"^[^/\\]+$")
    content: str
    session_id: str = Field(alias="sessionId", min_length=1)
    description: Optional[str] = None


class ExecuteIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operation_id: str = Field(alias="operationId", min_length=1)
    custom_file_name: Optional[str] = Field(
        default=None, alias="customFileName", max_length=255, pattern=r"^[^/\\]+$"
    )


class RejectIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operation_id: str = Field(alias="operationId", min_length=1)


@router.post("/propose", status_code=status.HTTP_201_CREATED)
async def propose_save(
    body: SaveRequestIn,
    service: MCPFilesystemService = Depends(get_filesystem_service),
) -> Dict[str, Any]:
    operation_id = service.propose_save_request(
        body.file_name, body.content, body.session_id, body.description
    )
    return {"success": True, "operationId": operation_id}


@router.get("/pending")
async def pending_operations(
    service: MCPFilesystemService = Depends(get_filesystem_service),
) -> Dict[str, List[Dict[str, Any]]]:
    return {"operations": [op.to_dict() for op in service.get_pending_operations()]}


@router.post("/execute")
async def execute_operation(
    body: ExecuteIn,
    service: MCPFilesystemService = Depends(get_filesystem_service),
) -> Dict[str, Any]:
    """Approve and write a pending operation."""
    if not service.available:
        raise ServiceUnavailableError("Filesystem service not available")

    if body.custom_file_name:
        service.rename_operation(body.operation_id, body.custom_file_name)
    service.approve_operation(body.operation_id)
    operation = await service.execute_file_operation(body.operation_id)

    file_name = operation.path.rsplit("/", 1)[-1]
    return {
        "success": True,
        "fileName": file_name,
        "filePath": operation.path,
        "fileSize": operation.metadata.file_size,
        "fileType": file_name.rsplit(".", 1)[-1] if "." in file_name else "txt",
    }


@router.post("/reject")
async def reject_operation(
    body: RejectIn,
    service: MCPFilesystemService = Depends(get_filesystem_service),
) -> Dict[str, Any]:
    service.reject_operation(body.operation_id)
    return {"success": True}


@router.get("/serve/{file_path:path}")
async def serve_file(
    file_path: str,
    service: MCPFilesystemService = Depends(get_filesystem_service),
) -> Response:
    if not service.available:
        raise ServiceUnavailableError("Filesystem service not available")

    try:
        content = await service.read_file(file_path)
    except MCPToolError as exc:
        logger.error("Failed to serve file", data={"path": file_path[:50], "error": str(exc)})
        raise NotFoundError("Failed to read file") from exc

    extension = file_path.rsplit(".", 1)[-1].lower() if "." in file_path else "txt"
    return Response(
        content=content,
        media_type=CONTENT_TYPES.get(extension, "text/plain"),
        headers={"Cache-Control": "no-cache"},
    )

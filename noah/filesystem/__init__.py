"""User-approved file saves through the MCP filesystem server."""

from noah.filesystem.naming import FileNamingStrategy
from noah.filesystem.service import MCPFilesystemService, get_filesystem_service
from noah.filesystem.types import (
    FileCategory,
    FileMetadata,
    FileOperation,
    OperationStatus,
    OperationType,
)

__all__ = [
    "FileCategory",
    "FileMetadata",
    "FileNamingStrategy",
    "FileOperation",
    "MCPFilesystemService",
    "OperationStatus",
    "OperationType",
    "get_filesystem_service",
]

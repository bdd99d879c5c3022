"""Approval-gated file writes through the MCP filesystem server.

Nothing is written until the user approves. A proposed operation waits in
memory as ``pending``; the UI approves or rejects it; only an approved
operation is executed, by calling the server's ``write_file`` tool.
"""

import asyncio
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from noah.bridges.stdio import MCPStdioBridge
from noah.config import get_settings
from noah.core.exceptions import (
    NotFoundError,
    PathNotAllowedError,
    ServiceUnavailableError,
    ValidationFailedError,
)
from noah.core.logging import get_logger
from noah.core.time import now_ms
from noah.filesystem.naming import CATEGORY_DIRECTORIES, FileNamingStrategy
from noah.filesystem.types import (
    FileCategory,
    FileMetadata,
    FileOperation,
    FilesystemStatus,
    OperationStatus,
    OperationType,
)

logger = get_logger(__name__)

USER_REQUESTED_DIR = "noah-tools/user-requested"

MAX_OPERATIONS = 1000

# Evicted oldest first once the operation log is full; approved and executing ones never are
FINISHED_STATUSES = (OperationStatus.COMPLETED, OperationStatus.REJECTED, OperationStatus.FAILED)


def new_operation_id() -> str:
    return f"op_{now_ms()}_{secrets.token_hex(4)}"


class MCPFilesystemService:
    def __init__(
        self,
        root: str,
        bridge: Optional[MCPStdioBridge] = None,
        enabled: bool = True,
        command: str = "npx",
        package: str = "@modelcontextprotocol/server-filesystem",
        max_operations: int = MAX_OPERATIONS,
    ):
        self.root = Path(root).resolve()
        self.allowed_directories = [self.root / name for name in CATEGORY_DIRECTORIES.values()]
        self.enabled = enabled
        self._bridge = bridge
        self._command = command
        self._package = package
        self._initialized = False
        self._available = False
        self._init_lock = asyncio.Lock()
        self.max_operations = max_operations
        self._operations: Dict[str, FileOperation] = {}

    @property
    def available(self) -> bool:
        return self._available

    async def initialize(self) -> None:
        """Start the MCP server. Failure marks the service unavailable; it never raises."""
        async with self._init_lock:
            if self._initialized:
                return
            self._initialized = True
            if not self.enabled:
                logger.info("MCP filesystem service disabled by configuration")
                return

            try:
                for directory in self.allowed_directories:
                    directory.mkdir(parents=True, exist_ok=True)
                if self._bridge is None:
                    self._bridge = MCPStdioBridge(
                        "filesystem",
                        self._command,
                        ["-y", self._package, *[str(d) for d in self.allowed_directories]],
                    )
                await self._bridge.start()
                tools = await self._bridge.list_tools()
                if not tools:
                    raise ServiceUnavailableError("Filesystem server exposes no tools")
                self._available = True
                logger.info(
                    "MCP filesystem service initialized",
                    data={"tools": tools, "allowed_dirs": [d.name for d in self.allowed_directories]},
                )
            except Exception as exc:
                logger.warning(
                    "MCP filesystem service unavailable, file operations disabled",
                    data={"error": str(exc)},
                )
                self._available = False
                await self._close_bridge()

    def get_status(self) -> FilesystemStatus:
        return FilesystemStatus(
            available=self._available,
            initialized=self._initialized,
            allowed_directories=[str(d) for d in self.allowed_directories],
        )

    def resolve(self, relative_path: str) -> Path:
        """Absolute path for a root-relative path, refused outside the allowed dirs."""
        candidate = (self.root / relative_path).resolve()
        if not FileNamingStrategy.is_path_allowed(candidate, self.allowed_directories):
            logger.warning(
                "File path outside allowed directories",
                data={"path": relative_path},
            )
            raise PathNotAllowedError(relative_path)
        return candidate

    def propose_file_operation(
        self,
        operation_type: OperationType,
        path: str,
        content: str,
        metadata: FileMetadata,
    ) -> str:
        self.resolve(path)
        operation = FileOperation(
            id=new_operation_id(),
            type=OperationType(operation_type),
            path=path,
            content=content,
            metadata=metadata,
        )
        self._operations[operation.id] = operation
        self._prune(keep=operation.id)
        logger.info(
            "File operation proposed",
            data={
                "operation_id": operation.id,
                "type": operation.type.value,
                "path": path,
                "file_size": metadata.file_size,
            },
        )
        return operation.id

    def propose_save_request(self, file_name: str, content: str, session_id: str, description: Optional[str] = None) -> str:
        """Server side of the ``NOAH_SAVE_REQUEST`` message posted by tool iframes."""
        file_type = file_name.rsplit(".", 1)[-1] if "." in file_name else "txt"
        metadata = FileMetadata(
            session_id=session_id,
            description=description or f"User-requested save: {file_name}",
            file_size=len(content.encode("utf-8")),
            file_type=file_type,
            category=FileCategory.TOOL,
            timestamp=now_ms(),
        )
        return self.propose_file_operation(
            OperationType.SAVE_ARTIFACT,
            f"{USER_REQUESTED_DIR}/{file_name}",
            content,
            metadata,
        )

    def get_operation(self, operation_id: str) -> FileOperation:
        operation = self._operations.get(operation_id)
        if operation is None:
            raise NotFoundError(f"Operation {operation_id} not found")
        return operation

    def approve_operation(self, operation_id: str) -> FileOperation:
        operation = self.get_operation(operation_id)
        operation.transition(OperationStatus.APPROVED)
        logger.info("File operation approved", data={"operation_id": operation_id})
        return operation

    def reject_operation(self, operation_id: str) -> FileOperation:
        operation = self.get_operation(operation_id)
        operation.transition(OperationStatus.REJECTED)
        logger.info("File operation rejected", data={"operation_id": operation_id})
        return operation

    def rename_operation(self, operation_id: str, file_name: str) -> FileOperation:
        """Swap the file name of a not-yet-executed operation, keeping its directory."""
        operation = self.get_operation(operation_id)
        if operation.status not in (OperationStatus.PENDING, OperationStatus.APPROVED):
            raise ValidationFailedError(f"Operation {operation_id} is no longer editable")
        directory = operation.path.rsplit("/", 1)[0] if "/" in operation.path else ""
        new_path = f"{directory}/{file_name}" if directory else file_name
        self.resolve(new_path)
        operation.path = new_path
        return operation

    async def execute_file_operation(self, operation_id: str) -> FileOperation:
        """Write an approved operation's content.

        Raises:
            ServiceUnavailableError: MCP server not running
            InvalidTransitionError: the operation was not approved
        """
        operation = self.get_operation(operation_id)
        bridge = self._require_bridge()
        target = self.resolve(operation.path)
        operation.transition(OperationStatus.EXECUTING)

        logger.info(
            "Executing file operation",
            data={"operation_id": operation_id, "path": operation.path},
        )
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            await bridge.call_tool("write_file", {"path": str(target), "content": operation.content})
        except Exception as exc:
            operation.error = str(exc)
            operation.transition(OperationStatus.FAILED)
            logger.error(
                "File operation failed",
                data={"operation_id": operation_id, "error": str(exc)},
            )
            raise

        operation.transition(OperationStatus.COMPLETED)
        logger.info(
            "File operation completed",
            data={"operation_id": operation_id, "bytes_written": operation.metadata.file_size},
        )
        return operation

    def get_pending_operations(self) -> List[FileOperation]:
        return [op for op in self._operations.values() if op.status is OperationStatus.PENDING]

    def _prune(self, keep: str) -> None:
        excess = len(self._operations) - self.max_operations
        if excess <= 0:
            return
        finished = [op_id for op_id, op in self._operations.items() if op.status in FINISHED_STATUSES]
        pending = [
            op_id
            for op_id, op in self._operations.items()
            if op.status is OperationStatus.PENDING and op_id != keep
        ]
        evicted = (finished + pending)[:excess]
        for op_id in evicted:
            del self._operations[op_id]
        logger.debug("Old file operations evicted", data={"count": len(evicted)})

    async def read_file(self, relative_path: str) -> str:
        bridge = self._require_bridge()
        target = self.resolve(relative_path)
        return await bridge.call_tool("read_file", {"path": str(target)})

    async def list_directory(self, relative_path: str) -> List[str]:
        bridge = self._require_bridge()
        target = self.resolve(relative_path)
        listing = await bridge.call_tool("list_directory", {"path": str(target)})
        return [line for line in listing.splitlines() if line.strip()]

    async def cleanup(self) -> None:
        await self._close_bridge()
        self._initialized = False
        self._available = False

    def _require_bridge(self) -> MCPStdioBridge:
        if not self._available or self._bridge is None:
            raise ServiceUnavailableError("Filesystem service not available")
        return self._bridge

    async def _close_bridge(self) -> None:
        if self._bridge is None:
            return
        try:
            await self._bridge.close()
        except Exception as exc:
            logger.warning("Error closing filesystem bridge", data={"error": str(exc)})


@lru_cache
def get_filesystem_service() -> MCPFilesystemService:
    """Process-wide filesystem service."""
    settings = get_settings()
    return MCPFilesystemService(
        root=settings.filesystem_root,
        enabled=settings.mcp_filesystem_enabled,
        command=settings.mcp_filesystem_command,
        package=settings.mcp_filesystem_package,
    )

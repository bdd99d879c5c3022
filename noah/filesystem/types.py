"""File operation model and its approval state machine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from noah.core.exceptions import InvalidTransitionError


class OperationType(str, Enum):
    SAVE_ARTIFACT = "save_artifact"
    EXPORT_THINKING = "export_thinking"
    SAVE_CONVERSATION = "save_conversation"
    UPDATE_TOOL = "update_tool"


class OperationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    EXECUTING = "executing"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


class FileCategory(str, Enum):
    TOOL = "tool"
    THINKING = "thinking"
    CONVERSATION = "conversation"
    REPORT = "report"


TRANSITIONS: Dict[OperationStatus, FrozenSet[OperationStatus]] = {
    OperationStatus.PENDING: frozenset({OperationStatus.APPROVED, OperationStatus.REJECTED}),
    OperationStatus.APPROVED: frozenset({OperationStatus.EXECUTING}),
    OperationStatus.EXECUTING: frozenset({OperationStatus.COMPLETED, OperationStatus.FAILED}),
    OperationStatus.COMPLETED: frozenset(),
    OperationStatus.REJECTED: frozenset(),
    OperationStatus.FAILED: frozenset(),
}


@dataclass
class FileMetadata:
    session_id: str
    description: str
    file_size: int
    file_type: str
    category: FileCategory = FileCategory.TOOL
    agent: str = "noah"
    timestamp: int = 0
    artifact_id: Optional[str] = None


@dataclass
class FileOperation:
    id: str
    type: OperationType
    path: str
    content: str
    metadata: FileMetadata
    status: OperationStatus = OperationStatus.PENDING
    user_approval_required: bool = True
    error: Optional[str] = None
    history: List[OperationStatus] = field(default_factory=list)

    def transition(self, target: OperationStatus) -> None:
        """Move to ``target`` or raise if the state machine forbids it."""
        if target not in TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.id, self.status.value, target.value)
        self.history.append(self.status)
        self.status = target

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "path": self.path,
            "status": self.status.value,
            "userApprovalRequired": self.user_approval_required,
            "metadata": {
                "sessionId": self.metadata.session_id,
                "description": self.metadata.description,
                "fileSize": self.metadata.file_size,
                "fileType": self.metadata.file_type,
                "category": self.metadata.category.value,
                "agent": self.metadata.agent,
                "timestamp": self.metadata.timestamp,
                "artifactId": self.metadata.artifact_id,
            },
        }


@dataclass
class FilesystemStatus:
    available: bool
    initialized: bool
    allowed_directories: List[str]

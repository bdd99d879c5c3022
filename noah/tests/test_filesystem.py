"""Tests for file naming, the approval state machine and the filesystem service."""

from datetime import datetime

import pytest

from noah.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    PathNotAllowedError,
    ServiceUnavailableError,
    ValidationFailedError,
)
from noah.filesystem import (
    FileCategory,
    FileMetadata,
    FileNamingStrategy,
    FileOperation,
    MCPFilesystemService,
    OperationStatus,
    OperationType,
)


class FakeBridge:
    """Stands in for the MCP stdio bridge; records tool calls."""

    def __init__(self, tools=("read_file", "write_file", "list_directory"), fail_writes=False):
        self.tools = list(tools)
        self.fail_writes = fail_writes
        self.calls = []
        self.started = False
        self.closed = False

    async def start(self):
        self.started = True

    async def list_tools(self):
        return self.tools

    async def call_tool(self, name, arguments):
        self.calls.append((name, arguments))
        if name == "write_file" and self.fail_writes:
            raise RuntimeError("disk full")
        if name == "read_file":
            return "<html>saved</html>"
        return "ok"

    async def close(self):
        self.closed = True


def _operation(status=OperationStatus.PENDING):
    return FileOperation(
        id="op_1",
        type=OperationType.SAVE_ARTIFACT,
        path="noah-tools/x.html",
        content="<p/>",
        metadata=FileMetadata(session_id="s1", description="d", file_size=4, file_type="html"),
        status=status,
    )


class TestFileNamingStrategy:
    def test_tool_path(self):
        path = FileNamingStrategy.generate_file_path(
            "Simple Calculator!", FileCategory.TOOL, "html", timestamp=datetime(2025, 10, 1)
        )
        assert path == "noah-tools/calculators/simple-calculator-2025-10-01.html"

    def test_tool_without_keyword_goes_to_utilities(self):
        assert FileNamingStrategy.determine_subcategory("Mood Board", FileCategory.TOOL) == "utilities"

    def test_non_tool_categories_have_no_subdirectory(self):
        path = FileNamingStrategy.generate_file_path(
            "Deep Dive", FileCategory.THINKING, "md", timestamp=datetime(2025, 1, 2)
        )
        assert path == "noah-thinking/deep-dive-2025-01-02.md"

    def test_empty_title(self):
        path = FileNamingStrategy.generate_file_path("!!!", FileCategory.REPORT, "txt", timestamp=datetime(2025, 1, 2))
        assert path == "noah-reports/untitled-2025-01-02.txt"

    def test_sanitize_truncates(self):
        assert len(FileNamingStrategy.sanitize_title("word " * 40)) <= 50

    def test_is_path_allowed(self, tmp_path):
        allowed = tmp_path / "noah-tools"
        assert FileNamingStrategy.is_path_allowed(allowed / "a.html", [allowed]) is True
        assert FileNamingStrategy.is_path_allowed(tmp_path / "noah-tools-evil" / "a.html", [allowed]) is False
        assert FileNamingStrategy.is_path_allowed(allowed / ".." / "etc" / "passwd", [allowed]) is False

    @pytest.mark.parametrize(
        "content, expected",
        [
            ("<!DOCTYPE html><html></html>", "html"),
            ("const x = 1;", "js"),
            ("def main():\n    pass", "py"),
            ('{"a": 1}', "json"),
            ("{not json", "txt"),
            ("plain notes", "txt"),
        ],
    )
    def test_determine_file_type(self, content, expected):
        assert FileNamingStrategy.determine_file_type("t", content) == expected


class TestFileOperationTransitions:
    """Approval state machine."""

    def test_happy_path(self):
        operation = _operation()
        operation.transition(OperationStatus.APPROVED)
        operation.transition(OperationStatus.EXECUTING)
        operation.transition(OperationStatus.COMPLETED)
        assert operation.history == [
            OperationStatus.PENDING,
            OperationStatus.APPROVED,
            OperationStatus.EXECUTING,
        ]

    def test_pending_cannot_execute(self):
        with pytest.raises(InvalidTransitionError):
            _operation().transition(OperationStatus.EXECUTING)

    @pytest.mark.parametrize(
        "terminal",
        [OperationStatus.COMPLETED, OperationStatus.REJECTED, OperationStatus.FAILED],
    )
    def test_terminal_states(self, terminal):
        with pytest.raises(InvalidTransitionError):
            _operation(terminal).transition(OperationStatus.APPROVED)

    def test_to_dict_uses_camel_case(self):
        data = _operation().to_dict()
        assert data["status"] == "pending"
        assert data["userApprovalRequired"] is True
        assert data["metadata"]["sessionId"] == "s1"


class TestMCPFilesystemService:
    """Service behaviour against a fake MCP bridge."""

    @pytest.mark.asyncio
    async def test_initialize_with_bridge(self, tmp_path):
        bridge = FakeBridge()
        service = MCPFilesystemService(str(tmp_path), bridge=bridge)
        await service.initialize()

        assert service.available is True
        assert bridge.started is True
        assert (tmp_path / "noah-tools").is_dir()
        assert service.get_status().initialized is True

    @pytest.mark.asyncio
    async def test_disabled_service_stays_unavailable(self, tmp_path):
        bridge = FakeBridge()
        service = MCPFilesystemService(str(tmp_path), bridge=bridge, enabled=False)
        await service.initialize()
        assert service.available is False
        assert bridge.started is False

    @pytest.mark.asyncio
    async def test_server_without_tools_is_unavailable(self, tmp_path):
        bridge = FakeBridge(tools=())
        service = MCPFilesystemService(str(tmp_path), bridge=bridge)
        await service.initialize()
        assert service.available is False
        assert bridge.closed is True

    @pytest.mark.asyncio
    async def test_save_request_workflow(self, tmp_path):
        bridge = FakeBridge()
        service = MCPFilesystemService(str(tmp_path), bridge=bridge)
        await service.initialize()

        op_id = service.propose_save_request("timer.html", "<html/>", "s1")
        assert [op.id for op in service.get_pending_operations()] == [op_id]

        service.rename_operation(op_id, "my-timer.html")
        service.approve_operation(op_id)
        operation = await service.execute_file_operation(op_id)

        assert operation.status is OperationStatus.COMPLETED
        assert operation.path == "noah-tools/user-requested/my-timer.html"
        name, arguments = bridge.calls[-1]
        assert name == "write_file"
        assert arguments["path"].endswith("my-timer.html")
        assert arguments["content"] == "<html/>"
        assert service.get_pending_operations() == []

    @pytest.mark.asyncio
    async def test_unapproved_operation_is_not_written(self, tmp_path):
        bridge = FakeBridge()
        service = MCPFilesystemService(str(tmp_path), bridge=bridge)
        await service.initialize()
        op_id = service.propose_save_request("timer.html", "<html/>", "s1")

        with pytest.raises(InvalidTransitionError):
            await service.execute_file_operation(op_id)
        assert bridge.calls == []

    @pytest.mark.asyncio
    async def test_failed_write_marks_operation_failed(self, tmp_path):
        service = MCPFilesystemService(str(tmp_path), bridge=FakeBridge(fail_writes=True))
        await service.initialize()
        op_id = service.propose_save_request("timer.html", "<html/>", "s1")
        service.approve_operation(op_id)

        with pytest.raises(RuntimeError):
            await service.execute_file_operation(op_id)
        operation = service.get_operation(op_id)
        assert operation.status is OperationStatus.FAILED
        assert operation.error == "disk full"

    @pytest.mark.asyncio
    async def test_execute_requires_available_service(self, tmp_path):
        service = MCPFilesystemService(str(tmp_path), enabled=False)
        await service.initialize()
        op_id = service.propose_save_request("timer.html", "<html/>", "s1")
        service.approve_operation(op_id)

        with pytest.raises(ServiceUnavailableError):
            await service.execute_file_operation(op_id)

    def test_reject_and_rename_after(self, tmp_path):
        service = MCPFilesystemService(str(tmp_path), enabled=False)
        op_id = service.propose_save_request("timer.html", "<html/>", "s1")
        service.reject_operation(op_id)

        with pytest.raises(ValidationFailedError):
            service.rename_operation(op_id, "other.html")

    def test_path_escape_is_refused(self, tmp_path):
        service = MCPFilesystemService(str(tmp_path), enabled=False)
        with pytest.raises(PathNotAllowedError):
            service.propose_save_request("../../../etc/passwd", "x", "s1")

    def test_unknown_operation(self, tmp_path):
        service = MCPFilesystemService(str(tmp_path), enabled=False)
        with pytest.raises(NotFoundError):
            service.approve_operation("op_missing")

    def test_operation_log_evicts_finished_first(self, tmp_path):
        service = MCPFilesystemService(str(tmp_path), enabled=False, max_operations=2)
        waiting = service.propose_save_request("a.html", "<html/>", "s1")
        done = service.propose_save_request("b.html", "<html/>", "s1")
        service.reject_operation(done)

        newest = service.propose_save_request("c.html", "<html/>", "s1")

        with pytest.raises(NotFoundError):
            service.get_operation(done)
        assert [op.id for op in service.get_pending_operations()] == [waiting, newest]

    def test_operation_log_keeps_approved_and_newest(self, tmp_path):
        service = MCPFilesystemService(str(tmp_path), enabled=False, max_operations=2)
        approved = service.propose_save_request("a.html", "<html/>", "s1")
        service.approve_operation(approved)
        oldest_pending = service.propose_save_request("b.html", "<html/>", "s1")

        newest = service.propose_save_request("c.html", "<html/>", "s1")

        assert service.get_operation(approved).status is OperationStatus.APPROVED
        assert service.get_operation(newest).status is OperationStatus.PENDING
        with pytest.raises(NotFoundError):
            service.get_operation(oldest_pending)

    @pytest.mark.asyncio
    async def test_read_file(self, tmp_path):
        service = MCPFilesystemService(str(tmp_path), bridge=FakeBridge())
        await service.initialize()
        assert await service.read_file("noah-tools/a.html") == "<html>saved</html>"

    @pytest.mark.asyncio
    async def test_cleanup_closes_bridge(self, tmp_path):
        bridge = FakeBridge()
        service = MCPFilesystemService(str(tmp_path), bridge=bridge)
        await service.initialize()
        await service.cleanup()
        assert bridge.closed is True
        assert service.available is False

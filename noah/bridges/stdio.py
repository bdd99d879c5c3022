"""Client side of an MCP server running as a stdio child process."""

import asyncio
import os
from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from noah.core.exceptions import ServiceUnavailableError
from noah.core.logging import get_logger

logger = get_logger(__name__)


class MCPToolError(Exception):
    """The MCP server answered a tool call with ``isError``."""

    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(f"{tool} failed: {message}")


class MCPStdioBridge:
    """Launch an MCP server (``npx <package> ...``) and call its tools.

    ``start`` spawns the child and performs the MCP handshake. ``call_tool``
    returns the joined text content of the result. Calls are serialised; the
    stdio transport carries one request at a time.
    """

    def __init__(
        self,
        name: str,
        command: str,
        args: List[str],
        env: Optional[Dict[str, str]] = None,
    ):
        self.name = name
        self.command = command
        self.args = args
        self.env = env
        self._stack: Optional[AsyncExitStack] = None
        self._session: Optional[ClientSession] = None
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._session is not None

    async def start(self) -> None:
        if self._session is not None:
            return

        params = StdioServerParameters(
            command=self.command,
            args=self.args,
            env={**os.environ, **self.env} if self.env else None,
        )
        stack = AsyncExitStack()
        try:
            read, write = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(ClientSession(read, write))
            await session.initialize()
        except BaseException:
            await stack.aclose()
            raise

        self._stack = stack
        self._session = session
        logger.info(
            f"MCP server {self.name} connected",
            data={"command": self.command, "args": self.args},
        )

    async def list_tools(self) -> List[str]:
        session = self._require_session()
        result = await session.list_tools()
        return [tool.name for tool in result.tools]

    async def call_tool(self, tool: str, arguments: Dict[str, Any]) -> str:
        session = self._require_session()
        async with self._lock:
            result = await session.call_tool(tool, arguments)

        text = "\n".join(
            item.text for item in result.content if getattr(item, "type", None) == "text"
        )
        if result.isError:
            raise MCPToolError(tool, text or "unknown error")
        return text

    async def close(self) -> None:
        stack, self._stack, self._session = self._stack, None, None
        if stack is not None:
            await stack.aclose()
            logger.info(f"MCP server {self.name} disconnected")

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise ServiceUnavailableError(f"MCP server {self.name} is not connected")
        return self._session

"""Cross-session memory notes kept by the MCP memory server.

Best effort throughout: an unavailable server or a failed call is logged and
the chat carries on without memory.
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import List, Optional

from noah.bridges.stdio import MCPStdioBridge
from noah.config import get_settings
from noah.core.logging import get_logger
from noah.core.time import utcnow

logger = get_logger(__name__)

USER_PREFERENCE = "user_preference"
CONVERSATION_THEME = "conversation_theme"
TOOL_RESULT = "tool_result"
CHALLENGE_EVENT = "challenge_event"
TRUST_SIGNAL = "trust_signal"

ENTITY_TYPES = {
    "preference": USER_PREFERENCE,
    USER_PREFERENCE: USER_PREFERENCE,
    "theme": CONVERSATION_THEME,
    CONVERSATION_THEME: CONVERSATION_THEME,
    "tool": TOOL_RESULT,
    TOOL_RESULT: TOOL_RESULT,
    "challenge": CHALLENGE_EVENT,
    CHALLENGE_EVENT: CHALLENGE_EVENT,
    "trust": TRUST_SIGNAL,
    TRUST_SIGNAL: TRUST_SIGNAL,
}


def normalize_entity_type(entity_type: str) -> str:
    return ENTITY_TYPES.get(entity_type, USER_PREFERENCE)


@dataclass
class MemoryEntity:
    name: str
    entity_type: str
    observations: List[str] = field(default_factory=list)


@dataclass
class MemoryContext:
    session_id: str
    entities: List[MemoryEntity]
    retrieved_at: datetime = field(default_factory=utcnow)


def parse_entities(payload: str) -> List[MemoryEntity]:
    """Entities from a ``search_nodes`` result; malformed entries are skipped."""
    try:
        data = json.loads(payload)
    except ValueError:
        logger.debug("Memory result is not JSON", data={"length": len(payload)})
        return []

    entities = []
    for raw in data.get("entities", []) if isinstance(data, dict) else []:
        if (
            isinstance(raw, dict)
            and isinstance(raw.get("name"), str)
            and isinstance(raw.get("entityType"), str)
            and isinstance(raw.get("observations"), list)
        ):
            entities.append(
                MemoryEntity(
                    name=raw["name"],
                    entity_type=normalize_entity_type(raw["entityType"]),
                    observations=[str(o) for o in raw["observations"]],
                )
            )
    return entities


class MCPMemoryService:
    def __init__(
        self,
        memory_file_path: str,
        bridge: Optional[MCPStdioBridge] = None,
        enabled: bool = True,
        command: str = "npx",
        package: str = "@modelcontextprotocol/server-memory",
    ):
        self.memory_file_path = os.path.abspath(memory_file_path)
        self.enabled = enabled
        self._bridge = bridge
        self._command = command
        self._package = package
        self._initialized = False
        self._available = False
        self._init_lock = asyncio.Lock()

    @property
    def available(self) -> bool:
        return self._available

    async def initialize(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return
            self._initialized = True
            if not self.enabled:
                logger.info("MCP memory service disabled by configuration")
                return

            try:
                os.makedirs(os.path.dirname(self.memory_file_path), exist_ok=True)
                if self._bridge is None:
                    self._bridge = MCPStdioBridge(
                        "memory",
                        self._command,
                        ["-y", self._package],
                        env={"MEMORY_FILE_PATH": self.memory_file_path},
                    )
                await self._bridge.start()
                if not await self._bridge.list_tools():
                    raise RuntimeError("Memory server exposes no tools")
                self._available = True
                logger.info("MCP memory service initialized", data={"memory_path": self.memory_file_path})
            except Exception as exc:
                logger.warning(
                    "MCP memory service unavailable, memory features disabled",
                    data={"error": str(exc)},
                )
                self._available = False
                await self.shutdown()

    async def retrieve_session_context(self, session_id: str) -> Optional[MemoryContext]:
        if not self._available or self._bridge is None:
            return None
        try:
            payload = await self._bridge.call_tool("search_nodes", {"query": session_id})
        except Exception as exc:
            logger.warning(
                "Failed to retrieve memory context",
                data={"session_id": session_id, "error": str(exc)},
            )
            return None

        entities = parse_entities(payload)
        if not entities:
            return None
        return MemoryContext(session_id=session_id, entities=entities)

    async def store_observation(
        self,
        session_id: str,
        entity_name: str,
        entity_type: str,
        observation: str,
    ) -> None:
        if not self._available or self._bridge is None:
            return
        entity = {
            "name": f"{session_id}_{entity_name}",
            "entityType": normalize_entity_type(entity_type),
            "observations": [observation],
        }
        try:
            await self._bridge.call_tool("create_entities", {"entities": [entity]})
        except Exception as exc:
            logger.warning(
                "Failed to store memory observation",
                data={"session_id": session_id, "entity": entity_name, "error": str(exc)},
            )

    async def shutdown(self) -> None:
        bridge, self._bridge = self._bridge, None
        self._available = False
        if bridge is None:
            return
        try:
            await bridge.close()
        except Exception as exc:
            logger.warning("Error closing memory bridge", data={"error": str(exc)})

    def get_status(self) -> dict:
        return {"initialized": self._initialized, "available": self._available}


@lru_cache
def get_memory_service() -> MCPMemoryService:
    """Process-wide memory service."""
    settings = get_settings()
    return MCPMemoryService(
        memory_file_path=settings.memory_file_path,
        enabled=settings.mcp_memory_enabled,
        command=settings.mcp_memory_command,
        package=settings.mcp_memory_package,
    )

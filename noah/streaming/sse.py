"""Server-sent event parsing and plain-text stream helpers."""

import asyncio
import json
from collections.abc import AsyncIterator, Iterator
from typing import Any, Dict, Optional

import httpx

from noah.core.logging import get_logger

logger = get_logger(__name__)

DONE_SENTINEL = "[DONE]"


async def iter_sse_data(response: httpx.Response) -> AsyncIterator[Dict[str, Any]]:
    """Yield decoded JSON payloads from ``data:`` lines of an SSE response.

    Stops at ``[DONE]``. Lines that are not JSON are skipped.
    """
    async for line in response.aiter_lines():
        if not line or not line.startswith("data:"):
            continue
        data_str = line[5:].strip()
        if data_str == DONE_SENTINEL:
            break
        try:
            yield json.loads(data_str)
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON SSE line", data={"line": data_str[:120]})
            continue


def chunk_text(text: str, size: int = 64) -> Iterator[str]:
    """Split precomputed text into stream-sized pieces."""
    for start in range(0, len(text), size):
        yield text[start:start + size]


async def replay_text(text: str, size: int = 64, delay: Optional[float] = 0.0) -> AsyncIterator[str]:
    """Stream already-complete text, yielding control between pieces."""
    for piece in chunk_text(text, size):
        yield piece
        if delay is not None:
            await asyncio.sleep(delay)

"""Deadline helpers for agent and provider calls."""

import asyncio
from typing import Awaitable, TypeVar

from noah.core.exceptions import OperationTimeoutError
from noah.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], seconds: float, operation: str = "operation") -> T:
    """Await ``awaitable`` with a deadline.

    The awaited work is cancelled when the deadline passes, so an in-flight
    HTTP request to a provider is aborted instead of left running.

    Raises:
        OperationTimeoutError: when the deadline passes
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as exc:
        logger.warning(
            f"{operation} timed out",
            data={"operation": operation, "timeout_seconds": seconds},
        )
        raise OperationTimeoutError(operation, seconds) from exc

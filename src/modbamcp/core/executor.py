"""Background execution for blocking BAM work.

All pysam I/O, engine runs and output parsing happen on a bounded thread pool
so the async API never blocks the event loop. Each call is one task; tasks
share nothing but the pool itself.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from ..config import ModBamConfig
from ..errors import OperationError, TaskJoinError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Module-level pool shared by every call in the process
_executor_instance: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def get_executor(config: ModBamConfig) -> ThreadPoolExecutor:
    """Get or create the process-wide worker pool.

    The pool size is fixed by the first config seen.
    """
    global _executor_instance
    with _executor_lock:
        if _executor_instance is None:
            _executor_instance = ThreadPoolExecutor(
                max_workers=config.max_workers,
                thread_name_prefix="modbamcp-worker",
            )
            logger.debug("Started worker pool with %d workers", config.max_workers)
        return _executor_instance


def shutdown_executor(wait: bool = True) -> None:
    """Shut the worker pool down; a later call creates a fresh one."""
    global _executor_instance
    with _executor_lock:
        if _executor_instance is not None:
            _executor_instance.shutdown(wait=wait)
            _executor_instance = None


async def run_blocking(
    config: ModBamConfig, func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run ``func(*args, **kwargs)`` on the worker pool and await its result.

    Errors raised by the operation itself (``OperationError`` subclasses)
    propagate unchanged. Anything else that stops the task from completing,
    including a pool that refuses new work, is reported as ``TaskJoinError``.

    There is no timeout and no cancellation: if the awaiting coroutine is
    cancelled the worker still runs to completion.
    """
    loop = asyncio.get_running_loop()
    call = functools.partial(func, *args, **kwargs)
    try:
        return await loop.run_in_executor(get_executor(config), call)
    except OperationError:
        raise
    except Exception as e:
        logger.warning("Background task for %s failed: %r", getattr(func, "__name__", func), e)
        raise TaskJoinError(f"Task join error: {e}") from e

"""
Helpers for detached asyncio tasks.

Wraps asyncio.create_task with an error boundary, logging and
per-task failure counters.
"""
import asyncio
import logging
from typing import Coroutine, Any, Optional, Callable

logger = logging.getLogger(__name__)

# Failure count per task name (for metrics/alerts)
_task_failures: dict[str, int] = {}

# Strong references so running tasks are not garbage collected
_background_tasks: set[asyncio.Task] = set()


async def _safe_wrapper(
    coro: Coroutine,
    task_name: str,
    on_error: Optional[Callable[[Exception], None]] = None
) -> Any:
    """
    Runs a coroutine inside an error boundary.

    Args:
        coro: Coroutine to run
        task_name: Name used for logging/metrics
        on_error: Optional callback invoked with the exception
    """
    try:
        return await coro
    except asyncio.CancelledError:
        logger.debug(f"Task cancelled: {task_name}")
        raise
    except Exception as e:
        _task_failures[task_name] = _task_failures.get(task_name, 0) + 1

        logger.error(
            f"Error in background task '{task_name}': {e}",
            exc_info=True,
            extra={
                "task_name": task_name,
                "error_type": type(e).__name__,
            }
        )

        if on_error:
            try:
                on_error(e)
            except Exception as callback_error:
                logger.error(f"Error in on_error callback: {callback_error}")

        # Never re-raise: one failing task must not take others down
        return None


def safe_create_task(
    coro: Coroutine,
    name: Optional[str] = None,
    on_error: Optional[Callable[[Exception], None]] = None
) -> asyncio.Task:
    """
    Creates a task with automatic error handling.

    Usage:
        safe_create_task(send_to_vendor(log), name="vendor_dispatch")

    The task keeps running if the request that created it returns.

    Args:
        coro: Coroutine to run
        name: Task name (for logging)
        on_error: Optional callback for failures

    Returns:
        asyncio.Task wrapped with the error boundary
    """
    task_name = name or (coro.__qualname__ if hasattr(coro, '__qualname__') else "unknown")
    wrapped = _safe_wrapper(coro, task_name, on_error)
    task = asyncio.create_task(wrapped, name=task_name)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


def get_task_failure_counts() -> dict[str, int]:
    """Returns failure counts per task name."""
    return _task_failures.copy()


def reset_task_failure_counts():
    """Resets counters (for tests)."""
    global _task_failures
    _task_failures = {}


def schedule_with_delay(
    coro: Coroutine,
    delay_seconds: float,
    name: Optional[str] = None
) -> asyncio.Task:
    """
    Schedules a coroutine to run after a delay.

    Usage:
        schedule_with_delay(post_receipt(payload), delay_seconds=1.5, name="vendor_callback")
    """
    async def delayed():
        await asyncio.sleep(delay_seconds)
        return await coro

    task_name = name or f"delayed_{coro.__qualname__ if hasattr(coro, '__qualname__') else 'task'}"
    return safe_create_task(delayed(), name=task_name)

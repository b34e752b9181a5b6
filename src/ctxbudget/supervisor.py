"""Supervised tasks and bounded-wait fan-out.

A supervised task never raises: any failure turns into the caller's default
value with ``fallback=True``. ``run_with_deadline`` starts several such
tasks and returns after all finish or the deadline passes, whichever comes
first. Tasks still running at the deadline are cancelled and reported with
their defaults.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Job = Tuple[Callable[[], Awaitable[T]], T]


@dataclass
class Outcome(Generic[T]):
    """Result of a supervised task."""
    value: T
    fallback: bool = False
    error: Optional[str] = None
    elapsed_ms: float = 0.0


async def supervised(name: str, factory: Callable[[], Awaitable[T]], default: T) -> Outcome[T]:
    """Run one unit of work, substituting default on failure."""
    start = time.monotonic()
    try:
        value = await factory()
    except asyncio.CancelledError:
        raise
    except Exception as e:
        elapsed = (time.monotonic() - start) * 1000
        logger.warning(f"{name} failed, using fallback: {e}")
        return Outcome(default, fallback=True, error=str(e) or type(e).__name__, elapsed_ms=elapsed)

    return Outcome(value, elapsed_ms=(time.monotonic() - start) * 1000)


async def run_with_deadline(
    jobs: Dict[str, Job],
    timeout: float,
    grace: float = 0.5,
) -> Dict[str, Outcome]:
    """Run jobs concurrently and collect outcomes within a deadline.

    Args:
        jobs: name -> (coroutine factory, default value)
        timeout: Seconds to wait for all jobs
        grace: Extra seconds given to cancelled jobs to unwind

    Returns:
        name -> Outcome, in the order of ``jobs``. Jobs that did not
        finish in time carry their default with ``error="timeout"``.
    """
    tasks = {
        name: asyncio.ensure_future(supervised(name, factory, default))
        for name, (factory, default) in jobs.items()
    }
    if not tasks:
        return {}

    start = time.monotonic()
    done, pending = await asyncio.wait(tasks.values(), timeout=timeout)

    if pending:
        for task in pending:
            task.cancel()
        # Bounded wait so a stuck job cannot hold the caller
        await asyncio.wait(pending, timeout=grace)

    elapsed = (time.monotonic() - start) * 1000
    outcomes: Dict[str, Outcome] = {}
    for name, task in tasks.items():
        default = jobs[name][1]
        if task in done and not task.cancelled():
            outcomes[name] = task.result()
        else:
            logger.warning(f"{name} did not finish within {timeout}s, using fallback")
            outcomes[name] = Outcome(default, fallback=True, error="timeout", elapsed_ms=elapsed)

    return outcomes

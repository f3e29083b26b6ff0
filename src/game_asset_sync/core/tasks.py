"""Run independent jobs concurrently, stopping everything on the first failure."""

import asyncio
from collections.abc import Coroutine, Hashable
from typing import Any, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class JobFailed(Exception):
    """Raised by run_all_or_cancel when a job fails.

    Attributes:
        key: Key of the failing job (first in submission order)
        error: The exception it raised
    """

    def __init__(self, key: Any, error: BaseException):
        super().__init__(f"Job {key!r} failed: {error}")
        self.key = key
        self.error = error


async def _cancel_all(tasks: list[asyncio.Task[Any]]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def run_all_or_cancel(jobs: dict[K, Coroutine[Any, Any, T]]) -> dict[K, T]:
    """Run coroutines concurrently and collect their results.

    When any job raises, all jobs still running are cancelled and awaited
    before JobFailed is raised. If the caller is cancelled, every job is
    cancelled too.

    Args:
        jobs: Coroutines keyed by an identifier

    Returns:
        Results keyed like jobs

    Raises:
        JobFailed: For the first failing job, in submission order
    """
    tasks: dict[K, asyncio.Task[T]] = {key: asyncio.ensure_future(job) for key, job in jobs.items()}
    if not tasks:
        return {}

    try:
        done, pending = await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        await _cancel_all(list(tasks.values()))
        raise

    if pending:
        await _cancel_all(list(pending))

    # Retrieve every exception so none is reported as unhandled
    failures = [
        (key, task.exception())
        for key, task in tasks.items()
        if task in done and not task.cancelled() and task.exception() is not None
    ]
    if failures:
        key, error = failures[0]
        assert error is not None
        raise JobFailed(key, error)

    return {key: task.result() for key, task in tasks.items()}

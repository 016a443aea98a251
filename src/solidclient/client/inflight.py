"""Single-flight execution of concurrent identical operations.

:class:`InFlight` collapses concurrent calls that share a key into one
execution.  The first caller starts the work as an :class:`asyncio.Task`;
callers arriving while it runs await the same task and receive the same
result or exception.  Once the task finishes the key is released, so a
later call starts fresh.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class InFlight(Generic[K, T]):
    """Map of key -> running task, shared by concurrent callers.

    Example::

        logins: InFlight[tuple[str, str], Session] = InFlight()
        session = await logins.run((issuer, username), lambda: create(...))
    """

    def __init__(self) -> None:
        self._tasks: dict[K, asyncio.Task[T]] = {}

    async def run(self, key: K, factory: Callable[[], Awaitable[T]]) -> T:
        """Return the result of the in-flight work for *key*, starting it if needed.

        Args:
            key: Identifies the work; equal keys share one execution.
            factory: Called only when no work for *key* is running.

        Returns:
            The shared result.

        Raises:
            Exception: Whatever the shared work raised.
        """
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda done: self._release(key, done))
        # One waiter being cancelled must not cancel the work for the others.
        return await asyncio.shield(task)

    def _release(self, key: K, task: asyncio.Task[T]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

"""Registry of in-flight downsample tasks, keyed by cache key."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class InFlightTasks(Generic[T]):
    """Lets concurrent lookups of one key share a single task.

    A task leaves the registry as soon as it finishes, however it finishes,
    so the next lookup after a failure starts fresh work.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[T]] = {}

    def task_for(
        self,
        key: str,
        create: Callable[[], asyncio.Task[T]],
    ) -> tuple[asyncio.Task[T], bool]:
        """Return the running task for *key*, creating it if absent.

        The flag is True for the caller that created the task.
        """
        existing = self._tasks.get(key)
        if existing is not None:
            return existing, False
        task = create()
        self._tasks[key] = task
        task.add_done_callback(lambda done: self._discard(key, done))
        return task, True

    def _discard(self, key: str, task: asyncio.Task[T]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

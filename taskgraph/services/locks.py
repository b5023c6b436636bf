"""Per-project mutual exclusion for edge insertion."""
import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ProjectLockRegistry:
    """Hands out one asyncio.Lock per project id.

    Entries are weak: a lock lives only while a holder or waiter references
    it, so the registry doesn't grow with every project ever touched.
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def get(self, project_id: str) -> asyncio.Lock:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[project_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, project_id: str) -> AsyncIterator[None]:
        async with self.get(project_id):
            yield

    def reset(self) -> None:
        self._locks.clear()


project_locks = ProjectLockRegistry()

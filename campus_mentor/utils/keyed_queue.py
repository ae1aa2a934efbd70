# campus_mentor/utils/keyed_queue.py
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Set

logger = logging.getLogger(__name__)


class KeyedTaskQueue:
    """Run background jobs so that jobs sharing a key never overlap.

    Jobs for the same key run one at a time in submission order; jobs for
    different keys run concurrently. A key's lock exists only while some job
    holds or waits on it.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending: Dict[str, int] = {}
        self._tasks: Set[asyncio.Task] = set()

    def submit(self, key: str, job: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """Schedule job() behind any earlier job for the same key"""
        # Reserve the slot now so submission order is the execution order
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._pending[key] = self._pending.get(key, 0) + 1

        task = asyncio.create_task(self._run(key, lock, job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, key: str, lock: asyncio.Lock, job: Callable[[], Awaitable[None]]) -> None:
        try:
            async with lock:
                await job()
        except Exception:
            logger.exception("Background job for %s failed", key)
        finally:
            self._pending[key] -= 1
            if self._pending[key] == 0:
                del self._pending[key]
                del self._locks[key]

    def active_keys(self) -> Set[str]:
        return set(self._locks)

    def __len__(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for every scheduled job. Returns False if the timeout hit first."""
        if not self._tasks:
            return True
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d background jobs still running after %.1fs", len(pending), timeout)
        return not pending

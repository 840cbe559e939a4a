# app/services/scheduler.py
"""
Keyed asyncio task scheduler.

  every(key, interval, func)  — repeating timer; runs func, sleeps, repeats until cancelled
  once(key, delay, func)      — one-shot deferred call; re-scheduling a key supersedes the old task
  cancel(key)                 — the cancellation token is the key

All tasks live on the running event loop. Nothing here blocks: asyncio.sleep()
suspends only the scheduled coroutine, never the request handlers.
"""

import asyncio
import inspect
from functools import partial
from typing import Awaitable, Callable, Union
from app.utils.logger import get_logger

logger = get_logger(__name__)

Callback = Callable[[], Union[None, Awaitable[None]]]


async def _call(func: Callback):
    result = func()
    if inspect.isawaitable(result):
        await result


class Scheduler:
    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}
        self._inflight: set[asyncio.Task] = set()

    def every(self, key: str, interval: float, func: Callback, overlap: bool = False) -> asyncio.Task:
        """
        Start a repeating task. The first run happens immediately.
        With overlap=True each run is spawned as its own task and the timer does not
        wait for it (setInterval semantics); cancelling the timer leaves in-flight runs alone.
        """
        self.cancel(key)
        task = asyncio.create_task(self._repeat(key, interval, func, overlap), name=f"every-{key}")
        self._track(key, task)
        logger.debug(f"⏱  Scheduled '{key}' every {interval}s")
        return task

    def once(self, key: str, delay: float, func: Callback) -> asyncio.Task:
        """Run func once after delay seconds. A pending task under the same key is cancelled."""
        if self.cancel(key):
            logger.debug(f"⏱  '{key}' superseded")
        task = asyncio.create_task(self._later(key, delay, func), name=f"once-{key}")
        self._track(key, task)
        return task

    def cancel(self, key: str) -> bool:
        """Cancel the task under key. Returns True if one was pending."""
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_prefix(self, prefix: str) -> int:
        keys = [k for k in self._tasks if k.startswith(prefix)]
        return sum(1 for k in keys if self.cancel(k))

    def is_pending(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    @property
    def keys(self) -> list[str]:
        return [k for k, t in self._tasks.items() if not t.done()]

    async def shutdown(self):
        """Cancel every task and wait for them to unwind."""
        tasks = list(self._tasks.values()) + list(self._inflight)
        self._tasks.clear()
        self._inflight.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"🛑 Scheduler stopped ({len(tasks)} tasks cancelled)")

    def _track(self, key: str, task: asyncio.Task):
        self._tasks[key] = task
        task.add_done_callback(partial(self._forget, key))

    def _forget(self, key: str, task: asyncio.Task):
        # Only drop the entry if it still points at this task (not a replacement)
        if self._tasks.get(key) is task:
            del self._tasks[key]

    async def _repeat(self, key: str, interval: float, func: Callback, overlap: bool):
        while True:
            if overlap:
                self._spawn(key, func)
            else:
                await self._guarded(key, func)
            await asyncio.sleep(interval)

    def _spawn(self, key: str, func: Callback):
        task = asyncio.create_task(self._guarded(key, func), name=f"run-{key}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    @staticmethod
    async def _guarded(key: str, func: Callback):
        try:
            await _call(func)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"❌ Scheduled run of '{key}' failed: {e}", exc_info=True)

    async def _later(self, key: str, delay: float, func: Callback):
        await asyncio.sleep(delay)
        await self._guarded(key, func)

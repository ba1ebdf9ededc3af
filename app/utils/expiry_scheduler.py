import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)


class ExpiryScheduler:
    """One-shot deferred callbacks keyed by session id.

    Each key holds at most one pending timer. Timers are fire-and-forget: a
    failing callback is logged and dropped, never retried.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self.tasks: Dict[Hashable, asyncio.Task] = {}

    def schedule(self, key: Hashable, callback: Callable[[], Awaitable[Any]], delay: Optional[float] = None) -> asyncio.Task:
        self.cancel(key)
        wait = self.delay if delay is None else delay
        task = asyncio.create_task(self._run(key, callback, wait))
        self.tasks[key] = task
        return task

    async def _run(self, key, callback, wait: float):
        try:
            await asyncio.sleep(wait)
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"⚠️ Deferred action for {key} failed: {e}")
        finally:
            if self.tasks.get(key) is asyncio.current_task():
                del self.tasks[key]

    def cancel(self, key: Hashable) -> bool:
        task = self.tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def pending(self, key: Hashable) -> bool:
        task = self.tasks.get(key)
        return task is not None and not task.done()

    async def shutdown(self):
        tasks = list(self.tasks.values())
        self.tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"🛑 Cancelled {len(tasks)} pending expiry timer(s)")

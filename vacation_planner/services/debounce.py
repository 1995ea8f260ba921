from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[Any]]


class Debouncer:
    """Cancel-and-replace timers, one per logical target.

    ``arm`` cancels whatever timer is pending for the target and starts a new
    one, so only the last armed action fires once the quiet period elapses.
    """

    def __init__(self) -> None:
        self._pending: dict[Hashable, tuple[asyncio.Task, Action]] = {}

    def arm(self, target: Hashable, delay: float, action: Action) -> asyncio.Task:
        self.cancel(target)
        task = asyncio.get_running_loop().create_task(self._fire(target, delay, action))
        self._pending[target] = (task, action)
        return task

    def pending(self, target: Hashable) -> bool:
        entry = self._pending.get(target)
        return entry is not None and not entry[0].done()

    def cancel(self, target: Hashable) -> bool:
        entry = self._pending.pop(target, None)
        if entry is None:
            return False
        task, _ = entry
        if task.done():
            return False
        task.cancel()
        return True

    async def flush(self, target: Hashable) -> bool:
        """Run the pending action now instead of waiting for the timer."""
        entry = self._pending.get(target)
        if entry is None or entry[0].done():
            return False
        self.cancel(target)
        await self._run(target, entry[1])
        return True

    async def cancel_all(self) -> None:
        tasks = [task for task, _ in self._pending.values() if not task.done()]
        self._pending.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _fire(self, target: Hashable, delay: float, action: Action) -> None:
        await asyncio.sleep(delay)
        entry = self._pending.get(target)
        if entry is not None and entry[0] is asyncio.current_task():
            del self._pending[target]
        await self._run(target, action)

    @staticmethod
    async def _run(target: Hashable, action: Action) -> None:
        try:
            await action()
        except Exception:
            # nobody awaits a fired timer, so the error stops here
            logger.exception("Debounced action for %r failed", target)

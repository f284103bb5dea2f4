"""
Payload-free change notifications from the connection manager to its observers.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, List, Set

from util.logging import logger


class ChangeNotifier:
    """Single producer, many observers. Observers re-read state on each call."""

    def __init__(self):
        self._observers: List[Callable[[], object]] = []
        # Scheduled observer tasks, held until done
        self._tasks: Set["asyncio.Future"] = set()

    def subscribe(self, observer: Callable[[], object]) -> Callable[[], None]:
        """Register an observer and return a function that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            self.unsubscribe(observer)

        return unsubscribe

    def unsubscribe(self, observer: Callable[[], object]) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def notify(self) -> None:
        """Call every observer. A failing observer never stops the others."""
        for observer in list(self._observers):
            try:
                result = observer()
                if inspect.isawaitable(result):
                    self._schedule(observer, result)
            except Exception as e:
                logger.error(f"State change observer {observer!r} failed: {e}")

    def _schedule(self, observer: Callable[[], object], awaitable: Awaitable) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            logger.warning(f"Async state change observer {observer!r} skipped: no running event loop")
            return

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: "asyncio.Future") -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async state change observer failed: {task.exception()}")

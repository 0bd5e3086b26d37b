"""Deadline-ordered queue of pending session actions, run by one loop task.

Every delayed behavior of a session (idle start, chained replies, replies to a
human turn) is an entry here. Actions run one at a time in deadline order, so
at most one AI turn is ever in flight, and teardown is a single close().
"""

import asyncio
import heapq
import itertools
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None]]


@dataclass(order=True)
class ScheduledAction:
    deadline: float
    seq: int
    label: str = field(compare=False)
    action: Action = field(compare=False, repr=False)
    cancelled: bool = field(default=False, compare=False)


class ActionTimeline:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._heap: list[ScheduledAction] = []
        self._seq = itertools.count()
        self._wake = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._running: ScheduledAction | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def busy(self) -> bool:
        """True while an action is executing."""
        return self._running is not None

    def pending(self, label: str | None = None) -> int:
        return sum(1 for e in self._heap if not e.cancelled and (label is None or e.label == label))

    def start(self) -> None:
        if self._task is None and not self._closed:
            self._task = asyncio.create_task(self._run(), name="session-timeline")

    def schedule(self, delay_sec: float, label: str, action: Action) -> ScheduledAction | None:
        if self._closed:
            logger.debug("Timeline closed, dropping %s", label)
            return None
        entry = ScheduledAction(
            deadline=self._clock() + max(delay_sec, 0.0),
            seq=next(self._seq),
            label=label,
            action=action,
        )
        heapq.heappush(self._heap, entry)
        logger.debug("Scheduled %s in %.2fs", label, delay_sec)
        self._wake.set()
        return entry

    def cancel_label(self, label: str) -> int:
        cancelled = 0
        for entry in self._heap:
            if entry.label == label and not entry.cancelled:
                entry.cancelled = True
                cancelled += 1
        if cancelled:
            logger.debug("Cancelled %d pending %s action(s)", cancelled, label)
            self._wake.set()
        return cancelled

    async def close(self) -> None:
        """Cancel every pending action and stop the loop, including a running action."""
        self._closed = True
        for entry in self._heap:
            entry.cancelled = True
        self._heap.clear()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)

    async def _run(self) -> None:
        while True:
            self._drop_cancelled()
            if not self._heap:
                self._wake.clear()
                await self._wake.wait()
                continue

            wait = self._heap[0].deadline - self._clock()
            if wait > 0:
                self._wake.clear()
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=wait)
                except TimeoutError:
                    pass
                continue

            entry = heapq.heappop(self._heap)
            self._running = entry
            try:
                await entry.action()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Timeline action %s failed", entry.label)
            finally:
                self._running = None

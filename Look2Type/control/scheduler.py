"""
Cancellable deferred actions for the dwell timer.

schedule(delay_ms, callback) returns a TimerHandle; cancel() on the handle is
the only way to stop it. Both schedulers run callbacks on the caller's
(GUI) thread, so cancellation inside a tick always happens-before any
reschedule.

- QtScheduler: single-shot QTimer on the Qt event loop, monotonic clock.
- ManualScheduler: virtual clock advanced explicitly (replay, tests).
"""
from __future__ import annotations

import heapq
import itertools
import time
from typing import Callable, List, Optional, Protocol, Tuple

from PyQt6.QtCore import QTimer


class TimerHandle(Protocol):
    @property
    def active(self) -> bool:
        ...

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def now_ms(self) -> float:
        ...

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        ...


class _QtHandle:
    def __init__(self, timer: QTimer) -> None:
        self._timer: Optional[QTimer] = timer

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def cancel(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.deleteLater()
        self._timer = None

    def _fired(self) -> None:
        if self._timer is not None:
            self._timer.deleteLater()
        self._timer = None


class QtScheduler:
    def __init__(self, parent=None) -> None:
        self._parent = parent

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> _QtHandle:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setInterval(max(0, int(delay_ms)))
        handle = _QtHandle(timer)

        def _on_timeout() -> None:
            # A stopped timer never delivers timeout, but guard anyway.
            if handle._timer is None:
                return
            handle._fired()
            callback()

        timer.timeout.connect(_on_timeout)  # type: ignore[attr-defined]
        timer.start()
        return handle


class _ManualHandle:
    def __init__(self, due_ms: float) -> None:
        self.due_ms = due_ms
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False


class ManualScheduler:
    """Virtual clock: callbacks fire only from advance()/advance_to()."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = float(start_ms)
        self._queue: List[Tuple[float, int, _ManualHandle, Callable[[], None]]] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> _ManualHandle:
        due = self._now + max(0, int(delay_ms))
        handle = _ManualHandle(due)
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h, _ in self._queue if h.active)

    def advance(self, delta_ms: float) -> int:
        return self.advance_to(self._now + float(delta_ms))

    def advance_to(self, t_ms: float) -> int:
        """Move the clock to t_ms, firing due callbacks in due order.

        Returns the number of callbacks fired. The clock never moves back.
        """
        target = max(self._now, float(t_ms))
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self._now = max(self._now, due)
            handle._active = False
            callback()
            fired += 1
        self._now = target
        return fired

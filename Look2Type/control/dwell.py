"""
Dwell selection state machine.

States are Idle and Hovering(target, started_at). One update() per tick:

- Idle + None                -> Idle
- Idle + Target(t)           -> Hovering(t, now), timer armed for dwell_time_ms
- Hovering(t) + Target(t)    -> unchanged, timer keeps running (not reset)
- Hovering(t) + Target(t2)   -> old timer cancelled, Hovering(t2, now)
- Hovering(t) + None         -> timer cancelled, Idle
- timer fires                -> on_commit(t), Idle

Timing is wall-clock relative to first entry, so dwell length does not depend
on the tick rate. There is no grace period: a single None tick cancels.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .scheduler import Scheduler, TimerHandle
from .targets import InteractiveTarget

logger = logging.getLogger(__name__)

DEFAULT_DWELL_TIME_MS = 2000


class DwellInvariantError(RuntimeError):
    """The state machine reached a state its transitions should make impossible."""


class DwellState(Enum):
    IDLE = "idle"
    HOVERING = "hovering"


@dataclass(frozen=True)
class DwellSession:
    target: InteractiveTarget
    started_at: float  # scheduler clock, ms


CommitCallback = Callable[[InteractiveTarget], None]
HoverCallback = Callable[[Optional[InteractiveTarget], Optional[InteractiveTarget]], None]


class DwellStateMachine:
    def __init__(
        self,
        scheduler: Scheduler,
        on_commit: CommitCallback,
        dwell_time_ms: int = DEFAULT_DWELL_TIME_MS,
        is_valid: Optional[Callable[[InteractiveTarget], bool]] = None,
        on_hover: Optional[HoverCallback] = None,
    ) -> None:
        if int(dwell_time_ms) <= 0:
            raise ValueError("dwell_time_ms must be positive")
        self.dwell_time_ms = int(dwell_time_ms)
        self._scheduler = scheduler
        self._on_commit = on_commit
        self._is_valid = is_valid
        self._on_hover = on_hover
        self._session: Optional[DwellSession] = None
        self._timer: Optional[TimerHandle] = None

    # Public API ---------------------------------------------------------
    @property
    def state(self) -> DwellState:
        return DwellState.HOVERING if self._session is not None else DwellState.IDLE

    @property
    def session(self) -> Optional[DwellSession]:
        return self._session

    @property
    def timers_outstanding(self) -> int:
        return 1 if (self._timer is not None and self._timer.active) else 0

    def progress(self) -> float:
        """Fraction of the current dwell elapsed, 0..1 (0 when idle)."""
        if self._session is None:
            return 0.0
        elapsed = self._scheduler.now_ms() - self._session.started_at
        return max(0.0, min(1.0, elapsed / float(self.dwell_time_ms)))

    def update(self, target: Optional[InteractiveTarget]) -> DwellState:
        if target is not None and not self._is_live(target):
            target = None
        if target is None:
            if self._session is not None:
                self._cancel()
            return self.state
        if self._session is not None and self._session.target.target_id == target.target_id:
            return self.state
        self._start(target)
        return self.state

    def cancel(self) -> None:
        """Force Idle, dropping any running dwell without committing."""
        if self._session is not None:
            self._cancel()

    # Internals ----------------------------------------------------------
    def _is_live(self, target: InteractiveTarget) -> bool:
        if not target.visible:
            return False
        if self._is_valid is not None and not self._is_valid(target):
            return False
        return True

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _cancel(self) -> None:
        assert self._session is not None
        left = self._session.target
        self._stop_timer()
        self._session = None
        logger.debug("Dwell cancelled on %s", left.target_id)
        self._notify_hover(None, left)

    def _start(self, target: InteractiveTarget) -> None:
        if self._session is None and self._timer is not None:
            raise DwellInvariantError("a dwell timer is outstanding with no active session")
        left = self._session.target if self._session is not None else None
        self._stop_timer()
        session = DwellSession(target, self._scheduler.now_ms())
        self._session = session
        self._timer = self._scheduler.schedule(self.dwell_time_ms, lambda: self._on_timer(session))
        logger.debug("Dwell started on %s", target.target_id)
        self._notify_hover(target, left)

    def _on_timer(self, session: DwellSession) -> None:
        if self._session is None:
            raise DwellInvariantError("dwell timer fired with no active session")
        if self._session is not session:
            raise DwellInvariantError("dwell timer fired for a superseded session")
        target = session.target
        self._timer = None
        self._session = None
        self._notify_hover(None, target)
        self._on_commit(target)

    def _notify_hover(self, entered: Optional[InteractiveTarget], left: Optional[InteractiveTarget]) -> None:
        if self._on_hover is not None:
            self._on_hover(entered, left)

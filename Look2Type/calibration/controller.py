"""
One-shot calibration gate run before live gaze typing is enabled.

Phases only move forward:
  NOT_STARTED -> AWAITING_MANUAL_TRIGGER -> DWELLING -> SUCCEEDED

The operator confirms manually (e.g. clicks the anchor key), then a dwell on
the fixed anchor target completes calibration. There is no timeout while
waiting for the trigger. A finished controller is not reusable; create a new
one to recalibrate.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from Look2Type.control.commit import CommitHandler
from Look2Type.control.dwell import DEFAULT_DWELL_TIME_MS, DwellStateMachine
from Look2Type.control.scheduler import Scheduler
from Look2Type.control.targets import Action, InteractiveTarget

logger = logging.getLogger(__name__)


class CalibrationError(RuntimeError):
    """Calibration operation called in the wrong phase."""


class CalibrationPhase(Enum):
    NOT_STARTED = "not_started"
    AWAITING_MANUAL_TRIGGER = "awaiting_manual_trigger"
    DWELLING = "dwelling"
    SUCCEEDED = "succeeded"


PhaseListener = Callable[[CalibrationPhase, str], None]

ANCHOR_PREFIX = "calibration:"


def anchor_for(key: InteractiveTarget) -> InteractiveTarget:
    """A no-op target sharing the live geometry of ``key``."""
    return InteractiveTarget(
        target_id=f"{ANCHOR_PREFIX}{key.target_id}",
        action=Action.no_op(),
        rect=key.current_rect,
        label=key.label,
    )


class CalibrationController:
    def __init__(
        self,
        anchor: InteractiveTarget,
        scheduler: Scheduler,
        dwell_time_ms: int = DEFAULT_DWELL_TIME_MS,
        commit_handler: Optional[CommitHandler] = None,
    ) -> None:
        self.anchor = anchor
        # Id of the real key the anchor wraps; hit testing reports that one
        self.key_id = anchor.target_id[len(ANCHOR_PREFIX):] if anchor.target_id.startswith(ANCHOR_PREFIX) else None
        self.dwell_time_ms = int(dwell_time_ms)
        self._commit_handler = commit_handler
        self._machine = DwellStateMachine(
            scheduler,
            self._on_anchor_dwelled,
            dwell_time_ms=self.dwell_time_ms,
            is_valid=lambda t: t.target_id == anchor.target_id,
        )
        self._phase = CalibrationPhase.NOT_STARTED
        self._instruction = ""
        self._listeners: List[PhaseListener] = []
        self._succeeded_callbacks: List[Callable[[], None]] = []

    # Public API ---------------------------------------------------------
    @property
    def phase(self) -> CalibrationPhase:
        return self._phase

    @property
    def instruction(self) -> str:
        return self._instruction

    @property
    def is_complete(self) -> bool:
        return self._phase is CalibrationPhase.SUCCEEDED

    @property
    def main_loop_enabled(self) -> bool:
        return self.is_complete

    @property
    def machine(self) -> DwellStateMachine:
        return self._machine

    def subscribe(self, listener: PhaseListener) -> None:
        self._listeners.append(listener)

    def on_succeeded(self, callback: Callable[[], None]) -> None:
        self._succeeded_callbacks.append(callback)

    def begin(self) -> None:
        self._expect(CalibrationPhase.NOT_STARTED, "begin")
        secs = self.dwell_time_ms / 1000.0
        self._set_phase(
            CalibrationPhase.AWAITING_MANUAL_TRIGGER,
            f"Click the '{self.anchor.text}' key and look at it for {secs:g} seconds to calibrate",
        )

    def trigger(self) -> None:
        """Operator confirmation: start dwelling on the anchor."""
        self._expect(CalibrationPhase.AWAITING_MANUAL_TRIGGER, "trigger")
        self._set_phase(CalibrationPhase.DWELLING, "Calibrating... keep looking")
        self._machine.update(self.anchor)

    def update(self, target: Optional[InteractiveTarget]) -> None:
        """Optional gaze feed while dwelling; anything but the anchor resets.

        The anchor itself or the key it wraps both count as the anchor.
        """
        if self._phase is not CalibrationPhase.DWELLING:
            return
        if target is not None and target.target_id == self.key_id:
            target = self.anchor
        self._machine.update(target)

    # Internals ----------------------------------------------------------
    def _expect(self, phase: CalibrationPhase, op: str) -> None:
        if self._phase is not phase:
            raise CalibrationError(f"cannot {op} calibration in phase {self._phase.value}")

    def _set_phase(self, phase: CalibrationPhase, instruction: str) -> None:
        self._phase = phase
        self._instruction = instruction
        logger.info("Calibration phase: %s", phase.value)
        for listener in list(self._listeners):
            listener(phase, instruction)

    def _on_anchor_dwelled(self, target: InteractiveTarget) -> None:
        if self._phase is not CalibrationPhase.DWELLING:
            raise CalibrationError(f"anchor dwell completed in phase {self._phase.value}")
        if self._commit_handler is not None:
            self._commit_handler.commit(target)
        self._set_phase(CalibrationPhase.SUCCEEDED, "Calibration successful!")
        for cb in list(self._succeeded_callbacks):
            cb()

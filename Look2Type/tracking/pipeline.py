from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, Union

from Look2Type.control.dwell import DwellState, DwellStateMachine
from Look2Type.control.targets import HitTester, InteractiveTarget
from .detections import Detection, DetectionAggregator, DetectionBatch, GazePoint
from .mapping import CoordinateMapper, Rect, to_render_space

Detections = Union[DetectionBatch, Iterable[Detection], None]


@dataclass
class TickResult:
    gaze_model: Optional[GazePoint]
    gaze_render: Optional[GazePoint]
    gaze_target: Optional[GazePoint]
    target: Optional[InteractiveTarget]
    state: DwellState


class GazePipeline:
    """Aggregator -> Mapper -> Hit Tester -> Dwell machine, one pass per tick.

    Nothing reaches the dwell machine until ``enabled`` is set (after
    calibration). Any stage yielding nothing feeds None to the machine
    in the same tick, so a lost gaze always collapses to Idle.
    """

    def __init__(
        self,
        aggregator: DetectionAggregator,
        mapper: CoordinateMapper,
        hit_tester: HitTester,
        machine: DwellStateMachine,
        on_gaze: Optional[Callable[[Optional[GazePoint]], None]] = None,
    ) -> None:
        self.aggregator = aggregator
        self.mapper = mapper
        self.hit_tester = hit_tester
        self.machine = machine
        self.enabled = False
        self._on_gaze = on_gaze

    def process(
        self,
        detections: Detections,
        render_rect: Optional[Rect],
        target_rect: Optional[Rect],
        targets: Sequence[InteractiveTarget],
    ) -> TickResult:
        if not self.enabled:
            return TickResult(None, None, None, None, self.machine.state)
        gm = self.aggregator.aggregate(detections)
        gt = self.mapper.map(gm, render_rect, target_rect)
        gr = None
        if gt is not None and render_rect is not None:
            gr = to_render_space(gm, self.mapper.model_size, render_rect.width, render_rect.height)
        return self._finish(gm, gr, gt, targets)

    def process_point(self, point: Optional[GazePoint], targets: Sequence[InteractiveTarget]) -> TickResult:
        """Tick with a gaze point already in target space (e.g. mouse-simulated gaze)."""
        if not self.enabled:
            return TickResult(None, None, None, None, self.machine.state)
        return self._finish(None, None, point, targets)

    def _finish(
        self,
        gm: Optional[GazePoint],
        gr: Optional[GazePoint],
        gt: Optional[GazePoint],
        targets: Sequence[InteractiveTarget],
    ) -> TickResult:
        if self._on_gaze is not None:
            self._on_gaze(gt)
        hit = self.hit_tester.hit(gt, targets) if gt is not None else None
        state = self.machine.update(hit)
        return TickResult(gm, gr, gt, hit, state)

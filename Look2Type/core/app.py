from __future__ import annotations

import logging
import sys
from typing import Optional

from PyQt6.QtCore import QTimer
from PyQt6.QtWidgets import QApplication

from Look2Type.calibration.controller import CalibrationController, CalibrationPhase, anchor_for
from Look2Type.control.commit import CommitEvent, CommitHandler, OutputBuffer
from Look2Type.control.dwell import DwellStateMachine
from Look2Type.control.scheduler import QtScheduler
from Look2Type.control.targets import LinearHitTester, find_target
from Look2Type.core.settings import SettingsManager
from Look2Type.tracking.camera import Camera
from Look2Type.tracking.detections import DetectionAggregator, DetectionBatch, GazePoint, SPACE_TARGET
from Look2Type.tracking.inference import PupilDetector
from Look2Type.tracking.mapping import CoordinateMapper
from Look2Type.tracking.pipeline import GazePipeline, TickResult
from Look2Type.ui.keyboard_window import KeyboardWindow

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
SUCCESS_OVERLAY_MS = 1000


class AppCore:
    def __init__(self, settings: Optional[SettingsManager] = None) -> None:
        self.settings = settings or SettingsManager()
        self.scheduler = QtScheduler()
        self.buffer = OutputBuffer()
        self.commits = CommitHandler(self.buffer)

        self.win = KeyboardWindow(model_size=self.settings.model_size(), conf_threshold=self.settings.conf_threshold())
        self.win.keyClicked.connect(self._on_key_clicked)  # type: ignore[attr-defined]
        self.targets = self.win.targets()
        self.commits.subscribe(self._on_commit)

        self.machine = DwellStateMachine(
            self.scheduler,
            self.commits.commit,
            dwell_time_ms=self.settings.dwell_time_ms(),
            is_valid=lambda t: t in self.targets,
            on_hover=self.win.set_hovered,
        )
        self.pipeline = GazePipeline(
            DetectionAggregator(conf_threshold=self.settings.conf_threshold()),
            CoordinateMapper(model_size=self.settings.model_size()),
            LinearHitTester(),
            self.machine,
            on_gaze=self.win.move_gaze_cursor,
        )

        # Gaze source: camera + model, or the mouse pointer as simulated gaze
        self.camera: Optional[Camera] = None
        self.detector: Optional[PupilDetector] = None
        self.source = self.settings.gaze_source()
        if self.source == "camera":
            self._open_camera_source()

        anchor_key = find_target(self.targets, self.settings.calibration_anchor())
        if anchor_key is None:
            raise ValueError(f"calibration anchor {self.settings.calibration_anchor()!r} is not a key")
        self.calibration = CalibrationController(
            anchor_for(anchor_key),
            self.scheduler,
            dwell_time_ms=self.settings.dwell_time_ms(),
            commit_handler=self.commits,
        )
        self.calibration.subscribe(self._on_calibration_phase)
        self.calibration.on_succeeded(self._on_calibrated)

        self.timer = QTimer()
        self.timer.setInterval(self.settings.tick_interval_ms())
        self.timer.timeout.connect(self._on_tick)  # type: ignore[attr-defined]

    def _open_camera_source(self) -> None:
        try:
            self.detector = PupilDetector(self.settings.model_path(), model_size=self.settings.model_size())
        except Exception as e:
            logger.warning("Failed to load model (%s); falling back to mouse gaze", e)
            self.source = "mouse"
            return
        cam = Camera(index=self.settings.camera_index())
        if not cam.start():
            logger.warning("Camera unavailable; falling back to mouse gaze")
            self.detector = None
            self.source = "mouse"
            return
        self.camera = cam

    def start(self) -> None:
        self.win.set_status(f"Gaze source: {self.source}")
        self.calibration.begin()
        self.timer.start()

    def stop(self) -> None:
        self.timer.stop()
        self.machine.cancel()
        if self.camera is not None:
            self.camera.stop()

    # Events -------------------------------------------------------------
    def _on_key_clicked(self, target_id: str) -> None:
        if (
            self.calibration.phase is CalibrationPhase.AWAITING_MANUAL_TRIGGER
            and target_id == self.calibration.key_id
        ):
            self.calibration.trigger()
            return
        if self.calibration.phase is CalibrationPhase.DWELLING:
            return
        # Manual fallback typing
        for t in self.targets:
            if t.target_id == target_id:
                self.commits.commit(t)
                return

    def _on_commit(self, event: CommitEvent) -> None:
        self.win.set_text(event.text)

    def _on_calibration_phase(self, phase: CalibrationPhase, instruction: str) -> None:
        self.win.show_calibration(instruction)
        if phase is CalibrationPhase.DWELLING:
            anchor_rect = self.calibration.anchor.current_rect()
            if anchor_rect is not None:
                cx, cy = anchor_rect.center
                self.win.move_gaze_cursor(GazePoint(cx, cy, SPACE_TARGET))

    def _on_calibrated(self) -> None:
        self.pipeline.enabled = True
        QTimer.singleShot(SUCCESS_OVERLAY_MS, self.win.hide_calibration)

    def process_detections(self, batch: Optional[DetectionBatch], frame=None) -> TickResult:
        """One camera tick: gaze spans the whole window so it can reach the keys."""
        res = self.pipeline.process(batch, self.win.render_rect(), self.win.gaze_rect(), self.targets)
        self.win.video.set_overlays(frame=frame, batch=batch, gaze=res.gaze_render)
        return res

    def _on_tick(self) -> None:
        # The preview keeps running during calibration; the pipeline itself
        # ignores input until calibration succeeds.
        if self.source == "camera" and self.camera is not None and not self.camera.is_open:
            logger.warning("Camera closed; falling back to mouse gaze")
            self.camera.stop()
            self.camera = None
            self.source = "mouse"
            self.win.set_status(f"Gaze source: {self.source}")
        if self.source == "camera" and self.camera is not None and self.detector is not None:
            ok, frame = self.camera.read()
            batch = self.detector.detect(frame) if ok else None
            res = self.process_detections(batch, frame if ok else None)
        else:
            res = self.pipeline.process_point(self.win.cursor_point(), self.targets)
        self.win.set_gaze_key(res.target)


def main() -> int:
    settings = SettingsManager()
    logging.basicConfig(level=getattr(logging, settings.log_level(), logging.INFO), format=LOG_FORMAT)
    app = QApplication(sys.argv)
    core = AppCore(settings)
    core.win.show()
    core.start()
    code = app.exec()
    core.stop()
    return int(code)


if __name__ == "__main__":
    raise SystemExit(main())

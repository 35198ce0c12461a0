"""
Main Look2Type window: camera preview, typed text, on-screen keys, the gaze
cursor and the calibration overlay.

The window's own coordinate system is the target space: key rectangles, the
preview and the gaze area are all reported relative to the window, and are
re-read from the live widget geometry every time they are asked for.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from PyQt6.QtCore import QPoint, Qt, pyqtSignal
from PyQt6.QtGui import QCursor
from PyQt6.QtWidgets import (
    QGridLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from Look2Type.control.targets import DEFAULT_ROWS, Action, InteractiveTarget
from Look2Type.tracking.detections import GazePoint, SPACE_TARGET
from Look2Type.tracking.mapping import Rect
from .video_widget import VideoWidget

KEY_STYLE = """
QPushButton { font-size: 20px; min-width: 48px; min-height: 48px;
              background: #f4f4f4; border: 2px solid #999; border-radius: 6px; }
QPushButton[hovered="true"] { border-color: #2b7cff; }
QPushButton[dwelling="true"] { background: #ffe58a; }
"""


class KeyboardWindow(QMainWindow):
    keyClicked = pyqtSignal(str)  # target_id

    def __init__(self, rows: Sequence[str] = DEFAULT_ROWS, model_size: int = 384, conf_threshold: float = 0.4):
        super().__init__()
        self.setWindowTitle("Look2Type")
        self._buttons: Dict[str, QPushButton] = {}
        self._targets: List[InteractiveTarget] = []
        self._hovered: Optional[str] = None
        self._build_ui(rows, model_size, conf_threshold)

    def _build_ui(self, rows: Sequence[str], model_size: int, conf_threshold: float) -> None:
        central = QWidget()
        root = QVBoxLayout()

        self.video = VideoWidget(model_size=model_size, conf_threshold=conf_threshold)
        root.addWidget(self.video, stretch=1)

        self.text_label = QLabel("")
        self.text_label.setStyleSheet("font-size: 28px; padding: 8px; border: 1px solid #ccc;")
        self.text_label.setMinimumHeight(56)
        root.addWidget(self.text_label)

        grid = QGridLayout()
        for r, letters in enumerate(rows):
            for c, ch in enumerate(letters):
                self._add_key(grid, ch, Action.append(ch), ch, r, c)
        last = len(rows)
        self._add_key(grid, "SPACE", Action.space(), "Space", last, 0, span=5)
        self._add_key(grid, "DELETE", Action.delete(), "Delete", last, 5, span=2)
        keys = QWidget()
        keys.setLayout(grid)
        keys.setStyleSheet(KEY_STYLE)
        root.addWidget(keys)

        central.setLayout(root)
        self.setCentralWidget(central)

        self.gaze_cursor = QLabel(central)
        self.gaze_cursor.setFixedSize(14, 14)
        self.gaze_cursor.setStyleSheet("background: red; border-radius: 7px;")
        self.gaze_cursor.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.gaze_cursor.hide()

        self.calibration_overlay = QLabel(central)
        self.calibration_overlay.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.calibration_overlay.setWordWrap(True)
        self.calibration_overlay.setStyleSheet(
            "background: rgba(0, 0, 0, 170); color: white; font-size: 22px; padding: 16px;"
        )
        self.calibration_overlay.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.calibration_overlay.hide()

        self.status_label = QLabel("")
        self.statusBar().addWidget(self.status_label)

    def _add_key(self, grid: QGridLayout, target_id: str, action: Action, label: str, row: int, col: int, span: int = 1) -> None:
        btn = QPushButton(label)
        btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        btn.clicked.connect(lambda _=False, tid=target_id: self.keyClicked.emit(tid))  # type: ignore[attr-defined]
        grid.addWidget(btn, row, col, 1, span)
        self._buttons[target_id] = btn
        self._targets.append(
            InteractiveTarget(target_id, action, rect=lambda b=btn: self._rect_of(b), label=label)
        )

    # Geometry (target space = this window's coordinates) -----------------
    def _rect_of(self, widget: QWidget) -> Optional[Rect]:
        if not widget.isVisible():
            return None
        tl = widget.mapTo(self, QPoint(0, 0))
        return Rect(float(tl.x()), float(tl.y()), float(widget.width()), float(widget.height()))

    def targets(self) -> List[InteractiveTarget]:
        return list(self._targets)

    def preview_rect(self) -> Optional[Rect]:
        return self._rect_of(self.video)

    def gaze_rect(self) -> Optional[Rect]:
        """Area camera gaze is spread over: preview, text and keys."""
        return self._rect_of(self.centralWidget())

    def render_rect(self) -> Rect:
        return Rect(0.0, 0.0, float(self.video.width()), float(self.video.height()))

    def cursor_point(self) -> Optional[GazePoint]:
        """Mouse position as simulated gaze, or None when outside the window."""
        p = self.mapFromGlobal(QCursor.pos())
        if not self.rect().contains(p):
            return None
        return GazePoint(float(p.x()), float(p.y()), SPACE_TARGET)

    # Feedback ------------------------------------------------------------
    def set_text(self, text: str) -> None:
        self.text_label.setText(text)

    def set_status(self, text: str) -> None:
        self.status_label.setText(text)

    def move_gaze_cursor(self, point: Optional[GazePoint]) -> None:
        if point is None:
            self.gaze_cursor.hide()
            return
        # Window coords -> central widget coords
        origin = self.centralWidget().mapTo(self, QPoint(0, 0))
        x = int(point.x) - origin.x() - self.gaze_cursor.width() // 2
        y = int(point.y) - origin.y() - self.gaze_cursor.height() // 2
        self.gaze_cursor.move(x, y)
        self.gaze_cursor.show()
        self.gaze_cursor.raise_()

    def set_hovered(self, entered: Optional[InteractiveTarget], left: Optional[InteractiveTarget]) -> None:
        if left is not None:
            self._set_flag(self._key_id(left), "dwelling", False)
        if entered is not None:
            self._set_flag(self._key_id(entered), "dwelling", True)

    def set_gaze_key(self, target: Optional[InteractiveTarget]) -> None:
        tid = self._key_id(target) if target is not None else None
        if tid == self._hovered:
            return
        if self._hovered is not None:
            self._set_flag(self._hovered, "hovered", False)
        if tid is not None:
            self._set_flag(tid, "hovered", True)
        self._hovered = tid

    def show_calibration(self, instruction: str) -> None:
        self.calibration_overlay.setText(instruction)
        self.calibration_overlay.setGeometry(self.centralWidget().rect().adjusted(40, 40, -40, -40))
        self.calibration_overlay.show()
        self.calibration_overlay.raise_()

    def hide_calibration(self) -> None:
        self.calibration_overlay.hide()

    def _key_id(self, target: InteractiveTarget) -> str:
        # Calibration anchors wrap a key as "calibration:<id>"
        return target.target_id.split(":", 1)[-1]

    def _set_flag(self, target_id: str, name: str, on: bool) -> None:
        btn = self._buttons.get(target_id)
        if btn is None:
            return
        btn.setProperty(name, "true" if on else "false")
        btn.style().unpolish(btn)
        btn.style().polish(btn)

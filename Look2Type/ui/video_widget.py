from __future__ import annotations

from typing import Optional

import cv2
from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QColor, QImage, QPainter, QPen
from PyQt6.QtWidgets import QWidget

from Look2Type.tracking.detections import DetectionBatch, GazePoint


class VideoWidget(QWidget):
    """Camera preview stretched to the widget, with detection dots on top.

    The frame fills the whole widget (no letterboxing) so that widget-local
    coordinates are a plain per-axis scaling of model space.
    """

    def __init__(self, model_size: int = 384, conf_threshold: float = 0.4):
        super().__init__()
        self.model_size = int(model_size)
        self.conf_threshold = float(conf_threshold)
        self._frame = None
        self._batch: Optional[DetectionBatch] = None
        self._gaze: Optional[GazePoint] = None
        self.setMinimumSize(320, 240)

    def set_overlays(self, *, frame, batch: Optional[DetectionBatch] = None, gaze: Optional[GazePoint] = None) -> None:
        self._frame = frame
        self._batch = batch
        self._gaze = gaze
        self.update()

    def paintEvent(self, e):  # type: ignore[override]
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(0, 0, 0))
        if self._frame is None:
            painter.end()
            return
        img = self._to_qimage(self._frame)
        painter.drawImage(self.rect(), img)

        sx = self.width() / float(self.model_size)
        sy = self.height() / float(self.model_size)
        if self._batch is not None:
            painter.setPen(QPen(QColor(0, 255, 0), 2))
            painter.setBrush(QColor(0, 255, 0))
            for d in self._batch:
                if d.confidence < self.conf_threshold:
                    continue
                cx, cy = d.center
                painter.drawEllipse(QPointF(cx * sx, cy * sy), 4, 4)
        if self._gaze is not None:
            painter.setPen(QPen(QColor(255, 0, 0), 2))
            painter.setBrush(QColor(255, 0, 0))
            painter.drawEllipse(QPointF(self._gaze.x, self._gaze.y), 7, 7)
        painter.end()

    @staticmethod
    def _to_qimage(frame) -> QImage:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        h, w, ch = rgb.shape
        return QImage(rgb.data, w, h, ch * w, QImage.Format.Format_RGB888).copy()

"""
Webcam capture over OpenCV.

Open a device, hand back BGR frames, release cleanly. Pacing is left to the
caller's tick timer.
"""
from __future__ import annotations

import logging
from typing import Optional

import cv2

logger = logging.getLogger(__name__)


class Camera:
    def __init__(self, index: int = 0, width: int = 640, height: int = 480) -> None:
        self.index = int(index)
        self.width = int(width)
        self.height = int(height)
        self.cap = None

    def start(self) -> bool:
        cap = cv2.VideoCapture(self.index)
        if not cap or not cap.isOpened():
            logger.warning("Camera %d could not be opened", self.index)
            return False
        # Resolution is a hint; drivers may ignore it
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap = cap
        logger.info("Camera %d live", self.index)
        return True

    def read(self) -> tuple[bool, Optional[object]]:
        if self.cap is None:
            return False, None
        ok, frame = self.cap.read()
        if not ok:
            return False, None
        return True, frame

    def stop(self) -> None:
        if self.cap is not None:
            try:
                self.cap.release()
            finally:
                self.cap = None

    @property
    def is_open(self) -> bool:
        return bool(self.cap is not None and self.cap.isOpened())

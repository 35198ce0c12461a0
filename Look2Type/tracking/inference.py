"""
ONNX pupil detector adapter.

Wraps an onnxruntime session for a square-input detector whose first output
holds [x, y, w, h, confidence, class_id] records in model pixel space.
Output decoding goes through DetectionBatch.from_output so record width is
taken from the output shape.
"""
from __future__ import annotations

import logging
import os

import cv2
import numpy as np
import onnxruntime as ort

from .detections import DetectionBatch, DetectionFormatError
from .mapping import DEFAULT_MODEL_SIZE

logger = logging.getLogger(__name__)


class PupilDetector:
    def __init__(self, model_path: str, model_size: int = DEFAULT_MODEL_SIZE) -> None:
        if not os.path.exists(model_path):
            raise FileNotFoundError(model_path)
        self.model_size = int(model_size)
        self.session = ort.InferenceSession(model_path, providers=["CPUExecutionProvider"])
        self.input_name = self.session.get_inputs()[0].name
        self.output_name = self.session.get_outputs()[0].name
        logger.info("Model loaded from %s", model_path)

    def preprocess(self, frame_bgr) -> np.ndarray:
        """BGR frame -> [1, 3, S, S] float32 in [0, 1]."""
        img = cv2.resize(frame_bgr, (self.model_size, self.model_size))
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        img = img.astype(np.float32) / 255.0
        return np.transpose(img, (2, 0, 1))[None, :, :, :]

    def detect(self, frame_bgr) -> DetectionBatch:
        if frame_bgr is None:
            return DetectionBatch.empty()
        blob = self.preprocess(frame_bgr)
        try:
            out = self.session.run([self.output_name], {self.input_name: blob})[0]
        except Exception as e:
            logger.warning("Inference error: %s", e)
            return DetectionBatch.empty()
        arr = np.asarray(out)
        try:
            return DetectionBatch.from_output(arr, arr.shape)
        except DetectionFormatError as e:
            logger.warning("Unusable detector output: %s", e)
            return DetectionBatch.empty()

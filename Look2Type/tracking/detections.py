"""
Pupil detection records and per-tick aggregation.

- Detection: one bounding box + confidence in model-input pixel space.
- DetectionBatch: validated (N, stride) view over raw model output.
- DetectionAggregator: reduces a tick's detections to zero or one GazePoint.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence, Tuple, Union

import numpy as np

DEFAULT_CONF_THRESHOLD = 0.4
DEFAULT_STRIDE = 6
MIN_STRIDE = 5  # x, y, w, h, confidence

SPACE_MODEL = "model"
SPACE_RENDER = "render"
SPACE_TARGET = "target"


class DetectionFormatError(ValueError):
    """Raw model output does not form whole detection records."""


@dataclass(frozen=True)
class Detection:
    x: float
    y: float
    w: float
    h: float
    confidence: float
    class_id: int = 0

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.w / 2.0, self.y + self.h / 2.0)


@dataclass(frozen=True)
class GazePoint:
    x: float
    y: float
    space: str = SPACE_MODEL


class DetectionBatch:
    """Fixed-width detection records for one tick.

    Rows are [x, y, w, h, confidence, class_id, ...]; extra trailing columns
    are carried but ignored. A batch without a class column reads class 0.
    """

    def __init__(self, rows: np.ndarray) -> None:
        arr = np.asarray(rows, dtype=np.float64)
        if arr.ndim != 2:
            raise DetectionFormatError(f"expected a 2-D array of records, got {arr.ndim}-D")
        if arr.shape[0] > 0 and arr.shape[1] < MIN_STRIDE:
            raise DetectionFormatError(f"record width {arr.shape[1]} is below {MIN_STRIDE}")
        self._rows = arr

    @classmethod
    def empty(cls) -> "DetectionBatch":
        return cls(np.zeros((0, DEFAULT_STRIDE), dtype=np.float64))

    @classmethod
    def from_output(cls, data, shape: Optional[Sequence[int]] = None) -> "DetectionBatch":
        """Build a batch from flat model output plus its shape metadata.

        Stride is the trailing dimension of a [N, S] or [1, N, S] shape.
        Any other (or missing) shape falls back to DEFAULT_STRIDE.
        """
        flat = np.asarray(data, dtype=np.float64).reshape(-1)
        stride = DEFAULT_STRIDE
        if shape is not None and len(shape) in (2, 3):
            stride = int(shape[-1])
        if stride < MIN_STRIDE:
            raise DetectionFormatError(f"stride {stride} is below {MIN_STRIDE}")
        if flat.size == 0:
            return cls(np.zeros((0, stride), dtype=np.float64))
        if flat.size % stride != 0:
            raise DetectionFormatError(
                f"{flat.size} values do not split into records of {stride}"
            )
        return cls(flat.reshape(-1, stride))

    @classmethod
    def from_detections(cls, detections: Iterable[Detection]) -> "DetectionBatch":
        rows = [[d.x, d.y, d.w, d.h, d.confidence, d.class_id] for d in detections]
        if not rows:
            return cls.empty()
        return cls(np.array(rows, dtype=np.float64))

    @property
    def stride(self) -> int:
        return int(self._rows.shape[1])

    @property
    def rows(self) -> np.ndarray:
        return self._rows

    def __len__(self) -> int:
        return int(self._rows.shape[0])

    def __iter__(self) -> Iterator[Detection]:
        has_class = self.stride > MIN_STRIDE
        for r in self._rows:
            cls_id = int(r[5]) if has_class and math.isfinite(float(r[5])) else 0
            yield Detection(float(r[0]), float(r[1]), float(r[2]), float(r[3]), float(r[4]), cls_id)


class DetectionAggregator:
    """Unweighted centroid of confident detection centers.

    Stateless: the same input and threshold always give the same point.
    """

    def __init__(self, conf_threshold: float = DEFAULT_CONF_THRESHOLD) -> None:
        conf_threshold = float(conf_threshold)
        if not (0.0 <= conf_threshold <= 1.0):
            raise ValueError("conf_threshold must be in [0, 1]")
        self.conf_threshold = conf_threshold

    def aggregate(self, detections: Union[DetectionBatch, Iterable[Detection], None]) -> Optional[GazePoint]:
        if detections is None:
            return None
        if isinstance(detections, DetectionBatch):
            rows = detections.rows
        else:
            rows = DetectionBatch.from_detections(detections).rows
        if rows.shape[0] == 0:
            return None
        finite = np.all(np.isfinite(rows[:, :MIN_STRIDE]), axis=1)
        keep = finite & (rows[:, 4] >= self.conf_threshold)
        if not np.any(keep):
            return None
        kept = rows[keep]
        cx = kept[:, 0] + kept[:, 2] / 2.0
        cy = kept[:, 1] + kept[:, 3] / 2.0
        return GazePoint(float(np.mean(cx)), float(np.mean(cy)), SPACE_MODEL)

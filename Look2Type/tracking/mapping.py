"""
Coordinate mapping between model-input, render-surface and target space.

All mappings are independent per-axis linear scalings (no rotation, no lens
correction). A zero-area rectangle means "not sized yet" and maps to None.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .detections import GazePoint, SPACE_RENDER, SPACE_TARGET

DEFAULT_MODEL_SIZE = 384


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def center(self) -> Tuple[float, float]:
        return (self.left + self.width / 2.0, self.top + self.height / 2.0)

    def contains(self, x: float, y: float) -> bool:
        # Inclusive on all four edges.
        return self.left <= x <= self.right and self.top <= y <= self.bottom


def to_render_space(
    p: Optional[GazePoint], model_size: float, render_width: float, render_height: float
) -> Optional[GazePoint]:
    """Scale a model-space point onto a render surface of the given size."""
    if p is None or model_size <= 0 or render_width <= 0 or render_height <= 0:
        return None
    x = p.x / float(model_size) * float(render_width)
    y = p.y / float(model_size) * float(render_height)
    return GazePoint(x, y, SPACE_RENDER)


def to_target_space(
    p: Optional[GazePoint], render_rect: Optional[Rect], target_rect: Optional[Rect]
) -> Optional[GazePoint]:
    """Map a point local to ``render_rect`` into the space of ``target_rect``.

    ``target_rect`` is where the render surface sits in target space (e.g. the
    preview widget's page/screen geometry); its origin is added after scaling.
    """
    if p is None or render_rect is None or target_rect is None:
        return None
    if render_rect.is_empty or target_rect.is_empty:
        return None
    x = target_rect.left + p.x * (target_rect.width / render_rect.width)
    y = target_rect.top + p.y * (target_rect.height / render_rect.height)
    return GazePoint(x, y, SPACE_TARGET)


class CoordinateMapper:
    """Model space -> render space -> target space in one call."""

    def __init__(self, model_size: int = DEFAULT_MODEL_SIZE) -> None:
        if model_size <= 0:
            raise ValueError("model_size must be positive")
        self.model_size = int(model_size)

    def map(
        self, p: Optional[GazePoint], render_rect: Optional[Rect], target_rect: Optional[Rect]
    ) -> Optional[GazePoint]:
        if p is None or render_rect is None or render_rect.is_empty:
            return None
        rp = to_render_space(p, self.model_size, render_rect.width, render_rect.height)
        return to_target_space(rp, render_rect, target_rect)

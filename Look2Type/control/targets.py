"""
Interactive targets (on-screen keys) and hit testing.

Targets are owned by the UI; the core only reads them. Rectangles are
re-queried on every hit test so layout reflows are picked up immediately.

Tie-break: edges are inclusive on all four sides, so a point exactly on an
edge shared by two adjacent keys resolves to the first key in list order.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from Look2Type.tracking.detections import GazePoint
from Look2Type.tracking.mapping import Rect

DEFAULT_ROWS: Tuple[str, ...] = ("QWERTYUIOP", "ASDFGHJKL", "ZXCVBNM")


class ActionKind(Enum):
    APPEND_CHARACTER = "append"
    APPEND_SPACE = "space"
    DELETE_LAST = "delete"
    NO_OP = "no_op"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    char: Optional[str] = None

    @classmethod
    def append(cls, char: str) -> "Action":
        if not isinstance(char, str) or len(char) != 1:
            raise ValueError("append action takes exactly one character")
        return cls(ActionKind.APPEND_CHARACTER, char)

    @classmethod
    def space(cls) -> "Action":
        return cls(ActionKind.APPEND_SPACE)

    @classmethod
    def delete(cls) -> "Action":
        return cls(ActionKind.DELETE_LAST)

    @classmethod
    def no_op(cls) -> "Action":
        return cls(ActionKind.NO_OP)


RectSource = Union[Rect, Callable[[], Optional[Rect]]]


@dataclass(eq=False)
class InteractiveTarget:
    target_id: str
    action: Action
    rect: RectSource
    label: Optional[str] = None
    visible: bool = True

    def current_rect(self) -> Optional[Rect]:
        r = self.rect
        if callable(r):
            return r()
        return r

    @property
    def text(self) -> str:
        return self.label if self.label is not None else self.target_id


class HitTester(Protocol):
    def hit(self, point: Optional[GazePoint], targets: Iterable[InteractiveTarget]) -> Optional[InteractiveTarget]:
        ...


class LinearHitTester:
    """First visible target (in iteration order) whose rectangle holds the point."""

    def hit(self, point: Optional[GazePoint], targets: Iterable[InteractiveTarget]) -> Optional[InteractiveTarget]:
        if point is None:
            return None
        for t in targets:
            if not t.visible:
                continue
            r = t.current_rect()
            if r is None or r.is_empty:
                continue
            if r.contains(point.x, point.y):
                return t
        return None


def build_keyboard_targets(
    rows: Sequence[str] = DEFAULT_ROWS,
    origin: Tuple[float, float] = (0.0, 0.0),
    key_size: Tuple[float, float] = (32.0, 32.0),
    gap: float = 4.0,
    with_space: bool = True,
    with_delete: bool = True,
) -> List[InteractiveTarget]:
    """Lay out letter rows left-aligned, then a SPACE and a DELETE key below."""
    ox, oy = origin
    kw, kh = key_size
    keys: List[InteractiveTarget] = []
    for r, letters in enumerate(rows):
        y = oy + r * (kh + gap)
        for c, ch in enumerate(letters):
            x = ox + c * (kw + gap)
            keys.append(InteractiveTarget(ch, Action.append(ch), Rect(x, y, kw, kh), label=ch))
    y = oy + len(rows) * (kh + gap)
    x = ox
    if with_space:
        w = 5 * kw + 4 * gap
        keys.append(InteractiveTarget("SPACE", Action.space(), Rect(x, y, w, kh), label="Space"))
        x += w + gap
    if with_delete:
        w = 2 * kw + gap
        keys.append(InteractiveTarget("DELETE", Action.delete(), Rect(x, y, w, kh), label="Delete"))
    return keys


def find_target(targets: Iterable[InteractiveTarget], label: str) -> Optional[InteractiveTarget]:
    want = label.strip().lower()
    for t in targets:
        if t.text.strip().lower() == want or t.target_id.lower() == want:
            return t
    return None

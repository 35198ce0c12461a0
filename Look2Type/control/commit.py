"""
Applying committed key actions to the typed-text buffer.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List

from .targets import Action, ActionKind, InteractiveTarget

logger = logging.getLogger(__name__)


class OutputBuffer:
    """Typed characters. Append and delete-last are the only edits."""

    def __init__(self, text: str = "") -> None:
        self._chars: List[str] = list(text)

    @property
    def text(self) -> str:
        return "".join(self._chars)

    def __len__(self) -> int:
        return len(self._chars)

    def append(self, char: str) -> None:
        self._chars.append(char)

    def delete_last(self) -> None:
        if self._chars:
            self._chars.pop()

    def clear(self) -> None:
        self._chars.clear()


@dataclass(frozen=True)
class CommitEvent:
    target_id: str
    action: Action
    text: str  # buffer contents after the action


CommitListener = Callable[[CommitEvent], None]


class CommitHandler:
    def __init__(self, buffer: OutputBuffer) -> None:
        self.buffer = buffer
        self._listeners: List[CommitListener] = []

    def subscribe(self, listener: CommitListener) -> None:
        self._listeners.append(listener)

    def commit(self, target: InteractiveTarget) -> CommitEvent:
        action = target.action
        kind = action.kind
        if kind is ActionKind.APPEND_CHARACTER:
            if action.char is None:
                raise ValueError(f"append action on {target.target_id} has no character")
            self.buffer.append(action.char)
        elif kind is ActionKind.APPEND_SPACE:
            self.buffer.append(" ")
        elif kind is ActionKind.DELETE_LAST:
            self.buffer.delete_last()
        # NO_OP: nothing to edit, listeners still hear about it
        event = CommitEvent(target.target_id, action, self.buffer.text)
        logger.info("Typed: %s -> %r", target.text, event.text)
        for listener in list(self._listeners):
            listener(event)
        return event

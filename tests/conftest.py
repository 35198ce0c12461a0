from typing import List

import pytest

from Look2Type.control.commit import CommitHandler, OutputBuffer
from Look2Type.control.dwell import DwellStateMachine
from Look2Type.control.scheduler import ManualScheduler
from Look2Type.control.targets import Action, InteractiveTarget
from Look2Type.tracking.mapping import Rect

DWELL_MS = 2000


def key(target_id: str, left: float, top: float = 0.0, size: float = 10.0, action=None) -> InteractiveTarget:
    return InteractiveTarget(target_id, action or Action.append(target_id[0]), Rect(left, top, size, size), label=target_id)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def committed() -> List[InteractiveTarget]:
    return []


@pytest.fixture
def machine(scheduler, committed) -> DwellStateMachine:
    return DwellStateMachine(scheduler, committed.append, dwell_time_ms=DWELL_MS)


@pytest.fixture
def handler() -> CommitHandler:
    return CommitHandler(OutputBuffer())

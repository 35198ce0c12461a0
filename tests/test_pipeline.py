import pytest

from Look2Type.control.commit import CommitHandler, OutputBuffer
from Look2Type.control.dwell import DwellState, DwellStateMachine
from Look2Type.control.targets import Action, InteractiveTarget, LinearHitTester
from Look2Type.tracking.detections import Detection, DetectionAggregator, DetectionBatch, GazePoint
from Look2Type.tracking.mapping import CoordinateMapper, Rect
from Look2Type.tracking.pipeline import GazePipeline

from conftest import DWELL_MS

SPACE = Rect(0, 0, 384, 384)


@pytest.fixture
def keys():
    return [
        InteractiveTarget("A", Action.append("A"), Rect(100, 100, 20, 20)),
        InteractiveTarget("DEL", Action.delete(), Rect(200, 100, 20, 20)),
    ]


@pytest.fixture
def rig(scheduler):
    handler = CommitHandler(OutputBuffer())
    gazes = []
    machine = DwellStateMachine(scheduler, handler.commit, dwell_time_ms=DWELL_MS)
    pipe = GazePipeline(
        DetectionAggregator(conf_threshold=0.3),
        CoordinateMapper(model_size=384),
        LinearHitTester(),
        machine,
        on_gaze=gazes.append,
    )
    pipe.enabled = True
    return pipe, handler, gazes


def test_scenario_single_detection_commits_after_dwell(rig, keys, scheduler):
    pipe, handler, _ = rig
    dets = [Detection(100, 100, 10, 10, 0.5)]
    res = pipe.process(dets, SPACE, SPACE, keys)
    assert (res.gaze_model.x, res.gaze_model.y) == (105.0, 105.0)
    assert (res.gaze_render.x, res.gaze_render.y) == (105.0, 105.0)
    assert (res.gaze_target.x, res.gaze_target.y) == (105.0, 105.0)
    assert res.target is keys[0]
    assert res.state is DwellState.HOVERING
    t = 0
    while t < DWELL_MS:
        scheduler.advance(33)
        t += 33
        pipe.process(dets, SPACE, SPACE, keys)
    assert handler.buffer.text == "A"


def test_empty_detections_force_idle(rig, keys, scheduler):
    pipe, handler, gazes = rig
    pipe.process([Detection(100, 100, 10, 10, 0.9)], SPACE, SPACE, keys)
    res = pipe.process([], SPACE, SPACE, keys)
    assert res.gaze_model is None and res.target is None
    assert res.state is DwellState.IDLE
    assert gazes[-1] is None
    scheduler.advance(DWELL_MS * 2)
    assert handler.buffer.text == ""


def test_unsized_preview_forces_idle(rig, keys):
    pipe, _, _ = rig
    pipe.process([Detection(100, 100, 10, 10, 0.9)], SPACE, SPACE, keys)
    res = pipe.process([Detection(100, 100, 10, 10, 0.9)], Rect(0, 0, 0, 0), SPACE, keys)
    assert res.gaze_target is None
    assert res.state is DwellState.IDLE


def test_gaze_off_every_key_forces_idle(rig, keys):
    pipe, _, _ = rig
    pipe.process([Detection(100, 100, 10, 10, 0.9)], SPACE, SPACE, keys)
    res = pipe.process([Detection(0, 0, 10, 10, 0.9)], SPACE, SPACE, keys)
    assert res.gaze_target is not None and res.target is None
    assert res.state is DwellState.IDLE


def test_disabled_pipeline_feeds_nothing(rig, keys, scheduler):
    pipe, handler, gazes = rig
    pipe.enabled = False
    res = pipe.process([Detection(100, 100, 10, 10, 0.9)], SPACE, SPACE, keys)
    assert res.target is None and res.state is DwellState.IDLE
    assert gazes == []
    scheduler.advance(DWELL_MS)
    assert handler.buffer.text == ""


def test_accepts_raw_batches(rig, keys):
    pipe, _, _ = rig
    batch = DetectionBatch.from_output([205, 105, 0, 0, 0.8, 0], (1, 1, 6))
    res = pipe.process(batch, SPACE, SPACE, keys)
    assert res.target is keys[1]


def test_preview_offset_in_window(rig, keys):
    pipe, _, _ = rig
    # preview is 192x192 at (50, 50); model point (100, 100) lands at (100, 100)
    res = pipe.process([Detection(95, 95, 10, 10, 0.9)], Rect(0, 0, 192, 192), Rect(50, 50, 192, 192), keys)
    assert (res.gaze_target.x, res.gaze_target.y) == (100.0, 100.0)
    assert res.target is keys[0]


def test_process_point_uses_target_space_directly(rig, keys):
    pipe, _, gazes = rig
    p = GazePoint(210, 110, "target")
    res = pipe.process_point(p, keys)
    assert res.target is keys[1]
    assert gazes == [p]
    assert pipe.process_point(None, keys).state is DwellState.IDLE

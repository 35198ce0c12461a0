import pytest

from Look2Type.control.targets import (
    Action,
    ActionKind,
    InteractiveTarget,
    LinearHitTester,
    build_keyboard_targets,
    find_target,
)
from Look2Type.tracking.detections import GazePoint
from Look2Type.tracking.mapping import Rect

from conftest import key


def test_hit_returns_containing_target():
    keys = [key("A", 0), key("B", 20), key("C", 40)]
    assert LinearHitTester().hit(GazePoint(25, 5), keys) is keys[1]


def test_miss_returns_none():
    keys = [key("A", 0), key("B", 20)]
    assert LinearHitTester().hit(GazePoint(15, 5), keys) is None
    assert LinearHitTester().hit(None, keys) is None


def test_shared_edge_resolves_to_first_in_order():
    a, b = key("A", 0), key("B", 10)  # share the edge x == 10
    tester = LinearHitTester()
    assert tester.hit(GazePoint(10, 5), [a, b]) is a
    assert tester.hit(GazePoint(10, 5), [b, a]) is b


def test_hidden_or_unsized_targets_never_match():
    hidden = InteractiveTarget("H", Action.append("H"), Rect(0, 0, 10, 10), visible=False)
    unsized = InteractiveTarget("U", Action.append("U"), lambda: None)
    flat = InteractiveTarget("F", Action.append("F"), Rect(0, 0, 0, 10))
    assert LinearHitTester().hit(GazePoint(0, 5), [hidden, unsized, flat]) is None


def test_rectangles_are_requeried_every_hit():
    geometry = {"rect": Rect(0, 0, 10, 10)}
    k = InteractiveTarget("K", Action.append("K"), lambda: geometry["rect"])
    tester = LinearHitTester()
    assert tester.hit(GazePoint(5, 5), [k]) is k
    geometry["rect"] = Rect(100, 100, 10, 10)  # layout reflow
    assert tester.hit(GazePoint(5, 5), [k]) is None
    assert tester.hit(GazePoint(105, 105), [k]) is k


def test_append_action_takes_one_character():
    assert Action.append("x") == Action(ActionKind.APPEND_CHARACTER, "x")
    with pytest.raises(ValueError):
        Action.append("xy")


def test_default_keyboard_layout():
    keys = build_keyboard_targets()
    ids = [k.target_id for k in keys]
    assert ids[:3] == ["Q", "W", "E"]
    assert ids[-2:] == ["SPACE", "DELETE"]
    assert len(ids) == 26 + 2
    assert find_target(keys, "space").action.kind is ActionKind.APPEND_SPACE
    assert find_target(keys, "Delete").action.kind is ActionKind.DELETE_LAST
    assert find_target(keys, "g").action == Action.append("G")
    assert find_target(keys, "?") is None


def test_default_keys_do_not_overlap():
    keys = build_keyboard_targets()
    tester = LinearHitTester()
    for k in keys:
        cx, cy = k.current_rect().center
        assert tester.hit(GazePoint(cx, cy), keys) is k

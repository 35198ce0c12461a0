import json

import pytest

from Look2Type.analysis.replay import load_ticks, main, run_replay
from Look2Type.control.targets import build_keyboard_targets, find_target

DWELL = 1000
TICK = 50


def looking_at(label, conf=0.9):
    cx, cy = find_target(build_keyboard_targets(), label).current_rect().center
    return [[cx - 2, cy - 2, 4, 4, conf, 0]]


def lines_for(schedule, start=0):
    """schedule: [(detections, duration_ms), ...] -> JSON lines every TICK ms."""
    out = []
    t = start
    for dets, duration in schedule:
        end = t + duration
        while t < end:
            out.append(json.dumps({"t_ms": t, "detections": dets}))
            t += TICK
    return out


def test_types_after_calibration():
    lines = lines_for([
        ([], DWELL + TICK),  # calibration dwell, no gaze needed
        (looking_at("H"), DWELL + 2 * TICK),
        ([], TICK),
        (looking_at("I"), DWELL + 2 * TICK),
    ])
    report = run_replay(load_ticks(lines), dwell_time_ms=DWELL)
    assert report.calibrated_at_ms == DWELL
    assert report.text == "HI"
    assert [ev.target_id for ev in report.commits] == ["H", "I"]


def test_nothing_typed_before_calibration_completes():
    lines = lines_for([(looking_at("A"), DWELL - TICK)])
    report = run_replay(load_ticks(lines), dwell_time_ms=DWELL)
    assert report.calibrated_at_ms is None
    assert report.text == ""


def test_low_confidence_gaze_never_types():
    lines = lines_for([(looking_at("A", conf=0.1), 3 * DWELL)])
    report = run_replay(load_ticks(lines), dwell_time_ms=DWELL, calibrate=False)
    assert report.commits == []


def test_space_and_delete_keys():
    lines = lines_for([
        (looking_at("Q"), DWELL + TICK),
        ([], TICK),
        (looking_at("Space"), DWELL + TICK),
        ([], TICK),
        (looking_at("Delete"), DWELL + TICK),
    ])
    report = run_replay(load_ticks(lines), dwell_time_ms=DWELL, calibrate=False)
    assert [ev.text for ev in report.commits] == ["Q", "Q ", "Q"]


def test_bad_line_reports_line_number():
    with pytest.raises(ValueError, match="line 2"):
        load_ticks(['{"t_ms": 0, "detections": []}', '{"detections": []}'])


def test_ragged_detection_rows_are_rejected():
    row = [10, 10, 4, 4, 0.9, 0]
    good = json.dumps({"t_ms": 0, "detections": [row]})
    ragged = json.dumps({"t_ms": 50, "detections": [row, row + row]})
    with pytest.raises(ValueError, match="line 2: detection 1 has 12 values, expected 6"):
        load_ticks([good, ragged])


def test_cli_prints_report(tmp_path, capsys):
    path = tmp_path / "ticks.jsonl"
    path.write_text("\n".join(lines_for([(looking_at("Z"), DWELL + TICK)])) + "\n", encoding="utf-8")
    assert main([str(path), "--dwell-ms", str(DWELL), "--skip-calibration"]) == 0
    out = capsys.readouterr().out
    assert "Text: 'Z'" in out

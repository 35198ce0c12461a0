"""
Headless replay of recorded detections through the full typing pipeline.

Input is JSON lines, one tick per line:
    {"t_ms": 1200, "detections": [[x, y, w, h, conf, cls], ...]}

The default keyboard layout is placed 1:1 in a 384x384 model/render/target
space, the dwell timer runs on a virtual clock, and calibration is triggered
on the first tick unless --skip-calibration is given.

Usage: python -m Look2Type.analysis.replay <path.jsonl> [--dwell-ms N] [--conf C]
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from Look2Type.calibration.controller import CalibrationController, anchor_for
from Look2Type.control.commit import CommitEvent, CommitHandler, OutputBuffer
from Look2Type.control.dwell import DEFAULT_DWELL_TIME_MS, DwellStateMachine
from Look2Type.control.scheduler import ManualScheduler
from Look2Type.control.targets import LinearHitTester, build_keyboard_targets, find_target
from Look2Type.tracking.detections import DEFAULT_CONF_THRESHOLD, DEFAULT_STRIDE, DetectionAggregator, DetectionBatch
from Look2Type.tracking.mapping import DEFAULT_MODEL_SIZE, CoordinateMapper, Rect
from Look2Type.tracking.pipeline import GazePipeline

Tick = Tuple[float, DetectionBatch]


@dataclass
class ReplayReport:
    ticks: int = 0
    commits: List[CommitEvent] = field(default_factory=list)
    calibrated_at_ms: Optional[float] = None
    text: str = ""


def load_ticks(lines: Iterable[str]) -> List[Tick]:
    ticks: List[Tick] = []
    for n, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            rec = json.loads(line)
            t_ms = float(rec["t_ms"])
            rows = [[float(v) for v in d] for d in (rec.get("detections") or [])]
            width = len(rows[0]) if rows else DEFAULT_STRIDE
            for i, r in enumerate(rows):
                if len(r) != width:
                    raise ValueError(f"detection {i} has {len(r)} values, expected {width}")
            batch = DetectionBatch.from_output([v for r in rows for v in r], (len(rows), width))
        except (ValueError, KeyError, TypeError) as e:
            raise ValueError(f"line {n}: {e}") from e
        ticks.append((t_ms, batch))
    return ticks


def run_replay(
    ticks: Iterable[Tick],
    dwell_time_ms: int = DEFAULT_DWELL_TIME_MS,
    conf_threshold: float = DEFAULT_CONF_THRESHOLD,
    calibrate: bool = True,
    anchor_label: str = "G",
) -> ReplayReport:
    report = ReplayReport()
    scheduler = ManualScheduler()
    buffer = OutputBuffer()
    commits = CommitHandler(buffer)
    targets = build_keyboard_targets()
    space = Rect(0.0, 0.0, float(DEFAULT_MODEL_SIZE), float(DEFAULT_MODEL_SIZE))

    machine = DwellStateMachine(scheduler, commits.commit, dwell_time_ms=dwell_time_ms)
    pipeline = GazePipeline(
        DetectionAggregator(conf_threshold=conf_threshold),
        CoordinateMapper(model_size=DEFAULT_MODEL_SIZE),
        LinearHitTester(),
        machine,
    )

    calibration: Optional[CalibrationController] = None
    if calibrate:
        key = find_target(targets, anchor_label)
        if key is None:
            raise ValueError(f"no key labelled {anchor_label!r}")
        calibration = CalibrationController(anchor_for(key), scheduler, dwell_time_ms=dwell_time_ms)

        def _calibrated() -> None:
            pipeline.enabled = True
            report.calibrated_at_ms = scheduler.now_ms()

        calibration.on_succeeded(_calibrated)
        calibration.begin()
    else:
        pipeline.enabled = True

    # Only gaze commits are reported; calibration uses no handler
    commits.subscribe(report.commits.append)

    for t_ms, batch in ticks:
        scheduler.advance_to(t_ms)
        if calibration is not None and report.ticks == 0:
            calibration.trigger()
        pipeline.process(batch, space, space, targets)
        report.ticks += 1

    report.text = buffer.text
    return report


def main(argv: List[str]) -> int:
    parser = argparse.ArgumentParser(description="Replay recorded pupil detections through the dwell keyboard")
    parser.add_argument("path", help="JSON-lines file of {t_ms, detections}")
    parser.add_argument("--dwell-ms", type=int, default=DEFAULT_DWELL_TIME_MS, help="Dwell time before a key commits")
    parser.add_argument("--conf", type=float, default=DEFAULT_CONF_THRESHOLD, help="Detection confidence threshold")
    parser.add_argument("--skip-calibration", action="store_true", help="Enable typing from the first tick")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    with open(args.path, "r", encoding="utf-8") as f:
        ticks = load_ticks(f)
    report = run_replay(
        ticks,
        dwell_time_ms=args.dwell_ms,
        conf_threshold=args.conf,
        calibrate=not args.skip_calibration,
    )
    if report.calibrated_at_ms is not None:
        print(f"Calibrated at {report.calibrated_at_ms:.0f} ms")
    for ev in report.commits:
        print(f"{ev.target_id:>8} -> {ev.text!r}")
    print(f"Ticks: {report.ticks} | Commits: {len(report.commits)}")
    print(f"Text: {report.text!r}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

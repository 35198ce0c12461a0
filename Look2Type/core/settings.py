"""
Settings manager for Look2Type.

Loads/saves JSON settings from Look2Type/settings.json (or the path in
LOOK2TYPE_SETTINGS) and exposes typed accessors. Calibration results are
never stored here.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

from Look2Type.control.dwell import DEFAULT_DWELL_TIME_MS
from Look2Type.tracking.detections import DEFAULT_CONF_THRESHOLD
from Look2Type.tracking.mapping import DEFAULT_MODEL_SIZE

logger = logging.getLogger(__name__)

ENV_SETTINGS_PATH = "LOOK2TYPE_SETTINGS"
GAZE_SOURCES = ("camera", "mouse")


def default_settings() -> Dict[str, Any]:
    return {
        "camera_index": 0,
        "gaze_source": "camera",
        "tick_interval_ms": 33,
        "log_level": "INFO",
        "dwell": {"time_ms": DEFAULT_DWELL_TIME_MS},
        "detection": {
            "conf_threshold": DEFAULT_CONF_THRESHOLD,
            "model_size": DEFAULT_MODEL_SIZE,
            "model_path": "models/best.onnx",
        },
        "calibration": {"anchor": "G"},
    }


class SettingsManager:
    def __init__(self, path: Optional[str] = None) -> None:
        if path is None:
            path = os.environ.get(ENV_SETTINGS_PATH) or None
        if path is None:
            here = os.path.dirname(os.path.abspath(__file__))
            path = os.path.join(os.path.dirname(here), "settings.json")
        self.path = path
        self.data: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.path):
            self.data = default_settings()
            return
        with open(self.path, "r", encoding="utf-8") as f:
            self.data = json.load(f)
        logger.debug("Loaded settings from %s", self.path)

    def save(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2)

    def _section(self, name: str) -> dict:
        sec = self.data.get(name)
        return sec if isinstance(sec, dict) else {}

    # Convenience accessors -------------------------------------------------
    def camera_index(self) -> int:
        return int(self.data.get("camera_index", 0))

    def set_camera_index(self, idx: int) -> None:
        self.data["camera_index"] = int(idx)

    def gaze_source(self) -> str:
        src = str(self.data.get("gaze_source", "camera")).strip().lower()
        return src if src in GAZE_SOURCES else "camera"

    def set_gaze_source(self, src: str) -> None:
        if src not in GAZE_SOURCES:
            raise ValueError(f"gaze source must be one of {GAZE_SOURCES}")
        self.data["gaze_source"] = src

    def tick_interval_ms(self) -> int:
        return max(1, int(self.data.get("tick_interval_ms", 33)))

    def log_level(self) -> str:
        return str(self.data.get("log_level", "INFO")).upper()

    # Dwell / detection ---------------------------------------------------
    def dwell_time_ms(self) -> int:
        return int(self._section("dwell").get("time_ms", DEFAULT_DWELL_TIME_MS))

    def set_dwell_time_ms(self, ms: int) -> None:
        if int(ms) <= 0:
            raise ValueError("dwell time must be positive")
        self.data.setdefault("dwell", {})["time_ms"] = int(ms)

    def conf_threshold(self) -> float:
        return float(self._section("detection").get("conf_threshold", DEFAULT_CONF_THRESHOLD))

    def set_conf_threshold(self, v: float) -> None:
        if not (0.0 <= float(v) <= 1.0):
            raise ValueError("confidence threshold must be in [0, 1]")
        self.data.setdefault("detection", {})["conf_threshold"] = float(v)

    def model_size(self) -> int:
        return int(self._section("detection").get("model_size", DEFAULT_MODEL_SIZE))

    def model_path(self) -> str:
        p = str(self._section("detection").get("model_path", "models/best.onnx"))
        if os.path.isabs(p):
            return p
        return os.path.join(os.path.dirname(os.path.abspath(self.path)), p)

    def calibration_anchor(self) -> str:
        return str(self._section("calibration").get("anchor", "G"))

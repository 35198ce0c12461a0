import json

import pytest

from Look2Type.core.settings import ENV_SETTINGS_PATH, SettingsManager


def test_defaults_when_file_missing(tmp_path):
    s = SettingsManager(str(tmp_path / "settings.json"))
    assert s.dwell_time_ms() == 2000
    assert s.conf_threshold() == pytest.approx(0.4)
    assert s.model_size() == 384
    assert s.gaze_source() == "camera"
    assert s.calibration_anchor() == "G"
    assert s.tick_interval_ms() == 33


def test_save_and_reload(tmp_path):
    path = tmp_path / "settings.json"
    s = SettingsManager(str(path))
    s.set_dwell_time_ms(1500)
    s.set_conf_threshold(0.3)
    s.set_gaze_source("mouse")
    s.save()
    again = SettingsManager(str(path))
    assert again.dwell_time_ms() == 1500
    assert again.conf_threshold() == pytest.approx(0.3)
    assert again.gaze_source() == "mouse"


def test_partial_file_falls_back_per_key(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"dwell": {"time_ms": 1000}, "gaze_source": "bogus"}), encoding="utf-8")
    s = SettingsManager(str(path))
    assert s.dwell_time_ms() == 1000
    assert s.conf_threshold() == pytest.approx(0.4)
    assert s.gaze_source() == "camera"


def test_model_path_relative_to_settings_file(tmp_path):
    s = SettingsManager(str(tmp_path / "settings.json"))
    assert s.model_path() == str(tmp_path / "models" / "best.onnx")


def test_env_var_overrides_path(tmp_path, monkeypatch):
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"dwell": {"time_ms": 750}}), encoding="utf-8")
    monkeypatch.setenv(ENV_SETTINGS_PATH, str(path))
    assert SettingsManager().dwell_time_ms() == 750


@pytest.mark.parametrize(
    "setter,value",
    [("set_dwell_time_ms", 0), ("set_conf_threshold", 1.2), ("set_gaze_source", "eeg")],
)
def test_invalid_values_rejected(tmp_path, setter, value):
    s = SettingsManager(str(tmp_path / "settings.json"))
    with pytest.raises(ValueError):
        getattr(s, setter)(value)

import importlib.util


def test_core_main_callable():
    from Look2Type.core.app import main
    assert callable(main)


def test_import_keyboard_window():
    from Look2Type.ui.keyboard_window import KeyboardWindow  # noqa: F401


def test_run_module_entry():
    spec = importlib.util.find_spec("Look2Type.core.app")
    assert spec is not None, "core.app module should be discoverable"


def test_replay_module_entry():
    spec = importlib.util.find_spec("Look2Type.analysis.replay")
    assert spec is not None

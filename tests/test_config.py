"""Tests for configuration, engine settings and logging setup."""

import json
import logging

import pytest

from slateink.editor.annotations import AnnotationType
from slateink.editor.settings import EngineSettings
from slateink.services.config_service import DEFAULT_CONFIG, ConfigService
from slateink.services.logging_service import get_logger, resolve_level, setup_logging


def test_missing_file_written_with_defaults(tmp_path):
    path = tmp_path / "nested" / "config.json"
    config = ConfigService(path)
    assert config.path == path
    assert json.loads(path.read_text()) == DEFAULT_CONFIG
    assert config.theme == "light"


def test_user_values_merge_over_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"theme": "dark", "toolbar": {"padding": 4}}))
    config = ConfigService(path)
    assert config.dark_theme
    assert config.toolbar["padding"] == 4
    assert config.toolbar["handle_padding"] == 12
    assert json.loads(path.read_text())["nudge_group_ms"] == 350


def test_corrupted_file_falls_back(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with caplog.at_level(logging.WARNING):
        config = ConfigService(path)
    assert config.get("min_annotation_size") == 5
    assert "corrupted" in caplog.text
    assert json.loads(path.read_text()) == DEFAULT_CONFIG


def test_set_and_save(tmp_path):
    path = tmp_path / "config.json"
    config = ConfigService(path)
    config.set("hit_tolerance_px", 9)
    config.save()
    assert ConfigService(path).get("hit_tolerance_px") == 9


def test_engine_settings_from_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "theme": "dark",
        "min_annotation_size": -2,
        "nudge_large_step_px": 20,
        "duplicate_offset_px": "far",
        "toolbar": {"padding": 10},
        "tools": {"rectangle": {"color": "#112233"}},
    }))
    settings = EngineSettings.from_config(ConfigService(path))
    assert settings.dark_theme
    assert settings.min_annotation_size == 5
    assert settings.nudge_large_step_px == 20
    assert settings.duplicate_offset_px == 12
    assert settings.toolbar_padding == 10
    assert settings.toolbar_handle_padding == 12
    assert settings.tool_config(AnnotationType.RECTANGLE).color == "#112233"


def test_default_settings_match_default_config():
    settings = EngineSettings()
    assert settings.nudge_group_ms == DEFAULT_CONFIG["nudge_group_ms"]
    assert settings.toolbar_default_width == DEFAULT_CONFIG["toolbar"]["default_width"]


def test_setup_logging_writes_dated_file(tmp_path):
    root = logging.getLogger()
    saved = (root.level, list(root.handlers))
    try:
        setup_logging(logging.DEBUG, log_dir=tmp_path, force=True)
        get_logger("slateink.test").info("hello")
        files = list(tmp_path.glob("slateink_*.log"))
        assert len(files) == 1
        for handler in root.handlers:
            handler.flush()
        assert "hello" in files[0].read_text()
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(saved[0])
        for handler in saved[1]:
            root.addHandler(handler)


@pytest.mark.parametrize("level, expected", [
    (logging.DEBUG, logging.DEBUG),
    ("debug", logging.DEBUG),
    (" Warning ", logging.WARNING),
    ("chatty", logging.INFO),
])
def test_resolve_level(level, expected):
    assert resolve_level(level) == expected


def test_setup_logging_accepts_level_name():
    root = logging.getLogger()
    saved = (root.level, list(root.handlers))
    try:
        setup_logging("warning", log_to_file=False, force=True)
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(saved[0])
        for handler in saved[1]:
            root.addHandler(handler)

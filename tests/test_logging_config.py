# tests/test_logging_config.py
"""
Tests for genchat.logging_config.
"""

import logging

import pytest

from genchat import logging_config
from genchat.logging_config import (DisplayFilter, configure_logging,
                                    get_log_file_path, log_display,
                                    reset_logging, set_component_level)


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    levels = {name: logging.getLogger(name).level
              for name in logging_config.DEFAULT_LOGGING_CONFIG["components"]}
    root_level = root.level
    yield
    reset_logging()
    root.setLevel(root_level)
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


def _record(level=logging.INFO, display=None) -> logging.LogRecord:
    record = logging.LogRecord("genchat.test", level, __file__, 1, "message", None, None)
    if display is not None:
        record.display = display
    return record


class TestDisplayFilter:
    """Tests for the console gate."""

    def test_globally_enabled_passes_everything(self):
        assert DisplayFilter(console_globally_enabled=True).filter(_record(logging.DEBUG))

    def test_only_display_records_pass_when_disabled(self):
        display_filter = DisplayFilter(console_globally_enabled=False, display_min_level=logging.INFO)
        assert display_filter.filter(_record(logging.WARNING, display=True))
        assert not display_filter.filter(_record(logging.WARNING))
        assert not display_filter.filter(_record(logging.DEBUG, display=True))


class TestConfigureLogging:
    """Tests for configure_logging() and reset_logging()."""

    def test_console_only_by_default(self):
        assert configure_logging("testapp") is None
        assert get_log_file_path() is None
        assert len(logging_config._installed_handlers) == 1

    def test_per_run_file(self, tmp_path):
        path = configure_logging("testapp", {"file_enabled": True, "file_directory": str(tmp_path)})

        assert path is not None
        assert path.parent == tmp_path
        assert path.name.startswith("testapp_")
        assert get_log_file_path() == path

        logging.getLogger("genchat.test").warning("written to file")
        for handler in logging_config._installed_handlers:
            handler.flush()
        assert "written to file" in path.read_text(encoding="utf-8")

    def test_single_rotating_file(self, tmp_path):
        path = configure_logging("testapp", {
            "file_enabled": True,
            "file_directory": str(tmp_path),
            "file_mode": "single",
        })
        assert path == tmp_path / "testapp.log"

    def test_reconfigure_replaces_handlers(self, tmp_path):
        root = logging.getLogger()
        configure_logging("testapp")
        first = list(logging_config._installed_handlers)
        configure_logging("testapp")

        assert all(handler not in root.handlers for handler in first)
        assert len(logging_config._installed_handlers) == 1

    def test_reset(self):
        configure_logging("testapp")
        installed = list(logging_config._installed_handlers)
        reset_logging()

        assert logging_config._installed_handlers == []
        assert all(handler not in logging.getLogger().handlers for handler in installed)

    def test_component_levels(self):
        configure_logging("testapp", {"components": {"genchat.test_component": "ERROR"}})
        assert logging.getLogger("genchat.test_component").level == logging.ERROR


def test_set_component_level_ignores_unknown_levels():
    logger = logging.getLogger("genchat.level_test")
    set_component_level("genchat.level_test", "DEBUG")
    assert logger.level == logging.DEBUG
    set_component_level("genchat.level_test", "LOUD")
    assert logger.level == logging.DEBUG


def test_log_display_merges_extra(caplog):
    caplog.set_level(logging.INFO, logger="genchat.display_test")
    log_display(logging.getLogger("genchat.display_test"), logging.INFO, "shown %s", "now", extra={"turn": 3})

    record = caplog.records[-1]
    assert record.getMessage() == "shown now"
    assert record.display is True
    assert record.turn == 3

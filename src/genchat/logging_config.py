# src/genchat/logging_config.py
"""
Logging setup for applications built on genchat.

The library itself only creates loggers under the ``genchat`` namespace and
never installs handlers on import. Applications that want genchat's output
on the console or in a file call `configure_logging()` once at startup,
typically with the ``[logging]`` section of the loaded configuration::

    from genchat.config import load_config
    from genchat.logging_config import configure_logging

    config = load_config()
    configure_logging(app_name="mychat", config=config.logging)

Console output is gated by a `DisplayFilter`: with ``console_enabled=False``
(the default) only records logged with ``extra={"display": True}`` (see
`log_display`) reach the console, so session warnings can be surfaced to
users without the rest of the debug chatter.
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": False,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/genchat/logs",
    "file_mode": "per_run",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-30s - %(message)s (%(filename)s:%(lineno)d)",
    "rotation_max_bytes": 10 * 1024 * 1024,  # 10 MB
    "rotation_backup_count": 5,
    "display_min_level": "INFO",
    "components": {
        "genchat": "INFO",
        "google_genai": "WARNING",
        "httpx": "WARNING",
        "httpcore": "WARNING",
        "asyncio": "WARNING",
    },
}

# Handlers installed by the last configure_logging() call.
_installed_handlers: list[logging.Handler] = []
_log_file_path: Optional[Path] = None


def _level(value: Any, default: int) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else default


class DisplayFilter(logging.Filter):
    """
    Decides which records reach the console handler.

    When the console is globally enabled every record passes and the
    handler level decides. Otherwise only records carrying
    ``display=True`` at or above `display_min_level` pass.
    """

    def __init__(self, console_globally_enabled: bool = False, display_min_level: int = logging.INFO):
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        return bool(getattr(record, "display", False)) and record.levelno >= self.display_min_level


def _create_console_handler(config: dict[str, Any]) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    console_enabled = bool(config.get("console_enabled", False))
    # When the console is "off" the filter is the only gate.
    handler.setLevel(_level(config.get("console_level"), logging.WARNING) if console_enabled else logging.DEBUG)
    handler.setFormatter(logging.Formatter(config.get("console_format", DEFAULT_LOGGING_CONFIG["console_format"])))
    handler.addFilter(DisplayFilter(
        console_globally_enabled=console_enabled,
        display_min_level=_level(config.get("display_min_level"), logging.INFO),
    ))
    return handler


def _create_file_handler(config: dict[str, Any], app_name: str) -> tuple[Optional[logging.Handler], Optional[Path]]:
    """Creates a per-run file handler, or a rotating one when ``file_mode = "single"``."""
    log_dir = Path(os.path.expanduser(config.get("file_directory", DEFAULT_LOGGING_CONFIG["file_directory"])))
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
        return None, None

    try:
        if config.get("file_mode", "per_run") == "single":
            filename = config.get("file_single_name", "{app}.log").format(app=app_name)
            log_file_path = log_dir / filename
            handler: logging.Handler = RotatingFileHandler(
                log_file_path,
                maxBytes=config.get("rotation_max_bytes", DEFAULT_LOGGING_CONFIG["rotation_max_bytes"]),
                backupCount=config.get("rotation_backup_count", DEFAULT_LOGGING_CONFIG["rotation_backup_count"]),
                encoding="utf-8",
            )
        else:
            pattern = config.get("file_name_pattern", DEFAULT_LOGGING_CONFIG["file_name_pattern"])
            log_file_path = log_dir / pattern.format(app=app_name, timestamp=datetime.now())
            handler = logging.FileHandler(log_file_path, encoding="utf-8")
    except OSError as e:
        sys.stderr.write(f"Warning: Cannot create log file in {log_dir}: {e}\n")
        return None, None

    handler.setLevel(_level(config.get("file_level"), logging.DEBUG))
    handler.setFormatter(logging.Formatter(config.get("file_format", DEFAULT_LOGGING_CONFIG["file_format"])))
    return handler, log_file_path


def reset_logging() -> None:
    """Removes the handlers installed by `configure_logging()`."""
    global _log_file_path
    root_logger = logging.getLogger()
    for handler in _installed_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()
    _log_file_path = None


def configure_logging(app_name: str = "genchat", config: Optional[dict[str, Any]] = None) -> Optional[Path]:
    """
    Installs console and file handlers on the root logger.

    Calling it again replaces the handlers installed by the previous call;
    handlers installed by other code are left alone.

    Args:
        app_name: Used in the log file name.
        config: Logging settings; missing keys fall back to DEFAULT_LOGGING_CONFIG.

    Returns:
        The log file path, or None if file logging is disabled or failed.
    """
    global _log_file_path
    reset_logging()
    log_config = {**DEFAULT_LOGGING_CONFIG, **(config or {})}

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    console_handler = _create_console_handler(log_config)
    root_logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    if log_config.get("file_enabled", False):
        file_handler, _log_file_path = _create_file_handler(log_config, app_name)
        if file_handler is not None:
            root_logger.addHandler(file_handler)
            _installed_handlers.append(file_handler)

    for component, level in log_config.get("components", {}).items():
        set_component_level(component, level)

    logging.getLogger(__name__).debug(f"Logging configured for '{app_name}'. Log file: {_log_file_path}")
    return _log_file_path


def get_log_file_path() -> Optional[Path]:
    """Returns the file configured by the last `configure_logging()` call, if any."""
    return _log_file_path


def set_component_level(component: str, level: str | int) -> None:
    """Changes a component logger's level at runtime; unknown level names are ignored."""
    resolved = _level(level, -1)
    if resolved >= 0:
        logging.getLogger(component).setLevel(resolved)


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
    """
    Logs a message that reaches the console even when console output is off.
    The caller's ``extra`` mapping is merged, not replaced.
    """
    extra = kwargs.pop("extra", None) or {}
    extra["display"] = True
    kwargs["extra"] = extra
    logger.log(level, msg, *args, **kwargs)

"""Logging setup and browser runtime checks."""

import logging
import os
import sys
from collections.abc import Iterable
from importlib import metadata
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import playwright

from verification_portals.core.settings.app_settings import BrowserSettings, LoggingSettings

logger = logging.getLogger(__name__)

# Handler names used to find and replace our own handlers
APP_STREAM_HANDLER_NAME = "vport_app_stream_handler"
APP_FILE_HANDLER_NAME = "vport_app_file_handler"

# Polled endpoints kept out of the access log
QUIET_PATHS = ("/health",)

# Loggers that flood DEBUG output while a browser session runs
NOISY_LOGGERS = {"asyncio": "WARNING", "httpcore": "WARNING"}

# Server loggers that follow the root level
INHERITING_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")


class AccessLogFilter(logging.Filter):
    """Drop access log lines for GET requests to quiet paths."""

    def __init__(self, paths: Iterable[str] = QUIET_PATHS) -> None:
        super().__init__()
        self.markers = tuple(f'"GET {path} ' for path in paths)

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Check an access log record.

        Args:
            record (logging.LogRecord): Log record to check.

        Returns:
            bool: False for a GET of a quiet path, True otherwise.
        """
        message = record.getMessage()
        return not any(marker in message for marker in self.markers)


def get_playwright_version() -> str | None:
    """
    Get the installed Playwright package version.

    Returns:
        str | None: Version string, or None if the package metadata is missing.
    """
    try:
        return metadata.version("playwright")
    except metadata.PackageNotFoundError:
        logger.warning("Playwright package metadata not found")
        return None


def browsers_path() -> Path:
    """Directory Playwright installs its browsers into."""
    configured = os.environ.get("PLAYWRIGHT_BROWSERS_PATH")
    if configured == "0":
        return Path(playwright.__file__).parent / "driver" / "package" / ".local-browsers"
    if configured:
        return Path(configured).expanduser()
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / "ms-playwright"
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
        return Path(local) / "ms-playwright"
    cache = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(cache) / "ms-playwright"


def find_chromium(settings: BrowserSettings) -> str | None:
    """
    Locate the Chromium build sessions will launch.

    Args:
        settings (BrowserSettings): Browser settings.

    Returns:
        str | None: The configured binary, else the newest Chromium build
            Playwright installed. None if there is neither.
    """
    if settings.executable_path:
        return settings.executable_path
    root = browsers_path()
    if not root.is_dir():
        return None
    for pattern in ("chromium-*", "chromium*"):
        builds = sorted(p for p in root.glob(pattern) if p.is_dir())
        if builds:
            return str(builds[-1])
    return None


def _level(name: str) -> int:
    return logging.getLevelName(name.upper())


def _detach_app_handlers(root_logger: logging.Logger) -> None:
    for handler in list(root_logger.handlers):
        if handler.get_name() in (APP_STREAM_HANDLER_NAME, APP_FILE_HANDLER_NAME):
            root_logger.removeHandler(handler)
            handler.close()


def _build_handler(settings: LoggingSettings) -> logging.Handler:
    handler: logging.Handler
    if not settings.log_file:
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(APP_STREAM_HANDLER_NAME)
        return handler

    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    if settings.rotate_logs:
        handler = TimedRotatingFileHandler(filename=log_path, when="midnight", encoding="utf-8")
    else:
        handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.set_name(APP_FILE_HANDLER_NAME)
    return handler


def setup_logging(settings: LoggingSettings) -> None:
    """
    Configure the root logger for the service and the CLI.

    One app handler is attached, replacing any left by an earlier call. It
    passes records at the most verbose of the root level and the per-logger
    overrides. Noisy third-party loggers sit at WARNING unless overridden.

    Args:
        settings (LoggingSettings): Logging settings.

    """
    root_logger = logging.getLogger()
    root_logger.setLevel(_level(settings.log_level))
    _detach_app_handlers(root_logger)

    handler = _build_handler(settings)
    handler.setFormatter(logging.Formatter(fmt=settings.log_format, datefmt=settings.date_format))
    handler.setLevel(min(_level(name) for name in (settings.log_level, *settings.loggers.values())))
    root_logger.addHandler(handler)

    for logger_name in INHERITING_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.NOTSET)
    for logger_name, level in {**NOISY_LOGGERS, **settings.loggers}.items():
        logging.getLogger(logger_name).setLevel(_level(level))

    access_logger = logging.getLogger("uvicorn.access")
    if not any(isinstance(f, AccessLogFilter) for f in access_logger.filters):
        access_logger.addFilter(AccessLogFilter())

"""structlog setup for the herald.

Everything is written below one ``logs/`` directory owned by the
:class:`~outage_herald.config.ConfigLocator`::

    logs/herald.log          every herald event (INFO and up)
    logs/error.log           ERROR and up
    logs/sources/<id>.log    events of one feed watcher

Records are JSON lines produced by ``python-json-logger``.
"""

from __future__ import annotations

import logging
import logging.config
import os
from dataclasses import dataclass
from pathlib import Path

import structlog

ROOT_LOGGER = "outage_herald"
SOURCE_LOGGER_PREFIX = f"{ROOT_LOGGER}.source."
JSON_FORMATTER = "pythonjsonlogger.jsonlogger.JsonFormatter"

_active_dir: Path | None = None
_active_level: str | None = None


@dataclass(frozen=True, slots=True)
class LogPaths:
    root: Path

    @property
    def herald(self) -> Path:
        return self.root / "herald.log"

    @property
    def errors(self) -> Path:
        return self.root / "error.log"

    @property
    def sources(self) -> Path:
        return self.root / "sources"

    def source(self, source_id: str) -> Path:
        return self.sources / f"{source_id}.log"

    def ensure(self) -> None:
        self.sources.mkdir(parents=True, exist_ok=True)
        for path in (self.herald, self.errors):
            path.touch(exist_ok=True)


def _level(verbose: bool) -> str:
    return "DEBUG" if verbose or os.environ.get("DEBUG") else "INFO"


def _file_handler(path: Path, level: str) -> dict:
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "encoding": "utf-8",
        "formatter": "json",
    }


def configure_logging(logs_dir: Path, verbose: bool = False) -> structlog.BoundLogger:
    """Route herald events to the console and the files under ``logs_dir``.

    Calling it again with the same directory and level is a no-op, a new
    directory swaps the file handlers over.
    """

    global _active_dir, _active_level
    paths = LogPaths(Path(logs_dir))
    paths.ensure()
    level = _level(verbose)

    if (paths.root, level) != (_active_dir, _active_level):
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "json": {"()": JSON_FORMATTER, "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s"}
                },
                "handlers": {
                    "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
                    "herald_file": _file_handler(paths.herald, "INFO"),
                    "error_file": _file_handler(paths.errors, "ERROR"),
                },
                "loggers": {
                    ROOT_LOGGER: {
                        "handlers": ["console", "herald_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _active_dir, _active_level = paths.root, level
    return structlog.get_logger(ROOT_LOGGER)


def source_logger(logs_dir: Path, source_id: str) -> structlog.BoundLogger:
    """Logger for one feed watcher, also writing ``sources/<source_id>.log``."""

    paths = LogPaths(Path(logs_dir))
    paths.sources.mkdir(parents=True, exist_ok=True)
    target = str(paths.source(source_id).resolve())

    py_logger = logging.getLogger(SOURCE_LOGGER_PREFIX + source_id)
    stale = [
        handler
        for handler in py_logger.handlers
        if isinstance(handler, logging.FileHandler) and handler.baseFilename != target
    ]
    for handler in stale:
        py_logger.removeHandler(handler)
        handler.close()
    if not any(isinstance(handler, logging.FileHandler) for handler in py_logger.handlers):
        handler = logging.FileHandler(target, encoding="utf-8")
        handler.setLevel(logging.INFO)
        shared = logging.getLogger(ROOT_LOGGER).handlers
        if shared:
            handler.setFormatter(shared[0].formatter)
        py_logger.addHandler(handler)

    return structlog.get_logger(SOURCE_LOGGER_PREFIX + source_id).bind(source=source_id)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def available_source_logs(logs_dir: Path) -> list[Path]:
    sources = LogPaths(Path(logs_dir)).sources
    if not sources.exists():
        return []
    return sorted(sources.glob("*.log"))


__all__ = [
    "LogPaths",
    "available_source_logs",
    "configure_logging",
    "source_logger",
    "tail_log",
]

"""Root logger setup shared by the CLI and library callers.

Records go to a stream handler and to ``<logs_dir>/conic_portfolio.log``,
either as plain text or as one JSON object per line. Solver adapters attach
``backend``, ``status``, ``iterations`` and ``runtime`` through ``extra``; the
JSON formatter keeps them as top-level keys.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Mapping

import numpy as np

from .constants import LOG_FILE_NAME
from .settings import Settings, get_settings

__all__ = ["JSONFormatter", "configure_logging"]

PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers kept at WARNING unless the solver trace is requested.
SOLVER_LIBRARY_LOGGERS = ("__cvxpy__",)

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    return str(value)


class JSONFormatter(logging.Formatter):
    """Render a record and its ``extra`` fields as a single JSON line."""

    def __init__(self, *, default_context: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._default_context = dict(default_context or {})

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self._default_context,
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _STANDARD_ATTRS
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=False, default=_json_default)


def _file_handler(target: Path) -> logging.Handler | None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(target, encoding="utf-8")
    except OSError:  # pragma: no cover - read-only filesystems
        logging.getLogger(__name__).warning("Cannot write log file %s", target)
        return None


def configure_logging(
    *,
    settings: Settings | None = None,
    level: int | str = logging.INFO,
    structured: bool | None = None,
    module_levels: Mapping[str, int | str] | None = None,
    stream: IO[str] | None = None,
    context: Mapping[str, Any] | None = None,
    log_file: Path | None = None,
    solver_trace: bool = False,
) -> None:
    """Replace the root handlers with a stream handler and a file handler.

    ``structured=None`` follows ``settings.structured_logging``. ``context``
    is merged into every JSON record (the CLI passes the command name).
    ``solver_trace`` lets the logs of the solver libraries through at
    ``level``; otherwise they are held at WARNING.
    """

    settings = settings or get_settings()
    structured = settings.structured_logging if structured is None else structured

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    formatter: logging.Formatter
    if structured:
        formatter = JSONFormatter(default_context=context)
    else:
        formatter = logging.Formatter(fmt=PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: list[logging.Handler] = [logging.StreamHandler(stream)]
    file_handler = _file_handler(log_file or settings.logs_dir / LOG_FILE_NAME)
    if file_handler is not None:
        handlers.append(file_handler)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in SOLVER_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if solver_trace else logging.WARNING)
    for logger_name, logger_level in (module_levels or {}).items():
        logging.getLogger(logger_name).setLevel(logger_level)

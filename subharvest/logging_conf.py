"""Process-wide logging for subharvest.

Every record goes to the console and to ``subharvest.log`` as one JSON object
per line. Errors are copied to ``error.log``. Both files live under
``$SUBHARVEST_HOME/logs`` when the variable is set.
"""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path

import structlog

APP_LOGGER = "subharvest"
_configured = False


def _default_log_dir() -> Path:
    env_root = os.environ.get("SUBHARVEST_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def default_log_path() -> Path:
    return _default_log_dir() / "subharvest.log"


def _error_log_path() -> Path:
    return _default_log_dir() / "error.log"


def _json_handler(level: str, filename: Path | None = None) -> dict:
    if filename is None:
        return {"class": "logging.StreamHandler", "level": level, "formatter": "json"}
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(filename),
        "formatter": "json",
        "encoding": "utf-8",
    }


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": {
            "console": _json_handler(level),
            "runs": _json_handler("INFO", default_log_path()),
            "errors": _json_handler("ERROR", _error_log_path()),
        },
        "loggers": {
            APP_LOGGER: {
                "handlers": ["console", "runs", "errors"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Set up logging once per process and return the ``subharvest`` logger.

    Later calls only make sure the log files exist; the level chosen by the
    first call stays in force.
    """

    global _configured
    _default_log_dir().mkdir(parents=True, exist_ok=True)
    for path in (default_log_path(), _error_log_path()):
        path.touch(exist_ok=True)

    if _configured:
        return structlog.get_logger(APP_LOGGER)

    logging.config.dictConfig(_dict_config("DEBUG" if verbose else "INFO"))
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            # bound fields become JSON keys via ``extra``
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True
    return structlog.get_logger(APP_LOGGER)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Last ``line_count`` lines of ``path``, or nothing when it does not exist."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = ["APP_LOGGER", "configure_logging", "default_log_path", "tail_log"]

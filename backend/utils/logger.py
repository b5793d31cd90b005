import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from utils.utcnow import utcnow

# Libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return getattr(record, "extra_data", None) or {}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log files and log shippers"""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        context = _context(record)
        if context:
            log_data["data"] = context
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Decimals and datetimes fall back to str()
        return json.dumps(log_data, default=str)


class KeyValueFormatter(logging.Formatter):
    """Human-readable lines with structured context as key=value pairs"""

    def __init__(self):
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        context = _context(record)
        if context:
            text += " | " + " ".join(f"{key}={value}" for key, value in context.items())
        return text


class ContextLogger:
    """Thin wrapper over ``logging.Logger`` that takes context as keyword args.

        logger.info("Wallet analyzed", wallet=address, resolved=12)

    Keyword arguments end up in ``record.extra_data`` and are rendered by
    the formatters above. ``exc_info`` is passed through to the stdlib.
    """

    def __init__(self, name: str, context: Optional[dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self._context: dict[str, Any] = dict(context or {})

    def with_context(self, **kwargs: Any) -> "ContextLogger":
        """Return a logger that adds ``kwargs`` to every message"""
        return ContextLogger(self.logger.name, {**self._context, **kwargs})

    def _log(self, level: int, msg: str, *args: Any, exc_info: Any = None, **kwargs: Any):
        if not self.logger.isEnabledFor(level):
            return
        extra_data = {**self._context, **kwargs}
        self.logger.log(
            level,
            msg,
            *args,
            exc_info=exc_info,
            stacklevel=3,  # report the caller, not this wrapper
            extra={"extra_data": extra_data or None},
        )

    def debug(self, msg: str, *args: Any, **kwargs: Any):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, *args, **kwargs)


def setup_logging(level: str = "INFO", json_format: bool = False, log_file: Optional[str] = None):
    """Configure the root logger for a CLI run.

    Console logs go to stderr so rendered reports on stdout stay clean.
    The optional log file always gets JSON lines.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(JSONFormatter() if json_format else KeyValueFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger"""
    return ContextLogger(name)

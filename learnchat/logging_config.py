"""
LearnChat Logging
=================
Structured logs: one JSON object per record (or a coloured console line
when LOG_FORMAT=text) holding the message plus keyword context:

    training_logger.info("Epoch finished", job_id=7, epoch=3)

Loggers can carry fixed context with ``bind``:

    log = training_logger.bind(job_id=7)
    log.info("Training started")   # job_id=7 on every record
"""
import json
import logging
import sys
import time
import traceback
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional

from .config import get_settings

settings = get_settings()


# ============================================================
# FORMATTERS
# ============================================================

class JsonFormatter(logging.Formatter):
    """One JSON document per line"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "context", {}))
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Short coloured lines for local development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
    }
    DIM = "\033[90m"
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        line = (
            f"{color}{datetime.now().strftime('%H:%M:%S')} {record.levelname:<7}{self.RESET} "
            f"{record.name}: {record.getMessage()}"
        )

        context = {k: v for k, v in getattr(record, "context", {}).items() if k != "traceback"}
        if context:
            line += f" {self.DIM}" + " ".join(f"{k}={v}" for k, v in context.items()) + self.RESET

        trace = getattr(record, "context", {}).get("traceback")
        if trace:
            line += "\n" + trace.rstrip()
        return line


def _make_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ConsoleFormatter() if settings.log_format == "text" else JsonFormatter())
    return handler


# ============================================================
# STRUCTURED LOGGER
# ============================================================

class StructuredLogger:
    """Wraps a stdlib logger; accepts keyword context and bound fields"""

    def __init__(self, name: str, bound: Optional[Dict[str, Any]] = None):
        self.name = name
        self.bound = dict(bound or {})
        self.logger = logging.getLogger(name)

        # Loggers sharing a name share one handler
        if not self.logger.handlers:
            self.logger.addHandler(_make_handler())
            self.logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
            self.logger.propagate = False

    def bind(self, **context) -> "StructuredLogger":
        """Child logger that adds ``context`` to every record"""
        return StructuredLogger(self.name, {**self.bound, **context})

    def _log(self, level: int, message: str, context: Dict[str, Any]):
        if self.logger.isEnabledFor(level):
            self.logger.log(level, message, extra={"context": {**self.bound, **context}})

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, error: Optional[BaseException] = None, **context):
        if error is not None:
            context["error_type"] = type(error).__name__
            context["error_message"] = str(error)
            context["traceback"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        self._log(logging.ERROR, message, context)


# ============================================================
# TIMING
# ============================================================

def timed(logger: StructuredLogger):
    """Log how long the wrapped call took, and its exception if it raised"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{func.__qualname__} failed", error=e, duration_ms=_elapsed_ms(start))
                raise
            finally:
                logger.debug(f"{func.__qualname__} finished", duration_ms=_elapsed_ms(start))

        return wrapper

    return decorator


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


# ============================================================
# LOGGERS
# ============================================================

api_logger = StructuredLogger("learnchat.api")
chat_logger = StructuredLogger("learnchat.chat")
training_logger = StructuredLogger("learnchat.training")
db_logger = StructuredLogger("learnchat.db")


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(f"learnchat.{name}")

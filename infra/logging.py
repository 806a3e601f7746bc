"""
Centralized Logging
-------------------
Structured logging with turn_id propagation for request traceability.

Design:
- Every chat turn gets a unique turn_id
- turn_id propagates through: Service -> Client -> Cache
- Console output via Rich, file output as JSON lines
- Severity discipline: DEBUG=cache traffic, INFO=state,
  WARNING=recoverable, ERROR=failed turn

Usage:
    from infra.logging import get_logger, TurnContext, log_turn_end

    logger = get_logger("core.service")

    with TurnContext() as turn_id:
        logger.info("Sending message")
        log_turn_end(turn_id, success=True, provider="claude")
"""

from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union
import contextvars
import json
import logging
import uuid

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "freewrite"

# Context variable for turn_id - thread-safe and async-safe
_turn_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "turn_id", default=None
)


def generate_turn_id() -> str:
    """Generate a unique turn ID."""
    return f"turn_{uuid.uuid4().hex[:12]}"


def get_turn_id() -> Optional[str]:
    """Get the current turn ID from context."""
    return _turn_id_var.get()


class TurnContext:
    """
    Context manager for turn scoping.

    Usage:
        with TurnContext() as turn_id:
            # All logs within this block will have turn_id
            logger.info("Processing...")
    """

    def __init__(self, turn_id: Optional[str] = None):
        self._turn_id = turn_id or generate_turn_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _turn_id_var.set(self._turn_id)
        return self._turn_id

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _turn_id_var.reset(self._token)
            self._token = None


class TurnIdFilter(logging.Filter):
    """Logging filter that adds turn_id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "turn_id", None) is None:
            record.turn_id = get_turn_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured file logging."""

    EXTRA_FIELDS = ("provider", "success", "error")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "turn_id": getattr(record, "turn_id", "-"),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry, default=str)


class TurnRichHandler(RichHandler):
    """RichHandler that prefixes messages with the active turn_id."""

    def render_message(self, record: logging.LogRecord, message: str):
        turn_id = getattr(record, "turn_id", "-")
        if turn_id and turn_id != "-":
            message = f"[{turn_id}] {message}"
        return super().render_message(record, message)


_logging_initialized = False


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[str] = None,
    console: bool = True,
    file: bool = False,
    force: bool = False,
) -> None:
    """
    Configure the logging system.

    Args:
        level: Logging level (default INFO)
        log_dir: Directory for log files (default: ./logs)
        console: Enable Rich console output
        file: Enable JSON file output
        force: Reconfigure even if already configured
    """
    global _logging_initialized

    if _logging_initialized and not force:
        return

    if isinstance(level, str):
        level = getattr(logging, level.upper())

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG if file else level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    turn_filter = TurnIdFilter()

    if console:
        console_handler = TurnRichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
        )
        console_handler.setLevel(level)
        console_handler.addFilter(turn_filter)
        root_logger.addHandler(console_handler)

    if file:
        log_path = Path(log_dir) if log_dir else Path("logs")
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            str(log_path / "freewrite.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)  # File gets everything
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(turn_filter)
        root_logger.addHandler(file_handler)

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger in the application namespace.

    Args:
        name: Logger name (prefixed with 'freewrite.' if not already)
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)


def log_turn_end(
    turn_id: str,
    success: bool,
    provider: str = "",
    error: Optional[str] = None,
) -> None:
    """
    Log the end of a chat turn with summary information.

    This is the TURN_END boundary event for post-mortems.
    """
    logger = get_logger("core.turn")

    extra = {
        "turn_id": turn_id,
        "success": success,
        "provider": provider,
    }

    if success:
        logger.info(f"TURN_END: success=True, provider={provider}", extra=extra)
    else:
        extra["error"] = error or "Unknown error"
        logger.error(f"TURN_END: success=False, provider={provider}, error={error or 'Unknown'}", extra=extra)

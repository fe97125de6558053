"""
Structured logging for the side-game server.

Two output modes share one notion of "context": the request id and game
id held in context variables, plus any side-game fields a ContextLogger
attached to the record (game type, hole, revision, event type).

- production: one JSON object per line
- anything else: coloured single-line output for a terminal
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
game_id_var: ContextVar[Optional[str]] = ContextVar("game_id", default=None)

# Record attributes a ContextLogger may attach, in display order
SIDE_GAME_FIELDS = ("game_type", "hole_number", "revision", "event_type")

# Short labels for the terminal formatter
_SHORT_LABELS = {
    "game_type": "type",
    "hole_number": "hole",
    "revision": "rev",
    "event_type": "event",
}


def record_context(record: logging.LogRecord) -> dict:
    """
    Collect the correlation fields for a record.

    Context variables win over record attributes for request_id and
    game_id, since the middleware sets them for the whole request.
    """
    context = {}

    request_id = request_id_var.get() or getattr(record, "request_id", None)
    if request_id:
        context["request_id"] = request_id

    game_id = game_id_var.get() or getattr(record, "game_id", None)
    if game_id:
        context["game_id"] = game_id

    for name in SIDE_GAME_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            context[name] = value

    return context


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log shipping in production."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }

        if record.levelno >= logging.ERROR:
            entry["source"] = f"{record.pathname}:{record.lineno} in {record.funcName}"

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Coloured terminal output.

    Ids are shortened to 8 characters; a hole entry logs as e.g.
    ``INFO  services.side_game_service [req=1a2b3c4d, game=9f8e7d6c, rev=4] - ...``
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        level = f"{color}{record.levelname:8}{self.RESET if color else ''}"

        parts = []
        for key, value in record_context(record).items():
            if key == "request_id":
                parts.append(f"req={value[:8]}")
            elif key == "game_id":
                parts.append(f"game={value[:8]}")
            else:
                parts.append(f"{_SHORT_LABELS[key]}={value}")
        context = f" [{', '.join(parts)}]" if parts else ""

        clock = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        line = f"{clock} {level} {record.name}{context} - {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name; unknown names fall back to INFO.
        environment: "production" selects JSON output.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if environment == "production" else DevelopmentFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # uvicorn logs every request; hole entries are logged by the service
    for noisy in ("uvicorn.access", "uvicorn.error", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level}, environment={environment}")


class ContextLogger(logging.LoggerAdapter):
    """
    LoggerAdapter carrying side-game fields onto every record.

    Usage:
        log = get_logger(__name__).with_context(game_type="skins", revision=3)
        log.with_context(hole_number=7).info("Skin won")
    """

    def __init__(self, logger: logging.Logger, extra: Optional[dict] = None):
        super().__init__(logger, extra or {})

    def with_context(self, **fields) -> "ContextLogger":
        return ContextLogger(self.logger, {**self.extra, **fields})

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """Get a ContextLogger for a module."""
    return ContextLogger(logging.getLogger(name))

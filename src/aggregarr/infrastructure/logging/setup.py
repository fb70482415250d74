from __future__ import annotations

import atexit
import copy
import logging
import logging.config
import queue
import re
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Optional

import structlog
from uvicorn.config import LOGGING_CONFIG

from aggregarr.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)

# httpx logs every request URL at INFO; Newznab URLs carry the API key.
_QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")

_API_KEY_RE = re.compile(r"(?i)(apikey=)[^&\s\"']+")

_QUEUE_LISTENER: Optional[QueueListener] = None


class _LevelRangeFilter(logging.Filter):
    """Pass records with ``min_level <= levelno <= max_level``."""

    def __init__(self, *, min_level: int = 0, max_level: int = logging.CRITICAL):
        super().__init__()
        self._min = min_level
        self._max = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return self._min <= record.levelno <= self._max


class _StructlogQueueHandler(QueueHandler):
    """QueueHandler that keeps structlog event dicts (record.msg) intact."""

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # The default prepare() stringifies record.msg, which breaks
        # ProcessorFormatter for structlog-originated records.
        return copy.copy(record)


def _drop_color_message(_: Any, __: Any, event_dict: dict[str, Any]) -> dict[str, Any]:
    # Uvicorn attaches "color_message", which duplicates "event".
    event_dict.pop("color_message", None)
    return event_dict


def _redact_api_keys(_: Any, __: Any, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask ``apikey=...`` in any string value (URLs in errors, access lines)."""
    for key, value in event_dict.items():
        if isinstance(value, str) and "apikey=" in value.lower():
            event_dict[key] = _API_KEY_RE.sub(r"\1***", value)
    return event_dict


def _add_record_created_timestamp_utc(
    _: Any, __: Any, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Stamp foreign (stdlib) records with LogRecord.created.

    The queue listener formats records later, on its own thread; using
    ``created`` keeps the timestamp of the actual log call.
    """
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        event_dict["timestamp"] = dt.isoformat().replace("+00:00", "Z")
    return event_dict


def _renderer(config: AppConfig) -> structlog.typing.Processor:
    if config.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def _foreign_pre_chain() -> list[structlog.typing.Processor]:
    return [
        _drop_color_message,
        structlog.contextvars.merge_contextvars,
        _add_record_created_timestamp_utc,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]


def _formatter_processors(config: AppConfig) -> list[structlog.typing.Processor]:
    return [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        _redact_api_keys,
        _renderer(config),
    ]


def _quiet_level(level: str) -> str:
    return "WARNING" if logging.getLevelName(level) < logging.WARNING else level


def build_logging_config(config: AppConfig) -> dict[str, Any]:
    """Uvicorn's LOGGING_CONFIG, rendered through structlog at config.log_level.

    Handed to ``uvicorn.run(log_config=...)`` so uvicorn does not reinstall
    its own formatters over ours.
    """
    cfg = copy.deepcopy(LOGGING_CONFIG)
    level = config.log_level

    cfg["formatters"]["structlog"] = {
        "()": structlog.stdlib.ProcessorFormatter,
        "foreign_pre_chain": _foreign_pre_chain(),
        "processors": _formatter_processors(config),
    }
    for handler in cfg["handlers"].values():
        handler["formatter"] = "structlog"

    for logger_cfg in cfg["loggers"].values():
        logger_cfg["level"] = level
    for name in _QUIET_LOGGERS:
        cfg["loggers"][name] = {"level": _quiet_level(level)}

    cfg["root"] = {"handlers": ["default"], "level": level}
    return cfg


def _stop_async_listener() -> None:
    global _QUEUE_LISTENER
    if _QUEUE_LISTENER is not None:
        try:
            _QUEUE_LISTENER.stop()
        finally:
            _QUEUE_LISTENER = None


def _enable_async_logging(config: AppConfig) -> None:
    """Route all stdlib logging through a queue drained by a background thread.

    Handlers never write on the event loop thread. DEBUG to WARNING go to
    stdout, ERROR and above to stderr.
    """
    global _QUEUE_LISTENER

    _stop_async_listener()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_foreign_pre_chain(),
        processors=_formatter_processors(config),
    )

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setFormatter(formatter)
    stdout_handler.addFilter(_LevelRangeFilter(max_level=logging.WARNING))

    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.addFilter(_LevelRangeFilter(min_level=logging.ERROR))

    q: queue.Queue[logging.LogRecord] = queue.Queue()

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_StructlogQueueHandler(q))
    root.setLevel(config.log_level)

    # Everything funnels into root, and from there into the queue.
    for name in list(logging.root.manager.loggerDict.keys()):
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True
        lg.setLevel(config.log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(_quiet_level(config.log_level))

    _QUEUE_LISTENER = QueueListener(
        q, stdout_handler, stderr_handler, respect_handler_level=True
    )
    _QUEUE_LISTENER.start()
    atexit.register(_stop_async_listener)


def configure_logging(config: AppConfig) -> dict[str, Any]:
    """Configure structlog and stdlib logging; return the uvicorn log config."""
    structlog.configure(
        processors=[
            _drop_color_message,
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    cfg = build_logging_config(config)
    logging.config.dictConfig(cfg)
    _enable_async_logging(config)

    log.info(
        "logging_configured", log_format=config.log_format, log_level=config.log_level
    )
    return cfg

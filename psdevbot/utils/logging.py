"""structlog setup for the relay.

Everything goes through the stdlib ``logging`` root handler so aiohttp and
httpx records are rendered the same way as our own events. Credentials and
login material never reach the output: known keys are blanked, and string or
message values are scrubbed of ``key=value`` secrets and ``/trn`` assertions.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

REDACTED = "***REDACTED***"

_SENSITIVE_KEYS = frozenset({"password", "secret", "assertion", "challstr"})
_KEY_VALUE_RE = re.compile(
    r"(secret|password|pass|assertion|challstr)[\"']?\s*[:=]\s*[\"']?[^\s,&\"']+",
    re.IGNORECASE,
)
# /trn <name>,0,<assertion>
_RENAME_RE = re.compile(r"(/trn [^,\s]*,\d+,)\S+")

# Libraries that log every request at INFO
_QUIET_LOGGERS = ("aiohttp.access", "httpx", "httpcore")


def _scrub(text: str) -> str:
    text = _KEY_VALUE_RE.sub(rf"\1={REDACTED}", text)
    return _RENAME_RE.sub(rf"\1{REDACTED}", text)


def _redact(value: Any) -> Any:
    if isinstance(value, str):
        return _scrub(value)
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    # Protocol messages are dataclasses whose repr may carry a challstr
    text = repr(value)
    scrubbed = _scrub(text)
    return value if scrubbed == text else scrubbed


def _filter_sensitive(
    _logger: structlog.types.WrappedLogger,
    _method: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    for key, value in list(event_dict.items()):
        if key in _SENSITIVE_KEYS:
            event_dict[key] = REDACTED
        elif not key.startswith("_"):
            event_dict[key] = _redact(value)
    return event_dict


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog and stdlib logging through one stderr handler."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _filter_sensitive,
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

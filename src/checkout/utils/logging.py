"""Logging for the checkout service.

Records flow through the standard library (stdout plus rotating files under
``logs/``) and structlog shapes them into key-value events. Shopper
identities are emails for signed-in customers, so outside development they
are masked before rendering.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

_LEVELS_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Event keys that may carry a shopper's email
_IDENTITY_KEYS = ("identity", "customer_email")

_MAX_BYTES = 10 * 1024 * 1024


def current_env() -> str:
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    """Level for the active environment; ``LOG_LEVEL`` wins when set."""
    return os.getenv("LOG_LEVEL", _LEVELS_BY_ENV.get(current_env(), "INFO"))


def mask_email(value: str) -> str:
    """``shopper@example.com`` -> ``s***@example.com``. Session ids pass through."""
    local, sep, host = value.partition("@")
    if not sep or not local:
        return value
    return f"{local[0]}***@{host}"


def mask_identities(_logger, _method_name, event_dict):
    for key in _IDENTITY_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = mask_email(value)
    return event_dict


def _rotating_file(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=_MAX_BYTES,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(log_dir: str | Path = "logs") -> None:
    level = get_log_level()
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [
        console,
        _rotating_file(log_path / "checkout.log", level),
        _rotating_file(log_path / "checkout_error.log", logging.ERROR),
    ]

    for noisy in ("protean", "asyncio", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def checkout_processors(env: str | None = None) -> list:
    """Processor chain; the renderer and identity masking depend on ``env``."""
    env = env or current_env()
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if env != "development":
        processors.append(mask_identities)

    if env in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def configure_logging(log_dir: str | Path = "logs") -> None:
    setup_stdlib_logging(log_dir)
    structlog.configure(
        processors=checkout_processors(),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_checkout_context(**kwargs: Any) -> None:
    """Attach key-values (cart id, identity) to every log line of the current request."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_checkout_context() -> None:
    structlog.contextvars.clear_contextvars()

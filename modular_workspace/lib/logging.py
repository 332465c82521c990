"""
Log output for the workspace process.

Every module logs through the stdlib ``logging.getLogger(__name__)``;
``setup_logging`` routes those records through structlog so one handler
renders them, with the active module id attached from the context.

Environment:
    LOG_LEVEL            root level name, INFO when unset
    WORKSPACE_DEV_MODE   "1" selects the console renderer over JSON lines
"""

import logging
import os
import sys

import structlog

_QUIET_LOGGERS = ("httpx", "httpcore", "redis", "asyncio")


def setup_logging(level: str | None = None, console: bool | None = None) -> None:
    """Install the single root handler; safe to call more than once.

    Args:
        level: Level name overriding LOG_LEVEL
        console: Force the console (True) or JSON (False) renderer
    """
    if console is None:
        console = os.environ.get("WORKSPACE_DEV_MODE") == "1"
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.dev.ConsoleRenderer() if console else structlog.processors.JSONRenderer()
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
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_module(module_id: str) -> None:
    """Attach the active module identifier to every subsequent log record."""
    structlog.contextvars.bind_contextvars(module_id=module_id)


def unbind_module() -> None:
    structlog.contextvars.unbind_contextvars("module_id")

"""subagent logging configuration.

Logging goes through `structlog` on top of the standard `logging` module.
Diagnostics are written to stderr so stdout stays reserved for command
results (JSON lines, listings, agent responses). An optional rotating log
file lives under `~/.subagent/logs/`.

Modules obtain loggers with::

    from subagent.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Acquiring subagent: %s", name)
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

import structlog

from subagent.constants import LOG_BACKUP_COUNT, LOG_MAX_BYTES

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]


def configure_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """Configure subagent logging.

    Args:
        level: Optional override for `SUBAGENT_LOG_LEVEL`.
        log_file: When given, also write plain-text logs to this rotating file.
    """
    if level:
        os.environ["SUBAGENT_LOG_LEVEL"] = level
    level_name = os.getenv("SUBAGENT_LOG_LEVEL", "INFO").upper()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
            ],
            foreign_pre_chain=_SHARED_PROCESSORS,
        )
    )

    root = logging.getLogger("subagent")
    root.handlers.clear()
    root.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.JSONRenderer(),
                ],
                foreign_pre_chain=_SHARED_PROCESSORS,
            )
        )
        root.addHandler(file_handler)

    root.setLevel(level_name)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the stdlib logger `name`."""
    return structlog.stdlib.get_logger(name)

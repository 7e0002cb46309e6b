"""structlog configuration for restdriver.

stdlib ``logging`` calls (codec, services) and structlog calls (driver,
transport) share one stderr handler and one renderer:
- Human (default): key=value console lines, colored on a TTY
- JSON (--log-json): one JSON object per line
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable

import structlog

# HTTP stack loggers that would otherwise echo every connection at DEBUG.
NOISY_LOGGERS: tuple[str, ...] = ("urllib3", "charset_normalizer")


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Route structlog and stdlib records through a single stderr handler.

    Args:
        verbose: DEBUG for ``restdriver.*`` loggers; WARNING otherwise.
        log_json: Render JSON lines instead of console lines.
        quiet_loggers: Third-party loggers pinned to WARNING.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if log_json:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger("restdriver").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

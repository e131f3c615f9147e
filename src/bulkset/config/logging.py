"""structlog configuration for bulkset.

Two output modes:
- Human (default): colored console output when the stream is a TTY
- JSON (``log_json=True``): one structured JSON object per line

Library modules log through stdlib ``logging.getLogger(__name__)`` or
``structlog.get_logger(__name__)``; both end up in the same handler.
An embedding application calls :func:`configure_from_settings` once at
startup; bulkset itself never installs handlers on import.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, TextIO

import structlog

from bulkset.services.telemetry import disable_telemetry, enable_telemetry

if TYPE_CHECKING:
    from bulkset.config.settings import BulkSetSettings

LIBRARY_LOGGER = "bulkset"


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _final_processors(log_json: bool, stream: TextIO) -> list[structlog.types.Processor]:
    remove_meta = structlog.stdlib.ProcessorFormatter.remove_processors_meta
    if log_json:
        return [
            remove_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [remove_meta, structlog.dev.ConsoleRenderer(colors=stream.isatty())]


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Route stdlib and structlog records for ``bulkset`` through one handler.

    Args:
        verbose: DEBUG for the ``bulkset`` logger tree; WARNING otherwise.
        log_json: JSON renderer instead of the console renderer.
        stream: Output stream; defaults to ``sys.stderr``.
    """
    out = stream if stream is not None else sys.stderr
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=_final_processors(log_json, out),
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger(LIBRARY_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)


def configure_from_settings(settings: BulkSetSettings) -> None:
    """Apply the logging and telemetry switches of *settings*.

    ``verbose`` also turns on span telemetry, so service results carry
    timing trees in ``meta``.
    """
    configure_logging(verbose=settings.verbose, log_json=settings.log_json)
    if settings.verbose:
        enable_telemetry()
    else:
        disable_telemetry()

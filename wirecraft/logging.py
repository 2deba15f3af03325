"""Central logging helpers"""

import logging
import sys

import structlog
import structlog.stdlib

_DEFAULT_FORMAT = "%(message)s"


def setup_logging(level: int | str = logging.WARNING) -> None:
    """Configure structlog + stdlib logging for the CLI.

    Log lines go to stderr so generated output on stdout stays clean.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logging.basicConfig(level=level, stream=sys.stderr, format=_DEFAULT_FORMAT, force=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    logging.getLogger(__name__).debug("logging_initialized")

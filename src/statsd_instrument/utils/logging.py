import logging
import sys

import structlog

RENDERERS = ("json", "console")


def _resolve_level(level) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level: {level!r}")
    return resolved


def configure_logging(level=logging.INFO, renderer: str = "json"):
    """Route structlog (and stdlib logging) to stdout.

    ``renderer`` is ``json`` for machine-readable lines or ``console`` for the
    CLI's human-readable output. ``level`` accepts an int or a name.
    """
    if renderer not in RENDERERS:
        raise ValueError(f"unknown log renderer: {renderer!r}")
    level = _resolve_level(level)
    final = structlog.processors.JSONRenderer() if renderer == "json" else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            final,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    return level

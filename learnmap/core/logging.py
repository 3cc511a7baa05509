"""Structured logging configuration."""

import logging
import sys

import structlog

# Third-party loggers that are too chatty at INFO
_NOISY_LOGGERS = ("aiosqlite", "uvicorn.access")


def configure_logging(
    debug: bool = False,
    level: str | None = None,
    json_logs: bool | None = None,
    sql_echo: bool = False,
) -> None:
    """Route stdlib and structlog output through one processor chain.

    ``level`` overrides the DEBUG/INFO default picked from ``debug``.
    Console rendering is used in debug mode unless ``json_logs`` says otherwise.
    """
    log_level = logging.getLevelName(level.upper()) if level else None
    if not isinstance(log_level, int):
        log_level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if sql_echo else logging.WARNING
    )

    use_json = (not debug) if json_logs is None else json_logs
    renderer = (
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)  # type: ignore[no-any-return]

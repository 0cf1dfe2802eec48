"""structlog configuration.

Every event carries the app environment and version. Request-scoped keys
(request_id, method, path) are merged from contextvars by RequestIdMiddleware.
"""

import logging

import structlog

from stayx.config import Settings

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("httpx", "google_genai", "sqlalchemy.engine")


def _app_context(settings: Settings) -> structlog.types.Processor:
    def processor(_logger, _method, event_dict):  # noqa: ANN001, ANN202
        event_dict.setdefault("environment", settings.environment)
        event_dict.setdefault("version", settings.app_version)
        return event_dict

    return processor


def setup_logging(settings: Settings) -> None:
    """Configure structlog for JSON (production) or console (development) output."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _app_context(settings),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
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

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")
    for name in _QUIET_LOGGERS:
        if not (settings.database_echo and name.startswith("sqlalchemy")):
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

"""
Structured logging for the trade room service.

Every event carries the service name. The request middleware starts a fresh
context with the HTTP method and path, and the room lookup adds the trade id
and slug, so events such as ``trade_transitioned`` or ``trade_conflict`` can
be traced back to the request and room that produced them.
"""
import logging
import sys

import structlog

from traderoom.core.config import settings

SERVICE_NAME = "trade_room"


def add_service_name(logger, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def bind_request_context(method: str, path: str) -> None:
    """Drop whatever the previous request bound and start a new context."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(method=method, path=path)


def bind_trade_context(trade_id: int, room_slug: str) -> None:
    """Tag the rest of the request's events with the resolved trade."""
    structlog.contextvars.bind_contextvars(trade_id=trade_id, room_slug=room_slug)


def setup_logging():
    """
    Configure structured logging for the application.
    """
    log_level = logging.DEBUG if settings.api_debug else logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_service_name,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
            if settings.api_debug
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # Statement echo only in debug
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.api_debug else logging.WARNING
    )
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

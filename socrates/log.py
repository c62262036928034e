"""Structured logging setup for processes embedding the sandbox."""

import logging

import structlog

from socrates.config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Install the structlog processor chain.

    Production gets one JSON object per line; every other environment gets the
    human-readable console renderer.
    """
    settings = settings or get_settings()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if settings.environment == "production"
            else structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if settings.debug else logging.INFO
        ),
    )

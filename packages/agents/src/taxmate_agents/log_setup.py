"""structlog setup driven by TaxmateConfig."""

import logging

import structlog

from taxmate_agents.config import TaxmateConfig


def configure_logging(config: TaxmateConfig) -> None:
    """Configure structlog to filter below the configured level.

    Debug mode lowers the level to DEBUG, which surfaces every
    ``calculation_step`` event from the optimizer.
    """
    level_name = "DEBUG" if config.is_debug else config.log_level
    level = logging.getLevelName(level_name)

    renderer = (
        structlog.processors.JSONRenderer()
        if config.is_production
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )

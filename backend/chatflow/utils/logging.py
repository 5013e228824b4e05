# /chatflow/utils/logging.py

import logging
import sys
from typing import Optional
import structlog
from chatflow.config.settings import settings

# This utility sets up structured logging (JSON format in production)
# for consistent and machine-readable logs across the flow engine and its callers.
# chatflow is a library and never calls it itself: the embedding application
# (chat endpoint, worker, CLI) calls setup_logging() once at startup. Until
# then the engine's structlog calls use structlog's default configuration.

def setup_logging(level: Optional[str] = None):
    """
    Configures structured logging using structlog, integrated with Python's
    standard logging so that the embedding application's handlers see engine logs.

    Call once at application startup.

    Args:
        level: Root log level; defaults to settings.log_level
    """
    # Define shared processors for structlog
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # Determine the final renderer based on the environment
    if settings.environment == "development":
        final_processor = structlog.dev.ConsoleRenderer()
    else:
        final_processor = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=final_processor,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel((level or settings.log_level).upper())

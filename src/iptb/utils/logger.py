"""
Logging utilities for IPTB
"""

import logging
import sys
from typing import Optional, TextIO
import structlog


def setup_logger(
    level: str = "INFO",
    structured: bool = False,
    stream: Optional[TextIO] = None
) -> None:
    """
    Setup structlog on top of stdlib logging
    
    Args:
        level: Logging level
        structured: Render JSON lines instead of console output
        stream: Output stream, standard error by default
    """
    log_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter('%(message)s'))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if structured
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get logger instance"""
    return structlog.get_logger(name)

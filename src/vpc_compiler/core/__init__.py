"""Core utilities for vpc-compiler"""

from .logging import setup_logging, get_logger, logger
from .renderer import DisplayRenderer
from .state import StateStore

__all__ = [
    "setup_logging",
    "get_logger",
    "logger",
    "DisplayRenderer",
    "StateStore",
]

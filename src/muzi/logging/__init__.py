"""Structured logging: JSON formatter and setup."""

from muzi.logging.formatter import JSONLogFormatter
from muzi.logging.setup import configure_logging

__all__ = ["JSONLogFormatter", "configure_logging"]

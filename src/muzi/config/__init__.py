"""Shared configuration."""

from muzi.config.constants import DEFAULT_DB_NAME
from muzi.config.database import DatabaseSettings

__all__ = [
    "DEFAULT_DB_NAME",
    "DatabaseSettings",
]

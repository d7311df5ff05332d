"""
Core business logic for the school automation service.
Used by the web API and the scheduler; knows nothing about HTTP.
"""

# Database (SQLAlchemy)
from .database import get_connection, get_transaction, get_engine, close_engine, is_configured

# Constants
from .constants import DAY_NAMES, TIMEZONES

__all__ = [
    "get_connection",
    "get_transaction",
    "get_engine",
    "close_engine",
    "is_configured",
    "DAY_NAMES",
    "TIMEZONES",
]

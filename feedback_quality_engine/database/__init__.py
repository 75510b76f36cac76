"""Database connection and management utilities."""

from .connection import (
    DatabaseManager,
    init_database,
    DatabaseError,
    ConnectionError,
    handle_db_exceptions
)

__all__ = [
    # Connection management
    'DatabaseManager',
    'init_database',

    # Exceptions
    'DatabaseError',
    'ConnectionError',

    # Utilities
    'handle_db_exceptions'
]

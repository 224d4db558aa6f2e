"""
==========================
Utility Functions Package.
==========================

Modules:
    database_utils: Data-source URL parsing, availability checks and waiting
"""

__version__ = "1.0.0"
__all__ = [
    'DataSourceDescriptor',
    'DatabaseConnectionError',
    'check_database_available',
    'count_rows',
    'get_connection_string',
    'parse_database_url',
    'wait_for_database'
]

from .database_utils import (
    DatabaseConnectionError,
    DataSourceDescriptor,
    check_database_available,
    count_rows,
    get_connection_string,
    parse_database_url,
    wait_for_database,
)

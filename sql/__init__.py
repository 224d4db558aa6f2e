"""
=====================================================
SQL utilities package for sandbox database cloning.
=====================================================

Pure SQL-string builders, split by statement kind:
    - ddl.py: CREATE/DROP/ALTER DATABASE statements
    - query_builder.py: pg_database and pg_stat_activity queries

DDL interpolates pre-validated identifiers; catalog queries use the
``:database_name`` bind parameter.

Example:
    >>> from sql.ddl import create_database_sql, drop_database_sql
    >>> from sql.query_builder import template_exists_sql
    >>> 
    >>> drop_database_sql('app')
    'DROP DATABASE IF EXISTS "app";'
"""

__version__ = "1.0.0"
__all__ = [
    # DDL functions
    'create_database_sql', 'drop_database_sql', 'set_template_flag_sql',
    'quote_identifier',
    # Catalog queries
    'database_exists_sql', 'template_exists_sql', 'terminate_connections_sql',
    'count_database_connections_sql', 'database_flags_sql'
]

from .ddl import (
    create_database_sql,
    drop_database_sql,
    quote_identifier,
    set_template_flag_sql,
)
from .query_builder import (
    count_database_connections_sql,
    database_exists_sql,
    database_flags_sql,
    template_exists_sql,
    terminate_connections_sql,
)

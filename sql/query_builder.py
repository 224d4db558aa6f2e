"""
================================================
Catalog queries used by the sandbox lifecycle.
================================================

Builders for the queries run against ``pg_database`` and
``pg_stat_activity``. Unlike the DDL in ``sql.ddl``, these compare database
names as values, so every builder returns SQL with a ``:database_name``
bind parameter to be executed through ``sqlalchemy.text``.

Example:
    >>> from sqlalchemy import text
    >>> from sql.query_builder import template_exists_sql
    >>> conn.execute(text(template_exists_sql()), {"database_name": "template_database"})
"""


def database_exists_sql() -> str:
    """
    Generate SQL to check if a database exists.
    
    Returns:
        SQL query returning 1 when the database named by :database_name exists
    """
    return "SELECT 1 FROM pg_database WHERE datname = :database_name"


def template_exists_sql() -> str:
    """
    Generate SQL to check if a database exists and is flagged as template.
    
    Returns:
        SQL query returning 1 when :database_name exists with datistemplate set
    """
    return "SELECT 1 FROM pg_database WHERE datname = :database_name AND datistemplate"


def terminate_connections_sql() -> str:
    """
    Generate SQL to terminate every other session on a database.
    
    The calling session is excluded through pg_backend_pid(). One row is
    returned per signalled backend.
    
    Returns:
        SQL selecting pg_terminate_backend() for each matching backend
    """
    return """SELECT pg_terminate_backend(pid)
FROM pg_stat_activity
WHERE datname = :database_name
  AND pid <> pg_backend_pid()"""


def count_database_connections_sql() -> str:
    """
    Generate SQL to count active connections to a database.
    
    Returns:
        SQL query to count connections, excluding the calling session
    """
    return """SELECT COUNT(*)
FROM pg_stat_activity
WHERE datname = :database_name
  AND pid <> pg_backend_pid()"""


def database_flags_sql() -> str:
    """
    Generate SQL returning the catalog flags of a database.
    
    Returns:
        SQL selecting datistemplate and datallowconn for :database_name
    """
    return """SELECT datistemplate, datallowconn
FROM pg_database
WHERE datname = :database_name"""

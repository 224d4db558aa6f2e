"""
=====================================================================
Data Definition Language (DDL) builders for sandbox database cloning.
=====================================================================

Pure functions returning PostgreSQL DDL strings for the statements the
sandbox lifecycle issues against the maintenance database. Database names
are interpolated as double-quoted identifiers (case preserved); callers must
pass names that already went through ``sandbox.validation``.

All statements here must run outside a transaction block, so they are
executed on an AUTOCOMMIT connection.

Functions:
    create_database_sql: Generate CREATE DATABASE ... TEMPLATE statement
    drop_database_sql: Generate DROP DATABASE statement
    set_template_flag_sql: Generate ALTER DATABASE ... IS_TEMPLATE statement
    quote_identifier: Double-quote a validated identifier

Example:
    >>> from sql.ddl import create_database_sql, set_template_flag_sql
    >>> create_database_sql('app', template='template_database')
    'CREATE DATABASE "app" TEMPLATE "template_database";'
    >>> set_template_flag_sql('app', True)
    'ALTER DATABASE "app" IS_TEMPLATE true;'
"""

from typing import Optional


def quote_identifier(name: str) -> str:
    """Wrap an identifier in double quotes."""
    return f'"{name}"'


def create_database_sql(database_name: str, template: Optional[str] = None) -> str:
    """
    Generate CREATE DATABASE statement.
    
    With a template the new database is a physical file-level copy of it,
    which is what makes a sandbox reset take milliseconds. PostgreSQL
    refuses the copy while any other session is connected to the template.
    
    Args:
        database_name: Name of the database to create
        template: Optional database to clone from
        
    Returns:
        SQL CREATE DATABASE statement
    """
    sql_parts = ["CREATE DATABASE", quote_identifier(database_name)]
    
    if template:
        sql_parts.append(f"TEMPLATE {quote_identifier(template)}")
    
    return " ".join(sql_parts) + ";"


def drop_database_sql(
    database_name: str,
    if_exists: bool = True,
    force: bool = False
) -> str:
    """
    Generate DROP DATABASE statement.
    
    Args:
        database_name: Name of the database to drop
        if_exists: Add IF EXISTS clause
        force: Add WITH (FORCE) clause (PostgreSQL 13+)
        
    Returns:
        SQL DROP DATABASE statement
    """
    sql_parts = ["DROP DATABASE"]
    
    if if_exists:
        sql_parts.append("IF EXISTS")
    
    sql_parts.append(quote_identifier(database_name))
    
    if force:
        sql_parts.append("WITH (FORCE)")
    
    return " ".join(sql_parts) + ";"


def set_template_flag_sql(database_name: str, is_template: bool) -> str:
    """
    Generate ALTER DATABASE statement toggling the template flag.
    
    A database must be flagged as template before non-superusers may clone
    it, and must be unflagged before it can be dropped.
    
    Args:
        database_name: Database to alter
        is_template: New value of pg_database.datistemplate
        
    Returns:
        SQL ALTER DATABASE statement
    """
    flag = "true" if is_template else "false"
    return f"ALTER DATABASE {quote_identifier(database_name)} IS_TEMPLATE {flag};"

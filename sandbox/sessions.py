"""
Session termination shared by template construction and sandbox rebuilds.

PostgreSQL rejects DROP DATABASE and CREATE DATABASE ... TEMPLATE while any
other session is connected to the database involved. Tests leak connections
and keep pools open across failures, so the lifecycle does not wait for
clients to disconnect: it signals every other backend on the database to
terminate.
"""

from sqlalchemy import text
from sqlalchemy.engine import Connection

from core.logger import get_logger
from sql.query_builder import terminate_connections_sql

logger = get_logger(__name__)


def terminate_sessions(conn: Connection, database_name: str) -> int:
    """
    Terminate every session on ``database_name`` except ``conn`` itself.
    
    Safe to repeat: on a database without sessions (or one that does not
    exist) nothing matches and 0 is returned.
    
    Args:
        conn: Open administrative connection
        database_name: Database whose sessions should be terminated
        
    Returns:
        Number of backends that were signalled
    """
    result = conn.execute(
        text(terminate_connections_sql()),
        {"database_name": database_name}
    )
    terminated = sum(1 for row in result.fetchall() if row[0])
    
    if terminated:
        logger.info(f"Terminated {terminated} session(s) on {database_name}")
    else:
        logger.debug(f"No other sessions on {database_name}")
    
    return terminated

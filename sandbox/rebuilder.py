"""
=========================================
Primary database reset from the template.
=========================================

``SandboxRebuilder.rebuild()`` runs before every test: it throws away the
primary database and clones it again from the template. PostgreSQL copies
the files of the template instead of replaying migrations, so a reset takes
milliseconds.

Sequence:
    1. Terminate every other session on the primary database
    2. DROP DATABASE IF EXISTS <primary>
    3. CREATE DATABASE <primary> TEMPLATE <template>

There is no readiness check. Calling rebuild() before the template was
prepared fails in step 3 because the template does not exist.

rebuild() takes no lock. Two concurrent rebuilds of the same primary
database race each other; test runners must not share one sandbox across
parallel workers.
"""

import time

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.logger import get_logger
from sandbox.admin import AdminConnectionFactory
from sandbox.exceptions import SandboxOperationError
from sandbox.sessions import terminate_sessions
from sandbox.settings import SandboxConfig
from sql.ddl import create_database_sql, drop_database_sql

logger = get_logger(__name__)


class SandboxRebuilder:
    """Drop the primary database and recreate it from the template.
    
    Attributes:
        config: SandboxConfig naming the primary and template databases
        connection_factory: Source of administrative sessions
    """
    
    def __init__(self, config: SandboxConfig, connection_factory: AdminConnectionFactory):
        self.config = config
        self.connection_factory = connection_factory
    
    def rebuild(self) -> None:
        """
        Reset the primary database to the template's content.
        
        Every step tolerates repetition, so a failed call can simply be
        retried as a whole.
        
        Raises:
            SandboxConnectionError: If the maintenance database is unreachable
            SandboxOperationError: If terminating, dropping or cloning fails
        """
        primary = self.config.primary_database
        template = self.config.template_database
        started = time.perf_counter()
        
        with self.connection_factory.open_admin_connection() as conn:
            try:
                terminate_sessions(conn, primary)
                
                drop_sql = drop_database_sql(
                    database_name=primary,
                    if_exists=True,
                    force=self.config.force_drop
                )
                logger.debug(f"Executing: {drop_sql}")
                conn.execute(text(drop_sql))
                
                create_sql = create_database_sql(primary, template=template)
                logger.debug(f"Executing: {create_sql}")
                conn.execute(text(create_sql))
                
            except SQLAlchemyError as e:
                logger.error(f"Error rebuilding sandbox {primary} from {template}: {e}")
                raise SandboxOperationError(
                    f"Failed to rebuild {primary} from template {template}: {e}"
                ) from e
        
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(f"Rebuilt {primary} from {template} in {elapsed_ms:.1f} ms")

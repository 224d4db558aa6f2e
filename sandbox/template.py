"""
=====================================================
Template database lifecycle (one-time preparation).
=====================================================

Builds the baseline template database from the primary database exactly
once per readiness cycle, however many test workers ask for it.

Readiness lifecycle:
    - ``TEMPLATE_READINESS`` starts unset when the process starts
    - the first successful ``prepare()`` sets it
    - later calls return immediately without touching the server
    - ``reset_template_readiness()`` unsets it again, which is how tests
      simulate a fresh process; ``TemplateManager.discard()`` unsets it
      after dropping the template

Preparation sequence (under the readiness lock):
    1. Look for an existing database with the template name that is
       flagged as template; reuse it when found
    2. Otherwise terminate other sessions on the primary database and drop
       any unflagged database left under the template name
    3. ALTER DATABASE <primary> IS_TEMPLATE true
    4. CREATE DATABASE <template> TEMPLATE <primary>
    5. ALTER DATABASE <primary> IS_TEMPLATE false
    6. ALTER DATABASE <template> IS_TEMPLATE true

If a step fails, the primary is unflagged again on a fresh session so that
rebuild() can still drop it and the next prepare() starts over.

Example:
    >>> from sandbox.template import TemplateManager
    >>> 
    >>> manager = TemplateManager(cfg, AdminConnectionFactory(cfg))
    >>> manager.prepare()   # builds or reuses the template
    >>> manager.prepare()   # no-op
"""

import threading
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.logger import get_logger
from sandbox.admin import AdminConnectionFactory
from sandbox.exceptions import (
    SandboxConnectionError,
    SandboxOperationError,
    TemplatePreparationError,
)
from sandbox.sessions import terminate_sessions
from sandbox.settings import SandboxConfig
from sql.ddl import create_database_sql, drop_database_sql, set_template_flag_sql
from sql.query_builder import database_exists_sql, template_exists_sql

logger = get_logger(__name__)


class TemplateReadiness:
    """Readiness flag for the template database plus the lock guarding it.
    
    The flag only ever goes from unset to set while ``lock`` is held.
    Reads outside the lock are the fast path of double-checked locking.
    
    Attributes:
        lock: Lock serialising template preparation
    """
    
    def __init__(self):
        self.lock = threading.Lock()
        self._ready = False
    
    def is_ready(self) -> bool:
        return self._ready
    
    def mark_ready(self) -> None:
        self._ready = True

    def clear(self) -> None:
        """Unset the flag. The caller must hold ``lock``."""
        self._ready = False

    def reset(self) -> None:
        """Forget that the template was prepared."""
        with self.lock:
            self.clear()


# Shared by every provider in the process
TEMPLATE_READINESS = TemplateReadiness()


def reset_template_readiness() -> None:
    """Reset the process-wide readiness flag, as if the process had restarted."""
    TEMPLATE_READINESS.reset()


class TemplateManager:
    """Create the template database from the primary database, once.
    
    Attributes:
        config: SandboxConfig naming the primary and template databases
        connection_factory: Source of administrative sessions
        readiness: Readiness flag consulted and set by prepare()
    """
    
    def __init__(
        self,
        config: SandboxConfig,
        connection_factory: AdminConnectionFactory,
        readiness: Optional[TemplateReadiness] = None
    ):
        self.config = config
        self.connection_factory = connection_factory
        self.readiness = readiness if readiness is not None else TEMPLATE_READINESS
    
    def prepare(self) -> None:
        """
        Make sure the template database exists.
        
        Cheap once the template is ready, so it can be called from every
        test-suite entry point. Concurrent callers block until the single
        preparation finishes and then return.
        
        Raises:
            TemplatePreparationError: If the existence check or any build step
                fails; the readiness flag stays unset
        """
        if self.readiness.is_ready():
            return
        
        with self.readiness.lock:
            if self.readiness.is_ready():
                return
            
            if self.template_exists():
                logger.info(f"Reusing existing template database {self.config.template_database}")
            else:
                self._create_template()
            
            self.readiness.mark_ready()
    
    def template_exists(self) -> bool:
        """
        Check whether the template database exists and is flagged as template.
        
        Returns:
            True if pg_database has a template-flagged row with the template name
            
        Raises:
            TemplatePreparationError: If the catalog cannot be queried
        """
        try:
            with self.connection_factory.open_admin_connection() as conn:
                result = conn.execute(
                    text(template_exists_sql()),
                    {"database_name": self.config.template_database}
                )
                return result.fetchone() is not None
        except SandboxConnectionError as e:
            raise TemplatePreparationError(f"Failed to check template existence: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error checking template existence: {e}")
            raise TemplatePreparationError(f"Failed to check template existence: {e}") from e
    
    def _create_template(self) -> None:
        primary = self.config.primary_database
        template = self.config.template_database

        logger.info(f"Building template database {template} from {primary}...")
        try:
            with self.connection_factory.open_admin_connection() as conn:
                terminate_sessions(conn, primary)
                self._drop_unflagged_leftover(conn)

                for statement in (
                    set_template_flag_sql(primary, True),
                    create_database_sql(template, template=primary),
                    set_template_flag_sql(primary, False),
                    set_template_flag_sql(template, True),
                ):
                    logger.debug(f"Executing: {statement}")
                    conn.execute(text(statement))

        except SandboxConnectionError as e:
            raise TemplatePreparationError(f"Failed to build template {template}: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error building template database {template}: {e}")
            self._restore_primary_flag()
            raise TemplatePreparationError(f"Failed to build template {template}: {e}") from e

        logger.info(f"Template {template} ready")

    def _drop_unflagged_leftover(self, conn) -> None:
        """Drop a database with the template name left unflagged by a failed build.

        Only called once template_exists() came back False, so a database
        with that name here is not a usable template.
        """
        template = self.config.template_database

        leftover = conn.execute(
            text(database_exists_sql()),
            {"database_name": template}
        ).fetchone()
        if leftover is None:
            return

        logger.warning(f"⚠️  Dropping unflagged database {template} left by an earlier build")
        terminate_sessions(conn, template)
        statement = drop_database_sql(template, if_exists=True)
        logger.debug(f"Executing: {statement}")
        conn.execute(text(statement))

    def _restore_primary_flag(self) -> None:
        """Clear IS_TEMPLATE on the primary after a failed build.

        Runs on a fresh admin session. A failure here is logged and left to
        the next prepare(); the build error is what the caller sees.
        """
        primary = self.config.primary_database
        try:
            with self.connection_factory.open_admin_connection() as conn:
                conn.execute(text(set_template_flag_sql(primary, False)))
        except (SandboxConnectionError, SQLAlchemyError) as e:
            logger.warning(f"⚠️  Could not clear template flag on {primary}: {e}")
    
    def discard(self) -> bool:
        """
        Drop the template database so the next prepare() rebuilds it.
        
        Returns:
            True if a template database existed and was dropped
            
        Raises:
            SandboxOperationError: If the template could not be dropped
        """
        template = self.config.template_database
        
        with self.readiness.lock:
            try:
                with self.connection_factory.open_admin_connection() as conn:
                    result = conn.execute(
                        text(template_exists_sql()),
                        {"database_name": template}
                    )
                    existed = result.fetchone() is not None
                    
                    terminate_sessions(conn, template)
                    if existed:
                        # PostgreSQL refuses to drop a database flagged as template
                        conn.execute(text(set_template_flag_sql(template, False)))
                    conn.execute(text(drop_database_sql(template, if_exists=True)))
                    
            except SandboxConnectionError:
                raise
            except SQLAlchemyError as e:
                logger.error(f"Error dropping template database {template}: {e}")
                raise SandboxOperationError(f"Failed to drop template {template}: {e}") from e
            
            self.readiness.clear()
        
        if existed:
            logger.info(f"Dropped template database {template}")
        return existed

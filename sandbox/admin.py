"""
==================================================
Administrative connections to the maintenance db.
==================================================

Every lifecycle step talks to PostgreSQL through a short-lived session on
the maintenance database (usually ``postgres``), never through the primary
or template databases it is about to drop or clone.

Sessions are opened per call and released at the end of the ``with`` block.
The engine uses ``NullPool`` so no connection outlives its block, and
``AUTOCOMMIT`` because CREATE/DROP DATABASE cannot run inside a transaction.

Example:
    >>> from sandbox.admin import AdminConnectionFactory
    >>> 
    >>> factory = AdminConnectionFactory(sandbox_config)
    >>> with factory.open_admin_connection() as conn:
    ...     conn.execute(text("SELECT 1"))
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine, URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from core.logger import get_logger
from sandbox.exceptions import SandboxConnectionError
from sandbox.settings import SandboxConfig

logger = get_logger(__name__)


class AdminConnectionFactory:
    """Open scoped AUTOCOMMIT sessions on the maintenance database.
    
    Attributes:
        config: SandboxConfig with the maintenance database coordinates
    
    Example:
        >>> factory = AdminConnectionFactory(cfg)
        >>> with factory.open_admin_connection() as conn:
        ...     conn.execute(text("SELECT version()")).scalar()
        >>> factory.dispose()
    """
    
    def __init__(self, config: SandboxConfig):
        self.config = config
        self._engine: Optional[Engine] = None
    
    @property
    def connection_url(self) -> URL:
        """SQLAlchemy URL of the maintenance database."""
        return self.config.admin_url()
    
    def _get_engine(self) -> Engine:
        """Create the admin engine on first use."""
        if self._engine is None:
            connect_args = {}
            if self.config.connect_timeout is not None:
                connect_args['connect_timeout'] = self.config.connect_timeout
            
            self._engine = create_engine(
                self.connection_url,
                isolation_level='AUTOCOMMIT',
                poolclass=NullPool,
                connect_args=connect_args,
                echo=False
            )
        return self._engine
    
    @contextmanager
    def open_admin_connection(self) -> Iterator[Connection]:
        """
        Open a new session on the maintenance database.
        
        Yields:
            SQLAlchemy Connection in AUTOCOMMIT mode, closed on exit
            
        Raises:
            SandboxConnectionError: If the server cannot be reached or
                rejects the credentials
        """
        try:
            conn = self._get_engine().connect()
        except SQLAlchemyError as e:
            logger.error(
                f"Cannot connect to maintenance database "
                f"{self.config.host}:{self.config.port}/{self.config.admin_database}: {e}"
            )
            raise SandboxConnectionError(
                f"Failed to connect to {self.config.host}:{self.config.port}/"
                f"{self.config.admin_database}: {e}"
            ) from e
        
        try:
            yield conn
        finally:
            conn.close()
    
    def dispose(self) -> None:
        """Release the engine object."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

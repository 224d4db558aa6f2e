"""
=====================================
PostgreSQL sandbox provider (facade).
=====================================

``PostgresSandboxProvider`` is the public entry point. It exposes two
blocking lifecycle operations:

    prepare()  run once before any test; builds (or reuses) the template
    rebuild()  run before each test; resets the primary from the template

Configuration is validated in the constructor, so a malformed database name
or port fails immediately with ``ConfigurationError``, before any
connection is attempted.

Example:
    >>> from sandbox import PostgresSandboxProvider
    >>> 
    >>> provider = PostgresSandboxProvider(
    ...     host='localhost',
    ...     port=5432,
    ...     admin_database='postgres',
    ...     admin_user='postgres',
    ...     admin_password='postgres',
    ...     primary_database='app',
    ...     template_database='template_database'
    ... )
    >>> provider.prepare()
    >>> provider.rebuild()
    >>> 
    >>> # Or derive host, port and primary database from the application URL
    >>> provider = PostgresSandboxProvider.from_url('postgresql://app@localhost/app')
"""

from typing import Any, Dict, Optional, Union

from sqlalchemy import text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from core.config import Config
from core.config import config as default_config
from core.logger import get_logger
from sandbox.admin import AdminConnectionFactory
from sandbox.exceptions import ConfigurationError, SandboxOperationError
from sandbox.rebuilder import SandboxRebuilder
from sandbox.settings import (
    DEFAULT_ADMIN_DATABASE,
    DEFAULT_ADMIN_PASSWORD,
    DEFAULT_ADMIN_USER,
    DEFAULT_TEMPLATE_DATABASE,
    SandboxConfig,
)
from sandbox.template import TemplateManager, TemplateReadiness
from sql.query_builder import count_database_connections_sql, database_flags_sql
from utils.database_utils import parse_database_url

logger = get_logger(__name__)


class PostgresSandboxProvider:
    """Prepare and rebuild a PostgreSQL sandbox through template databases.
    
    Attributes:
        config: Validated SandboxConfig
        connection_factory: Administrative session factory
        templates: TemplateManager owning prepare()
        rebuilder: SandboxRebuilder owning rebuild()
    
    Example:
        >>> with PostgresSandboxProvider.from_config(cfg) as provider:
        ...     provider.prepare()
        ...     provider.rebuild()
    """
    
    def __init__(
        self,
        host: str,
        port: int,
        admin_database: str,
        admin_user: str,
        admin_password: str,
        primary_database: str,
        template_database: str,
        *,
        connect_timeout: Optional[int] = None,
        force_drop: bool = False,
        readiness: Optional[TemplateReadiness] = None
    ):
        """Validate the settings and wire the lifecycle components.
        
        Args:
            host: PostgreSQL server hostname
            port: PostgreSQL server port (1-65535)
            admin_database: Maintenance database (usually 'postgres')
            admin_user: Role with CREATE DATABASE privileges
            admin_password: Password for admin_user
            primary_database: Database the tests run against
            template_database: Name of the template database to create
            connect_timeout: Optional driver connect timeout in seconds
            force_drop: Drop the primary WITH (FORCE) (PostgreSQL 13+)
            readiness: Readiness flag to use instead of the process-wide one
            
        Raises:
            ConfigurationError: If any identifier or the port is invalid
        """
        self.config = SandboxConfig(
            host=host,
            port=port,
            admin_database=admin_database,
            admin_user=admin_user,
            admin_password=admin_password,
            primary_database=primary_database,
            template_database=template_database,
            connect_timeout=connect_timeout,
            force_drop=force_drop
        )
        self.connection_factory = AdminConnectionFactory(self.config)
        self.templates = TemplateManager(self.config, self.connection_factory, readiness)
        self.rebuilder = SandboxRebuilder(self.config, self.connection_factory)
    
    @classmethod
    def from_config(
        cls,
        config: SandboxConfig,
        readiness: Optional[TemplateReadiness] = None
    ) -> 'PostgresSandboxProvider':
        """Build a provider from an existing SandboxConfig."""
        return cls(
            host=config.host,
            port=config.port,
            admin_database=config.admin_database,
            admin_user=config.admin_user,
            admin_password=config.admin_password,
            primary_database=config.primary_database,
            template_database=config.template_database,
            connect_timeout=config.connect_timeout,
            force_drop=config.force_drop,
            readiness=readiness
        )
    
    @classmethod
    def from_url(
        cls,
        source: Union[str, URL, Engine],
        admin_user: str = DEFAULT_ADMIN_USER,
        admin_password: str = DEFAULT_ADMIN_PASSWORD,
        admin_database: str = DEFAULT_ADMIN_DATABASE,
        template_database: str = DEFAULT_TEMPLATE_DATABASE,
        **kwargs
    ) -> 'PostgresSandboxProvider':
        """
        Build a provider for the database an application connects to.
        
        Host, port and primary database come from the application's URL or
        engine; the admin credentials are separate because the application
        role rarely has CREATE DATABASE privileges.
        
        Args:
            source: Application URL string, SQLAlchemy URL or Engine
            admin_user: Admin role (default 'postgres')
            admin_password: Admin password (default 'postgres')
            admin_database: Maintenance database (default 'postgres')
            template_database: Template name (default 'template_database')
            **kwargs: Passed through to the constructor
            
        Raises:
            ConfigurationError: If the URL is malformed or names are invalid
        """
        try:
            descriptor = parse_database_url(source)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        
        return cls(
            host=descriptor.host,
            port=descriptor.port,
            admin_database=admin_database,
            admin_user=admin_user,
            admin_password=admin_password,
            primary_database=descriptor.database,
            template_database=template_database,
            **kwargs
        )
    
    @classmethod
    def from_env(
        cls,
        config: Optional[Config] = None,
        database_url: Optional[str] = None,
        **overrides
    ) -> 'PostgresSandboxProvider':
        """
        Build a provider from environment configuration (see core.config).

        The application URL (``database_url``, else SANDBOX_DATABASE_URL)
        supplies host, port and the primary database when given; otherwise
        POSTGRES_HOST/POSTGRES_PORT and SANDBOX_PRIMARY_DB are used.

        Args:
            config: Config to read instead of the global one
            database_url: Application URL taking precedence over the environment
            **overrides: Replacements for admin_user, admin_password,
                admin_database, template_database, connect_timeout,
                force_drop or readiness

        Raises:
            ConfigurationError: If the environment or the resolved names are invalid
        """
        config = config or default_config
        settings = dict(
            admin_user=config.db_user,
            admin_password=config.db_password,
            admin_database=config.db_name,
            template_database=config.sandbox.template_db,
            connect_timeout=config.sandbox.connect_timeout,
            force_drop=config.sandbox.force_drop
        )
        settings.update(overrides)

        database_url = database_url or config.sandbox.database_url
        if database_url:
            return cls.from_url(database_url, **settings)

        return cls(
            host=config.db_host,
            port=config.db_port,
            primary_database=config.sandbox.primary_db,
            **settings
        )
    
    def prepare(self) -> None:
        """Build the template database once; later calls are no-ops.
        
        Raises:
            TemplatePreparationError: If the template could not be built
        """
        self.templates.prepare()
    
    def rebuild(self) -> None:
        """Reset the primary database to the template's content.
        
        Raises:
            SandboxOperationError: If terminating, dropping or cloning fails
        """
        self.rebuilder.rebuild()
    
    def discard_template(self) -> bool:
        """Drop the template database so the next prepare() rebuilds it."""
        return self.templates.discard()
    
    def status(self) -> Dict[str, Any]:
        """
        Describe the sandbox as the server currently sees it.
        
        Returns:
            Dictionary with keys: primary_database, template_database,
            primary_exists, primary_is_template, template_exists,
            template_is_template, primary_sessions, template_ready
            
        Raises:
            SandboxOperationError: If the catalog cannot be queried
        """
        primary = self.config.primary_database
        template = self.config.template_database
        
        with self.connection_factory.open_admin_connection() as conn:
            try:
                primary_flags = conn.execute(
                    text(database_flags_sql()), {"database_name": primary}
                ).fetchone()
                template_flags = conn.execute(
                    text(database_flags_sql()), {"database_name": template}
                ).fetchone()
                sessions = conn.execute(
                    text(count_database_connections_sql()), {"database_name": primary}
                ).scalar()
            except SQLAlchemyError as e:
                logger.error(f"Error reading sandbox status: {e}")
                raise SandboxOperationError(f"Failed to read sandbox status: {e}") from e
        
        return {
            'primary_database': primary,
            'template_database': template,
            'primary_exists': primary_flags is not None,
            'primary_is_template': bool(primary_flags and primary_flags[0]),
            'template_exists': template_flags is not None,
            'template_is_template': bool(template_flags and template_flags[0]),
            'primary_sessions': sessions or 0,
            'template_ready': self.templates.readiness.is_ready()
        }
    
    def close(self) -> None:
        """Dispose the administrative engine."""
        self.connection_factory.dispose()
    
    def __enter__(self) -> 'PostgresSandboxProvider':
        return self
    
    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
    
    def __repr__(self) -> str:
        return f"PostgresSandboxProvider({self.config!r})"

"""
=====================================
Immutable sandbox configuration value.
=====================================

``SandboxConfig`` carries everything the lifecycle needs to reach the
maintenance database and to name the two databases it manages. It is
validated once, in ``__post_init__``, and frozen afterwards.

Example:
    >>> from sandbox.settings import SandboxConfig
    >>> cfg = SandboxConfig(
    ...     host='localhost',
    ...     port=5432,
    ...     admin_database='postgres',
    ...     admin_user='postgres',
    ...     admin_password='postgres',
    ...     primary_database='app',
    ...     template_database='template_database'
    ... )
    >>> cfg.admin_url().database
    'postgres'
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import URL

from sandbox.exceptions import ConfigurationError
from sandbox.validation import require_value, validate_identifier, validate_port

DEFAULT_PORT = 5432
DEFAULT_ADMIN_DATABASE = 'postgres'
DEFAULT_ADMIN_USER = 'postgres'
DEFAULT_ADMIN_PASSWORD = 'postgres'
DEFAULT_TEMPLATE_DATABASE = 'template_database'


@dataclass(frozen=True)
class SandboxConfig:
    """Coordinates and database names for one sandbox.

    Attributes:
        host: PostgreSQL server hostname or IP address
        port: PostgreSQL server port (1-65535)
        admin_database: Maintenance database used for administrative sessions
        admin_user: Role with CREATE DATABASE privileges
        admin_password: Password for admin_user
        primary_database: Database the tests run against
        template_database: Database holding the frozen baseline
        connect_timeout: Optional driver connect timeout in seconds
        force_drop: Drop the primary with WITH (FORCE) (PostgreSQL 13+)
    """

    host: str
    port: int
    admin_database: str
    admin_user: str
    admin_password: str
    primary_database: str
    template_database: str
    connect_timeout: Optional[int] = None
    force_drop: bool = False

    def __post_init__(self):
        require_value(self.host, 'host')
        validate_port(self.port)
        validate_identifier(self.admin_database, 'admin_database')
        require_value(self.admin_user, 'admin_user')
        require_value(self.admin_password, 'admin_password')
        validate_identifier(self.primary_database, 'primary_database')
        validate_identifier(self.template_database, 'template_database')

        if self.primary_database == self.template_database:
            raise ConfigurationError(
                "primary_database and template_database must differ, "
                f"both are {self.primary_database!r}"
            )
        if self.connect_timeout is not None:
            if isinstance(self.connect_timeout, bool) or not isinstance(self.connect_timeout, int) \
                    or self.connect_timeout <= 0:
                raise ConfigurationError(
                    f"connect_timeout must be a positive integer, got: {self.connect_timeout!r}"
                )

    def admin_url(self) -> URL:
        """Build the SQLAlchemy URL of the maintenance database."""
        return URL.create(
            drivername='postgresql+psycopg2',
            username=self.admin_user,
            password=self.admin_password,
            host=self.host,
            port=self.port,
            database=self.admin_database
        )

    def database_url(self, database: str) -> URL:
        """Build a URL pointing at ``database`` with the admin credentials."""
        return self.admin_url().set(database=database)

    def __repr__(self) -> str:
        return (
            f"SandboxConfig(host={self.host!r}, port={self.port}, "
            f"admin_database={self.admin_database!r}, admin_user={self.admin_user!r}, "
            f"primary_database={self.primary_database!r}, "
            f"template_database={self.template_database!r})"
        )

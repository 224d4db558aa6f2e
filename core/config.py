"""
=========================================
Configuration management for the sandbox.
=========================================

Loads settings from environment variables (and a ``.env`` file in the
working directory) and exposes them through a module-level ``config``
singleton. Nothing is read until the first attribute access, so a bad value
surfaces as ``ConfigurationError`` where the settings are used, not when
the module is imported.

Environment variables:
    POSTGRES_HOST           Server hostname (default: localhost)
    POSTGRES_PORT           Server port (default: 5432)
    POSTGRES_USER           Admin role (default: postgres)
    POSTGRES_PASSWORD       Admin password (default: postgres)
    POSTGRES_DB             Maintenance database (default: postgres)
    SANDBOX_PRIMARY_DB      Database the tests use (default: app)
    SANDBOX_TEMPLATE_DB     Template database name (default: template_database)
    SANDBOX_DATABASE_URL    Optional application URL; overrides host, port
                            and primary database when set
    SANDBOX_CONNECT_TIMEOUT Optional driver connect timeout in seconds
    SANDBOX_FORCE_DROP      Drop the primary WITH (FORCE) (default: false)
    SANDBOX_LOG_LEVEL       Log level for the CLI (default: INFO)

Example:
    >>> from core.config import config
    >>> 
    >>> print(f"Host: {config.db_host}, Port: {config.db_port}")
    >>> print(config.sandbox.template_db)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    """Read an integer variable; unset or blank gives ``default``.

    Raises:
        ConfigurationError: If the value is not an integer
    """
    # Imported here: the sandbox package imports this module while it initialises
    from sandbox.exceptions import ConfigurationError

    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


@dataclass
class DatabaseConfig:
    """Database server settings.
    
    Attributes:
        host: PostgreSQL server hostname or IP address
        port: PostgreSQL server port number
        user: Admin username
        password: Admin password
        database: Maintenance database name
    """
    
    host: str
    port: int
    user: str
    password: str
    database: str
    
    def get_connection_params(self) -> dict:
        """Get connection parameters for the maintenance database.
        
        Returns:
            Dictionary with keys: host, port, user, password, database
        """
        return {
            'host': self.host,
            'port': self.port,
            'user': self.user,
            'password': self.password,
            'database': self.database
        }


@dataclass
class SandboxSettings:
    """Sandbox-specific settings.
    
    Attributes:
        primary_db: Database the tests run against
        template_db: Template database name
        database_url: Optional application database URL
        connect_timeout: Optional connect timeout in seconds
        force_drop: Use DROP DATABASE ... WITH (FORCE)
        log_level: Logging level name
    """
    
    primary_db: str
    template_db: str
    database_url: Optional[str]
    connect_timeout: Optional[int]
    force_drop: bool
    log_level: str


class Config:
    """Centralized configuration manager.
    
    Attributes:
        db: DatabaseConfig with the admin connection settings
        sandbox: SandboxSettings with database names and behaviour switches
    
    Example:
        >>> config = Config()
        >>> print(f"Connecting to {config.db_host}:{config.db_port}")
    """
    
    def __init__(self, env_file: Optional[Path] = None):
        """Initialize configuration from environment variables.
        
        Args:
            env_file: Optional .env path; defaults to .env in the working directory
        """
        self.env_file = env_file or Path.cwd() / '.env'
        self._db: Optional[DatabaseConfig] = None
        self._sandbox: Optional[SandboxSettings] = None

    def reload(self) -> None:
        """Re-read the .env file and the environment.

        Raises:
            ConfigurationError: If a numeric variable is not an integer
        """
        load_dotenv(dotenv_path=self.env_file)

        db = DatabaseConfig(
            host=os.getenv('POSTGRES_HOST', 'localhost'),
            port=_env_int('POSTGRES_PORT', 5432),
            user=os.getenv('POSTGRES_USER', 'postgres'),
            password=os.getenv('POSTGRES_PASSWORD', 'postgres'),
            database=os.getenv('POSTGRES_DB', 'postgres')
        )

        sandbox = SandboxSettings(
            primary_db=os.getenv('SANDBOX_PRIMARY_DB', 'app'),
            template_db=os.getenv('SANDBOX_TEMPLATE_DB', 'template_database'),
            database_url=os.getenv('SANDBOX_DATABASE_URL') or None,
            connect_timeout=_env_int('SANDBOX_CONNECT_TIMEOUT'),
            force_drop=_env_bool('SANDBOX_FORCE_DROP'),
            log_level=os.getenv('SANDBOX_LOG_LEVEL', 'INFO')
        )

        self._db, self._sandbox = db, sandbox

    @property
    def db(self) -> DatabaseConfig:
        """Server settings, read from the environment on first access."""
        if self._db is None:
            self.reload()
        return self._db

    @property
    def sandbox(self) -> SandboxSettings:
        """Sandbox settings, read from the environment on first access."""
        if self._sandbox is None:
            self.reload()
        return self._sandbox
    
    @property
    def db_host(self) -> str:
        """Get database server hostname."""
        return self.db.host
    
    @property
    def db_port(self) -> int:
        """Get database server port number."""
        return self.db.port
    
    @property
    def db_user(self) -> str:
        """Get admin username."""
        return self.db.user
    
    @property
    def db_password(self) -> str:
        """Get admin password."""
        return self.db.password
    
    @property
    def db_name(self) -> str:
        """Get maintenance database name."""
        return self.db.database
    
    def get_connection_params(self) -> dict:
        """Get maintenance database connection parameters."""
        return self.db.get_connection_params()


# Global configuration instance
config = Config()

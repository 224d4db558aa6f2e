"""
======================================================
Identifier and value validation for sandbox settings.
======================================================

PostgreSQL cannot bind identifiers as statement parameters, so every database
name that ends up inside DDL (``CREATE DATABASE``, ``DROP DATABASE``,
``ALTER DATABASE``) is interpolated as text. The allow-list grammar below is
the only thing standing between configuration values and that SQL; nothing
downstream re-checks them.

Example:
    >>> from sandbox.validation import validate_identifier, validate_port
    >>> validate_identifier('app_test', 'primary_database')
    'app_test'
    >>> validate_port(5432)
    5432
"""

import re
from typing import Any

from sandbox.exceptions import ConfigurationError

SAFE_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

MIN_PORT = 1
MAX_PORT = 65535


def validate_identifier(name: Any, field_label: str) -> str:
    """Return ``name`` if it is a safe SQL identifier.

    Args:
        name: Candidate database name
        field_label: Setting name used in the error message

    Returns:
        The unchanged name

    Raises:
        ConfigurationError: If name is None, not a string, or contains
            anything besides letters, digits and underscores (or starts
            with a digit)
    """
    if name is None:
        raise ConfigurationError(f"{field_label} cannot be None")
    if not isinstance(name, str) or not SAFE_IDENTIFIER.fullmatch(name):
        raise ConfigurationError(
            f"{field_label} contains invalid characters. "
            f"Only letters, digits and underscores are allowed "
            f"and it must not start with a digit: {name!r}"
        )
    return name


def validate_port(port: Any) -> int:
    """Return ``port`` if it is an integer in [1, 65535]."""
    # bool is an int subclass; True would otherwise pass as port 1
    if isinstance(port, bool) or not isinstance(port, int):
        raise ConfigurationError(f"port must be an integer, got: {port!r}")
    if port < MIN_PORT or port > MAX_PORT:
        raise ConfigurationError(
            f"port must be between {MIN_PORT} and {MAX_PORT}, got: {port}"
        )
    return port


def require_value(value: Any, field_label: str) -> Any:
    if value is None:
        raise ConfigurationError(f"{field_label} cannot be None")
    return value

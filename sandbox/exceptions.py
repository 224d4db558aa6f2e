"""
=====================================
Exception hierarchy for the sandbox.
=====================================

Callers only need to tell two situations apart: the sandbox was configured
badly (fix the setup, do not retry) or an operation failed at runtime against
PostgreSQL (safe to retry the whole call).

Hierarchy:
    SandboxError
    ├── ConfigurationError
    └── SandboxOperationError
        ├── SandboxConnectionError
        └── TemplatePreparationError
"""


class SandboxError(Exception):
    """Base class for every error raised by the sandbox package."""
    pass


class ConfigurationError(SandboxError, ValueError):
    """Exception raised for invalid sandbox configuration.

    Raised synchronously at construction time for malformed identifiers,
    missing values or out-of-range ports. Never retryable.
    """
    pass


class SandboxOperationError(SandboxError):
    """Exception raised when a lifecycle operation fails against PostgreSQL.

    Wraps the underlying SQLAlchemy/psycopg2 error, which stays available
    as ``__cause__``.
    """
    pass


class SandboxConnectionError(SandboxOperationError):
    """Exception raised when the maintenance database cannot be reached."""
    pass


class TemplatePreparationError(SandboxOperationError):
    """Exception raised when the template database could not be built.

    The readiness flag is left unset, so the next ``prepare()`` call
    starts over.
    """
    pass

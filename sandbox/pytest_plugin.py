"""
==========================================
pytest integration for database sandboxes.
==========================================

Wires the two lifecycle hooks into pytest:

    db_sandbox_template  session fixture, calls prepare() once ("before all")
    db_sandbox           function fixture, calls rebuild() before each test

The plugin is registered through the ``pytest11`` entry point, so installing
the package is enough. Opt a test (or class, or module) in by requesting
``db_sandbox``:

    @pytest.mark.usefixtures("db_sandbox")
    class TestOrders:
        def test_starts_from_fixtures(self):
            ...

Configuration, highest precedence first:
    1. --db-sandbox-url on the command line
    2. ini options (pytest.ini / pyproject.toml [tool.pytest.ini_options]):
           db_sandbox_url, db_sandbox_admin_user, db_sandbox_admin_password,
           db_sandbox_maintenance_db, db_sandbox_template
    3. environment configuration from core.config; with nothing set the
       admin role, its password and the maintenance database are all
       'postgres' and the template is 'template_database'

To supply a provider built some other way, override the
``db_sandbox_provider`` fixture in a conftest.py.

Workers running in parallel (e.g. pytest-xdist) must each use their own
primary database: rebuild() does not serialise concurrent resets.
"""

from typing import Optional

import pytest

from sandbox.provider import PostgresSandboxProvider

INI_OPTIONS = {
    'db_sandbox_url': 'Application database URL the sandbox resets',
    'db_sandbox_admin_user': 'Role with CREATE DATABASE privileges',
    'db_sandbox_admin_password': 'Password for the admin role',
    'db_sandbox_maintenance_db': 'Maintenance database for admin sessions',
    'db_sandbox_template': 'Name of the template database'
}


def pytest_addoption(parser):
    group = parser.getgroup('db-sandbox', 'PostgreSQL template-database sandbox')
    group.addoption(
        '--db-sandbox-url',
        action='store',
        dest='db_sandbox_url',
        default=None,
        help='Application database URL the sandbox resets before each test'
    )
    for name, help_text in INI_OPTIONS.items():
        parser.addini(name, help=help_text, default=None)


def _setting(pytestconfig, name: str) -> Optional[str]:
    """Command-line value first, then the ini file; empty means unset."""
    value = pytestconfig.getoption(name, default=None)
    if value:
        return value
    return pytestconfig.getini(name) or None


def build_provider(pytestconfig) -> PostgresSandboxProvider:
    """
    Build the provider used by the fixtures.
    
    Args:
        pytestconfig: pytest Config (anything with getoption/getini)
        
    Returns:
        PostgresSandboxProvider for the configured database
        
    Raises:
        ConfigurationError: If the resolved settings are invalid
    """
    overrides = {}
    for option, argument in (
        ('db_sandbox_admin_user', 'admin_user'),
        ('db_sandbox_admin_password', 'admin_password'),
        ('db_sandbox_maintenance_db', 'admin_database'),
        ('db_sandbox_template', 'template_database'),
    ):
        value = _setting(pytestconfig, option)
        if value is not None:
            overrides[argument] = value
    
    return PostgresSandboxProvider.from_env(
        database_url=_setting(pytestconfig, 'db_sandbox_url'),
        **overrides
    )


@pytest.fixture(scope='session')
def db_sandbox_provider(pytestconfig):
    """Session-wide sandbox provider; override to supply your own."""
    provider = build_provider(pytestconfig)
    yield provider
    provider.close()


@pytest.fixture(scope='session')
def db_sandbox_template(db_sandbox_provider):
    """Prepare the template database once per test session."""
    db_sandbox_provider.prepare()
    return db_sandbox_provider


@pytest.fixture
def db_sandbox(db_sandbox_template):
    """Reset the primary database to the template before the test runs."""
    db_sandbox_template.rebuild()
    return db_sandbox_template

"""
Fixtures for tests that run against a live PostgreSQL server.

The server comes from the POSTGRES_* environment variables (see
core/config.py); the admin role needs CREATE DATABASE. Every test starts
from a freshly seeded primary database and no template database, and both
are dropped afterwards.

Seeded content:
- users:    Alice, Bob
- products: Widget (9.99), Gadget (19.99)
"""

import psycopg2
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import NullPool

from core.config import config
from sandbox.provider import PostgresSandboxProvider
from sandbox.settings import SandboxConfig
from sandbox.template import TemplateReadiness
from sql.ddl import create_database_sql, drop_database_sql, set_template_flag_sql
from sql.query_builder import database_exists_sql, terminate_connections_sql
from utils.database_utils import check_database_available

PRIMARY_DB = 'sandbox_it_app'
TEMPLATE_DB = 'sandbox_it_template'

SEED_STATEMENTS = [
    "CREATE TABLE users (id SERIAL PRIMARY KEY, name VARCHAR(100) NOT NULL)",
    "CREATE TABLE products (id SERIAL PRIMARY KEY, name VARCHAR(100) NOT NULL, price NUMERIC(10, 2))",
    "INSERT INTO users (name) VALUES ('Alice'), ('Bob')",
    "INSERT INTO products (name, price) VALUES ('Widget', 9.99), ('Gadget', 19.99)",
]

SERVER_AVAILABLE = check_database_available(timeout=2)

requires_postgres = pytest.mark.skipif(
    not SERVER_AVAILABLE,
    reason=f"PostgreSQL not available at {config.db_host}:{config.db_port}"
)


def sandbox_config(**overrides) -> SandboxConfig:
    settings = dict(
        host=config.db_host,
        port=config.db_port,
        admin_database=config.db_name,
        admin_user=config.db_user,
        admin_password=config.db_password,
        primary_database=PRIMARY_DB,
        template_database=TEMPLATE_DB,
        connect_timeout=5
    )
    settings.update(overrides)
    return SandboxConfig(**settings)


def _drop(conn, database_name):
    conn.execute(text(terminate_connections_sql()), {"database_name": database_name})
    exists = conn.execute(
        text(database_exists_sql()),
        {"database_name": database_name}
    ).fetchone()
    if exists:
        conn.execute(text(set_template_flag_sql(database_name, False)))
    conn.execute(text(drop_database_sql(database_name)))


@pytest.fixture
def admin_engine():
    """AUTOCOMMIT engine on the maintenance database."""
    engine = create_engine(
        sandbox_config().admin_url(),
        isolation_level='AUTOCOMMIT',
        poolclass=NullPool
    )
    yield engine
    engine.dispose()


@pytest.fixture
def seeded_primary(admin_engine):
    """Create the primary database with users and products; drop everything after."""
    with admin_engine.connect() as conn:
        _drop(conn, TEMPLATE_DB)
        _drop(conn, PRIMARY_DB)
        conn.execute(text(create_database_sql(PRIMARY_DB)))
    
    primary_engine = create_engine(sandbox_config().database_url(PRIMARY_DB), poolclass=NullPool)
    try:
        with primary_engine.begin() as conn:
            for statement in SEED_STATEMENTS:
                conn.execute(text(statement))
    finally:
        primary_engine.dispose()
    
    yield PRIMARY_DB
    
    with admin_engine.connect() as conn:
        _drop(conn, PRIMARY_DB)
        _drop(conn, TEMPLATE_DB)


@pytest.fixture
def provider(seeded_primary):
    """Provider over the seeded primary with its own readiness flag."""
    with PostgresSandboxProvider.from_config(sandbox_config(), readiness=TemplateReadiness()) as p:
        yield p


@pytest.fixture
def query():
    """Run a query against a database and return all rows."""
    def _query(database_name, sql, params=None):
        engine = create_engine(sandbox_config().database_url(database_name), poolclass=NullPool)
        try:
            with engine.connect() as conn:
                return conn.execute(text(sql), params or {}).fetchall()
        finally:
            engine.dispose()
    return _query


@pytest.fixture
def execute():
    """Run a modifying statement against a database and commit it."""
    def _execute(database_name, sql, params=None):
        engine = create_engine(sandbox_config().database_url(database_name), poolclass=NullPool)
        try:
            with engine.begin() as conn:
                conn.execute(text(sql), params or {})
        finally:
            engine.dispose()
    return _execute


@pytest.fixture
def raw_connection():
    """Open a plain psycopg2 connection to a database; closed at teardown."""
    opened = []
    
    def _connect(database_name):
        conn = psycopg2.connect(
            host=config.db_host,
            port=config.db_port,
            user=config.db_user,
            password=config.db_password,
            dbname=database_name
        )
        opened.append(conn)
        return conn
    
    yield _connect
    
    for conn in opened:
        if not conn.closed:
            conn.close()

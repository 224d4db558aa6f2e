"""
Shared fakes and fixtures for the sandbox package tests.

Key helpers:
- FakeResult / FakeConnection / FakeEngine: stand-ins for the SQLAlchemy
  objects the lifecycle touches; FakeConnection records every statement.
- patch_create_engine: patches sandbox.admin.create_engine.
- sandbox_config: a valid SandboxConfig.
- provider_factory: builds a PostgresSandboxProvider with its own readiness flag.
"""

import threading
from unittest.mock import patch

import pytest


class FakeResult:
    """Mock SQLAlchemy result supporting fetchone/fetchall/scalar."""
    def __init__(self, rows=None, scalar_val=None):
        self._rows = rows or []
        self._scalar = scalar_val

    def fetchone(self):
        if not self._rows:
            return None
        return self._rows[0]

    def fetchall(self):
        return list(self._rows)

    def scalar(self):
        return self._scalar


class FakeConnection:
    """
    Simulates the Connection returned by Engine.connect().

    exec_map maps a SQL fragment to the outcome of any statement containing
    it: a list of rows, an int (scalar result), a FakeResult, an Exception
    to raise, or a callable taking the bound params and returning one of
    those. The first matching fragment wins; unmatched statements return an
    empty result.
    """
    def __init__(self, exec_map=None, delay=0.0):
        self.exec_map = exec_map or {}
        self.executed = []
        self.closed = False
        self._delay = delay
        self._lock = threading.Lock()

    def execute(self, statement, params=None):
        sql_text = str(statement)
        with self._lock:
            self.executed.append((sql_text, params))
        if self._delay:
            threading.Event().wait(self._delay)
        for fragment, result in self.exec_map.items():
            if fragment in sql_text:
                if callable(result):
                    result = result(params)
                if isinstance(result, Exception):
                    raise result
                if isinstance(result, list):
                    return FakeResult(rows=result)
                if isinstance(result, int):
                    return FakeResult(scalar_val=result)
                return result
        return FakeResult()

    def close(self):
        self.closed = True

    @property
    def statements(self):
        return [sql for sql, _ in self.executed]

    def count(self, fragment):
        return sum(1 for sql in self.statements if fragment in sql)


class FakeEngine:
    """Mock SQLAlchemy Engine handing out one shared FakeConnection."""
    def __init__(self, conn_obj=None, connect_side_effect=None):
        self.conn_obj = conn_obj or FakeConnection()
        self.connect_side_effect = connect_side_effect
        self.connect_calls = 0
        self.disposed = False

    def connect(self):
        self.connect_calls += 1
        if self.connect_side_effect:
            raise self.connect_side_effect
        return self.conn_obj

    def dispose(self):
        self.disposed = True


@pytest.fixture
def patch_create_engine():
    """Patch create_engine used by the admin connection factory."""
    with patch("sandbox.admin.create_engine") as mock_create_engine:
        yield mock_create_engine


@pytest.fixture
def sandbox_config():
    from sandbox.settings import SandboxConfig

    return SandboxConfig(
        host="localhost",
        port=5432,
        admin_database="postgres",
        admin_user="postgres",
        admin_password="secret",
        primary_database="app",
        template_database="template_database"
    )


@pytest.fixture
def readiness():
    from sandbox.template import TemplateReadiness

    return TemplateReadiness()


@pytest.fixture
def provider_factory(readiness):
    """Factory building providers that share the ``readiness`` fixture."""
    from sandbox.provider import PostgresSandboxProvider

    def factory(**overrides):
        params = dict(
            host="localhost",
            port=5432,
            admin_database="postgres",
            admin_user="postgres",
            admin_password="secret",
            primary_database="app",
            template_database="template_database",
            readiness=readiness
        )
        params.update(overrides)
        return PostgresSandboxProvider(**params)

    return factory


@pytest.fixture
def fake_engine(patch_create_engine):
    """
    Factory making create_engine return a FakeEngine.

    Usage: engine, conn = fake_engine(exec_map={...}, connect_side_effect=..., delay=...)
    """
    def install(exec_map=None, connect_side_effect=None, delay=0.0):
        conn = FakeConnection(exec_map=exec_map, delay=delay)
        engine = FakeEngine(conn, connect_side_effect=connect_side_effect)
        patch_create_engine.return_value = engine
        return engine, conn

    return install

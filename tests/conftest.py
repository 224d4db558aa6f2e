"""
Shared pytest configuration for all tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path so 'core', 'sandbox', 'sql' and 'utils'
# import without installation
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests - isolated function-level tests")
    config.addinivalue_line("markers", "integration: Integration tests - require a running PostgreSQL server")
    config.addinivalue_line("markers", "smoke: Smoke tests - basic functionality checks")
    config.addinivalue_line("markers", "edge_case: Edge case tests - boundary conditions")
    config.addinivalue_line("markers", "system: System tests - full system behavior tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests - complete workflow tests")


@pytest.fixture(autouse=True)
def _reset_process_readiness():
    """Start and leave every test with the process-wide template flag unset."""
    from sandbox.template import reset_template_readiness

    reset_template_readiness()
    yield
    reset_template_readiness()

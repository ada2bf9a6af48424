"""Shared pytest configuration and fixtures for the device hub test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def default_config_path() -> Path:
    """Return the shipped config.txt."""
    return PROJECT_ROOT / "config.txt"


@pytest.fixture
def mock_socket():
    """Create a recording WebSocket stand-in."""
    from tests.infrastructure.mocks.socket_mocks import MockWebSocket
    return MockWebSocket()

"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - integration/: Repository tests against a real PostgreSQL
    - component/  : Service and API tests (mocked dependencies)
    - unit/       : Unit tests (pure functions, no I/O)
"""
import os
import sys
from typing import Any, Dict, List

import pytest

# Set testing environment BEFORE any service imports
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("NATS_ENABLED", "false")

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)


# =============================================================================
# Test Configuration
# =============================================================================

class TestConfig:
    """Centralized test configuration"""

    __test__ = False

    SERVICES = {
        "account_service": 8202,
        "order_service": 8210,
        "tax_service": 8253,
    }

    # Infrastructure
    DATABASE_URL = os.getenv("ORDER_TEST_DATABASE_URL")
    NATS_URL = os.getenv("NATS_URL", "nats://localhost:4222")

    @classmethod
    def get_service_url(cls, service_name: str) -> str:
        port = cls.SERVICES.get(service_name)
        if not port:
            raise ValueError(f"Unknown service: {service_name}")
        return f"http://localhost:{port}"


@pytest.fixture(scope="session")
def test_config() -> TestConfig:
    """Provide test configuration"""
    return TestConfig()


# =============================================================================
# Assertion Helpers
# =============================================================================

class AssertionHelpers:
    """Common assertion helpers"""

    @staticmethod
    def assert_http_success(response, expected_status: int = 200):
        assert response.status_code == expected_status, (
            f"Expected {expected_status}, got {response.status_code}: {response.text}"
        )

    @staticmethod
    def assert_has_fields(data: Dict[str, Any], fields: List[str]):
        missing = [f for f in fields if f not in data]
        assert not missing, f"Missing fields: {missing}"


@pytest.fixture
def assertions() -> AssertionHelpers:
    """Provide assertion helpers"""
    return AssertionHelpers()


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "component: Component tests")
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "requires_db: needs ORDER_TEST_DATABASE_URL")


def pytest_collection_modifyitems(config, items):
    """Skip database tests when no test database is configured"""
    skip_db = pytest.mark.skip(reason="ORDER_TEST_DATABASE_URL not set")

    for item in items:
        if "requires_db" in item.keywords and not os.getenv("ORDER_TEST_DATABASE_URL"):
            item.add_marker(skip_db)

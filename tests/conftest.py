"""Pytest configuration and shared fixtures for all tests."""

from unittest.mock import Mock

import pytest
import requests

from sbom_generator._resolution import clear_all_caches


@pytest.fixture(autouse=True)
def clear_resolver_caches():
    """Clear every resolver cache so registry responses never leak between tests."""
    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def mock_session():
    """Create a mock requests session."""
    return Mock(spec=requests.Session)

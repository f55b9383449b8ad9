"""
Shared test fixtures for fmtscan tests.

Tests that register types use the ``registry`` fixture, an isolated copy of
the built-in registry, so registrations never leak into the process-wide
registry or into other tests.
"""

from __future__ import annotations

import pytest

from fmtscan.registry import TypeRegistry, get_default_registry


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def registry() -> TypeRegistry:
    """A private registry holding only the built-in types."""
    return get_default_registry().copy()


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------
def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (end-to-end flows across modules)",
    )

"""Pytest configuration for the bddmcp test suite."""

from __future__ import annotations

import pytest

from bddmcp.container import reset_container


@pytest.fixture(autouse=True)
def _fresh_container():
    """Every test starts and ends without a shared service container."""
    reset_container()
    yield
    reset_container()

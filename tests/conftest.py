"""Pytest configuration and shared fixtures for klaw-state tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from klaw_state import AsyncValue, OperationTracker, clear_log_hooks, reset_config

from tests.strategies import Op


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return 'asyncio'


@pytest.fixture(autouse=True)
def clean_state_config() -> Generator[None]:
    """Restore default configuration and log hooks around each test."""
    reset_config()
    clear_log_hooks()
    yield
    reset_config()
    clear_log_hooks()


@pytest.fixture
def tracker() -> OperationTracker[Op]:
    """Fresh tracker keyed by Op."""
    return OperationTracker[Op]()


@pytest.fixture
def empty_value() -> AsyncValue[int]:
    """Idle container."""
    return AsyncValue[int]()

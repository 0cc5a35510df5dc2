"""Shared test fixtures for the notionbuf test suite."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from builders import make_store

from notionbuf.config import NotionbufConfig


@pytest.fixture
def config() -> NotionbufConfig:
    """Default test configuration with a dummy token."""
    return NotionbufConfig(token="test_token_1234")


@pytest.fixture
def store() -> MagicMock:
    return make_store()

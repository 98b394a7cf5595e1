"""Pytest configuration — adds src/ to sys.path and provides shared fixtures."""

import os
import sys
from unittest.mock import MagicMock

import pytest

# Add src/ to Python path so tests can import from graph_drive
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from graph_drive.graph.client import GraphResponse  # noqa: E402
from graph_drive.graph.context import GraphContext  # noqa: E402


@pytest.fixture
def mock_client() -> MagicMock:
    """A GraphClient stand-in whose request() answers 200 with an empty body."""
    client = MagicMock()
    client.request.return_value = GraphResponse(200, {})
    return client


@pytest.fixture
def context(mock_client: MagicMock) -> GraphContext:
    """An organizational-account context for testuser@contoso.onmicrosoft.com."""
    return GraphContext(client=mock_client, drive_user="testuser@contoso.onmicrosoft.com")

"""Integration tests for Microsoft Graph API connectivity.

These tests require real Azure credentials and are skipped in CI/CD unless
the GD_CLIENT_ID environment variable is set.
"""

import os

import pytest

pytestmark = pytest.mark.skipif(
    not os.getenv("GD_CLIENT_ID"),
    reason="Real Graph credentials not available",
)


def test_list_root_real() -> None:
    """Connect to the real Graph API and list the default drive root.

    Asserts that list_children() returns a list (possibly empty) without
    raising an exception.
    """
    from graph_drive.config import load_config
    from graph_drive.orchestration.drives import drive_operations_from_config

    operations = drive_operations_from_config(load_config())
    results = operations.list_children()

    assert isinstance(results, list)


def test_default_drive_real() -> None:
    """The configured user's default drive can be dereferenced."""
    from graph_drive.config import load_config
    from graph_drive.orchestration.drives import drive_operations_from_config

    drive = drive_operations_from_config(load_config()).get_drive()

    assert drive is not None
    assert drive.drive_id

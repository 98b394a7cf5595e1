"""Smoke tests — validate the function app works end-to-end."""

import json
from unittest.mock import MagicMock, patch

import azure.functions as func

from graph_drive.graph.models import DriveItem


def _request(params: dict[str, str]) -> MagicMock:
    req = MagicMock(spec=func.HttpRequest)
    req.params = params
    return req


def test_health_check_returns_status() -> None:
    """Health endpoint returns ok status with version from the package."""
    from graph_drive.functions.http_trigger import health_check

    response = health_check(MagicMock(spec=func.HttpRequest))

    assert response.status_code == 200
    body = json.loads(response.get_body())
    assert body["status"] == "ok"
    assert body["version"] == "0.1.0"


def test_list_items_returns_children() -> None:
    """Items endpoint passes query parameters through and serialises the children."""
    from graph_drive.functions.http_trigger import list_items

    mock_operations = MagicMock()
    mock_operations.list_children.return_value = [
        DriveItem(
            id="01",
            item_id="01",
            drive_id="b!d",
            name="Project-X",
            parent_path="/drive/root:/Documents",
            is_folder=True,
        ),
    ]

    with (
        patch("graph_drive.functions.http_trigger.load_config"),
        patch(
            "graph_drive.functions.http_trigger.drive_operations_from_config",
            return_value=mock_operations,
        ),
    ):
        response = list_items(_request({"path": "Documents", "foldersOnly": "true"}))

    assert response.status_code == 200
    body = json.loads(response.get_body())
    assert body["count"] == 1
    assert body["items"][0] == {
        "id": "01",
        "driveId": "b!d",
        "name": "Project-X",
        "path": "/Documents/Project-X",
        "isFolder": True,
        "size": 0,
    }
    args, kwargs = mock_operations.list_children.call_args
    assert args[0] == "Documents"
    assert args[1] is None
    assert kwargs["only_folders"] is True


def test_list_items_reports_failure() -> None:
    """Items endpoint answers 500 when the listing raises."""
    from graph_drive.functions.http_trigger import list_items

    with patch(
        "graph_drive.functions.http_trigger.load_config", side_effect=KeyError("GD_CLIENT_ID")
    ):
        response = list_items(_request({}))

    assert response.status_code == 500
    assert json.loads(response.get_body())["status"] == "error"

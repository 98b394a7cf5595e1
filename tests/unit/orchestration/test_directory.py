"""Unit tests for orchestration/directory.py — users and groups."""

import logging
from unittest.mock import MagicMock

import pytest

from graph_drive.graph.client import GraphResponse
from graph_drive.graph.context import GraphContext
from graph_drive.graph.errors import TransportError
from graph_drive.graph.models import Group, User
from graph_drive.graph.query import QueryOptions
from graph_drive.orchestration.directory import DirectoryOperations

USER = "users/testuser@contoso.onmicrosoft.com"


def _collection(*entries: dict) -> GraphResponse:
    return GraphResponse(200, {"@odata.context": "ctx", "value": list(entries)})


def _calls(client: MagicMock) -> list[tuple[str, str]]:
    return [(c.args[0], c.args[1]) for c in client.request.call_args_list]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class TestUsers:
    def test_get_default_user(self, context: GraphContext, mock_client: MagicMock) -> None:
        mock_client.request.return_value = GraphResponse(
            200, {"id": "u1", "displayName": "Test User", "userPrincipalName": "testuser@x"}
        )

        user = DirectoryOperations(context).get_user()

        assert isinstance(user, User)
        assert user.user_id == "u1"
        assert user.properties["userId"] == "u1"
        assert _calls(mock_client) == [("GET", USER)]

    def test_get_user_with_selection_keeps_identity_fields(
        self, context: GraphContext, mock_client: MagicMock
    ) -> None:
        mock_client.request.return_value = GraphResponse(200, {"id": "u2", "mail": "a@x"})
        DirectoryOperations(context).get_user("u2", select=["mail"])
        assert _calls(mock_client) == [("GET", "users/u2?$select=id,displayName,mail")]

    def test_list_users_sorted_by_display_name(
        self, context: GraphContext, mock_client: MagicMock
    ) -> None:
        mock_client.request.return_value = _collection(
            {"id": "2", "displayName": "zoe"},
            {"id": "1", "displayName": "Adele"},
            {"id": "3", "displayName": "Mark"},
        )

        users = DirectoryOperations(context).list_users()

        assert [u.display_name for u in users] == ["Adele", "Mark", "zoe"]

    def test_include_filters_on_display_name(
        self, context: GraphContext, mock_client: MagicMock
    ) -> None:
        mock_client.request.return_value = _collection({"id": "1", "displayName": "Adele"})
        DirectoryOperations(context).list_users(QueryOptions(include="Ad*"))
        assert _calls(mock_client) == [("GET", "users?$filter=startswith(displayName,'Ad')")]

    def test_search_is_rejected_without_request(
        self, context: GraphContext, mock_client: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            users = DirectoryOperations(context).list_users(QueryOptions(search="adele"))
        assert users == []
        mock_client.request.assert_not_called()
        assert "include and filter only" in caplog.text

    def test_member_of(self, context: GraphContext, mock_client: MagicMock) -> None:
        mock_client.request.return_value = _collection(
            {"id": "g2", "displayName": "Sales"}, {"id": "g1", "displayName": "Finance"}
        )

        groups = DirectoryOperations(context).list_member_of()

        assert [g.group_id for g in groups] == ["g1", "g2"]
        assert _calls(mock_client) == [("GET", f"{USER}/memberOf/microsoft.graph.group")]

    def test_transport_error_propagates(
        self, context: GraphContext, mock_client: MagicMock
    ) -> None:
        mock_client.request.side_effect = TransportError(500, "boom")
        with pytest.raises(TransportError):
            DirectoryOperations(context).list_users()


# ---------------------------------------------------------------------------
# Capability gate
# ---------------------------------------------------------------------------


class TestPersonalAccount:
    @pytest.fixture
    def personal(self, mock_client: MagicMock) -> GraphContext:
        return GraphContext(client=mock_client, drive_user="me", account_type="personal")

    def test_user_lookup_refused(
        self, personal: GraphContext, mock_client: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            assert DirectoryOperations(personal).get_user() is None
        assert "directory" in caplog.text
        mock_client.request.assert_not_called()

    def test_group_listing_refused(self, personal: GraphContext, mock_client: MagicMock) -> None:
        assert DirectoryOperations(personal).list_groups() == []
        mock_client.request.assert_not_called()

    def test_group_removal_refused(self, personal: GraphContext, mock_client: MagicMock) -> None:
        assert DirectoryOperations(personal).remove_group("g1") is False
        mock_client.request.assert_not_called()


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


class TestGroups:
    def test_get_group_by_object(self, context: GraphContext, mock_client: MagicMock) -> None:
        mock_client.request.return_value = GraphResponse(200, {"id": "g1", "displayName": "Ops"})
        group = DirectoryOperations(context).get_group(Group(id="g1"))
        assert group is not None
        assert group.display_name == "Ops"
        assert _calls(mock_client) == [("GET", "groups/g1")]

    def test_list_groups_with_suffix_include(
        self, context: GraphContext, mock_client: MagicMock
    ) -> None:
        mock_client.request.return_value = _collection({"id": "g1", "displayName": "EU-team"})
        DirectoryOperations(context).list_groups(QueryOptions(include="*team"))
        assert _calls(mock_client) == [("GET", "groups?$filter=endswith(displayName,'team')")]

    def test_new_unified_group(self, context: GraphContext, mock_client: MagicMock) -> None:
        mock_client.request.return_value = GraphResponse(
            201, {"id": "g9", "displayName": "Project X"}
        )

        group = DirectoryOperations(context).new_group("Project X", "projectx", "Team for X")

        assert group is not None
        assert group.group_id == "g9"
        body = mock_client.request.call_args.kwargs["json_body"]
        assert body == {
            "displayName": "Project X",
            "mailNickname": "projectx",
            "mailEnabled": True,
            "securityEnabled": False,
            "groupTypes": ["Unified"],
            "description": "Team for X",
        }

    def test_new_security_group(self, context: GraphContext, mock_client: MagicMock) -> None:
        mock_client.request.return_value = GraphResponse(201, {"id": "g8"})

        DirectoryOperations(context).new_group("Admins", "admins", unified=False)

        body = mock_client.request.call_args.kwargs["json_body"]
        assert body["mailEnabled"] is False
        assert body["securityEnabled"] is True
        assert body["groupTypes"] == []
        assert "description" not in body

    def test_update_group_returns_stored_state(
        self, context: GraphContext, mock_client: MagicMock
    ) -> None:
        mock_client.request.side_effect = [
            GraphResponse(204, None),
            GraphResponse(200, {"id": "g1", "displayName": "Renamed"}),
        ]

        group = DirectoryOperations(context).update_group("g1", {"displayName": "Renamed"})

        assert group is not None
        assert group.display_name == "Renamed"
        assert _calls(mock_client) == [("PATCH", "groups/g1"), ("GET", "groups/g1")]

    def test_remove_group(self, context: GraphContext, mock_client: MagicMock) -> None:
        mock_client.request.return_value = GraphResponse(204, None)
        assert DirectoryOperations(context).remove_group("g1") is True
        assert _calls(mock_client) == [("DELETE", "groups/g1")]

    def test_invalid_group_reference(self, context: GraphContext, mock_client: MagicMock) -> None:
        assert DirectoryOperations(context).get_group("a/b") is None
        mock_client.request.assert_not_called()

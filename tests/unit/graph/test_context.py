"""Unit tests for graph/context.py — capabilities and the drive name cache."""

import threading
from unittest.mock import MagicMock, patch

from graph_drive.config import AppConfig
from graph_drive.graph.context import (
    CAPABILITY_DIRECTORY,
    CAPABILITY_GROUP_DRIVES,
    CAPABILITY_SHARED_WITH_ME,
    DriveNameCache,
    GraphContext,
    graph_context_from_config,
)


class TestDriveNameCache:
    def test_remember_and_lookup(self) -> None:
        cache = DriveNameCache()
        cache.remember("b!1", "OneDrive")
        assert cache.name_for("b!1") == "OneDrive"
        assert "b!1" in cache
        assert len(cache) == 1

    def test_last_writer_wins(self) -> None:
        cache = DriveNameCache()
        cache.remember("b!1", "Old")
        cache.remember("b!1", "New")
        assert cache.name_for("b!1") == "New"

    def test_empty_id_ignored(self) -> None:
        cache = DriveNameCache()
        cache.remember("", "Nameless")
        assert len(cache) == 0

    def test_unknown_id(self) -> None:
        assert DriveNameCache().name_for("nope") is None

    def test_route_maps_to_drive_id(self) -> None:
        cache = DriveNameCache()
        cache.remember_route("users/x/drive", "b!x")
        assert cache.drive_for("users/x/drive") == "b!x"
        assert cache.drive_for("users/y/drive") is None

    def test_incomplete_route_ignored(self) -> None:
        cache = DriveNameCache()
        cache.remember_route("users/x/drive", "")
        cache.remember_route("", "b!x")
        assert cache.drive_for("users/x/drive") is None
        assert cache.drive_for("") is None

    def test_parallel_writes_are_all_kept(self) -> None:
        cache = DriveNameCache()
        threads = [
            threading.Thread(target=cache.remember, args=(f"b!{i}", f"Drive {i}"))
            for i in range(50)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(cache) == 50


class TestGraphContext:
    def test_default_drive_route_uses_drive_user(self) -> None:
        context = GraphContext(client=MagicMock(), drive_user="alice@contoso.com")
        assert context.user_route == "users/alice@contoso.com"
        assert context.default_drive_path == "users/alice@contoso.com/drive"

    def test_organizational_capabilities(self) -> None:
        context = GraphContext(client=MagicMock(), drive_user="u")
        assert context.has_capability(CAPABILITY_DIRECTORY)
        assert context.has_capability(CAPABILITY_GROUP_DRIVES)
        assert context.has_capability(CAPABILITY_SHARED_WITH_ME)

    def test_personal_capabilities(self) -> None:
        context = GraphContext(client=MagicMock(), drive_user="u", account_type="personal")
        assert not context.has_capability(CAPABILITY_DIRECTORY)
        assert not context.has_capability(CAPABILITY_GROUP_DRIVES)
        assert context.has_capability(CAPABILITY_SHARED_WITH_ME)

    def test_each_context_owns_its_cache(self) -> None:
        first = GraphContext(client=MagicMock(), drive_user="u")
        second = GraphContext(client=MagicMock(), drive_user="u")
        first.drive_names.remember("b!1", "x")
        assert "b!1" not in second.drive_names

    def test_from_config(self) -> None:
        config = AppConfig(
            client_id="cid",
            client_secret="cs",
            tenant_id="tid",
            drive_user="bob@contoso.com",
            account_type="personal",
            page_size=100,
        )
        with patch("graph_drive.graph.context.graph_client_from_config") as mock_factory:
            context = graph_context_from_config(config)

        mock_factory.assert_called_once_with(config)
        assert context.client is mock_factory.return_value
        assert context.drive_user == "bob@contoso.com"
        assert context.account_type == "personal"
        assert context.page_size == 100

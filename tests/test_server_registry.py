"""Tests for the server registry, settings and log masking."""

from __future__ import annotations

import json

import pytest

from panelsync.config import Settings
from panelsync.exceptions import ServerNotFoundError
from panelsync.models.server import ServerRecord
from panelsync.services import server_registry
from panelsync.utils.logging import mask_secrets


@pytest.fixture(autouse=True)
def _isolated_registry():
    saved = dict(server_registry._servers)
    server_registry._servers.clear()
    yield
    server_registry._servers.clear()
    server_registry._servers.update(saved)


class TestLoadFromSettings:
    def test_default_server_from_env_style_settings(self):
        cfg = Settings(
            directadmin_host="panel.example.net",
            directadmin_password="pw",
            directadmin_port=2223,
        )
        assert server_registry.load_from_settings(cfg) == 1
        cred = server_registry.get_server("default")
        assert cred.base_url == "https://panel.example.net:2223"
        assert cred.username == "admin"

    def test_no_host_no_default(self):
        assert server_registry.load_from_settings(Settings(directadmin_host="")) == 0

    def test_json_records(self):
        records = [
            {"id": "eu1", "host": "eu1.example.net", "username": "reseller", "password": "a"},
            {"id": "us1", "host": "us1.example.net", "username": "reseller", "password": "b",
             "use_ssl": False, "port": 2222},
        ]
        cfg = Settings(directadmin_host="", panelsync_servers_json=json.dumps(records))
        assert server_registry.load_from_settings(cfg) == 2
        assert server_registry.get_server("us1").base_url == "http://us1.example.net:2222"

    def test_invalid_json_is_ignored(self):
        cfg = Settings(directadmin_host="", panelsync_servers_json="[{oops")
        assert server_registry.load_from_settings(cfg) == 0


class TestRegistry:
    def test_unknown_server(self):
        with pytest.raises(ServerNotFoundError) as info:
            server_registry.get_server("missing")
        assert info.value.message == "Server not found"

    def test_register_list_remove(self):
        server_registry.register_server(
            ServerRecord(id="a", host="h", username="u", password="p"),
        )
        summaries = server_registry.list_servers()
        assert [s.id for s in summaries] == ["a"]
        assert summaries[0].name == "a"
        assert "password" not in summaries[0].model_dump()
        assert server_registry.remove_server("a")
        assert not server_registry.remove_server("a")

    def test_password_not_in_repr(self):
        record = ServerRecord(id="a", host="h", username="u", password="s3cr3t")
        assert "s3cr3t" not in repr(record)
        assert "s3cr3t" not in repr(record.to_credential())


class TestMaskSecrets:
    def test_masks_password_fields(self):
        masked = mask_secrets({"user": "bob", "passwd": "x", "passwd2": "x", "quota": 0})
        assert masked == {"user": "bob", "passwd": "***", "passwd2": "***", "quota": 0}

    def test_empty(self):
        assert mask_secrets(None) == {}

"""Tests for NexusConfig and NexusClient."""

import json
from pathlib import Path

import httpx
import pytest

from nexus_server.client import NexusClient
from nexus_server.config import NexusConfig
from nexus_server.errors import NexusClientError

BASE = "http://localhost:8080"


# ---------------------------------------------------------------------------
# NexusConfig
# ---------------------------------------------------------------------------


class TestNexusConfig:
    def test_default_config(self):
        cfg = NexusConfig()
        assert cfg.library_root == Path(".")
        assert cfg.root_namespace is None
        assert cfg.descriptor_name == "nexus.json"
        assert cfg.wrap_result is True
        assert cfg.server_url == BASE
        assert cfg.timeout == 30

    def test_env_var_loading(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NEXUS_LIBRARY_ROOT", str(tmp_path))
        monkeypatch.setenv("NEXUS_ROOT_NAMESPACE", "libreria-b")
        monkeypatch.setenv("NEXUS_WRAP_RESULT", "false")
        cfg = NexusConfig()
        assert cfg.library_root == tmp_path
        assert cfg.namespace == "libreria-b"
        assert cfg.wrap_result is False

    def test_namespace_falls_back_to_directory_name(self, tmp_path):
        root = tmp_path / "libreria-a"
        root.mkdir()
        assert NexusConfig(library_root=root).namespace == "libreria-a"

    def test_resolve_catalog_path_prefers_explicit(self, tmp_path):
        cfg = NexusConfig(catalog_path=tmp_path / "catalog.json")
        assert cfg.resolve_catalog_path(tmp_path / "other.json") == tmp_path / "other.json"

    def test_resolve_catalog_path_falls_back_to_global(self, tmp_path):
        cfg = NexusConfig(
            catalog_path=tmp_path / "catalog.json",
            global_catalog_dir=tmp_path / ".nexus",
        )
        assert cfg.resolve_catalog_path() == tmp_path / "catalog.json"

        cfg.global_catalog_dir.mkdir()
        cfg.global_catalog_path.write_text('{"services": []}')
        assert cfg.resolve_catalog_path() == cfg.global_catalog_path

        cfg.catalog_path.write_text('{"services": []}')
        assert cfg.resolve_catalog_path() == tmp_path / "catalog.json"


# ---------------------------------------------------------------------------
# NexusClient
# ---------------------------------------------------------------------------


class TestNexusClient:
    async def test_call_success(self, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE}/libreria-a.transfers.national.GetUserBalance",
            method="POST",
            json={"result": 1500.0},
        )
        async with NexusClient() as client:
            result = await client.call(
                "libreria-a.transfers.national",
                "GetUserBalance",
                {"user_id": "user_001", "account_id": "acc_999"},
            )
        assert result == 1500.0

        request = httpx_mock.get_request()
        assert json.loads(request.content) == {
            "params": {"user_id": "user_001", "account_id": "acc_999"}
        }

    async def test_call_without_params_sends_empty_object(self, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE}/libreria-a.system.GetSystemStatus", json={"result": "OK"}
        )
        async with NexusClient() as client:
            await client.call("libreria-a.system", "GetSystemStatus")
        assert json.loads(httpx_mock.get_request().content) == {"params": {}}

    async def test_unwrapped_result(self, httpx_mock):
        httpx_mock.add_response(url=f"{BASE}/lib.Op", json={"a": 1})
        async with NexusClient(NexusConfig(wrap_result=False)) as client:
            assert await client.call("lib", "Op", {}) == {"a": 1}

    async def test_server_error_raises(self, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE}/libreria-a.system.GetSystemStatus",
            status_code=500,
            json={"error": "invalid admin code"},
        )
        async with NexusClient() as client:
            with pytest.raises(NexusClientError, match="invalid admin code") as exc_info:
                await client.call("libreria-a.system", "GetSystemStatus", {"code": "x"})
        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "server error: 500 - invalid admin code"

    async def test_non_json_error_body(self, httpx_mock):
        httpx_mock.add_response(url=f"{BASE}/lib.Op", status_code=502, text="Bad Gateway")
        async with NexusClient() as client:
            with pytest.raises(NexusClientError, match="502 - Bad Gateway"):
                await client.call("lib", "Op")

    async def test_request_network_error(self, httpx_mock):
        httpx_mock.add_exception(
            httpx.ConnectError("Connection refused"), url=f"{BASE}/lib.Op"
        )
        async with NexusClient() as client:
            with pytest.raises(NexusClientError, match="Request failed"):
                await client.call("lib", "Op")

    async def test_get_catalog(self, httpx_mock, crawl_result):
        httpx_mock.add_response(
            url=f"{BASE}/catalog", json=crawl_result.catalog.model_dump()
        )
        async with NexusClient() as client:
            catalog = await client.get_catalog()
        assert catalog == crawl_result.catalog

    async def test_close_is_idempotent(self):
        client = NexusClient()
        await client.close()
        assert client.client is None

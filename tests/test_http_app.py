"""Tests for the FastAPI transport, driven in-process through ASGITransport."""

import httpx
import pytest

from nexus_server.client import NexusClient
from nexus_server.config import NexusConfig
from nexus_server.errors import NexusClientError
from nexus_server.http_app import build_app, create_app


@pytest.fixture
def app(crawl_result, handlers):
    return create_app(crawl_result.catalog, handlers)


@pytest.fixture
async def http(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://nexus") as client:
        yield client


class TestDispatchRoute:
    async def test_success(self, http):
        response = await http.post(
            "/libreria-a.system.GetSystemStatus", json={"params": {"code": "ADMIN123"}}
        )
        assert response.status_code == 200
        assert response.json() == {"result": "OK"}

    async def test_reported_failure(self, http):
        response = await http.post(
            "/libreria-a.system.GetSystemStatus", json={"params": {"code": "guest"}}
        )
        assert response.status_code == 500
        assert response.json() == {"error": "invalid admin code"}

    async def test_missing_param(self, http):
        response = await http.post(
            "/libreria-a.transfers.national.GetUserBalance",
            json={"params": {"user_id": "user_001"}},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "param account_id not found in request params"}

    async def test_unknown_operation(self, http):
        response = await http.post("/libreria-a.system.Nope", json={"params": {}})
        assert response.status_code == 404
        assert response.json() == {"error": "Unknown operation: libreria-a.system.Nope"}

    async def test_malformed_json(self, http):
        response = await http.post(
            "/libreria-a.system.GetSystemStatus",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body"}

    async def test_envelope_of_wrong_shape(self, http):
        response = await http.post("/libreria-a.system.GetSystemStatus", json=[1, 2])
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request body")

    async def test_async_operation(self, http):
        response = await http.post(
            "/libreria-a.transfers.international.InternationalTransfer",
            json={
                "params": {
                    "SourceAccount": "acc_1",
                    "iban": "DE89",
                    "amount": 99.5,
                    "currency": "USD",
                }
            },
        )
        assert response.json() == {"result": "WIRE-acc_1-DE89-99.50-USD"}


class TestCatalogRoute:
    async def test_get_catalog(self, http, crawl_result):
        response = await http.get("/catalog")
        assert response.status_code == 200
        assert len(response.json()["services"]) == crawl_result.catalog.operation_count


class TestSdkRoundTrip:
    @pytest.fixture
    async def sdk(self, app):
        client = NexusClient(
            NexusConfig(server_url="http://nexus"),
            transport=httpx.ASGITransport(app=app),
        )
        async with client:
            yield client

    async def test_call(self, sdk):
        result = await sdk.call(
            "libreria-a.transfers.national",
            "Transfer",
            {"source_account": "acc_999", "dest_account": "acc_888", "amount": 50, "currency": "GTQ"},
        )
        assert result == "TX-acc_999-acc_888-50.00-GTQ"

    async def test_failure_surfaces_as_client_error(self, sdk):
        with pytest.raises(NexusClientError) as exc_info:
            await sdk.call(
                "libreria-a.transfers.national",
                "Transfer",
                {"source_account": "a", "dest_account": "b", "amount": 0, "currency": "GTQ"},
            )
        assert exc_info.value.status_code == 500
        assert "amount must be positive" in str(exc_info.value)

    async def test_get_catalog(self, sdk, crawl_result):
        assert await sdk.get_catalog() == crawl_result.catalog


class TestBuildApp:
    async def test_build_app_crawls_library(self, library_root):
        app = build_app(NexusConfig(library_root=library_root, root_namespace="lib"))
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://nexus") as http:
            response = await http.post(
                "/lib.transfers.TransferFee", json={"params": {"currency": "GTQ"}}
            )
        assert response.json() == {"result": 2.5}


class TestLibraryEdgeCases:
    @pytest.fixture
    async def lib_http(self, make_tree):
        root = make_tree(
            {
                "nexus.json": {"isDomain": True},
                "helpers.py": "RATE = 2\n",
                "ops.py": (
                    "from helpers import RATE\n\n"
                    "def Scale(x: int) -> int:\n    return x * RATE\n\n"
                    "def Ratio(a: float, b: float) -> float:\n    return float('nan')\n"
                ),
            }
        )
        app = build_app(NexusConfig(library_root=root, root_namespace="lib"))
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://nexus") as http:
            yield http

    async def test_operation_importing_sibling_module(self, lib_http):
        response = await lib_http.post("/lib.Scale", json={"params": {"x": 3}})
        assert response.status_code == 200
        assert response.json() == {"result": 6}

    async def test_non_finite_result_uses_error_envelope(self, lib_http):
        response = await lib_http.post("/lib.Ratio", json={"params": {"a": 1, "b": 0}})
        assert response.status_code == 500
        assert response.json()["error"].startswith("Result is not JSON encodable")

"""Tests for discovery.registry."""

import pytest
from mcp.types import Tool

from nexus_server.discovery.registry import OperationRegistry, RegistryConfig


class TestOperationRegistry:
    def test_load_all(self, handlers):
        reg = OperationRegistry()
        count = reg.load(handlers)
        assert count == 6
        assert reg.operation_count == 6
        assert reg.operation_ids == list(handlers)

    def test_get(self, handlers):
        reg = OperationRegistry()
        reg.load(handlers)
        handler = reg.get("libreria-a.system.GetSystemStatus")
        assert handler is handlers["libreria-a.system.GetSystemStatus"]
        assert reg.get("libreria-a.system.Nope") is None

    def test_max_tools_cap(self, handlers):
        reg = OperationRegistry(RegistryConfig(max_tools=2))
        assert reg.load(handlers) == 2
        assert reg.operation_count == 2

    def test_reload_replaces(self, handlers):
        reg = OperationRegistry()
        reg.load(handlers)
        reg.load({})
        assert reg.operation_count == 0

    def test_get_namespaces(self, handlers):
        reg = OperationRegistry()
        reg.load(handlers)
        assert reg.get_namespaces() == {
            "libreria-a.system": 1,
            "libreria-a.transfers": 1,
            "libreria-a.transfers.international": 2,
            "libreria-a.transfers.national": 2,
        }

    def test_include_namespaces_filter(self, handlers):
        reg = OperationRegistry(
            RegistryConfig(include_namespaces=["libreria-a.transfers"])
        )
        reg.load(handlers)
        assert reg.operation_count == 5
        assert all(
            ns.startswith("libreria-a.transfers") for ns in reg.get_namespaces()
        )

    def test_namespace_prefix_is_segment_aware(self, handlers):
        reg = OperationRegistry(RegistryConfig(include_namespaces=["libreria-a.trans"]))
        reg.load(handlers)
        assert reg.operation_count == 0

    def test_exclude_namespaces_filter(self, handlers):
        reg = OperationRegistry(
            RegistryConfig(exclude_namespaces=["libreria-a.transfers.international"])
        )
        reg.load(handlers)
        assert "libreria-a.transfers.international" not in reg.get_namespaces()
        assert reg.operation_count == 4


class TestMcpConversion:
    @pytest.fixture
    def tools(self, handlers):
        reg = OperationRegistry()
        reg.load(handlers)
        return {t.name: t for t in reg.get_mcp_tools()}

    def test_get_mcp_tools(self, tools):
        assert len(tools) == 6
        for t in tools.values():
            assert isinstance(t, Tool)
            assert t.description
            assert t.inputSchema["type"] == "object"

    def test_input_schema(self, tools):
        schema = tools["libreria-a.transfers.national.Transfer"].inputSchema
        assert list(schema["properties"]) == [
            "source_account",
            "dest_account",
            "amount",
            "currency",
        ]
        assert schema["properties"]["amount"] == {"description": "float", "type": "number"}
        assert schema["required"] == [
            "source_account",
            "dest_account",
            "amount",
            "currency",
        ]

    def test_description_from_docstring_or_comment(self, tools):
        assert tools["libreria-a.transfers.TransferFee"].description == (
            "Flat fee charged for a transfer in the given currency."
        )

    @pytest.mark.parametrize(
        "type_text,expected",
        [
            ("int", "integer"),
            ("list[str]", "array"),
            ("typing.Dict[str, int]", "object"),
            ("Address", None),
        ],
    )
    def test_json_type(self, type_text, expected):
        assert OperationRegistry._json_type(type_text) == expected

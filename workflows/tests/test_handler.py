"""Tests for the workflow handler and its cached tool catalog."""

import json
import os
import threading

import pytest
from unittest.mock import AsyncMock

from utils.cache import CacheReloadError
from workflows.connectors import ConnectorResult, HostAutomationConnector
from workflows.definition import WorkflowDefinition
from workflows.handler import WorkflowHandler
from workflows.loader import DefinitionLoader

from .conftest import write_definition


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def handler(settings, host_connector, clock):
    return WorkflowHandler(settings=settings, connectors=[host_connector], clock=clock)


def touch(path):
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))


class TestCatalog:
    @pytest.mark.asyncio
    async def test_list_tools(self, handler):
        tools = await handler.list_tools()

        assert [t.name for t in tools] == ["workflow_bind_character", "workflow_shout"]
        assert tools[1].inputSchema["required"] == ["text"]

    @pytest.mark.asyncio
    async def test_definitions_scanned_off_event_loop(self, settings, definitions_dir, clock):
        threads = []

        class RecordingLoader(DefinitionLoader):
            def load(self):
                threads.append(threading.get_ident())
                return super().load()

            def signature(self):
                threads.append(threading.get_ident())
                return super().signature()

        handler = WorkflowHandler(
            settings=settings, loader=RecordingLoader(definitions_dir), clock=clock
        )
        await handler.list_tools()
        clock.advance(301)
        await handler.list_tools()

        assert len(threads) >= 3
        assert threading.get_ident() not in threads

    @pytest.mark.asyncio
    async def test_catalog_cached_between_calls(self, handler, definitions_dir):
        await handler.list_tools()
        write_definition(definitions_dir, "later.json", {"id": "later"})

        tools = await handler.list_tools()
        assert "workflow_later" not in [t.name for t in tools]

    @pytest.mark.asyncio
    async def test_change_detected_after_min_interval(self, handler, definitions_dir, clock):
        await handler.list_tools()
        write_definition(definitions_dir, "later.json", {"id": "later"})

        clock.advance(301)
        tools = await handler.list_tools()
        assert "workflow_later" in [t.name for t in tools]

    @pytest.mark.asyncio
    async def test_modified_file_detected(self, handler, definitions_dir, clock):
        await handler.list_tools()
        path = definitions_dir / "shout.yaml"
        path.write_text(path.read_text().replace("Upper-case a message", "Shout it"))
        touch(path)

        clock.advance(301)
        tools = {t.name: t for t in await handler.list_tools()}
        assert tools["workflow_shout"].description == "Shout it"

    @pytest.mark.asyncio
    async def test_unchanged_directory_is_not_rescanned(self, handler, clock):
        await handler.list_tools()
        clock.advance(301)
        await handler.list_tools()
        assert handler.get_cache_stats()["calls_since_last_load"] == 1

    @pytest.mark.asyncio
    async def test_notify_definitions_changed(self, handler, definitions_dir):
        await handler.list_tools()
        (definitions_dir / "shout.yaml").unlink()

        handler.notify_definitions_changed()
        tools = await handler.list_tools()
        assert [t.name for t in tools] == ["workflow_bind_character"]

    @pytest.mark.asyncio
    async def test_reload(self, handler, definitions_dir):
        await handler.list_tools()
        write_definition(definitions_dir, "later.json", {"id": "later"})

        tools = await handler.reload()
        assert len(tools) == 3

    @pytest.mark.asyncio
    async def test_loader_failure_propagates(self, handler, monkeypatch):
        def broken():
            raise PermissionError("denied")

        monkeypatch.setattr(handler.loader, "load", broken)
        with pytest.raises(CacheReloadError, match="denied"):
            await handler.list_tools()

        result = await handler.call_tool("workflow_shout", {"text": "hi"})
        assert result.isError
        assert "Workflow catalog unavailable" in result.text

    @pytest.mark.asyncio
    async def test_registered_workflow_survives_reload(self, handler):
        handler.register_workflow(
            WorkflowDefinition.parse({"id": "in_code", "steps": [{"id": "s", "type": "data_transform"}]})
        )

        tools = await handler.reload()
        assert "workflow_in_code" in [t.name for t in tools]
        assert await handler.has_workflow("workflow_in_code")


class TestCallTool:
    @pytest.mark.asyncio
    async def test_call_yaml_workflow_with_builtin_transform(self, handler):
        result = await handler.call_tool("workflow_shout", {"text": "hello"})

        assert not result.isError
        assert json.loads(result.content[0].text)["outputs"] == {"shouted": "HELLO"}

    @pytest.mark.asyncio
    async def test_call_end_to_end(self, handler, host_client):
        result = await handler.call_tool("workflow_bind_character", {"characterName": "Hero"})

        summary = json.loads(result.content[0].text)
        assert summary["outputs"]["bindingResult"] == {"bound": 101, "strength": 0.5}
        assert host_client.await_count == 2

    @pytest.mark.asyncio
    async def test_call_unknown(self, handler):
        result = await handler.call_tool("workflow_nope", {})
        assert result.isError
        assert result.text == "Workflow not found: nope"

    def test_is_workflow_tool(self, handler):
        assert handler.is_workflow_tool("workflow_x")
        assert not handler.is_workflow_tool("scene_list")


class TestConnectorsAndInfo:
    @pytest.mark.asyncio
    async def test_call_connector(self, handler):
        result = await handler.call_connector("host", "find_object", {"name": "Hero"})
        assert result.success
        assert result.result["id"] == 101

        missing = await handler.call_connector("model_use", "text", {"prompt": "x"})
        assert not missing.success
        assert missing.error == "Connector not found: model_use"

    @pytest.mark.asyncio
    async def test_call_connector_error_is_reported(self, handler):
        handler.register_connector(
            HostAutomationConnector(AsyncMock(side_effect=RuntimeError("offline")), name="unity")
        )
        result = await handler.call_connector("unity", "op")
        assert result == ConnectorResult.fail("offline")

    @pytest.mark.asyncio
    async def test_workflow_info(self, handler, definitions_dir):
        info = await handler.get_workflow_info()

        assert info["workflowCount"] == 2
        bind = info["workflows"][0]
        assert bind["id"] == "bind_character"
        assert bind["category"] == "character"
        assert bind["stepCount"] == 2
        assert bind["source"].endswith("bind_character.json")
        assert info["connectors"] == {
            "data_transform": {"isConnected": True},
            "host": {"isConnected": True},
        }
        assert info["definitionsDir"] == str(definitions_dir.resolve())
        assert info["cache"]["cache_id"] == "workflow_catalog"
        assert info["cache"]["has_cached_data"] is True

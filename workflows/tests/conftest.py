"""
Shared fixtures for workflow tests.
"""

import json

import pytest
from unittest.mock import AsyncMock

from config import SettingsManager
from workflows.connectors import ConnectorResult, HostAutomationConnector

BIND_CHARACTER = {
    "id": "bind_character",
    "name": "Bind Character",
    "description": "Find a character and bind it to the rig",
    "version": "1.0.0",
    "author": "tools",
    "metadata": {"category": "character", "tags": ["rig"]},
    "parameters": [
        {
            "name": "characterName",
            "type": "string",
            "description": "Name of the character object",
            "required": True,
            "validation": [{"type": "minLength", "parameters": {"value": 2}}],
        },
        {"name": "strength", "type": "float", "description": "Binding strength", "defaultValue": 0.5},
    ],
    "steps": [
        {
            "id": "find",
            "type": "rpc_call",
            "connector": "host",
            "operation": "find_object",
            "parameters": {"name": "${input.characterName}"},
        },
        {
            "id": "bind",
            "type": "rpc_call",
            "connector": "host",
            "operation": "bind_object",
            "condition": "${find.success}",
            "parameters": {"target": "${find.result.id}", "strength": "${input.strength}"},
        },
    ],
    "outputs": {
        "bindingResult": {"source": "${bind.result}", "type": "object", "description": "Binding outcome"}
    },
}

UPPERCASE_YAML = """
id: shout
description: Upper-case a message
parameters:
  - name: text
    type: string
    required: true
steps:
  - id: upper
    type: data_transform
    operation: to_upper
    parameters:
      data: ${input.text}
outputs:
  shouted:
    source: ${upper.result}
"""


def write_definition(directory, name, content):
    path = directory / name
    if isinstance(content, str):
        path.write_text(content, encoding="utf-8")
    else:
        path.write_text(json.dumps(content), encoding="utf-8")
    return path


@pytest.fixture
def definitions_dir(tmp_path):
    """Directory holding one JSON and one YAML definition."""
    directory = tmp_path / "workflow_definitions"
    directory.mkdir()
    write_definition(directory, "bind_character.json", BIND_CHARACTER)
    write_definition(directory, "shout.yaml", UPPERCASE_YAML)
    return directory


@pytest.fixture
def settings(tmp_path, definitions_dir):
    """Settings pointing at the test definitions directory."""
    manager = SettingsManager(base_dir=tmp_path)
    manager.update_configuration({"workflow_definitions_dir": str(definitions_dir)})
    return manager


@pytest.fixture
def host_client():
    """Host client that finds any object and binds it."""

    async def client(operation, parameters):
        if operation == "find_object":
            if parameters.get("name") == "Missing":
                return ConnectorResult.fail(f"Object not found: {parameters['name']}")
            return {"id": 101, "name": parameters.get("name")}
        if operation == "bind_object":
            return {"bound": parameters["target"], "strength": parameters.get("strength")}
        raise ValueError(f"Unknown operation: {operation}")

    return AsyncMock(side_effect=client)


@pytest.fixture
def host_connector(host_client):
    return HostAutomationConnector(host_client)

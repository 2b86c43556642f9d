"""Tests for workflow definition parsing and validation."""

import json

import pytest

from workflows.definition import RetryPolicy, WorkflowDefinition
from workflows.errors import DefinitionError


def make_definition(**overrides):
    data = {
        "id": "bind_character",
        "name": "Bind Character",
        "description": "Find a character and bind it",
        "version": "1.2.0",
        "author": "tools team",
        "metadata": {
            "category": "character",
            "tags": ["setup"],
            "runtimeRequirements": ["editor"],
            "pluginDependencies": ["core"],
        },
        "parameters": [
            {"name": "characterName", "type": "string", "required": True},
            {
                "name": "retries",
                "type": "int",
                "defaultValue": 2,
                "validation": [{"type": "min", "parameters": {"value": 0}}],
            },
        ],
        "steps": [
            {
                "id": "find",
                "type": "rpc_call",
                "connector": "host",
                "operation": "find_object",
                "parameters": {"name": "${input.characterName}"},
                "timeoutSeconds": 10,
                "retryPolicy": {"maxAttempts": 3, "delaySeconds": 2, "backoffStrategy": "exponential"},
            },
            {
                "id": "bind",
                "type": "rpc_call",
                "connector": "host",
                "operation": "bind",
                "condition": "${find.success}",
                "parameters": {"target": "${find.result.id}"},
            },
        ],
        "outputs": {
            "bindingResult": {"source": "${bind.result}", "type": "object", "description": "result"}
        },
    }
    data.update(overrides)
    return data


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 1
        assert policy.backoff_strategy == "linear"

    def test_fixed(self):
        policy = RetryPolicy(max_attempts=4, delay_seconds=2, backoff_strategy="fixed")
        assert [policy.delay_after(n) for n in (1, 2, 3)] == [2, 2, 2]

    def test_linear_delay_before_attempt_k(self):
        policy = RetryPolicy(max_attempts=4, delay_seconds=2, backoff_strategy="linear")
        # delay before attempt k is 2 * (k - 1)
        assert [policy.delay_after(k - 1) for k in (2, 3, 4)] == [2, 4, 6]

    def test_exponential_delay_before_attempt_k(self):
        policy = RetryPolicy(max_attempts=4, delay_seconds=2, backoff_strategy="exponential")
        # delay before attempt k is 2 * 2^(k - 2)
        assert [policy.delay_after(k - 1) for k in (2, 3, 4)] == [2, 4, 8]

    def test_zero_delay(self):
        assert RetryPolicy(delay_seconds=0, backoff_strategy="exponential").delay_after(3) == 0

    def test_step_max_attempts(self):
        workflow = WorkflowDefinition.parse(make_definition())
        assert workflow.get_step("find").max_attempts == 3
        assert workflow.get_step("bind").max_attempts == 1


class TestWorkflowDefinition:
    def test_parse_full_document(self):
        workflow = WorkflowDefinition.parse(make_definition())

        assert workflow.id == "bind_character"
        assert workflow.tool_name == "workflow_bind_character"
        assert workflow.metadata.tags == ("setup",)
        assert workflow.metadata.runtime_requirements == ("editor",)
        assert workflow.get_parameter("retries").default_value == 2
        assert workflow.get_parameter("retries").validation[0].parameters == {"value": 0}

        find = workflow.get_step("find")
        assert find.timeout_seconds == 10
        assert find.retry_policy.max_attempts == 3
        assert find.retry_policy.backoff_strategy == "exponential"
        assert workflow.get_step("bind").condition == "${find.success}"
        assert workflow.outputs["bindingResult"].source == "${bind.result}"
        assert workflow.get_step("missing") is None

    def test_snake_case_and_wrapped_root(self):
        data = {
            "workflow": {
                "id": "wrapped",
                "steps": [
                    {
                        "id": "s",
                        "connector": "host",
                        "operation": "op",
                        "timeout_seconds": 5,
                        "retry_policy": {"max_attempts": 2, "delay_seconds": 1},
                    }
                ],
            }
        }
        workflow = WorkflowDefinition.parse(data)
        assert workflow.id == "wrapped"
        assert workflow.name == "wrapped"
        assert workflow.steps[0].timeout_seconds == 5
        assert workflow.steps[0].retry_policy.max_attempts == 2

    def test_definition_is_immutable(self):
        workflow = WorkflowDefinition.parse(make_definition())
        with pytest.raises(AttributeError):
            workflow.id = "other"

    def test_to_dict_round_trip(self):
        workflow = WorkflowDefinition.parse(make_definition())
        assert WorkflowDefinition.parse(workflow.to_dict()) == workflow

    def test_missing_id(self):
        with pytest.raises(DefinitionError, match="must have an id"):
            WorkflowDefinition.parse(make_definition(id=""))

    def test_duplicate_step_ids(self):
        steps = [{"id": "a", "connector": "host"}, {"id": "a", "connector": "host"}]
        errors = WorkflowDefinition.from_dict(make_definition(steps=steps, outputs={})).validate()
        assert "Duplicate step id 'a'" in errors

    def test_forward_reference_rejected(self):
        steps = [
            {"id": "a", "parameters": {"x": "${b.result}"}},
            {"id": "b"},
        ]
        with pytest.raises(DefinitionError) as exc_info:
            WorkflowDefinition.parse(make_definition(steps=steps, outputs={}))
        assert "Step 'a' references later step 'b'" in exc_info.value.errors

    def test_unknown_reference_in_condition(self):
        steps = [{"id": "a", "condition": "${ghost.success}"}]
        errors = WorkflowDefinition.from_dict(make_definition(steps=steps, outputs={})).validate()
        assert "Step 'a' references unknown step 'ghost'" in errors

    def test_invalid_retry_policy(self):
        steps = [
            {"id": "a", "retryPolicy": {"maxAttempts": 0, "delaySeconds": -1, "backoffStrategy": "random"}},
        ]
        errors = WorkflowDefinition.from_dict(make_definition(steps=steps, outputs={})).validate()
        assert any("maxAttempts" in e for e in errors)
        assert any("delaySeconds" in e for e in errors)
        assert any("backoffStrategy" in e for e in errors)

    def test_non_positive_timeout(self):
        steps = [{"id": "a", "timeoutSeconds": 0}]
        errors = WorkflowDefinition.from_dict(make_definition(steps=steps, outputs={})).validate()
        assert "Step 'a' timeoutSeconds must be positive" in errors

    def test_wrong_shape(self):
        with pytest.raises(DefinitionError, match="steps must be a list"):
            WorkflowDefinition.from_dict({"id": "x", "steps": {"a": 1}})
        with pytest.raises(DefinitionError):
            WorkflowDefinition.from_dict(["not", "a", "mapping"])

    def test_from_json_and_yaml(self):
        text = json.dumps(make_definition())
        assert WorkflowDefinition.from_json(text).id == "bind_character"

        yaml_text = """
id: yaml_flow
steps:
  - id: upper
    type: data_transform
    parameters:
      data: ${input.text}
      transform: to_upper
outputs:
  upper:
    source: ${upper.result}
"""
        workflow = WorkflowDefinition.from_yaml(yaml_text)
        assert workflow.get_step("upper").parameters["data"] == "${input.text}"

    def test_invalid_json(self):
        with pytest.raises(DefinitionError, match="Invalid JSON"):
            WorkflowDefinition.from_json("{nope", source="bad.json")

    def test_from_file(self, tmp_path):
        path = tmp_path / "flow.json"
        path.write_text(json.dumps(make_definition()), encoding="utf-8")
        assert WorkflowDefinition.from_file(str(path)).id == "bind_character"

        with pytest.raises(FileNotFoundError):
            WorkflowDefinition.from_file(str(tmp_path / "missing.json"))

"""
Workflow Tool Adapter

Expose workflows as callable tools: build input schemas, convert and
validate invocation arguments, run the engine and format the response.
"""

import json
import logging
import math
import re
from copy import deepcopy
from decimal import Decimal
from typing import Any, Dict, List, Optional

from mcp_core.types import TextContent, Tool, ToolResult
from .definition import ParameterSpec, ValidationRule, WorkflowDefinition
from .engine import WorkflowEngine, WorkflowResult
from .errors import ParameterValidationError
from .registry import TOOL_PREFIX, WorkflowRegistry

SCHEMA_TYPES = {
    "string": "string",
    "str": "string",
    "int": "number",
    "integer": "number",
    "float": "number",
    "double": "number",
    "number": "number",
    "bool": "boolean",
    "boolean": "boolean",
    "array": "array",
    "list": "array",
    "object": "object",
    "dict": "object",
}


def normalize_type(type_name: Optional[str]) -> str:
    """Map a parameter type name to its JSON schema type; unknown names map to string."""
    return SCHEMA_TYPES.get(str(type_name or "").strip().lower(), "string")


def convert_value(value: Any) -> Any:
    """
    Convert an argument value to its canonical form.

    Numbers become int when representable without precision loss, sequences
    become lists and mappings become dicts with string keys, recursively.
    """
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return value
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, dict):
        return {str(k): convert_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [convert_value(v) for v in value]
    return str(value)


def is_type_compatible(value: Any, type_name: str) -> bool:
    """Permissive runtime type check; unknown declared types accept anything."""
    if value is None:
        return True

    type_name = str(type_name or "").strip().lower()
    if type_name in ("string", "str"):
        return isinstance(value, str)
    if type_name in ("int", "integer"):
        return isinstance(value, int) and not isinstance(value, bool)
    if type_name in ("float", "double", "number"):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if type_name in ("bool", "boolean"):
        return isinstance(value, bool)
    if type_name in ("array", "list"):
        return isinstance(value, list)
    if type_name in ("object", "dict"):
        return isinstance(value, dict)
    return True


def _rule_arg(rule: ValidationRule, *keys: str) -> Any:
    for key in keys:
        if key in rule.parameters:
            return rule.parameters[key]
    return None


class WorkflowToolAdapter:
    """
    Adapter between the tool-calling surface and the workflow engine.
    """

    def __init__(self, registry: WorkflowRegistry, engine: WorkflowEngine):
        """
        Initialize the adapter.

        Args:
            registry: Registry used to look up invoked workflows
            engine: Engine that runs them
        """
        self.logger = logging.getLogger(__name__)
        self.registry = registry
        self.engine = engine

    def create_tool(self, workflow: WorkflowDefinition) -> Tool:
        """
        Build the tool exposing a workflow.

        Args:
            workflow: Workflow definition

        Returns:
            Tool named ``workflow_<id>`` with an object input schema
        """
        properties = {}
        required = []
        for param in workflow.parameters:
            prop = {
                "type": normalize_type(param.type),
                "description": param.description,
            }
            if param.default_value is not None:
                prop["default"] = deepcopy(param.default_value)
            properties[param.name] = prop
            if param.required:
                required.append(param.name)

        return Tool(
            name=f"{TOOL_PREFIX}{workflow.id}",
            description=workflow.description or f"Execute workflow: {workflow.id}",
            inputSchema={
                "type": "object",
                "properties": properties,
                "required": required,
            },
        )

    def create_tools(self, workflows: Optional[List[WorkflowDefinition]] = None) -> List[Tool]:
        """Build tools for the given workflows (default: every registered one)."""
        if workflows is None:
            workflows = self.registry.list()
        return [self.create_tool(workflow) for workflow in workflows]

    def convert_arguments(self, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Convert an argument mapping to canonical values."""
        return {str(k): convert_value(v) for k, v in (arguments or {}).items()}

    def validate_parameters(
        self, workflow: WorkflowDefinition, parameters: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Validate converted arguments against the workflow's parameter specs.

        Args:
            workflow: Workflow definition
            parameters: Converted arguments

        Returns:
            Parameters with defaults filled in for absent optional ones

        Raises:
            ParameterValidationError: On a missing or invalid parameter
        """
        validated = dict(parameters)

        for spec in workflow.parameters:
            if spec.name not in validated:
                if spec.required:
                    raise ParameterValidationError(
                        f"Required parameter missing: {spec.name}", parameter=spec.name
                    )
                if spec.default_value is not None:
                    validated[spec.name] = deepcopy(spec.default_value)
                continue

            value = validated[spec.name]
            if not is_type_compatible(value, spec.type):
                raise ParameterValidationError(
                    f"Parameter '{spec.name}' has invalid type. Expected: {spec.type}",
                    parameter=spec.name,
                )
            if value is not None:
                self._check_rules(spec, value)

        return validated

    def _check_rules(self, spec: ParameterSpec, value: Any) -> None:
        for rule in spec.validation:
            rule_type = rule.type.strip().lower()
            error = None

            if rule_type in ("min", "max"):
                limit = _rule_arg(rule, "value", rule.type)
                if isinstance(value, bool) or not isinstance(value, (int, float)) or limit is None:
                    continue
                if rule_type == "min" and value < limit:
                    error = f"must be at least {limit}"
                elif rule_type == "max" and value > limit:
                    error = f"must be at most {limit}"

            elif rule_type in ("minlength", "maxlength"):
                limit = _rule_arg(rule, "value", "length", rule.type)
                if not isinstance(value, (str, list)) or limit is None:
                    continue
                if rule_type == "minlength" and len(value) < limit:
                    error = f"length must be at least {limit}"
                elif rule_type == "maxlength" and len(value) > limit:
                    error = f"length must be at most {limit}"

            elif rule_type == "pattern":
                pattern = _rule_arg(rule, "value", "pattern", "regex")
                if not isinstance(value, str) or not pattern:
                    continue
                if re.fullmatch(pattern, value) is None:
                    error = f"must match pattern '{pattern}'"

            elif rule_type == "enum":
                allowed = _rule_arg(rule, "values", "value", "enum")
                if allowed is None:
                    continue
                if value not in allowed:
                    error = f"must be one of {allowed}"

            if error:
                raise ParameterValidationError(
                    f"Parameter '{spec.name}' {error}", parameter=spec.name
                )

    def format_response(self, result: WorkflowResult) -> ToolResult:
        """
        Format a workflow result as a tool response.

        The first block is the JSON summary, followed by an error line when
        the run failed and a step details block when any step ran.
        """
        summary = {
            "success": result.is_success,
            "executionTime": round(result.execution_time, 6),
            "outputs": result.outputs,
            "metadata": result.metadata,
        }
        content = [
            TextContent(text=json.dumps(summary, indent=2, ensure_ascii=False, default=str))
        ]

        if not result.is_success and result.error_message:
            content.append(TextContent(text=f"Error: {result.error_message}"))

        if result.step_results:
            details = [
                {
                    "stepId": step.step_id,
                    "success": step.is_success,
                    "status": step.status.value,
                    "executionTime": round(step.duration, 6),
                    "attempts": step.attempts,
                    "error": step.error,
                }
                for step in result.step_results
            ]
            content.append(
                TextContent(
                    text="Step Details:\n"
                    + json.dumps(details, indent=2, ensure_ascii=False, default=str)
                )
            )

        return ToolResult(content=content, isError=not result.is_success)

    async def execute_workflow(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> ToolResult:
        """
        Execute a workflow as a tool call.

        Args:
            name: Workflow id or ``workflow_<id>`` tool name
            arguments: Raw invocation arguments
            session_id: Optional session identifier

        Returns:
            ToolResult; errors are reported in the result, never raised
        """
        self.logger.info(f"Executing workflow tool: {name}")

        workflow = self.registry.get(name)
        if workflow is None:
            workflow_id = name[len(TOOL_PREFIX):] if name.startswith(TOOL_PREFIX) else name
            return ToolResult.error(f"Workflow not found: {workflow_id}")

        try:
            parameters = self.validate_parameters(
                workflow, self.convert_arguments(arguments)
            )
        except ParameterValidationError as e:
            self.logger.warning(f"Invalid arguments for workflow '{workflow.id}': {e}")
            return ToolResult.error(f"Parameter validation failed: {e}")

        try:
            result = await self.engine.execute(workflow, parameters, session_id=session_id)
        except Exception as e:
            self.logger.error(f"Error executing workflow {workflow.id}: {e}", exc_info=True)
            return ToolResult.error(f"Workflow execution failed: {e}")

        return self.format_response(result)

"""
Workflow Definition

Parse, validate, and represent workflow definitions from JSON or YAML
documents. Definitions are immutable once built.
"""

import json
import yaml
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from .errors import DefinitionError
from .templates import INPUT_ROOT, extract_references

BACKOFF_STRATEGIES = ("fixed", "linear", "exponential")
DEFAULT_BACKOFF = "linear"


def _get(data: Dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    """Read a key given in camelCase (wire format) or snake_case."""
    if camel in data:
        return data[camel]
    return data.get(snake, default)


def _as_mapping(value: Any, what: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DefinitionError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _as_list(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DefinitionError(f"{what} must be a list, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class ValidationRule:
    """Validation rule attached to a parameter."""

    type: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationRule":
        """Create from dictionary."""
        data = _as_mapping(data, "validation rule")
        return cls(
            type=str(data.get("type", "")),
            parameters=deepcopy(_as_mapping(data.get("parameters"), "validation parameters")),
        )


@dataclass(frozen=True)
class ParameterSpec:
    """Workflow input parameter definition."""

    name: str
    type: str = "string"
    description: str = ""
    required: bool = False
    default_value: Any = None
    validation: Tuple[ValidationRule, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParameterSpec":
        """Create from dictionary."""
        data = _as_mapping(data, "parameter")
        return cls(
            name=str(data.get("name", "")),
            type=str(data.get("type", "string")),
            description=data.get("description", "") or "",
            required=bool(data.get("required", False)),
            default_value=deepcopy(_get(data, "defaultValue", "default_value")),
            validation=tuple(
                ValidationRule.from_dict(rule)
                for rule in _as_list(data.get("validation"), "parameter validation")
            ),
        )


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for a step."""

    max_attempts: int = 1
    delay_seconds: float = 0.0
    backoff_strategy: str = DEFAULT_BACKOFF

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetryPolicy":
        """Create from dictionary."""
        data = _as_mapping(data, "retryPolicy")
        try:
            return cls(
                max_attempts=int(_get(data, "maxAttempts", "max_attempts", 1)),
                delay_seconds=float(_get(data, "delaySeconds", "delay_seconds", 0)),
                backoff_strategy=str(
                    _get(data, "backoffStrategy", "backoff_strategy", DEFAULT_BACKOFF)
                ).lower(),
            )
        except (TypeError, ValueError) as e:
            raise DefinitionError(f"Invalid retryPolicy: {e}")

    def delay_after(self, attempt: int) -> float:
        """
        Delay to wait after a failed attempt before the next one.

        Args:
            attempt: 1-based number of the attempt that just failed

        Returns:
            Delay in seconds
        """
        if self.delay_seconds <= 0:
            return 0.0
        if self.backoff_strategy == "exponential":
            return self.delay_seconds * (2 ** (attempt - 1))
        if self.backoff_strategy == "linear":
            return self.delay_seconds * attempt
        return self.delay_seconds


@dataclass(frozen=True)
class StepSpec:
    """Workflow step definition."""

    id: str
    type: str = ""
    connector: str = ""
    operation: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)
    condition: Optional[str] = None
    timeout_seconds: Optional[float] = None
    retry_policy: Optional[RetryPolicy] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StepSpec":
        """
        Create from dictionary.

        Args:
            data: Step definition dictionary

        Returns:
            StepSpec instance
        """
        data = _as_mapping(data, "step")
        retry = _get(data, "retryPolicy", "retry_policy")
        timeout = _get(data, "timeoutSeconds", "timeout_seconds")
        try:
            timeout = float(timeout) if timeout is not None else None
        except (TypeError, ValueError):
            raise DefinitionError(f"Step '{data.get('id', '')}' has invalid timeoutSeconds")

        return cls(
            id=str(data.get("id", "")),
            type=str(data.get("type", "") or ""),
            connector=str(data.get("connector", "") or ""),
            operation=str(data.get("operation", "") or ""),
            parameters=deepcopy(_as_mapping(data.get("parameters"), "step parameters")),
            condition=data.get("condition"),
            timeout_seconds=timeout,
            retry_policy=RetryPolicy.from_dict(retry) if retry is not None else None,
        )

    @property
    def max_attempts(self) -> int:
        return self.retry_policy.max_attempts if self.retry_policy else 1


@dataclass(frozen=True)
class OutputSpec:
    """Workflow output definition."""

    name: str
    source: str
    type: str = "string"
    description: str = ""

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "OutputSpec":
        """Create from dictionary; a bare string is taken as the source."""
        if isinstance(data, str):
            return cls(name=name, source=data)
        data = _as_mapping(data, f"output '{name}'")
        return cls(
            name=name,
            source=str(data.get("source", "")),
            type=str(data.get("type", "string")),
            description=data.get("description", "") or "",
        )


@dataclass(frozen=True)
class WorkflowMetadata:
    """Categorization and requirement information."""

    category: str = ""
    tags: Tuple[str, ...] = ()
    runtime_requirements: Tuple[str, ...] = ()
    plugin_dependencies: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "WorkflowMetadata":
        """Create from dictionary."""
        data = _as_mapping(data, "metadata")
        return cls(
            category=str(data.get("category", "") or ""),
            tags=tuple(str(t) for t in _as_list(data.get("tags"), "metadata.tags")),
            runtime_requirements=tuple(
                str(r)
                for r in _as_list(
                    _get(data, "runtimeRequirements", "runtime_requirements"),
                    "metadata.runtimeRequirements",
                )
            ),
            plugin_dependencies=tuple(
                str(p)
                for p in _as_list(
                    _get(data, "pluginDependencies", "plugin_dependencies"),
                    "metadata.pluginDependencies",
                )
            ),
        )


@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Workflow definition.

    Represents a complete workflow parsed from a JSON or YAML document.
    """

    id: str
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    author: str = ""
    metadata: WorkflowMetadata = field(default_factory=WorkflowMetadata)
    parameters: Tuple[ParameterSpec, ...] = ()
    steps: Tuple[StepSpec, ...] = ()
    outputs: Dict[str, OutputSpec] = field(default_factory=dict)

    @property
    def tool_name(self) -> str:
        """Name of the callable operation exposing this workflow."""
        return f"workflow_{self.id}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowDefinition":
        """
        Create from dictionary without validating cross references.

        Args:
            data: Workflow definition dictionary

        Returns:
            WorkflowDefinition instance

        Raises:
            DefinitionError: If the document has the wrong shape
        """
        data = _as_mapping(data, "workflow definition")
        if "workflow" in data and isinstance(data["workflow"], dict) and "id" not in data:
            data = data["workflow"]

        outputs = {
            str(name): OutputSpec.from_dict(str(name), output)
            for name, output in _as_mapping(data.get("outputs"), "outputs").items()
        }

        workflow_id = str(data.get("id", "") or "")
        return cls(
            id=workflow_id,
            name=str(data.get("name", "") or workflow_id),
            description=data.get("description", "") or "",
            version=str(data.get("version", "1.0.0")),
            author=data.get("author", "") or "",
            metadata=WorkflowMetadata.from_dict(data.get("metadata")),
            parameters=tuple(
                ParameterSpec.from_dict(p)
                for p in _as_list(data.get("parameters"), "parameters")
            ),
            steps=tuple(
                StepSpec.from_dict(s) for s in _as_list(data.get("steps"), "steps")
            ),
            outputs=outputs,
        )

    @classmethod
    def parse(cls, data: Dict[str, Any], source: Optional[str] = None) -> "WorkflowDefinition":
        """
        Create from dictionary and validate.

        Raises:
            DefinitionError: If the document is malformed or invalid
        """
        try:
            workflow = cls.from_dict(data)
        except DefinitionError as e:
            if source and not e.source:
                raise DefinitionError(str(e), source=source)
            raise

        errors = workflow.validate()
        if errors:
            raise DefinitionError(
                f"Invalid workflow '{workflow.id or '?'}'", errors=errors, source=source
            )
        return workflow

    @classmethod
    def from_json(cls, json_str: str, source: Optional[str] = None) -> "WorkflowDefinition":
        """Parse and validate a JSON document."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise DefinitionError(f"Invalid JSON: {e}", source=source)
        return cls.parse(data, source=source)

    @classmethod
    def from_yaml(cls, yaml_str: str, source: Optional[str] = None) -> "WorkflowDefinition":
        """Parse and validate a YAML document."""
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise DefinitionError(f"Invalid YAML: {e}", source=source)
        return cls.parse(data, source=source)

    @classmethod
    def from_file(cls, file_path: str) -> "WorkflowDefinition":
        """
        Load workflow from a .json, .yaml or .yml file.

        Raises:
            FileNotFoundError: If file doesn't exist
            DefinitionError: If the document is invalid
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Workflow file not found: {file_path}")

        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            return cls.from_json(text, source=str(path))
        return cls.from_yaml(text, source=str(path))

    def validate(self) -> List[str]:
        """
        Validate workflow definition.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.id:
            errors.append("Workflow must have an id")

        param_names = set()
        for param in self.parameters:
            if not param.name:
                errors.append("Parameter must have a name")
            elif param.name in param_names:
                errors.append(f"Duplicate parameter '{param.name}'")
            param_names.add(param.name)

        seen_steps: List[str] = []
        for index, step in enumerate(self.steps):
            if not step.id:
                errors.append(f"Step #{index + 1} must have an id")
                continue
            if step.id == INPUT_ROOT:
                errors.append(f"Step id '{INPUT_ROOT}' is reserved")
            if step.id in seen_steps:
                errors.append(f"Duplicate step id '{step.id}'")
                continue

            for ref in extract_references([step.parameters, step.condition]):
                if ref.root != INPUT_ROOT and ref.root not in seen_steps:
                    if any(s.id == ref.root for s in self.steps):
                        errors.append(
                            f"Step '{step.id}' references later step '{ref.root}'"
                        )
                    else:
                        errors.append(
                            f"Step '{step.id}' references unknown step '{ref.root}'"
                        )

            if step.timeout_seconds is not None and step.timeout_seconds <= 0:
                errors.append(f"Step '{step.id}' timeoutSeconds must be positive")

            policy = step.retry_policy
            if policy is not None:
                if policy.max_attempts < 1:
                    errors.append(f"Step '{step.id}' maxAttempts must be at least 1")
                if policy.delay_seconds < 0:
                    errors.append(f"Step '{step.id}' delaySeconds must not be negative")
                if policy.backoff_strategy not in BACKOFF_STRATEGIES:
                    errors.append(
                        f"Step '{step.id}' has invalid backoffStrategy "
                        f"'{policy.backoff_strategy}'. "
                        f"Must be one of: {', '.join(BACKOFF_STRATEGIES)}"
                    )

            seen_steps.append(step.id)

        for name, output in self.outputs.items():
            if not output.source:
                errors.append(f"Output '{name}' must specify 'source'")
            for ref in extract_references(output.source):
                if ref.root != INPUT_ROOT and ref.root not in seen_steps:
                    errors.append(f"Output '{name}' references unknown step '{ref.root}'")

        return errors

    def get_step(self, step_id: str) -> Optional[StepSpec]:
        """Get step by ID."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def get_parameter(self, name: str) -> Optional[ParameterSpec]:
        """Get parameter spec by name."""
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary in the wire format.

        Returns:
            Dictionary representation
        """
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "author": self.author,
            "metadata": {
                "category": self.metadata.category,
                "tags": list(self.metadata.tags),
                "runtimeRequirements": list(self.metadata.runtime_requirements),
                "pluginDependencies": list(self.metadata.plugin_dependencies),
            },
            "parameters": [
                {
                    "name": p.name,
                    "type": p.type,
                    "description": p.description,
                    "required": p.required,
                    "defaultValue": deepcopy(p.default_value),
                    "validation": [
                        {"type": rule.type, "parameters": deepcopy(rule.parameters)}
                        for rule in p.validation
                    ],
                }
                for p in self.parameters
            ],
            "steps": [self._step_to_dict(step) for step in self.steps],
            "outputs": {
                name: {
                    "source": out.source,
                    "type": out.type,
                    "description": out.description,
                }
                for name, out in self.outputs.items()
            },
        }

    def _step_to_dict(self, step: StepSpec) -> Dict[str, Any]:
        """Convert step to dictionary."""
        result = {
            "id": step.id,
            "type": step.type,
            "connector": step.connector,
            "operation": step.operation,
            "parameters": deepcopy(step.parameters),
        }
        if step.condition is not None:
            result["condition"] = step.condition
        if step.timeout_seconds is not None:
            result["timeoutSeconds"] = step.timeout_seconds
        if step.retry_policy is not None:
            result["retryPolicy"] = {
                "maxAttempts": step.retry_policy.max_attempts,
                "delaySeconds": step.retry_policy.delay_seconds,
                "backoffStrategy": step.retry_policy.backoff_strategy,
            }
        return result

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"WorkflowDefinition(id='{self.id}', "
            f"version='{self.version}', steps={len(self.steps)})"
        )

"""
Declarative workflow orchestration.

Workflows are versioned documents of ordered steps. Each step is dispatched to
a named connector with templated parameters, an optional condition, retries
and a timeout. Registered workflows are exposed as ``workflow_<id>`` tools.
"""

from .connectors import (
    Connector,
    ConnectorRegistry,
    ConnectorResult,
    DataTransformConnector,
    HostAutomationConnector,
    ModelUseConnector,
)
from .context import DataFlowContext, StepResult, StepStatus
from .definition import (
    OutputSpec,
    ParameterSpec,
    RetryPolicy,
    StepSpec,
    ValidationRule,
    WorkflowDefinition,
    WorkflowMetadata,
)
from .engine import WorkflowEngine, WorkflowResult
from .errors import (
    CacheReloadError,
    ConnectorNotFoundError,
    DefinitionError,
    ParameterValidationError,
    StepError,
    WorkflowError,
)
from .handler import WorkflowHandler
from .loader import DefinitionLoader
from .registry import WorkflowRegistry
from .templates import UNDEFINED, evaluate_condition, resolve
from .tool_adapter import WorkflowToolAdapter

__all__ = [
    "Connector",
    "ConnectorRegistry",
    "ConnectorResult",
    "DataTransformConnector",
    "HostAutomationConnector",
    "ModelUseConnector",
    "DataFlowContext",
    "StepResult",
    "StepStatus",
    "OutputSpec",
    "ParameterSpec",
    "RetryPolicy",
    "StepSpec",
    "ValidationRule",
    "WorkflowDefinition",
    "WorkflowMetadata",
    "WorkflowEngine",
    "WorkflowResult",
    "CacheReloadError",
    "ConnectorNotFoundError",
    "DefinitionError",
    "ParameterValidationError",
    "StepError",
    "WorkflowError",
    "WorkflowHandler",
    "DefinitionLoader",
    "WorkflowRegistry",
    "UNDEFINED",
    "evaluate_condition",
    "resolve",
    "WorkflowToolAdapter",
]

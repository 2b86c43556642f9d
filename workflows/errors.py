"""
Workflow Errors

Exception hierarchy for the orchestration core.
"""

from typing import List, Optional

from utils.cache import CacheReloadError


class WorkflowError(Exception):
    """Base class for workflow errors."""


class DefinitionError(WorkflowError, ValueError):
    """A workflow definition is malformed or cannot be found."""

    def __init__(self, message: str, errors: Optional[List[str]] = None, source: Optional[str] = None):
        self.errors = list(errors or [])
        self.source = source
        if self.errors:
            message = f"{message}: {'; '.join(self.errors)}"
        if source:
            message = f"{message} ({source})"
        super().__init__(message)


class ParameterValidationError(WorkflowError, ValueError):
    """Invocation arguments do not satisfy the workflow's parameter specs."""

    def __init__(self, message: str, parameter: Optional[str] = None):
        super().__init__(message)
        self.parameter = parameter


class StepError(WorkflowError):
    """A single step attempt failed."""

    def __init__(self, step_id: str, message: str):
        super().__init__(message)
        self.step_id = step_id


class ConnectorNotFoundError(WorkflowError, LookupError):
    """A step names a connector that is not registered."""

    def __init__(self, connector: str):
        super().__init__(f"Connector not found: {connector}")
        self.connector = connector


__all__ = [
    "WorkflowError",
    "DefinitionError",
    "ParameterValidationError",
    "StepError",
    "ConnectorNotFoundError",
    "CacheReloadError",
]

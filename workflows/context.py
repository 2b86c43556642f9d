"""
Workflow Context

Per-run data-flow state: the immutable input bag and the append-only record
of step results.
"""

import uuid
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional


class StepStatus(str, Enum):
    """Status of a workflow step."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepResult:
    """Result of a step execution."""

    step_id: str
    status: StepStatus
    result: Any = None
    error: Optional[str] = None
    duration: float = 0.0
    attempts: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == StepStatus.SUCCEEDED

    @property
    def is_skipped(self) -> bool:
        return self.status == StepStatus.SKIPPED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "step_id": self.step_id,
            "status": self.status.value,
            "success": self.is_success,
            "result": self.result,
            "error": self.error,
            "duration": self.duration,
            "attempts": self.attempts,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "metadata": dict(self.metadata),
        }


class DataFlowContext:
    """
    Workflow execution context.

    Owned by exactly one run. Inputs are frozen at construction and step
    results can be recorded once per step id. Skipped steps are remembered
    but are invisible to template lookups.
    """

    def __init__(
        self,
        inputs: Optional[Mapping[str, Any]] = None,
        session_id: Optional[str] = None,
    ):
        """
        Initialize the context.

        Args:
            inputs: Input parameters for this run (copied)
            session_id: Session identifier, generated when omitted
        """
        self.session_id = session_id or str(uuid.uuid4())
        self._inputs = MappingProxyType(deepcopy(dict(inputs or {})))
        self._step_results: Dict[str, StepResult] = {}
        self._history: List[StepResult] = []
        self.created_at = datetime.utcnow()

    @property
    def inputs(self) -> Mapping[str, Any]:
        """Read-only view of the input parameters."""
        return self._inputs

    @property
    def step_results(self) -> Mapping[str, StepResult]:
        """Read-only view of executed (not skipped) step results by id."""
        return MappingProxyType(self._step_results)

    @property
    def history(self) -> List[StepResult]:
        """Every recorded result, skipped ones included, in execution order."""
        return list(self._history)

    def record(self, result: StepResult) -> None:
        """
        Append a step result.

        Args:
            result: Final result of a step

        Raises:
            ValueError: If a result for this step id was already recorded
        """
        if self.has_record(result.step_id):
            raise ValueError(f"Step '{result.step_id}' already has a recorded result")

        self._history.append(result)
        if not result.is_skipped:
            self._step_results[result.step_id] = result

    def has_record(self, step_id: str) -> bool:
        return any(r.step_id == step_id for r in self._history)

    def get_step_result(self, step_id: str) -> Optional[StepResult]:
        """
        Get the result of an executed step.

        Returns:
            StepResult, or None if the step has not run or was skipped
        """
        return self._step_results.get(step_id)

    def is_skipped(self, step_id: str) -> bool:
        return any(r.step_id == step_id and r.is_skipped for r in self._history)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert context to dictionary.

        Returns:
            Dictionary representation
        """
        return {
            "session_id": self.session_id,
            "inputs": deepcopy(dict(self._inputs)),
            "step_results": [result.to_dict() for result in self._history],
            "created_at": self.created_at.isoformat(),
        }

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"DataFlowContext(session_id={self.session_id}, "
            f"steps={len(self._history)})"
        )

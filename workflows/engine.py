"""
Workflow Engine

Execute workflow steps in declared order with conditions, retries, backoff
and timeouts, then collect the declared outputs.
"""

import asyncio
import logging
import time
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config.types import StepTimeouts
from .connectors import Connector, ConnectorRegistry, ConnectorResult
from .context import DataFlowContext, StepResult, StepStatus
from .definition import RetryPolicy, StepSpec, WorkflowDefinition
from .errors import ConnectorNotFoundError, StepError
from .registry import WorkflowRegistry
from .templates import UNDEFINED, evaluate_condition, extract_references, lookup, resolve

DISCOVER_PREFIX = "${discover:"

# Connector used when a step of this type names none
TYPE_CONNECTORS = {
    "model_use": "model_use",
    "data_transform": "data_transform",
}

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class WorkflowResult:
    """Result of a workflow run."""

    is_success: bool
    execution_time: float = 0.0
    outputs: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    step_results: List[StepResult] = field(default_factory=list)
    error_message: Optional[str] = None

    def get_step_result(self, step_id: str) -> Optional[StepResult]:
        for result in self.step_results:
            if result.step_id == step_id:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.is_success,
            "execution_time": self.execution_time,
            "outputs": self.outputs,
            "metadata": self.metadata,
            "step_results": [result.to_dict() for result in self.step_results],
            "error": self.error_message,
        }


def resolve_operation(operation: str) -> str:
    """Strip the ``${discover:<tool>}`` wrapper from an operation name."""
    if operation.startswith(DISCOVER_PREFIX) and operation.endswith("}"):
        return operation[len(DISCOVER_PREFIX):-1].strip()
    return operation


def _drop_undefined(value: Any) -> Any:
    """Remove unresolved values before handing parameters to a connector."""
    if isinstance(value, dict):
        return {k: _drop_undefined(v) for k, v in value.items() if v is not UNDEFINED}
    if isinstance(value, list):
        return [None if v is UNDEFINED else _drop_undefined(v) for v in value]
    return None if value is UNDEFINED else value


class WorkflowEngine:
    """
    Workflow execution engine.

    Steps run strictly one after another. A failing step is recorded and the
    run continues; only a missing workflow or an unexpected error outside
    step handling makes the run itself unsuccessful.
    """

    def __init__(
        self,
        connectors: Optional[ConnectorRegistry] = None,
        registry: Optional[WorkflowRegistry] = None,
        timeouts: Optional[StepTimeouts] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize workflow engine.

        Args:
            connectors: Connector registry used to dispatch steps
            registry: Workflow registry used by execute_by_id
            timeouts: Default and maximum step timeouts
            sleep: Awaitable used for backoff waits
            clock: Clock used to measure durations
        """
        self.logger = logging.getLogger(__name__)
        self.connectors = connectors if connectors is not None else ConnectorRegistry()
        self.registry = registry
        self.timeouts = timeouts or StepTimeouts()
        self._sleep = sleep
        self._clock = clock

    async def execute_by_id(
        self,
        workflow_id: str,
        inputs: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> WorkflowResult:
        """
        Look up a registered workflow and execute it.

        Returns:
            WorkflowResult; unsuccessful if the workflow id is unknown
        """
        workflow = self.registry.get(workflow_id) if self.registry else None
        if workflow is None:
            self.logger.warning(f"Workflow not found: {workflow_id}")
            return WorkflowResult(
                is_success=False,
                error_message=f"Workflow not found: {workflow_id}",
                metadata={"workflowId": workflow_id},
            )
        return await self.execute(workflow, inputs, session_id=session_id)

    async def execute(
        self,
        workflow: WorkflowDefinition,
        inputs: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> WorkflowResult:
        """
        Execute a workflow.

        Args:
            workflow: Workflow definition
            inputs: Validated input parameters
            session_id: Optional session identifier

        Returns:
            WorkflowResult with outputs, metadata and every step result
        """
        start = self._clock()
        context = DataFlowContext(inputs, session_id=session_id)
        self.logger.info(
            f"Starting workflow '{workflow.id}' (session: {context.session_id})"
        )

        try:
            for step in workflow.steps:
                context.record(await self._execute_step(step, context))

            outputs = self._collect_outputs(workflow, context)
        except Exception as e:
            self.logger.error(f"Workflow '{workflow.id}' failed: {e}", exc_info=True)
            return WorkflowResult(
                is_success=False,
                execution_time=self._clock() - start,
                metadata=self._build_metadata(workflow, context),
                step_results=context.history,
                error_message=str(e),
            )

        result = WorkflowResult(
            is_success=True,
            execution_time=self._clock() - start,
            outputs=outputs,
            metadata=self._build_metadata(workflow, context),
            step_results=context.history,
        )
        self.logger.info(
            f"Workflow '{workflow.id}' completed in {result.execution_time:.3f}s "
            f"({result.metadata['succeededSteps']} succeeded, "
            f"{result.metadata['failedSteps']} failed, "
            f"{result.metadata['skippedSteps']} skipped)"
        )
        return result

    def get_connector(self, step: StepSpec) -> Connector:
        """
        Select the connector for a step.

        Raises:
            ConnectorNotFoundError: If no matching connector is registered
        """
        name = step.connector or TYPE_CONNECTORS.get(step.type.lower(), "")
        if not name:
            raise ConnectorNotFoundError(f"<none> (step type '{step.type}')")
        return self.connectors.get(name)

    async def _execute_step(self, step: StepSpec, context: DataFlowContext) -> StepResult:
        """
        Execute one step through its condition check and attempt loop.

        Args:
            step: Step definition
            context: Run context holding earlier results

        Returns:
            Final StepResult for the step
        """
        started_at = datetime.utcnow()
        start = self._clock()

        if not evaluate_condition(step.condition, context):
            self.logger.debug(f"Skipping step '{step.id}': condition not met")
            return StepResult(
                step_id=step.id,
                status=StepStatus.SKIPPED,
                started_at=started_at,
                completed_at=datetime.utcnow(),
                metadata={"condition": step.condition},
            )

        parameters = _drop_undefined(resolve(step.parameters, context))

        try:
            connector = self.get_connector(step)
        except ConnectorNotFoundError as e:
            self.logger.error(f"Step '{step.id}' failed: {e}")
            return StepResult(
                step_id=step.id,
                status=StepStatus.FAILED,
                error=str(e),
                duration=self._clock() - start,
                started_at=started_at,
                completed_at=datetime.utcnow(),
            )

        operation = resolve_operation(step.operation)
        policy = step.retry_policy or RetryPolicy()
        max_attempts = max(1, step.max_attempts)
        timeout = self.timeouts.effective(step.timeout_seconds)
        last_error = None

        self.logger.debug(
            f"Executing step '{step.id}' via '{connector.name}' "
            f"operation '{operation}' (timeout {timeout}s)"
        )

        for attempt in range(1, max_attempts + 1):
            try:
                value = await self._attempt(step, connector, operation, parameters, timeout)
            except StepError as e:
                last_error = str(e)
            else:
                return StepResult(
                    step_id=step.id,
                    status=StepStatus.SUCCEEDED,
                    result=value,
                    duration=self._clock() - start,
                    attempts=attempt,
                    started_at=started_at,
                    completed_at=datetime.utcnow(),
                )

            if attempt < max_attempts:
                delay = policy.delay_after(attempt)
                self.logger.warning(
                    f"Step '{step.id}' attempt {attempt}/{max_attempts} failed: "
                    f"{last_error}; retrying in {delay}s"
                )
                if delay > 0:
                    await self._sleep(delay)

        self.logger.error(
            f"Step '{step.id}' failed after {max_attempts} attempt(s): {last_error}"
        )
        return StepResult(
            step_id=step.id,
            status=StepStatus.FAILED,
            error=last_error,
            duration=self._clock() - start,
            attempts=max_attempts,
            started_at=started_at,
            completed_at=datetime.utcnow(),
        )

    async def _attempt(
        self,
        step: StepSpec,
        connector: Connector,
        operation: str,
        parameters: Dict[str, Any],
        timeout: float,
    ) -> Any:
        """
        Run a single connector invocation under the step deadline.

        Returns:
            The connector's result payload

        Raises:
            StepError: If the connector failed, raised or timed out
        """
        try:
            outcome = await asyncio.wait_for(
                connector.invoke(operation, deepcopy(parameters)), timeout
            )
        except asyncio.TimeoutError:
            raise StepError(step.id, f"Timed out after {timeout}s")
        except Exception as e:
            raise StepError(step.id, str(e) or type(e).__name__) from e

        if not isinstance(outcome, ConnectorResult):
            return outcome
        if not outcome.success:
            raise StepError(step.id, outcome.error or "Step failed")
        return outcome.result

    def _collect_outputs(
        self, workflow: WorkflowDefinition, context: DataFlowContext
    ) -> Dict[str, Any]:
        """
        Resolve every output source.

        An output is left out when any reference in its source is undefined,
        so template text never reaches the caller.
        """
        outputs = {}
        for name, output in workflow.outputs.items():
            refs = extract_references(output.source)
            if any(lookup(ref.segments, context) is UNDEFINED for ref in refs):
                continue
            value = resolve(output.source, context)
            if value is not UNDEFINED:
                outputs[name] = value
        return outputs

    def _build_metadata(
        self, workflow: WorkflowDefinition, context: DataFlowContext
    ) -> Dict[str, Any]:
        history = context.history
        return {
            "workflowId": workflow.id,
            "workflowVersion": workflow.version,
            "sessionId": context.session_id,
            "stepCount": len(workflow.steps),
            "succeededSteps": sum(1 for r in history if r.status == StepStatus.SUCCEEDED),
            "failedSteps": sum(1 for r in history if r.status == StepStatus.FAILED),
            "skippedSteps": sum(1 for r in history if r.status == StepStatus.SKIPPED),
        }

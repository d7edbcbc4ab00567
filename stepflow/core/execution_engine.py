"""Execution Engine for workflow processing."""

import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models.core import (
    ExecutionStatusEnum,
    LogEventType,
    NodeExecutionResult,
    NodeOutput,
    NodeStatusEnum,
    RunOutputs,
    WorkflowDefinition,
    WorkflowExecution,
    WorkflowNode,
    utc_now,
)
from ..storage.run_history import RunHistory
from ..variables.extractor import VariableExtractor
from ..variables.store import VariableStore
from ..variables.substitution import substitute_config_detailed
from ..variables.workflow_inputs import apply_defaults, substitute_workflow_inputs, validate_inputs
from .exceptions import (
    CycleError,
    ExecutionEngineError,
    InputValidationError,
    StepExecutionError,
    StorageError,
    WorkflowEngineError,
)
from .logging import (
    bind_run_context,
    bind_step_context,
    clear_logging_context,
    get_logger,
    log_with_context,
    unbind_step_context,
)
from .scheduler import Scheduler
from .step_registry import StepRegistry

logger = get_logger(__name__)

DEFAULT_PASSTHROUGH_TYPES = ("start", "end", "input", "output")


class ExecutionEngine:
    """Runs workflow graphs one step at a time in dependency order.

    Each run gets a fresh VariableStore; the engine refuses to start a second
    run while one is in progress, so a store is never shared between runs.
    The first failing step halts the whole run.
    """

    def __init__(
        self,
        registry: StepRegistry,
        extractor: Optional[VariableExtractor] = None,
        history: Optional[RunHistory] = None,
        scheduler: Optional[Scheduler] = None,
        passthrough_types: Optional[Iterable[str]] = None
    ):
        """Initialize the execution engine.

        Args:
            registry: Registry used to dispatch steps to their executors
            extractor: Builds extracted data from raw step results
            history: Optional run history that receives run records and events
            scheduler: Computes the step order
            passthrough_types: Step types that succeed without an executor call
        """
        self.registry = registry
        self.extractor = extractor or VariableExtractor()
        self.history = history
        self.scheduler = scheduler or Scheduler()
        if passthrough_types is None:
            passthrough_types = DEFAULT_PASSTHROUGH_TYPES
        self.passthrough_types = {step_type.strip().lower() for step_type in passthrough_types}

        self.variable_store = VariableStore()
        self._active_run_id: Optional[str] = None

        logger.info(
            f"ExecutionEngine initialized with {len(self.registry.types())} step types, "
            f"passthrough types={sorted(self.passthrough_types)}"
        )

    def create_execution(self, workflow: WorkflowDefinition,
                         inputs: Optional[Dict[str, Any]] = None) -> WorkflowExecution:
        """Create a pending run for a workflow."""
        execution = WorkflowExecution(workflow_id=workflow.id, inputs=dict(inputs or {}))
        self._record_execution(execution)
        logger.debug(f"Created execution {execution.id} for workflow {workflow.id}")
        return execution

    async def execute_workflow(self, workflow: WorkflowDefinition,
                               inputs: Optional[Dict[str, Any]] = None) -> WorkflowExecution:
        """Create a run for a workflow and drive it to a terminal status."""
        execution = self.create_execution(workflow, inputs)
        return await self.run(workflow, execution)

    @property
    def is_running(self) -> bool:
        return self._active_run_id is not None

    async def run(self, workflow: WorkflowDefinition, execution: WorkflowExecution) -> WorkflowExecution:
        """
        Execute a workflow run to completion or first failure.

        Args:
            workflow: Workflow definition to execute
            execution: Pending run to drive; it is updated in place and returned

        Returns:
            The run, with status completed or failed

        Raises:
            ExecutionEngineError: If the run is not pending, or another run is in progress
        """
        if execution.is_terminal or execution.status == ExecutionStatusEnum.RUNNING:
            raise ExecutionEngineError(
                f"Execution {execution.id} is already {execution.status.value}",
                run_id=execution.id,
                workflow_id=workflow.id
            )
        if self._active_run_id is not None:
            raise ExecutionEngineError(
                f"Engine is busy with execution {self._active_run_id}",
                run_id=execution.id,
                workflow_id=workflow.id
            )

        self._active_run_id = execution.id
        bind_run_context(execution.id, workflow.id)
        try:
            await self._execute_run(workflow, execution)
        except Exception as e:
            # Contain unexpected failures so the run still ends in a terminal status
            logger.error(f"Workflow execution {execution.id} failed unexpectedly: {e}", exc_info=True)
            if not execution.is_terminal:
                self._fail_run(execution, f"Workflow execution failed: {str(e) or type(e).__name__}")
        finally:
            self._active_run_id = None
            clear_logging_context()

        return execution

    async def _execute_run(self, workflow: WorkflowDefinition, execution: WorkflowExecution) -> None:
        started = time.perf_counter()

        execution.status = ExecutionStatusEnum.RUNNING
        execution.start_time = utc_now()
        self.variable_store = VariableStore()
        self._record_execution(execution)
        self._record_event(
            execution.id, None, LogEventType.WORKFLOW_START,
            f"Started workflow execution for workflow {workflow.id}"
        )
        log_with_context(
            logger, logging.INFO, f"Starting workflow '{workflow.name}'",
            steps=len(workflow.nodes), edges=len(workflow.edges)
        )

        try:
            order = self.scheduler.order_workflow(workflow)
        except CycleError as e:
            self._fail_run(execution, e.message)
            return

        try:
            inputs = self._prepare_inputs(workflow, execution)
        except InputValidationError as e:
            self._fail_run(execution, e.message)
            return

        for node_id in order:
            node = workflow.get_node(node_id)
            bind_step_context(node.id, node.type)
            try:
                if node.type.lower() in self.passthrough_types:
                    self._pass_through(node, inputs)
                    continue
                result = await self._execute_node(execution, node, inputs)
            except Exception as e:
                logger.error(f"Unexpected error while executing step {node.id}: {e}", exc_info=True)
                result = NodeExecutionResult(
                    node_id=node.id,
                    node_type=node.type,
                    status=NodeStatusEnum.ERROR,
                    error=str(e) or type(e).__name__
                )
            finally:
                unbind_step_context()
            execution.results.append(result)

            if not result.is_success:
                execution.failed_step_id = node.id
                self._fail_run(execution, f"Step '{node.id}' failed: {result.error}")
                return

        elapsed_ms = (time.perf_counter() - started) * 1000
        execution.outputs = RunOutputs(
            nodes_executed=len(execution.results),
            execution_time_ms=elapsed_ms,
            results=list(execution.results),
            variables=self.variable_store.snapshot()
        )
        execution.status = ExecutionStatusEnum.COMPLETED
        execution.end_time = utc_now()

        self._record_execution(execution)
        self._record_event(
            execution.id, None, LogEventType.WORKFLOW_COMPLETE,
            f"Workflow completed: {len(execution.results)} steps in {elapsed_ms:.1f}ms"
        )
        log_with_context(
            logger, logging.INFO, f"Workflow '{workflow.name}' completed",
            nodes_executed=len(execution.results), execution_time_ms=round(elapsed_ms, 3)
        )

    def _prepare_inputs(self, workflow: WorkflowDefinition, execution: WorkflowExecution) -> Dict[str, Any]:
        """Fill input defaults and validate them against the workflow's variables."""
        inputs = apply_defaults(execution.inputs, workflow.variables)
        validation = validate_inputs(inputs, workflow.variables)
        if not validation.is_valid:
            raise InputValidationError(
                f"Invalid workflow inputs: {'; '.join(validation.errors)}",
                errors=validation.errors
            )
        execution.inputs = inputs
        return inputs

    async def _execute_node(self, execution: WorkflowExecution, node: WorkflowNode,
                            inputs: Dict[str, Any]) -> NodeExecutionResult:
        """
        Execute a single step and store its output on success.

        Executor failures are captured in the returned result rather than raised.
        """
        self._record_event(
            execution.id, node.id, LogEventType.NODE_START,
            f"Starting execution of step {node.id}"
        )
        logger.info(f"Executing step {node.id}")

        started = time.perf_counter()
        resolved_config, unresolved = self._resolve_config(node, inputs)

        try:
            output = await self.registry.dispatch(node.type, resolved_config)
        except Exception as e:
            duration_ms = (time.perf_counter() - started) * 1000
            error = self._to_step_error(e, node)
            log_with_context(
                logger, logging.ERROR, f"Step {node.id} failed: {error.message}",
                duration_ms=round(duration_ms, 3)
            )
            self._record_event(
                execution.id, node.id, LogEventType.NODE_ERROR,
                f"Step {node.id} execution failed: {error.message}",
                {"error": error.to_dict()}
            )
            return NodeExecutionResult(
                node_id=node.id,
                node_type=node.type,
                status=NodeStatusEnum.ERROR,
                error=error.message,
                duration_ms=duration_ms,
                resolved_config=resolved_config,
                unresolved_references=unresolved
            )

        extraction = self.extractor.try_extract(node.id, node.type, output)
        extracted = extraction.data
        duration_ms = (time.perf_counter() - started) * 1000
        completed_at = utc_now()

        self.variable_store.put(node.id, NodeOutput(
            node_id=node.id,
            node_type=node.type,
            data=output,
            extracted_data=extracted,
            timestamp=completed_at,
            duration_ms=duration_ms
        ))

        snapshot: Dict[str, Any] = {"extractedData": extracted}
        if not extraction.ok:
            snapshot["extractionError"] = extraction.error.to_dict()
        self._record_event(
            execution.id, node.id, LogEventType.NODE_COMPLETE,
            f"Completed execution of step {node.id}",
            snapshot
        )
        log_with_context(
            logger, logging.DEBUG, f"Step {node.id} completed",
            duration_ms=round(duration_ms, 3), extracted_keys=sorted(extracted)
        )

        return NodeExecutionResult(
            node_id=node.id,
            node_type=node.type,
            status=NodeStatusEnum.SUCCESS,
            output=output,
            duration_ms=duration_ms,
            timestamp=completed_at,
            extracted_data=extracted,
            resolved_config=resolved_config,
            unresolved_references=unresolved
        )

    def _resolve_config(self, node: WorkflowNode, inputs: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
        """Substitute workflow inputs, then step references, into a step's configuration."""
        config = substitute_workflow_inputs(node.config, inputs)
        substitution = substitute_config_detailed(config, self.variable_store)
        unresolved = substitution.unresolved_expressions()
        if unresolved:
            log_with_context(
                logger, logging.WARNING,
                f"Step {node.id} has unresolved references: {', '.join(unresolved)}",
                unresolved=unresolved
            )
        return substitution.value, unresolved

    def _pass_through(self, node: WorkflowNode, inputs: Dict[str, Any]) -> None:
        """Succeed a marker step without dispatching it; its resolved config becomes its output."""
        resolved_config, _ = self._resolve_config(node, inputs)
        self.variable_store.put(node.id, NodeOutput(
            node_id=node.id,
            node_type=node.type,
            data=resolved_config,
            extracted_data=dict(resolved_config)
        ))
        logger.debug(f"Passed through {node.type} step {node.id}")

    @staticmethod
    def _to_step_error(error: Exception, node: WorkflowNode) -> StepExecutionError:
        if isinstance(error, StepExecutionError):
            if error.node_id is None:
                error.node_id = node.id
                error.add_context(node_id=node.id)
            return error
        if isinstance(error, WorkflowEngineError):
            message = error.message
        else:
            message = str(error) or type(error).__name__
        return StepExecutionError(message, node_id=node.id, node_type=node.type)

    def _fail_run(self, execution: WorkflowExecution, message: str) -> None:
        execution.status = ExecutionStatusEnum.FAILED
        execution.end_time = utc_now()
        execution.error = message
        execution.outputs = None

        self._record_execution(execution)
        self._record_event(execution.id, execution.failed_step_id, LogEventType.WORKFLOW_FAILED, message)
        log_with_context(
            logger, logging.ERROR, f"Workflow execution failed: {message}",
            failed_step_id=execution.failed_step_id
        )

    def _record_execution(self, execution: WorkflowExecution) -> None:
        if self.history is None:
            return
        try:
            self.history.record_execution(execution)
        except StorageError as e:
            logger.error(f"Failed to record execution {execution.id}: {e.message}")

    def _record_event(self, run_id: str, node_id: Optional[str], event_type: LogEventType,
                      message: str, state_snapshot: Optional[Dict[str, Any]] = None) -> None:
        if self.history is None:
            return
        try:
            self.history.record_event(run_id, node_id, event_type, message, state_snapshot)
        except StorageError as e:
            logger.error(f"Failed to record {event_type.value} event for run {run_id}: {e.message}")

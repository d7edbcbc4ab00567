"""Run history: persisted records of workflow runs and their events."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..models.core import (
    ExecutionStatusEnum,
    LogEntry,
    LogEventType,
    NodeExecutionResult,
    RunOutputs,
    WorkflowExecution,
)
from ..core.exceptions import StorageError
from ..core.logging import get_logger
from .database import get_session_factory
from .models import LogEntryModel, WorkflowRunModel

logger = get_logger(__name__)


class RunHistory:
    """Stores workflow runs and their execution events."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """Initialize the run history.

        Args:
            session_factory: Optional session factory. Defaults to the module-level database.
        """
        self._session_factory = session_factory

    def _get_session(self) -> Session:
        factory = self._session_factory or get_session_factory()
        return factory()

    def record_execution(self, execution: WorkflowExecution) -> None:
        """
        Insert or update the stored record of a run.

        Raises:
            StorageError: If the database write fails
        """
        db = self._get_session()
        try:
            run_model = db.get(WorkflowRunModel, execution.id)
            if run_model is None:
                run_model = WorkflowRunModel(id=execution.id)
                db.add(run_model)

            run_model.workflow_id = execution.workflow_id
            run_model.status = execution.status.value
            run_model.inputs = execution.inputs
            run_model.outputs = (
                execution.outputs.model_dump(mode="json", exclude={"results"})
                if execution.outputs else None
            )
            run_model.results = [result.model_dump(mode="json") for result in execution.results]
            run_model.error_message = execution.error
            run_model.failed_step_id = execution.failed_step_id
            run_model.started_at = execution.start_time
            run_model.completed_at = execution.end_time

            db.commit()
            logger.debug(f"Recorded run {execution.id} with status {execution.status.value}")

        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to record run: {str(e)}", operation="record_execution",
                               table="workflow_runs")
        finally:
            db.close()

    def record_event(self, run_id: str, node_id: Optional[str], event_type: LogEventType,
                     message: str, state_snapshot: Optional[Dict[str, Any]] = None) -> None:
        """Append an event to a run's log."""
        db = self._get_session()
        try:
            db.add(LogEntryModel(
                run_id=run_id,
                node_id=node_id,
                event_type=event_type.value,
                message=message,
                state_snapshot=state_snapshot,
                timestamp=datetime.now(timezone.utc)
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to record event: {str(e)}", operation="record_event",
                               table="log_entries")
        finally:
            db.close()

    def get_execution(self, run_id: str) -> WorkflowExecution:
        """
        Load a stored run.

        Raises:
            StorageError: If the run is not found or the read fails
        """
        db = self._get_session()
        try:
            run_model = db.get(WorkflowRunModel, run_id)
            if run_model is None:
                raise StorageError(f"Execution with ID {run_id} not found", operation="get_execution")
            return self._to_execution(run_model)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load run: {str(e)}", operation="get_execution")
        finally:
            db.close()

    def list_executions(self, workflow_id: Optional[str] = None) -> List[WorkflowExecution]:
        """Stored runs, newest first, optionally for one workflow."""
        db = self._get_session()
        try:
            query = db.query(WorkflowRunModel)
            if workflow_id:
                query = query.filter(WorkflowRunModel.workflow_id == workflow_id)
            run_models = query.order_by(WorkflowRunModel.started_at.desc()).all()
            return [self._to_execution(run_model) for run_model in run_models]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list runs: {str(e)}", operation="list_executions")
        finally:
            db.close()

    def get_logs(self, run_id: str) -> List[LogEntry]:
        """Events of a run in chronological order."""
        db = self._get_session()
        try:
            log_models = (
                db.query(LogEntryModel)
                .filter(LogEntryModel.run_id == run_id)
                .order_by(LogEntryModel.timestamp, LogEntryModel.id)
                .all()
            )
            return [
                LogEntry(
                    timestamp=log_model.timestamp,
                    run_id=log_model.run_id,
                    node_id=log_model.node_id,
                    event_type=LogEventType(log_model.event_type),
                    message=log_model.message,
                    state_snapshot=log_model.state_snapshot
                )
                for log_model in log_models
            ]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load run events: {str(e)}", operation="get_logs")
        finally:
            db.close()

    @staticmethod
    def _to_execution(run_model: WorkflowRunModel) -> WorkflowExecution:
        results = [NodeExecutionResult(**result) for result in (run_model.results or [])]
        outputs = None
        if run_model.outputs:
            outputs = RunOutputs(**run_model.outputs, results=results)
        return WorkflowExecution(
            id=run_model.id,
            workflow_id=run_model.workflow_id,
            status=ExecutionStatusEnum(run_model.status),
            start_time=run_model.started_at,
            end_time=run_model.completed_at,
            inputs=run_model.inputs or {},
            outputs=outputs,
            error=run_model.error_message,
            failed_step_id=run_model.failed_step_id,
            results=results
        )

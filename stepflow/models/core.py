"""Core Pydantic models for the stepflow engine."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
import re
import uuid
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


JsonValue = Union[None, bool, int, float, str, List["JsonValue"], Dict[str, "JsonValue"]]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ExecutionStatusEnum(str, Enum):
    """Enumeration of workflow run statuses."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class NodeStatusEnum(str, Enum):
    """Enumeration of per-step outcomes."""
    SUCCESS = "success"
    ERROR = "error"


class LogEventType(str, Enum):
    """Enumeration of run history event types."""
    WORKFLOW_START = "workflow_start"
    NODE_START = "node_start"
    NODE_COMPLETE = "node_complete"
    NODE_ERROR = "node_error"
    WORKFLOW_COMPLETE = "workflow_complete"
    WORKFLOW_FAILED = "workflow_failed"


class VariableTypeEnum(str, Enum):
    """Types a workflow input variable may declare."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class ValidationResult(BaseModel):
    """Result of a validation pass."""
    is_valid: bool = Field(..., description="Whether the subject is valid")
    errors: List[str] = Field(default_factory=list, description="List of validation errors")
    warnings: List[str] = Field(default_factory=list, description="List of validation warnings")


class VariableValidation(BaseModel):
    """Constraints applied to a workflow input variable."""
    pattern: Optional[str] = Field(None, description="Regex a string value must match")
    min: Optional[float] = Field(None, description="Lower bound for numeric values")
    max: Optional[float] = Field(None, description="Upper bound for numeric values")
    options: Optional[List[Any]] = Field(None, description="Allowed values")

    @field_validator('pattern')
    @classmethod
    def validate_pattern(cls, pattern):
        """Ensure the pattern compiles."""
        if pattern is not None:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid validation pattern {pattern!r}: {e}")
        return pattern


class WorkflowVariable(BaseModel):
    """Definition of a workflow-level input variable, referenced as {{workflow.name}}."""
    name: str = Field(..., description="Variable name")
    type: VariableTypeEnum = Field(VariableTypeEnum.STRING, description="Declared value type")
    default_value: Optional[Any] = Field(None, description="Value used when no input is given")
    description: Optional[str] = Field(None, description="Human readable description")
    required: bool = Field(False, description="Whether a value must be supplied")
    validation: VariableValidation = Field(default_factory=VariableValidation, description="Value constraints")

    @field_validator('name')
    @classmethod
    def validate_name(cls, name):
        """Ensure the variable name is usable inside a reference."""
        if not name or not name.strip():
            raise ValueError("Variable name cannot be empty")
        if '}' in name or '{' in name:
            raise ValueError("Variable name cannot contain braces")
        return name.strip()


class WorkflowNode(BaseModel):
    """A single step of a workflow."""
    id: str = Field(..., description="Unique identifier for the step within a workflow")
    type: str = Field(..., description="Step type tag used to pick an executor")
    label: Optional[str] = Field(None, description="Display label")
    config: Dict[str, Any] = Field(default_factory=dict, description="Step configuration tree")

    @field_validator('id', 'type')
    @classmethod
    def validate_not_empty(cls, value):
        """Ensure identifiers and type tags are not blank."""
        if not value or not value.strip():
            raise ValueError("Step id and type cannot be empty")
        return value.strip()


class WorkflowEdge(BaseModel):
    """Dependency between two steps: target must not run before source completes."""
    id: Optional[str] = Field(None, description="Edge identifier")
    source: str = Field(..., description="Source step id")
    target: str = Field(..., description="Target step id")


class WorkflowDefinition(BaseModel):
    """Complete definition of a workflow graph."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Workflow identifier")
    name: str = Field("Untitled Workflow", description="Name of the workflow")
    description: Optional[str] = Field(None, description="Description of the workflow")
    nodes: List[WorkflowNode] = Field(default_factory=list, description="Steps of the workflow")
    edges: List[WorkflowEdge] = Field(default_factory=list, description="Dependencies between steps")
    variables: List[WorkflowVariable] = Field(default_factory=list, description="Workflow input variables")

    @field_validator('nodes')
    @classmethod
    def validate_unique_node_ids(cls, nodes):
        """Ensure all step ids are unique."""
        node_ids = [node.id for node in nodes]
        if len(node_ids) != len(set(node_ids)):
            raise ValueError("All step ids must be unique")
        return nodes

    @field_validator('variables')
    @classmethod
    def validate_unique_variable_names(cls, variables):
        """Ensure all input variable names are unique."""
        names = [variable.name for variable in variables]
        if len(names) != len(set(names)):
            raise ValueError("All workflow variable names must be unique")
        return variables

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        """Find a step by id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> List[str]:
        """Step ids in declaration order."""
        return [node.id for node in self.nodes]


class NodeExecutionResult(BaseModel):
    """Outcome of one step in one run."""
    model_config = ConfigDict(frozen=True)

    node_id: str = Field(..., description="Step id")
    node_type: str = Field(..., description="Step type tag")
    status: NodeStatusEnum = Field(..., description="Step outcome")
    output: Any = Field(None, description="Raw executor output on success")
    error: Optional[str] = Field(None, description="Failure description on error")
    duration_ms: float = Field(0.0, description="Time spent in the step")
    timestamp: datetime = Field(default_factory=utc_now, description="Completion timestamp")
    extracted_data: Optional[Dict[str, Any]] = Field(None, description="Extracted data record")
    resolved_config: Optional[Dict[str, Any]] = Field(None, description="Configuration after substitution")
    unresolved_references: List[str] = Field(default_factory=list, description="Placeholders left verbatim")

    @property
    def is_success(self) -> bool:
        return self.status == NodeStatusEnum.SUCCESS


class NodeOutput(BaseModel):
    """A successful step's captured output, as held by the variable store."""
    node_id: str = Field(..., description="Step id")
    node_type: str = Field(..., description="Step type tag")
    status: NodeStatusEnum = Field(NodeStatusEnum.SUCCESS, description="Step outcome")
    data: Any = Field(None, description="Raw executor output")
    extracted_data: Dict[str, Any] = Field(default_factory=dict, description="Extracted data record")
    timestamp: datetime = Field(default_factory=utc_now, description="Time the output was stored")
    duration_ms: float = Field(0.0, description="Time spent in the step")

    def as_reference_view(self) -> Dict[str, Any]:
        """Mapping addressed by variable reference paths, e.g. {{step.extractedData.ids[0]}}."""
        return {
            "nodeId": self.node_id,
            "nodeType": self.node_type,
            "status": self.status.value,
            "data": self.data,
            "extractedData": self.extracted_data,
            "timestamp": self.timestamp.isoformat(),
            "duration": self.duration_ms,
        }


class RunOutputs(BaseModel):
    """Aggregate result of a completed run."""
    message: str = Field("Workflow completed successfully", description="Summary message")
    nodes_executed: int = Field(..., description="Number of steps executed")
    execution_time_ms: float = Field(..., description="Elapsed wall time of the run")
    results: List[NodeExecutionResult] = Field(default_factory=list, description="Per-step results")
    variables: Dict[str, Any] = Field(default_factory=dict, description="Variable store snapshot")


class WorkflowExecution(BaseModel):
    """One execution attempt over a workflow graph."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Run identifier")
    workflow_id: str = Field(..., description="Workflow being executed")
    status: ExecutionStatusEnum = Field(ExecutionStatusEnum.PENDING, description="Run status")
    start_time: datetime = Field(default_factory=utc_now, description="Time the run was requested")
    end_time: Optional[datetime] = Field(None, description="Time the run completed or failed")
    inputs: Dict[str, Any] = Field(default_factory=dict, description="Workflow input variable values")
    outputs: Optional[RunOutputs] = Field(None, description="Aggregate result on success")
    error: Optional[str] = Field(None, description="Error message on failure")
    failed_step_id: Optional[str] = Field(None, description="Step that halted the run")
    results: List[NodeExecutionResult] = Field(default_factory=list, description="Per-step results in order")

    @model_validator(mode='after')
    def validate_terminal_fields(self):
        """A run that has ended must carry an end time."""
        if self.status in (ExecutionStatusEnum.COMPLETED, ExecutionStatusEnum.FAILED) and self.end_time is None:
            raise ValueError("Terminal runs must have an end time")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in (ExecutionStatusEnum.COMPLETED, ExecutionStatusEnum.FAILED)


class LogEntry(BaseModel):
    """Run history event."""
    timestamp: datetime = Field(..., description="Timestamp of the event")
    run_id: str = Field(..., description="ID of the workflow run")
    node_id: Optional[str] = Field(None, description="ID of the step, if any")
    event_type: LogEventType = Field(..., description="Type of event")
    message: str = Field(..., description="Event message")
    state_snapshot: Optional[Dict[str, Any]] = Field(None, description="Snapshot attached to the event")


@dataclass(frozen=True)
class VariableReference:
    """A parsed {{step.path}} reference."""
    node_id: str
    path: str
    full_expression: str

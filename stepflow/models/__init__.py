"""Data models for the stepflow engine."""

from .core import (
    JsonValue,
    ExecutionStatusEnum,
    NodeStatusEnum,
    LogEventType,
    VariableTypeEnum,
    ValidationResult,
    VariableValidation,
    WorkflowVariable,
    WorkflowNode,
    WorkflowEdge,
    WorkflowDefinition,
    NodeExecutionResult,
    NodeOutput,
    RunOutputs,
    WorkflowExecution,
    LogEntry,
    VariableReference,
)

__all__ = [
    "JsonValue",
    "ExecutionStatusEnum",
    "NodeStatusEnum",
    "LogEventType",
    "VariableTypeEnum",
    "ValidationResult",
    "VariableValidation",
    "WorkflowVariable",
    "WorkflowNode",
    "WorkflowEdge",
    "WorkflowDefinition",
    "NodeExecutionResult",
    "NodeOutput",
    "RunOutputs",
    "WorkflowExecution",
    "LogEntry",
    "VariableReference",
]

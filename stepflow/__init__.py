"""stepflow: run graphs of service-call steps in dependency order, passing data between them."""

__version__ = "1.0.0"

from .config import AppConfig, get_config, load_config, reset_config
from .models import (
    WorkflowDefinition,
    WorkflowNode,
    WorkflowEdge,
    WorkflowVariable,
    WorkflowExecution,
    NodeExecutionResult,
    NodeOutput,
    RunOutputs,
    ExecutionStatusEnum,
    NodeStatusEnum,
)
from .core import CycleError, StepExecutionError, StepRegistry, StepExecutor, Scheduler
from .core.execution_engine import ExecutionEngine
from .core.graph_validator import GraphValidator, validate_variable_references
from .variables import VariableStore, VariableExtractor, substitute_config, substitute_string
from .factory import EngineComponents, create_execution_engine

__all__ = [
    "__version__",
    "AppConfig",
    "get_config",
    "load_config",
    "reset_config",
    "WorkflowDefinition",
    "WorkflowNode",
    "WorkflowEdge",
    "WorkflowVariable",
    "WorkflowExecution",
    "NodeExecutionResult",
    "NodeOutput",
    "RunOutputs",
    "ExecutionStatusEnum",
    "NodeStatusEnum",
    "CycleError",
    "StepExecutionError",
    "StepRegistry",
    "StepExecutor",
    "Scheduler",
    "ExecutionEngine",
    "GraphValidator",
    "validate_variable_references",
    "VariableStore",
    "VariableExtractor",
    "substitute_config",
    "substitute_string",
    "EngineComponents",
    "create_execution_engine",
]

"""Core workflow engine components."""

from .exceptions import (
    WorkflowEngineError,
    GraphValidationError,
    CycleError,
    StepExecutionError,
    UnsupportedStepTypeError,
    VariableResolutionError,
    ExtractionError,
    InputValidationError,
    StepRegistryError,
    ExecutionEngineError,
    StorageError,
    ConfigurationError,
)
from .logging import setup_logging, get_logger
from .scheduler import Scheduler, topological_order
from .step_registry import StepExecutor, CallableStepExecutor, StepRegistry, create_registry

__all__ = [
    "WorkflowEngineError",
    "GraphValidationError",
    "CycleError",
    "StepExecutionError",
    "UnsupportedStepTypeError",
    "VariableResolutionError",
    "ExtractionError",
    "InputValidationError",
    "StepRegistryError",
    "ExecutionEngineError",
    "StorageError",
    "ConfigurationError",
    "setup_logging",
    "get_logger",
    "Scheduler",
    "topological_order",
    "StepExecutor",
    "CallableStepExecutor",
    "StepRegistry",
    "create_registry",
]

"""Structural and variable-reference validation for workflow definitions."""

from typing import Any, Iterable, List, Optional

from ..models.core import ValidationResult, WorkflowDefinition
from ..variables.parser import parse_variable_references
from ..variables.workflow_inputs import WORKFLOW_NAMESPACE, extract_input_references
from .exceptions import CycleError
from .logging import get_logger
from .scheduler import Scheduler
from .step_registry import StepRegistry

logger = get_logger(__name__)


def _walk_references(value: Any, path: str):
    """Yield (path, reference) for every step reference in a configuration tree."""
    if isinstance(value, str):
        for reference in parse_variable_references(value):
            yield path, reference
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from _walk_references(item, f"{path}[{index}]")
    elif isinstance(value, dict):
        for key, item in value.items():
            yield from _walk_references(item, f"{path}.{key}" if path else str(key))


def validate_variable_references(config: Any, available_steps: Iterable[str]) -> ValidationResult:
    """
    Check that every {{step.path}} reference in config names an available step.

    Args:
        config: Step configuration tree
        available_steps: Step ids that may be referenced

    Returns:
        ValidationResult with one error per reference to an unknown step
    """
    available = set(available_steps)
    errors: List[str] = []

    for path, reference in _walk_references(config, ""):
        if reference.node_id == WORKFLOW_NAMESPACE:
            continue
        if reference.node_id not in available:
            errors.append(f"Invalid step reference '{reference.node_id}' in {path}")

    return ValidationResult(is_valid=not errors, errors=errors)


class GraphValidator:
    """Validates workflow definitions before they are run."""

    def __init__(self, registry: Optional[StepRegistry] = None, scheduler: Optional[Scheduler] = None,
                 passthrough_types: Iterable[str] = ()):
        self.registry = registry
        self.scheduler = scheduler or Scheduler()
        self.passthrough_types = {step_type.lower() for step_type in passthrough_types}

    def validate(self, workflow: WorkflowDefinition) -> ValidationResult:
        """
        Validate a workflow definition for structural correctness.

        Errors make the workflow unrunnable or guarantee unresolvable
        references; warnings flag things that are ignored or likely mistakes.
        """
        logger.debug(f"Validating workflow: {workflow.name}")
        errors: List[str] = []
        warnings: List[str] = []

        node_ids = set(workflow.node_ids())

        for edge in workflow.edges:
            if edge.source not in node_ids:
                warnings.append(f"Edge references non-existent source step '{edge.source}' and will be ignored")
            if edge.target not in node_ids:
                warnings.append(f"Edge references non-existent target step '{edge.target}' and will be ignored")

        try:
            self.scheduler.order_workflow(workflow)
        except CycleError as e:
            errors.append(e.message)

        if WORKFLOW_NAMESPACE in node_ids:
            warnings.append(
                f"Step id '{WORKFLOW_NAMESPACE}' collides with workflow input references"
            )

        declared_inputs = {variable.name for variable in workflow.variables}

        for node in workflow.nodes:
            result = validate_variable_references(node.config, node_ids)
            errors.extend(f"Step '{node.id}': {error}" for error in result.errors)

            upstream = set(self.scheduler.upstream_of(workflow, node.id))
            for path, reference in _walk_references(node.config, ""):
                if reference.node_id in node_ids and reference.node_id not in upstream:
                    warnings.append(
                        f"Step '{node.id}' references '{reference.node_id}' in {path} "
                        f"but does not depend on it"
                    )

            for name in extract_input_references(node.config):
                if name not in declared_inputs:
                    warnings.append(f"Step '{node.id}' references undeclared workflow variable '{name}'")

            if self.registry is not None:
                step_type = node.type.lower()
                if step_type not in self.passthrough_types and not self.registry.has(step_type):
                    warnings.append(f"Step '{node.id}' has type '{node.type}' with no registered executor")

        result = ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
        logger.debug(
            f"Workflow validation completed. Valid: {result.is_valid}, "
            f"Errors: {len(result.errors)}, Warnings: {len(result.warnings)}"
        )
        return result

"""Workflow-level input variables referenced as {{workflow.name}}."""

import json
import re
from typing import Any, Dict, List, Mapping

from ..models.core import ValidationResult, VariableTypeEnum, WorkflowVariable
from ..core.logging import get_logger

logger = get_logger(__name__)

WORKFLOW_NAMESPACE = "workflow"
WORKFLOW_VARIABLE_PATTERN = re.compile(r"\{\{workflow\.([^}]+)\}\}")


def _matches_type(value: Any, declared: VariableTypeEnum) -> bool:
    if declared == VariableTypeEnum.STRING:
        return isinstance(value, str)
    if declared == VariableTypeEnum.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if declared == VariableTypeEnum.BOOLEAN:
        return isinstance(value, bool)
    if declared == VariableTypeEnum.ARRAY:
        return isinstance(value, list)
    if declared == VariableTypeEnum.OBJECT:
        return isinstance(value, dict)
    return True


def parse_variable_definitions(workflow_config: Mapping[str, Any]) -> List[WorkflowVariable]:
    """Read variable definitions from a raw workflow configuration mapping."""
    raw_definitions = workflow_config.get("variables") if isinstance(workflow_config, Mapping) else None
    if not isinstance(raw_definitions, list):
        return []
    return [WorkflowVariable(**definition) for definition in raw_definitions]


def validate_inputs(values: Mapping[str, Any], definitions: List[WorkflowVariable]) -> ValidationResult:
    """
    Check input values against their definitions.

    Args:
        values: Input values keyed by variable name
        definitions: Declared workflow variables

    Returns:
        ValidationResult listing every violated constraint
    """
    logger.debug(f"Validating {len(values)} workflow inputs against {len(definitions)} definitions")
    errors: List[str] = []

    for definition in definitions:
        value = values.get(definition.name)

        if value is None:
            if definition.required:
                errors.append(f"Variable '{definition.name}' is required")
            continue

        if not _matches_type(value, definition.type):
            errors.append(f"Variable '{definition.name}' must be of type {definition.type.value}")

        rules = definition.validation
        if rules.pattern and isinstance(value, str):
            if not re.search(rules.pattern, value):
                errors.append(f"Variable '{definition.name}' does not match required pattern")

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if rules.min is not None and value < rules.min:
                errors.append(f"Variable '{definition.name}' must be >= {rules.min:g}")
            if rules.max is not None and value > rules.max:
                errors.append(f"Variable '{definition.name}' must be <= {rules.max:g}")

        if rules.options is not None and value not in rules.options:
            options = ", ".join(str(option) for option in rules.options)
            errors.append(f"Variable '{definition.name}' must be one of: {options}")

    return ValidationResult(is_valid=not errors, errors=errors)


def apply_defaults(values: Mapping[str, Any], definitions: List[WorkflowVariable]) -> Dict[str, Any]:
    """New mapping with declared defaults filled in for missing or None values."""
    result = dict(values)
    for definition in definitions:
        if definition.default_value is not None and result.get(definition.name) is None:
            result[definition.name] = definition.default_value
            logger.debug(f"Applied default value for workflow variable '{definition.name}'")
    return result


def get_variable_schema(definitions: List[WorkflowVariable]) -> Dict[str, Dict[str, Any]]:
    """Schema description of the declared variables, keyed by name."""
    return {
        definition.name: {
            "type": definition.type.value,
            "required": definition.required,
            "description": definition.description,
            "default_value": definition.default_value,
            "validation": definition.validation.model_dump(exclude_none=True),
        }
        for definition in definitions
    }


def _substitute_in_string(text: str, values: Mapping[str, Any]) -> str:
    def replace(match):
        name = match.group(1)
        if name in values:
            value = values[name]
            return value if isinstance(value, str) else json.dumps(value, separators=(",", ":"), default=str)
        logger.warning(f"Workflow variable not found: {name} (available: {sorted(values)})")
        return match.group(0)

    return WORKFLOW_VARIABLE_PATTERN.sub(replace, text)


def substitute_workflow_inputs(tree: Any, values: Mapping[str, Any]) -> Any:
    """Replace {{workflow.name}} references throughout a configuration tree."""
    if isinstance(tree, str):
        return _substitute_in_string(tree, values)
    if isinstance(tree, list):
        return [substitute_workflow_inputs(item, values) for item in tree]
    if isinstance(tree, dict):
        return {key: substitute_workflow_inputs(value, values) for key, value in tree.items()}
    return tree


def extract_input_references(tree: Any) -> List[str]:
    """Sorted names of every workflow variable referenced in a configuration tree."""
    names = set()

    def visit(value: Any) -> None:
        if isinstance(value, str):
            names.update(WORKFLOW_VARIABLE_PATTERN.findall(value))
        elif isinstance(value, list):
            for item in value:
                visit(item)
        elif isinstance(value, dict):
            for item in value.values():
                visit(item)

    visit(tree)
    return sorted(names)

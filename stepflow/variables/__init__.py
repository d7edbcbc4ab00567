"""Variable passing between workflow steps."""

from .store import VariableStore
from .parser import parse_variable_references, contains_references
from .resolver import Resolution, resolve_reference, try_resolve
from .substitution import (
    SubstitutionResult,
    stringify_value,
    substitute_string,
    substitute_string_detailed,
    substitute_config,
    substitute_config_detailed,
)
from .extractor import ExtractionResult, VariableExtractor
from .workflow_inputs import (
    WORKFLOW_NAMESPACE,
    apply_defaults,
    extract_input_references,
    get_variable_schema,
    parse_variable_definitions,
    substitute_workflow_inputs,
    validate_inputs,
)

__all__ = [
    "VariableStore",
    "parse_variable_references",
    "contains_references",
    "Resolution",
    "resolve_reference",
    "try_resolve",
    "SubstitutionResult",
    "stringify_value",
    "substitute_string",
    "substitute_string_detailed",
    "substitute_config",
    "substitute_config_detailed",
    "ExtractionResult",
    "VariableExtractor",
    "WORKFLOW_NAMESPACE",
    "apply_defaults",
    "extract_input_references",
    "get_variable_schema",
    "parse_variable_definitions",
    "substitute_workflow_inputs",
    "validate_inputs",
]

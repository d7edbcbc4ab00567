"""Substitution of variable references inside strings and configuration trees."""

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..core.logging import get_logger
from .parser import VARIABLE_PATTERN, parse_variable_references
from .resolver import Resolution, try_resolve
from .store import VariableStore

logger = get_logger(__name__)


@dataclass
class SubstitutionResult:
    """Substituted value plus the placeholders that were left untouched."""
    value: Any
    unresolved: List[Resolution] = field(default_factory=list)

    @property
    def fully_resolved(self) -> bool:
        return not self.unresolved

    def unresolved_expressions(self) -> List[str]:
        seen: List[str] = []
        for resolution in self.unresolved:
            if resolution.reference.full_expression not in seen:
                seen.append(resolution.reference.full_expression)
        return seen


def stringify_value(value: Any) -> str:
    """Text inserted in place of a reference: strings as-is, everything else as compact JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def substitute_string_detailed(text: str, store: VariableStore) -> SubstitutionResult:
    """Replace every resolvable reference in text and report the ones that failed."""
    if not isinstance(text, str):
        return SubstitutionResult(value=text)

    references = parse_variable_references(text)
    if not references:
        return SubstitutionResult(value=text)

    resolutions: Dict[str, Resolution] = {}
    unresolved: List[Resolution] = []
    for reference in references:
        if reference.full_expression not in resolutions:
            resolutions[reference.full_expression] = try_resolve(reference, store)
        resolution = resolutions[reference.full_expression]
        if not resolution.ok:
            logger.debug(f"Leaving {reference.full_expression} unresolved: {resolution.error}")
            unresolved.append(resolution)

    def replace(match):
        resolution = resolutions.get(match.group(0))
        if resolution is None or not resolution.ok:
            return match.group(0)
        return stringify_value(resolution.value)

    return SubstitutionResult(value=VARIABLE_PATTERN.sub(replace, text), unresolved=unresolved)


def substitute_string(text: str, store: VariableStore) -> str:
    """Replace every resolvable reference in text; unresolvable ones stay verbatim."""
    return substitute_string_detailed(text, store).value


def substitute_config_detailed(tree: Any, store: VariableStore) -> SubstitutionResult:
    """Substitute references throughout a configuration tree without mutating it."""
    unresolved: List[Resolution] = []

    def visit(value: Any) -> Any:
        if isinstance(value, str):
            result = substitute_string_detailed(value, store)
            unresolved.extend(result.unresolved)
            return result.value
        if isinstance(value, dict):
            return {key: visit(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            substituted = []
            for item in value:
                if isinstance(item, str):
                    substituted.append(visit(item))
                else:
                    substituted.append(copy.deepcopy(item))
            return substituted
        return copy.deepcopy(value)

    return SubstitutionResult(value=visit(tree), unresolved=unresolved)


def substitute_config(tree: Any, store: VariableStore) -> Any:
    """Deep-copying substitution over maps, sequences and scalars.

    Strings inside sequences are substituted; other sequence elements are
    copied unchanged.
    """
    return substitute_config_detailed(tree, store).value

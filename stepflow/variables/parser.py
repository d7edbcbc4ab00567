"""Parser for {{step.path}} variable references."""

import re
from typing import List

from ..models.core import VariableReference

VARIABLE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")


def parse_variable_references(text: str) -> List[VariableReference]:
    """
    Find every variable reference in text, left to right.

    A span whose trimmed contents has no '.' is not a reference and is
    skipped. Otherwise everything before the first '.' is the step id and
    the rest is the path.

    Args:
        text: Arbitrary string that may contain {{...}} spans

    Returns:
        References in the order they appear; repeated spans appear repeatedly
    """
    if not isinstance(text, str):
        return []

    references: List[VariableReference] = []
    for match in VARIABLE_PATTERN.finditer(text):
        inner = match.group(1).strip()
        parts = inner.split(".")
        if len(parts) < 2:
            continue
        references.append(
            VariableReference(
                node_id=parts[0],
                path=".".join(parts[1:]),
                full_expression=match.group(0),
            )
        )
    return references


def contains_references(text: str) -> bool:
    """Whether text holds at least one valid reference."""
    return bool(parse_variable_references(text))

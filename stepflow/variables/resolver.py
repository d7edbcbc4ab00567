"""Resolution of variable references against stored step outputs."""

import re
from dataclasses import dataclass
from typing import Any, Optional

from ..models.core import NodeStatusEnum, VariableReference
from ..core.exceptions import (
    IndexOutOfRangeError,
    NotAnArrayError,
    PropertyNotFoundError,
    StepNotFoundError,
    StepNotSuccessfulError,
    VariableResolutionError,
)
from .store import VariableStore

INDEXED_SEGMENT = re.compile(r"^([^\[]+)\[(\d+)\]$")


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one reference: a value or the reason it failed."""
    reference: VariableReference
    value: Any = None
    error: Optional[VariableResolutionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _walk_segment(current: Any, segment: str, reference: VariableReference) -> Any:
    indexed = INDEXED_SEGMENT.match(segment)
    if indexed:
        name, index = indexed.group(1), int(indexed.group(2))
        sequence = current.get(name) if isinstance(current, dict) else None
        if not isinstance(sequence, (list, tuple)):
            raise NotAnArrayError(
                f"Failed to resolve {reference.full_expression}: "
                f"Array {name} not found or not an array",
                reference=reference.full_expression
            )
        if index >= len(sequence):
            raise IndexOutOfRangeError(
                f"Failed to resolve {reference.full_expression}: "
                f"Index {index} out of range for {name} (length {len(sequence)})",
                reference=reference.full_expression
            )
        return sequence[index]

    if isinstance(current, dict) and segment in current:
        return current[segment]
    raise PropertyNotFoundError(
        f"Failed to resolve {reference.full_expression}: Property {segment} not found",
        reference=reference.full_expression
    )


def resolve_reference(reference: VariableReference, store: VariableStore) -> Any:
    """
    Navigate a reference's path through the referenced step's stored output.

    The walk starts at the stored output's reference view, so paths
    normally begin with ``data`` or ``extractedData``. A segment of the
    form ``name[i]`` indexes into the sequence named ``name``.

    Raises:
        StepNotFoundError: The step has no stored output
        StepNotSuccessfulError: The stored output is not a success
        NotAnArrayError: An indexed segment does not name a sequence
        IndexOutOfRangeError: An index is past the end of its sequence
        PropertyNotFoundError: A plain segment is missing
    """
    output = store.get(reference.node_id)
    if output is None:
        raise StepNotFoundError(
            f"Node output not found for node: {reference.node_id}",
            reference=reference.full_expression
        )
    if output.status != NodeStatusEnum.SUCCESS:
        raise StepNotSuccessfulError(
            f"Cannot reference data from failed node: {reference.node_id}",
            reference=reference.full_expression
        )

    current: Any = output.as_reference_view()
    for segment in reference.path.split("."):
        current = _walk_segment(current, segment, reference)
    return current


def try_resolve(reference: VariableReference, store: VariableStore) -> Resolution:
    """Resolve a reference without raising; failures come back on the Resolution."""
    try:
        return Resolution(reference=reference, value=resolve_reference(reference, store))
    except VariableResolutionError as e:
        return Resolution(reference=reference, error=e)

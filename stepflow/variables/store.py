"""In-memory store of step outputs for a single workflow run."""

from typing import Any, Dict, Iterator, Optional

from ..models.core import NodeOutput, NodeStatusEnum
from ..core.logging import get_logger

logger = get_logger(__name__)


class VariableStore:
    """Maps step id to that step's captured output.

    One store belongs to one execution engine for the duration of one run;
    it is cleared when a new run starts and is never shared between
    concurrent runs.
    """

    def __init__(self):
        self._outputs: Dict[str, NodeOutput] = {}

    def put(self, node_id: str, output: NodeOutput) -> None:
        """Store (or overwrite) the output for a step."""
        if output.node_id != node_id:
            output = output.model_copy(update={"node_id": node_id})
        logger.debug(
            f"Storing output for step {node_id} (type={output.node_type}, "
            f"status={output.status.value}, extracted_keys={sorted(output.extracted_data)})"
        )
        self._outputs[node_id] = output

    def get(self, node_id: str) -> Optional[NodeOutput]:
        return self._outputs.get(node_id)

    def has(self, node_id: str) -> bool:
        """True only if the step has an output and it succeeded."""
        output = self._outputs.get(node_id)
        return output is not None and output.status == NodeStatusEnum.SUCCESS

    def clear(self) -> None:
        logger.debug(f"Clearing {len(self._outputs)} stored step outputs")
        self._outputs.clear()

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Point-in-time view of every successful step's output."""
        variables: Dict[str, Dict[str, Any]] = {}
        for node_id, output in self._outputs.items():
            if output.status != NodeStatusEnum.SUCCESS:
                continue
            variables[node_id] = {
                "nodeType": output.node_type,
                "data": output.data,
                "extractedData": dict(output.extracted_data),
                "timestamp": output.timestamp.isoformat(),
            }
        return variables

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._outputs

    def __len__(self) -> int:
        return len(self._outputs)

    def __iter__(self) -> Iterator[str]:
        return iter(self._outputs)

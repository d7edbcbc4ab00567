"""Scheduler that linearizes a workflow graph into a safe run order."""

from collections import deque
from typing import Deque, Dict, Iterable, List, Sequence, Union

from ..models.core import WorkflowDefinition, WorkflowEdge, WorkflowNode
from .exceptions import CycleError
from .logging import get_logger

logger = get_logger(__name__)


def _node_id(node: Union[WorkflowNode, str]) -> str:
    return node if isinstance(node, str) else node.id


def topological_order(
    nodes: Sequence[Union[WorkflowNode, str]],
    edges: Iterable[WorkflowEdge]
) -> List[str]:
    """
    Compute a run order with Kahn's algorithm.

    Steps with no pending dependencies run in declaration order. Edges whose
    endpoints are not both declared are dropped.

    Args:
        nodes: Declared steps (or step ids) in declaration order
        edges: Dependencies between steps

    Returns:
        Every step id exactly once, each after all of its declared predecessors

    Raises:
        CycleError: If the graph contains a cycle
    """
    node_ids = [_node_id(node) for node in nodes]
    in_degree: Dict[str, int] = {node_id: 0 for node_id in node_ids}
    successors: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}

    for edge in edges:
        if edge.source not in in_degree or edge.target not in in_degree:
            logger.debug(f"Ignoring edge with unknown endpoint: {edge.source} -> {edge.target}")
            continue
        successors[edge.source].append(edge.target)
        in_degree[edge.target] += 1

    queue: Deque[str] = deque(node_id for node_id in node_ids if in_degree[node_id] == 0)
    order: List[str] = []

    while queue:
        current = queue.popleft()
        order.append(current)
        for successor in successors[current]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    if len(order) < len(node_ids):
        remaining = [node_id for node_id in node_ids if in_degree[node_id] > 0]
        raise CycleError(
            f"Workflow contains a cycle involving steps: {', '.join(remaining)}",
            remaining_nodes=remaining
        )

    return order


class Scheduler:
    """Computes execution order for workflow definitions."""

    def order(
        self,
        nodes: Sequence[Union[WorkflowNode, str]],
        edges: Iterable[WorkflowEdge]
    ) -> List[str]:
        """Return a valid run order or raise CycleError."""
        return topological_order(nodes, edges)

    def order_workflow(self, workflow: WorkflowDefinition) -> List[str]:
        """Return the run order for a whole workflow definition."""
        order = topological_order(workflow.nodes, workflow.edges)
        logger.debug(f"Computed execution order for workflow {workflow.id}: {order}")
        return order

    def upstream_of(self, workflow: WorkflowDefinition, node_id: str) -> List[str]:
        """All steps that must complete before node_id, nearest first."""
        known = set(workflow.node_ids())
        predecessors: Dict[str, List[str]] = {}
        for edge in workflow.edges:
            if edge.source in known and edge.target in known:
                predecessors.setdefault(edge.target, []).append(edge.source)

        seen: List[str] = []
        queue: Deque[str] = deque(predecessors.get(node_id, []))
        while queue:
            current = queue.popleft()
            if current in seen or current == node_id:
                continue
            seen.append(current)
            queue.extend(predecessors.get(current, []))
        return seen

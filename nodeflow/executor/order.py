"""Execution order for single-parent workflow graphs."""

from collections import defaultdict
from typing import Dict, List, Sequence, Set

import structlog

from nodeflow.workflows.schemas import GraphNode

logger = structlog.get_logger()


def build_execution_order(nodes: Sequence[GraphNode]) -> List[GraphNode]:
    """
    Order nodes so that every node comes after its parent.

    Each ``parent_node`` pointer is treated as the node's only predecessor. Roots
    are walked depth-first through their children; any node left over (a dangling
    parent reference, a disconnected node) is swept through the same placement,
    so every input node appears exactly once. A parent id that is not in ``nodes``
    counts as no parent.

    Args:
        nodes: Workflow nodes in document order

    Returns:
        Nodes in execution order
    """
    nodes_by_id: Dict[str, GraphNode] = {node.id: node for node in nodes}
    children: Dict[str, List[GraphNode]] = defaultdict(list)
    for node in nodes:
        if node.parent_node in nodes_by_id:
            children[node.parent_node].append(node)

    order: List[GraphNode] = []
    processed: Set[str] = set()

    def place(node: GraphNode) -> None:
        if node.id in processed:
            return

        # Climb to the highest unplaced ancestor; a parent-pointer loop stops the climb
        top = node
        seen = {node.id}
        parent = nodes_by_id.get(node.parent_node) if node.parent_node else None
        while parent is not None and parent.id not in processed and parent.id not in seen:
            top = parent
            seen.add(parent.id)
            parent = nodes_by_id.get(parent.parent_node) if parent.parent_node else None

        stack = [top]
        while stack:
            current = stack.pop()
            if current.id in processed:
                continue
            order.append(current)
            processed.add(current.id)
            stack.extend(reversed(children.get(current.id, [])))

    roots = [node for node in nodes if not node.parent_node]
    for root in roots:
        place(root)

    # Dangling parents, parent-pointer loops and disconnected nodes
    for node in nodes:
        place(node)

    logger.debug(
        "Built execution order",
        execution_order=[node.id for node in order],
    )
    return order

"""Execution context handed to node templates."""

from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from nodeflow.workflows.schemas import GraphNode
from .data import WorkflowRunState

logger = structlog.get_logger()

LoopBodyLookup = Callable[[str], Optional[GraphNode]]
LoopBodyExecutor = Callable[[str, GraphNode, Any, int, List[Any]], Awaitable[Any]]


class ExecutionContext:
    """
    Read-only view of a workflow run for a single node execution.

    The loop members are only present for contexts that may drive a loop body;
    templates must check them for None before use.
    """

    def __init__(
        self,
        node: GraphNode,
        run_state: WorkflowRunState,
        nodes_by_id: Dict[str, GraphNode],
        get_loop_body_node: Optional[LoopBodyLookup] = None,
        execute_loop_body: Optional[LoopBodyExecutor] = None,
        include_upstream: bool = True,
    ):
        self.node = node
        self.workflow_id = run_state.workflow_id
        self.node_id = node.id
        self.variables = dict(run_state.global_variables)
        self.workflow_context = run_state
        self.get_loop_body_node = get_loop_body_node
        self.execute_loop_body = execute_loop_body

        self._nodes_by_id = nodes_by_id
        self._include_upstream = include_upstream

        # Logger with context
        self.logger = logger.bind(
            workflow_id=run_state.workflow_id,
            node_id=node.id,
            node_type=node.type,
        )

    @property
    def is_loop_iteration(self) -> bool:
        """Whether this context belongs to a loop-body invocation."""
        return self.node.loop_context is not None

    def get_upstream_data(self, node_id: str) -> Optional[Dict[str, Any]]:
        """Get outputs of any node that already ran successfully."""
        return self.workflow_context.get_successful_outputs(node_id)

    def get_all_upstream_data(self) -> Dict[str, Dict[str, Any]]:
        """Get outputs of every successful ancestor along the parent chain."""
        if not self._include_upstream:
            return {}

        all_data: Dict[str, Dict[str, Any]] = {}
        visited = {self.node.id}
        parent_id = self.node.parent_node

        while parent_id and parent_id not in visited:
            visited.add(parent_id)
            outputs = self.get_upstream_data(parent_id)
            if outputs is not None:
                all_data[parent_id] = outputs
            parent = self._nodes_by_id.get(parent_id)
            parent_id = parent.parent_node if parent else None

        return all_data

    def get_upstream_data_by_type(self, node_type: str) -> List[Dict[str, Any]]:
        """Get outputs of every successful node of a given type."""
        return [result.outputs for result in self.workflow_context.results_by_type(node_type)]

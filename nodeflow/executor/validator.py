"""Structural validation of workflow graphs before execution."""

from typing import Any, Dict, List, Optional

import networkx as nx
import structlog
from pydantic import BaseModel, Field

from nodeflow.config import Settings, get_settings
from nodeflow.workflows.schemas import GraphNode, WorkflowGraph
from .errors import (
    CircularDependencyError,
    UnreachableNodesError,
    WorkflowValidationError,
)

logger = structlog.get_logger()


class ValidationResult(BaseModel):
    """Outcome of graph validation."""

    valid: bool = Field(..., description="Whether the graph may be executed")
    error: Optional[str] = Field(None, description="First violated invariant")
    error_code: Optional[str] = Field(None, description="Machine-readable error code")
    details: Dict[str, Any] = Field(default_factory=dict, description="Error details")


def build_edge_graph(graph: WorkflowGraph) -> nx.DiGraph:
    """Build a directed graph from the workflow's nodes and edges."""
    digraph = nx.DiGraph()

    for node in graph.nodes:
        digraph.add_node(node.id, type=node.type)

    for edge in graph.edges:
        digraph.add_edge(
            edge.source,
            edge.target,
            source_handle=edge.source_handle,
            target_handle=edge.target_handle,
        )

    return digraph


class GraphValidator:
    """
    Checks the structural invariants of a workflow graph.

    Checks run in order and stop at the first failure:
    exactly one start node, exactly one end node, no cycle, every node
    reachable from the start node.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = logger.bind(component="graph_validator")

    def validate(self, graph: WorkflowGraph) -> ValidationResult:
        """Validate a graph without raising."""
        try:
            self.check(graph)
        except WorkflowValidationError as e:
            self.logger.warning(
                "Workflow validation failed",
                workflow_id=graph.id,
                error=e.message,
                error_code=e.error_code,
            )
            return ValidationResult(
                valid=False,
                error=e.message,
                error_code=e.error_code,
                details=e.details,
            )
        return ValidationResult(valid=True)

    def check(self, graph: WorkflowGraph) -> None:
        """
        Validate a graph, raising on the first violated invariant.

        Raises:
            WorkflowValidationError: On a missing or duplicate start/end node
            CircularDependencyError: If the edges contain a cycle
            UnreachableNodesError: If a node cannot be reached from the start node
        """
        start_node = self._require_single(graph, self.settings.start_node_type, "start")
        self._require_single(graph, self.settings.end_node_type, "end")

        digraph = build_edge_graph(graph)

        cycle = self.find_cycle(digraph)
        if cycle:
            raise CircularDependencyError(
                "Workflow cannot contain cyclic connections",
                cycle_path=cycle,
            )

        reachable = nx.descendants(digraph, start_node.id) | {start_node.id}
        unreachable = [node.id for node in graph.nodes if node.id not in reachable]
        if unreachable:
            raise UnreachableNodesError(
                f"Unreachable nodes: {', '.join(unreachable)}",
                node_ids=unreachable,
            )

    def _require_single(self, graph: WorkflowGraph, node_type: str, role: str) -> GraphNode:
        matches = [node for node in graph.nodes if node.type == node_type]
        if not matches:
            article = "an" if role[0] in "aeiou" else "a"
            raise WorkflowValidationError(f"Workflow must contain {article} {role} node")
        if len(matches) > 1:
            raise WorkflowValidationError(f"Workflow can only have one {role} node")
        return matches[0]

    @staticmethod
    def find_cycle(digraph: nx.DiGraph) -> List[str]:
        """Return the node path of one cycle, closed on its first node, or [] if acyclic."""
        try:
            edges = nx.find_cycle(digraph)
        except nx.NetworkXNoCycle:
            return []

        path = [source for source, _ in edges]
        return path + [path[0]]

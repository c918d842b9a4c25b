"""Workflow graph documents."""

from .schemas import (
    GraphEdge,
    GraphNode,
    LoopContext,
    ParameterSelection,
    WorkflowGraph,
)

__all__ = [
    "GraphEdge",
    "GraphNode",
    "LoopContext",
    "ParameterSelection",
    "WorkflowGraph",
]

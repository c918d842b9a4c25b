"""Workflow execution engine module."""

from .engine import WorkflowExecutor
from .context import ExecutionContext
from .errors import (
    ExecutionError,
    WorkflowExecutionError,
    WorkflowValidationError,
    CircularDependencyError,
    UnreachableNodesError,
    TemplateNotFoundError,
    NodeExecutionError,
    LoopBodyExecutionError,
)
from .data import ExecutionResult, WorkflowRunResult, WorkflowRunState
from .inputs import resolve_inputs
from .order import build_execution_order
from .runner import NodeRunner
from .validator import GraphValidator, ValidationResult

__all__ = [
    "WorkflowExecutor",
    "ExecutionContext",
    "ExecutionError",
    "WorkflowExecutionError",
    "WorkflowValidationError",
    "CircularDependencyError",
    "UnreachableNodesError",
    "TemplateNotFoundError",
    "NodeExecutionError",
    "LoopBodyExecutionError",
    "ExecutionResult",
    "WorkflowRunResult",
    "WorkflowRunState",
    "resolve_inputs",
    "build_execution_order",
    "NodeRunner",
    "GraphValidator",
    "ValidationResult",
]

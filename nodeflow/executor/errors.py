"""Execution engine error classes."""

from typing import Any, Dict, List, Optional

from nodeflow.exceptions import NodeFlowException


class ExecutionError(NodeFlowException):
    """Base class for all execution errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class WorkflowExecutionError(ExecutionError):
    """Raised when a workflow run is aborted."""

    def __init__(
        self,
        message: str,
        workflow_id: str,
        **kwargs
    ):
        kwargs.setdefault("error_code", "WORKFLOW_EXECUTION")
        super().__init__(message, **kwargs)
        self.workflow_id = workflow_id
        self.details["workflow_id"] = workflow_id


class WorkflowValidationError(ExecutionError):
    """Raised when the workflow graph violates a structural invariant."""

    def __init__(
        self,
        message: str,
        validation_errors: Optional[list] = None,
        **kwargs
    ):
        kwargs.setdefault("error_code", "WORKFLOW_VALIDATION")
        super().__init__(message, **kwargs)
        self.validation_errors = validation_errors or [message]
        self.details["validation_errors"] = self.validation_errors


class CircularDependencyError(WorkflowValidationError):
    """Raised when circular dependency is detected in workflow."""

    def __init__(
        self,
        message: str,
        cycle_path: list,
        **kwargs
    ):
        super().__init__(message, error_code="CIRCULAR_DEPENDENCY", **kwargs)
        self.cycle_path = cycle_path
        self.details["cycle_path"] = cycle_path


class UnreachableNodesError(WorkflowValidationError):
    """Raised when nodes cannot be reached from the start node."""

    def __init__(
        self,
        message: str,
        node_ids: List[str],
        **kwargs
    ):
        super().__init__(message, error_code="UNREACHABLE_NODES", **kwargs)
        self.node_ids = node_ids
        self.details["node_ids"] = node_ids


class TemplateNotFoundError(ExecutionError):
    """Raised when a node references an unregistered template type."""

    def __init__(
        self,
        message: str,
        node_id: str,
        node_type: str,
        **kwargs
    ):
        super().__init__(message, error_code="TEMPLATE_NOT_FOUND", **kwargs)
        self.node_id = node_id
        self.node_type = node_type
        self.details.update({
            "node_id": node_id,
            "node_type": node_type,
        })


class NodeExecutionError(ExecutionError):
    """Raised when node execution fails."""

    def __init__(
        self,
        message: str,
        node_id: str,
        node_type: str,
        **kwargs
    ):
        kwargs.setdefault("error_code", "NODE_EXECUTION")
        super().__init__(message, **kwargs)
        self.node_id = node_id
        self.node_type = node_type
        self.details.update({
            "node_id": node_id,
            "node_type": node_type,
        })


class LoopBodyExecutionError(NodeExecutionError):
    """Raised when a loop-body invocation fails for one element."""

    def __init__(
        self,
        message: str,
        node_id: str,
        node_type: str,
        loop_node_id: str,
        index: int,
        **kwargs
    ):
        super().__init__(
            message, node_id=node_id, node_type=node_type, error_code="LOOP_BODY_EXECUTION", **kwargs
        )
        self.loop_node_id = loop_node_id
        self.index = index
        self.details.update({
            "loop_node_id": loop_node_id,
            "index": index,
        })

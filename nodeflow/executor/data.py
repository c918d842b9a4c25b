"""Execution data handling classes."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionResult(BaseModel):
    """Outcome of one node execution."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    node_id: str = Field(..., description="Executed node ID")
    node_type: str = Field(..., description="Executed node type")
    timestamp: datetime = Field(default_factory=_utcnow, description="Execution start time")
    success: bool = Field(..., description="Whether the template returned normally")
    outputs: Dict[str, Any] = Field(default_factory=dict, description="Template outputs")
    error: Optional[str] = Field(None, description="Error message on failure")

    def get_output(self, key: str = "output", default: Any = None) -> Any:
        """Get a single output value."""
        return self.outputs.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        data = {
            "nodeId": self.node_id,
            "nodeType": self.node_type,
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "outputs": self.outputs,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


class WorkflowRunState(BaseModel):
    """Mutable record of one workflow run: per-node results and variables."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    workflow_id: str = Field(..., description="Workflow ID")
    start_time: datetime = Field(default_factory=_utcnow, description="Run start time")
    results: Dict[str, ExecutionResult] = Field(
        default_factory=dict,
        description="Execution results indexed by node ID"
    )
    global_variables: Dict[str, Any] = Field(
        default_factory=dict,
        description="Variables visible to all nodes"
    )

    def set_result(self, result: ExecutionResult) -> None:
        """Record a node result, replacing any earlier one for the same node."""
        self.results[result.node_id] = result

    def get_result(self, node_id: str) -> Optional[ExecutionResult]:
        """Get the result recorded for a node."""
        return self.results.get(node_id)

    def get_successful_outputs(self, node_id: str) -> Optional[Dict[str, Any]]:
        """Get outputs of a node if it ran successfully."""
        result = self.results.get(node_id)
        if result and result.success:
            return result.outputs
        return None

    def results_by_type(self, node_type: str) -> List[ExecutionResult]:
        """Get successful results of every node of a given type."""
        return [
            result for result in self.results.values()
            if result.node_type == node_type and result.success
        ]

    def reset(self) -> None:
        """Clear results and variables and restart the clock."""
        self.results.clear()
        self.global_variables = {}
        self.start_time = _utcnow()


class WorkflowRunResult(BaseModel):
    """Structured outcome of a workflow run."""

    success: bool
    results: Dict[str, ExecutionResult] = Field(default_factory=dict)
    final_output: Any = None
    error: Optional[str] = None
    error_details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert run result to dictionary."""
        data: Dict[str, Any] = {
            "success": self.success,
            "results": {
                node_id: result.to_dict()
                for node_id, result in self.results.items()
            },
        }
        if self.final_output is not None:
            data["finalOutput"] = self.final_output
        if self.error is not None:
            data["error"] = self.error
        if self.error_details is not None:
            data["errorDetails"] = self.error_details
        return data

    def to_json(self) -> str:
        """Convert run result to JSON string."""
        return json.dumps(self.to_dict(), default=str, ensure_ascii=False)

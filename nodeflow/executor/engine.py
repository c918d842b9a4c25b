"""Main workflow execution engine."""

from typing import Dict, Optional

import structlog

from nodeflow.config import Settings, get_settings
from nodeflow.nodes.registry import NodeRegistry, create_default_registry
from nodeflow.workflows.schemas import WorkflowGraph
from .data import ExecutionResult, WorkflowRunResult, WorkflowRunState
from .errors import (
    ExecutionError,
    TemplateNotFoundError,
    WorkflowExecutionError,
    WorkflowValidationError,
)
from .order import build_execution_order
from .runner import NodeRunner
from .validator import GraphValidator

logger = structlog.get_logger()


class WorkflowExecutor:
    """
    Runs one workflow graph at a time.

    The executor owns a single run state. Calling ``execute_workflow`` twice
    accumulates results into the same state unless ``reset`` is called between
    runs; concurrent runs need separate executors.
    """

    def __init__(
        self,
        workflow_id: str,
        registry: Optional[NodeRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        self.workflow_id = workflow_id
        self.settings = settings or get_settings()
        self.registry = registry if registry is not None else create_default_registry()
        self.validator = GraphValidator(self.settings)
        self.node_runner = NodeRunner(self.registry, self.settings)
        self.run_state = WorkflowRunState(workflow_id=workflow_id)
        self.logger = logger.bind(component="workflow_executor", workflow_id=workflow_id)

    async def execute_workflow(self, graph: WorkflowGraph) -> WorkflowRunResult:
        """
        Validate, order and execute a workflow graph.

        Engine failures (validation, missing templates, failing nodes) are
        reported in the returned result, never raised.
        """
        self.logger.info(
            "Starting workflow execution",
            node_count=len(graph.nodes),
            edge_count=len(graph.edges),
        )

        for name, value in graph.variables.items():
            self.run_state.global_variables.setdefault(name, value)

        try:
            self.validator.check(graph)
        except WorkflowValidationError as e:
            return self._failed(e)

        ordered_nodes = build_execution_order(graph.nodes)
        nodes_by_id = graph.nodes_by_id()
        final_output = None

        for node in ordered_nodes:
            # Loop bodies only run through their owning loop
            if node.is_loop_body_node:
                self.logger.debug("Skipping loop body node in main pass", node_id=node.id)
                continue

            try:
                result = await self.node_runner.execute_node(node, self.run_state, nodes_by_id)
            except TemplateNotFoundError as e:
                return self._failed(e)

            if not result.success:
                return self._failed(WorkflowExecutionError(
                    f"Node {node.id} execution failed: {result.error}",
                    workflow_id=self.workflow_id,
                    details={"node_id": node.id, "node_type": node.type},
                ))

            if node.type == self.settings.end_node_type:
                final_output = result.get_output("finalOutput")

        self.logger.info(
            "Workflow execution completed",
            executed_nodes=len(self.run_state.results),
        )
        return WorkflowRunResult(
            success=True,
            results=dict(self.run_state.results),
            final_output=final_output,
        )

    def reset(self) -> None:
        """Clear results and variables so the executor can be reused."""
        self.run_state.reset()
        self.logger.debug("Executor state reset")

    def get_execution_results(self) -> Dict[str, ExecutionResult]:
        """Get the current results map without re-running."""
        return dict(self.run_state.results)

    def _failed(self, error: ExecutionError) -> WorkflowRunResult:
        self.logger.error(
            "Workflow execution failed",
            error=error.message,
            error_code=error.error_code,
        )
        return WorkflowRunResult(
            success=False,
            results=dict(self.run_state.results),
            error=error.message,
            error_details=error.to_dict(),
        )

"""Node runner for executing individual nodes and loop bodies."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog

from nodeflow.config import Settings, get_settings
from nodeflow.workflows.schemas import GraphNode, LoopContext
from .context import ExecutionContext
from .data import ExecutionResult, WorkflowRunState
from .errors import LoopBodyExecutionError, NodeExecutionError, TemplateNotFoundError
from .inputs import resolve_inputs

if TYPE_CHECKING:
    from nodeflow.nodes.registry import NodeRegistry

logger = structlog.get_logger()


class NodeRunner:
    """Runs individual nodes against a workflow run state."""

    def __init__(self, registry: "NodeRegistry", settings: Optional[Settings] = None):
        self.registry = registry
        self.settings = settings or get_settings()
        self.logger = logger.bind(component="node_runner")

    async def execute_node(
        self,
        node: GraphNode,
        run_state: WorkflowRunState,
        nodes_by_id: Dict[str, GraphNode],
    ) -> ExecutionResult:
        """
        Execute one node and record its result in the run state.

        A template that raises produces a failed result; it is recorded and
        returned, not raised.

        Raises:
            TemplateNotFoundError: If no template is registered for the node type
        """
        template = self.registry.get(node.type)
        if template is None:
            raise TemplateNotFoundError(
                f"Node template not found for type: {node.type}",
                node_id=node.id,
                node_type=node.type,
            )

        node_logger = self.logger.bind(
            workflow_id=run_state.workflow_id,
            node_id=node.id,
            node_type=node.type,
        )
        started_at = datetime.now(timezone.utc)

        try:
            inputs = resolve_inputs(node, run_state)
            context = self.create_execution_context(node, run_state, nodes_by_id)

            node_logger.debug("Starting node execution", inputs=inputs, loop_iteration=context.is_loop_iteration)
            outputs = await template.execute(inputs, node.data, context)
            if not isinstance(outputs, dict):
                raise NodeExecutionError(
                    f"Template '{node.type}' returned {type(outputs).__name__}, expected a mapping",
                    node_id=node.id,
                    node_type=node.type,
                )

            result = ExecutionResult(
                node_id=node.id,
                node_type=node.type,
                timestamp=started_at,
                success=True,
                outputs=outputs,
            )
            node_logger.info("Node execution completed", output_keys=sorted(outputs))

        except Exception as e:
            result = ExecutionResult(
                node_id=node.id,
                node_type=node.type,
                timestamp=started_at,
                success=False,
                outputs={},
                error=str(e) or type(e).__name__,
            )
            node_logger.error(
                "Node execution failed",
                error=str(e),
                error_type=type(e).__name__,
            )

        run_state.set_result(result)
        return result

    async def execute_loop_body(
        self,
        loop_node: GraphNode,
        loop_body_node: GraphNode,
        element: Any,
        index: int,
        array: List[Any],
        run_state: WorkflowRunState,
        nodes_by_id: Dict[str, GraphNode],
    ) -> Any:
        """
        Run the loop-body node once for a single array element.

        Returns:
            The body's ``output`` value, or its whole output map when it has none

        Raises:
            LoopBodyExecutionError: If the body node fails for this element
        """
        loop_context = LoopContext(
            element=element,
            index=index,
            array=list(array),
            loop_node_id=loop_node.id,
        )
        iteration_node = loop_body_node.with_loop_context(loop_context)

        self.logger.debug(
            "Executing loop body",
            loop_node_id=loop_node.id,
            loop_body_node_id=loop_body_node.id,
            index=index,
        )
        result = await self.execute_node(iteration_node, run_state, nodes_by_id)

        if not result.success:
            raise LoopBodyExecutionError(
                f"Loop body node {loop_body_node.id} failed at index {index}: {result.error}",
                node_id=loop_body_node.id,
                node_type=loop_body_node.type,
                loop_node_id=loop_node.id,
                index=index,
            )

        if "output" in result.outputs:
            return result.outputs["output"]
        return result.outputs

    def create_execution_context(
        self,
        node: GraphNode,
        run_state: WorkflowRunState,
        nodes_by_id: Dict[str, GraphNode],
    ) -> ExecutionContext:
        """Create the context handed to a node's template."""
        # Loop iterations see only their injected loop context
        if node.loop_context is not None:
            return ExecutionContext(
                node=node,
                run_state=run_state,
                nodes_by_id={},
                include_upstream=False,
            )

        if node.loop_body_node is None and node.type != self.settings.loop_node_type:
            return ExecutionContext(node=node, run_state=run_state, nodes_by_id=nodes_by_id)

        def get_loop_body_node(loop_node_id: str) -> Optional[GraphNode]:
            loop_node = nodes_by_id.get(loop_node_id)
            if loop_node is None or not loop_node.loop_body_node:
                return None
            return nodes_by_id.get(loop_node.loop_body_node)

        async def execute_loop_body(
            loop_node_id: str,
            loop_body_node: GraphNode,
            element: Any,
            index: int,
            array: List[Any],
        ) -> Any:
            loop_node = nodes_by_id.get(loop_node_id, node)
            return await self.execute_loop_body(
                loop_node, loop_body_node, element, index, array, run_state, nodes_by_id
            )

        return ExecutionContext(
            node=node,
            run_state=run_state,
            nodes_by_id=nodes_by_id,
            get_loop_body_node=get_loop_body_node,
            execute_loop_body=execute_loop_body,
        )

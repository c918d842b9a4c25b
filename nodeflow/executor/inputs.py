"""Input resolution: turn upstream results into a node's input map."""

from typing import Any, Dict

import structlog

from nodeflow.workflows.schemas import GraphNode
from .data import WorkflowRunState

logger = structlog.get_logger()

DEFAULT_OUTPUT_KEY = "output"


def resolve_inputs(node: GraphNode, run_state: WorkflowRunState) -> Dict[str, Any]:
    """
    Compute the input map for a node.

    Precedence:
      1. A loop-body node carrying a loop context gets the iteration values.
      2. No parent: empty inputs (start nodes).
      3. Parent missing or failed: empty inputs and a warning.
      4. Parameter bindings declared: only ``upstream`` bindings on the parent
         whose output key the parent produced are filled; ``static`` bindings
         are left to the template.
      5. Otherwise the parent's ``output`` becomes ``input`` and ``inputArray``
         and every other parent output key is copied as is.

    The loop context is checked first because the owning loop node has not
    recorded its own result while its body runs.
    """
    if node.is_loop_body_node and node.loop_context is not None:
        return _loop_inputs(node)

    if not node.parent_node:
        return {}

    parent_result = run_state.get_result(node.parent_node)
    if parent_result is None or not parent_result.success:
        logger.warning(
            "Parent node has no successful result, node receives no input",
            node_id=node.id,
            parent_node=node.parent_node,
            parent_failed=parent_result is not None,
        )
        return {}

    selections = node.parameter_selections
    if selections is not None:
        inputs: Dict[str, Any] = {}
        for parameter_key, selection in selections.items():
            if selection.source != "upstream" or selection.source_node_id != node.parent_node:
                continue
            output_key = selection.source_output_key or DEFAULT_OUTPUT_KEY
            if output_key not in parent_result.outputs:
                # Left unset so the template falls back to its own default
                logger.warning(
                    "Bound output key missing from parent outputs",
                    node_id=node.id,
                    parameter_key=parameter_key,
                    output_key=output_key,
                )
                continue
            inputs[parameter_key] = parent_result.outputs[output_key]
        return inputs

    inputs = {}
    if DEFAULT_OUTPUT_KEY in parent_result.outputs:
        inputs["input"] = parent_result.outputs[DEFAULT_OUTPUT_KEY]
        inputs["inputArray"] = parent_result.outputs[DEFAULT_OUTPUT_KEY]
    for key, value in parent_result.outputs.items():
        if key != DEFAULT_OUTPUT_KEY:
            inputs[key] = value
    return inputs


def _loop_inputs(node: GraphNode) -> Dict[str, Any]:
    loop_context = node.loop_context
    return {
        "element": loop_context.element,
        "index": loop_context.index,
        "array": loop_context.array,
        "loopNodeId": loop_context.loop_node_id,
        "input": loop_context.element,
        "inputArray": [loop_context.element],
    }

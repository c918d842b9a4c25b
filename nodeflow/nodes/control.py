"""Control flow nodes."""

from typing import Any, Dict, List, Optional

from nodeflow.config import get_settings
from .base import (
    NodeCategory,
    NodeMetadata,
    NodeParameter,
    NodeTemplate,
    ParameterType,
    TemplateValidation,
    get_parameter_value,
)
from .expression import ExpressionError, ExpressionEvaluator

LOOP_TYPES = ("forEach", "map", "filter", "reduce")
MAX_ITERATIONS_WARNING = 10000

_MISSING = object()


class LoopNodeTemplate(NodeTemplate):
    """
    Iterates over an array.

    Each element is handed to the connected loop-body node when there is
    one, otherwise to ``loopBodyExpression``. Iterations run one at a time
    in index order.

    Loop types:
      forEach: visit every element; output the collected results or the input
      map: output the transformed elements, ``None`` for failed ones
      filter: keep elements whose result is truthy
      reduce: fold from the first element; a loop body receives
              ``{"element", "accumulator"}`` as its element
    """

    metadata = NodeMetadata(
        type="loop-processor",
        name="Loop",
        description="Iterate over an array with forEach, map, filter or reduce",
        category=NodeCategory.CONTROL,
        tags=["loop", "array", "control"],
    )

    parameters = [
        NodeParameter(
            key="inputArray",
            name="Input array",
            type=ParameterType.ARRAY,
            required=True,
            default=[],
            description="Array to iterate over",
        ),
    ]

    def __init__(self):
        super().__init__()
        self.evaluator = ExpressionEvaluator()

    def initial_data(self) -> Dict[str, Any]:
        data = super().initial_data()
        data.update({
            "loopType": "map",
            "maxIterations": get_settings().default_max_iterations,
            "collectResults": True,
            "breakOnError": False,
            "loopBodyExpression": "element",
        })
        return data

    def validate(self, node_data: Dict[str, Any]) -> TemplateValidation:
        errors: List[str] = []
        warnings: List[str] = []
        selections = node_data.get("parameterSelections") or {}
        array_selection = selections.get("inputArray")

        if not isinstance(array_selection, dict):
            errors.append("Loop node needs an input array")
        elif array_selection.get("source") == "upstream" and not (
            array_selection.get("sourceNodeId") and array_selection.get("sourceOutputKey")
        ):
            errors.append("Input array must select a valid upstream output")

        loop_type = node_data.get("loopType", "forEach")
        if loop_type not in LOOP_TYPES:
            errors.append(f"Unsupported loop type: {loop_type}")

        max_iterations = node_data.get("maxIterations")
        if max_iterations is not None and max_iterations <= 0:
            errors.append("Max iterations must be greater than 0")
        elif max_iterations is not None and max_iterations > MAX_ITERATIONS_WARNING:
            warnings.append("Max iterations is very large and may hurt performance")

        expression = (node_data.get("loopBodyExpression") or "").strip()
        if not expression:
            warnings.append("No loop body expression; elements pass through unchanged")
        elif not self.evaluator.validate_expression(expression):
            warnings.append("Loop body expression is not a safe expression and will be ignored")

        return TemplateValidation.from_messages(errors, warnings)

    async def execute(self, inputs, node_data, context):
        input_array = get_parameter_value("inputArray", inputs, node_data, context, default=_MISSING)
        if input_array is _MISSING or input_array is None:
            selections = node_data.get("parameterSelections") or {}
            if "input" not in inputs and isinstance(selections.get("inputArray"), dict):
                raise ValueError("Input array binding did not resolve to a value")
            input_array = inputs.get("input", [])
        if not isinstance(input_array, list):
            raise ValueError(f"Loop input must be an array, got {type(input_array).__name__}")

        loop_type = node_data.get("loopType", "forEach")
        if loop_type not in LOOP_TYPES:
            raise ValueError(f"Unsupported loop type: {loop_type}")

        loop_body_node = None
        if context.get_loop_body_node is not None and context.execute_loop_body is not None:
            loop_body_node = context.get_loop_body_node(context.node_id)

        max_iterations = node_data.get("maxIterations") or get_settings().default_max_iterations
        items = input_array[:max_iterations]
        if len(input_array) > max_iterations:
            context.logger.warning(
                "Input array truncated to max iterations",
                total=len(input_array),
                max_iterations=max_iterations,
            )

        context.logger.info(
            "Starting loop",
            loop_type=loop_type,
            items=len(items),
            loop_body_node=loop_body_node.id if loop_body_node else None,
        )

        run = LoopRun(self, context, node_data, items, loop_body_node)
        if loop_type == "forEach":
            output = await run.for_each()
        elif loop_type == "map":
            output = await run.map()
        elif loop_type == "filter":
            output = await run.filter()
        else:
            output = await run.reduce()

        context.logger.info("Loop completed", processed=run.processed_count, total=len(items))
        if run.errors:
            context.logger.warning("Loop finished with errors", errors=run.errors)

        outputs = {
            "output": output,
            "processedCount": run.processed_count,
            "totalCount": len(items),
            "loopType": loop_type,
        }
        if run.errors:
            outputs["errors"] = run.errors
        return outputs

    def evaluate_element(
        self,
        expression: str,
        element: Any,
        index: int,
        array: List[Any],
        context,
        accumulator: Any = None,
    ) -> Any:
        """Apply the loop-body expression; the element is returned unchanged when it fails."""
        if not expression or not expression.strip():
            return element
        try:
            return self.evaluator.evaluate_loop_expression(expression, element, index, array, accumulator)
        except ExpressionError as e:
            context.logger.warning("Loop expression failed", expression=expression, error=e.message)
            return element


class LoopRun:
    """State of one loop node execution."""

    def __init__(
        self,
        template: LoopNodeTemplate,
        context,
        node_data: Dict[str, Any],
        items: List[Any],
        loop_body_node,
    ):
        self.template = template
        self.context = context
        self.items = items
        self.loop_body_node = loop_body_node
        self.expression = node_data.get("loopBodyExpression") or ""
        self.collect_results = node_data.get("collectResults", True)
        self.break_on_error = node_data.get("breakOnError", False)
        self.processed_count = 0
        self.errors: List[str] = []

    async def process(self, element: Any, index: int, accumulator: Any = None, reducing: bool = False) -> Any:
        if self.loop_body_node is not None:
            body_element = {"element": element, "accumulator": accumulator} if reducing else element
            return await self.context.execute_loop_body(
                self.context.node_id, self.loop_body_node, body_element, index, list(self.items)
            )
        return self.template.evaluate_element(
            self.expression, element, index, list(self.items), self.context, accumulator
        )

    def record_error(self, index: int, action: str, error: Exception) -> bool:
        """Record a failed element; returns True when the loop must stop."""
        self.errors.append(f"Item {index} {action} failed: {error}")
        return bool(self.break_on_error)

    async def for_each(self) -> List[Any]:
        results = []
        for index, element in enumerate(self.items):
            try:
                processed = await self.process(element, index)
            except Exception as e:
                if self.record_error(index, "processing", e):
                    break
                continue
            if self.collect_results:
                results.append(processed)
            self.processed_count += 1
        return results if self.collect_results else list(self.items)

    async def map(self) -> List[Any]:
        results: List[Any] = []
        for index, element in enumerate(self.items):
            try:
                results.append(await self.process(element, index))
            except Exception as e:
                if self.record_error(index, "transform", e):
                    break
                results.append(None)
                continue
            self.processed_count += 1
        return results

    async def filter(self) -> List[Any]:
        results = []
        for index, element in enumerate(self.items):
            try:
                keep = await self.process(element, index)
            except Exception as e:
                if self.record_error(index, "filter", e):
                    break
                continue
            if keep:
                results.append(element)
            self.processed_count += 1
        return results

    async def reduce(self) -> Optional[Any]:
        if not self.items:
            return None
        accumulator = self.items[0]
        for index in range(1, len(self.items)):
            try:
                accumulator = await self.process(self.items[index], index, accumulator, reducing=True)
            except Exception as e:
                if self.record_error(index, "reduce", e):
                    break
                continue
            self.processed_count += 1
        return accumulator

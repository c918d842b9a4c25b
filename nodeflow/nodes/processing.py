"""Data processing nodes: text, math and conditional."""

import math
import re
from typing import Any, Dict, List, Union

from .base import (
    NodeCategory,
    NodeMetadata,
    NodeParameter,
    NodeTemplate,
    ParameterType,
    TemplateValidation,
    get_parameter_value,
)

Number = Union[int, float]

BINARY_MATH_OPERATIONS = ("add", "subtract", "multiply", "divide", "power")
UNARY_MATH_OPERATIONS = ("sqrt", "abs", "round")


def coerce_number(value: Any) -> Number:
    """Convert a loosely typed value to a number; unparseable values become NaN."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def to_text(value: Any) -> str:
    """Render a value as text the way the editor displays it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion; ints and floats compare by value."""
    numeric = (int, float)
    if (
        isinstance(left, numeric) and isinstance(right, numeric)
        and not isinstance(left, bool) and not isinstance(right, bool)
    ):
        return left == right
    return type(left) is type(right) and left == right


class TextProcessorTemplate(NodeTemplate):
    """Text transformations."""

    metadata = NodeMetadata(
        type="text-processor",
        name="Text Processor",
        description="Process text: change case, trim, replace, split or join",
        category=NodeCategory.PROCESSING,
        tags=["text", "string"],
    )

    parameters = [
        NodeParameter(
            key="textInput",
            name="Input text",
            type=ParameterType.STRING,
            required=True,
            default="",
            description="Text to process",
        ),
    ]

    operations = ("uppercase", "lowercase", "trim", "replace", "split", "concat")

    def initial_data(self) -> Dict[str, Any]:
        data = super().initial_data()
        data.update({
            "operation": "uppercase",
            "searchText": "",
            "replaceText": "",
            "separator": ",",
            "concatSeparator": " ",
        })
        return data

    def validate(self, node_data: Dict[str, Any]) -> TemplateValidation:
        errors = self.check_parameter_selections(node_data)
        operation = node_data.get("operation", "uppercase")
        if operation not in self.operations:
            errors.append(f"Unsupported text operation: {operation}")
        elif operation == "replace" and not node_data.get("searchText"):
            errors.append("Replace operation requires search text")
        return TemplateValidation.from_messages(errors)

    async def execute(self, inputs, node_data, context):
        text = get_parameter_value("textInput", inputs, node_data, context, default=inputs.get("input", ""))
        if text is None:
            text = ""
        operation = node_data.get("operation", "uppercase")

        context.logger.info("Processing text", operation=operation)

        if isinstance(text, str):
            result = self._apply(text, operation, node_data)
        elif operation == "concat" and isinstance(text, list):
            result = (node_data.get("concatSeparator") or " ").join(to_text(item) for item in text)
        else:
            result = to_text(text)

        return {"output": result}

    @staticmethod
    def _apply(text: str, operation: str, node_data: Dict[str, Any]) -> Any:
        if operation == "uppercase":
            return text.upper()
        if operation == "lowercase":
            return text.lower()
        if operation == "trim":
            return text.strip()
        if operation == "replace":
            return re.sub(node_data.get("searchText") or "", node_data.get("replaceText") or "", text)
        if operation == "split":
            return text.split(node_data.get("separator") or ",")
        return text


class MathProcessorTemplate(NodeTemplate):
    """Arithmetic on one or two numbers."""

    metadata = NodeMetadata(
        type="math-processor",
        name="Math Processor",
        description="Arithmetic: add, subtract, multiply, divide, power, sqrt, abs, round",
        category=NodeCategory.PROCESSING,
        tags=["math", "number"],
    )

    parameters = [
        NodeParameter(
            key="number1",
            name="First number",
            type=ParameterType.NUMBER,
            required=True,
            default=0,
            description="First operand",
        ),
        NodeParameter(
            key="number2",
            name="Second number",
            type=ParameterType.NUMBER,
            required=False,
            default=0,
            description="Second operand for binary operations",
        ),
    ]

    def initial_data(self) -> Dict[str, Any]:
        data = super().initial_data()
        data["operation"] = "add"
        return data

    def validate(self, node_data: Dict[str, Any]) -> TemplateValidation:
        errors: List[str] = []
        operation = node_data.get("operation", "add")
        selections = node_data.get("parameterSelections") or {}

        required = ["number1"]
        if operation in BINARY_MATH_OPERATIONS:
            required.append("number2")
        elif operation not in UNARY_MATH_OPERATIONS:
            errors.append(f"Unsupported math operation: {operation}")

        for key in required:
            selection = selections.get(key)
            if not isinstance(selection, dict) or (
                selection.get("source") == "static" and "staticValue" not in selection
            ):
                errors.append(f"Parameter '{key}' is not configured")

        return TemplateValidation.from_messages(errors)

    async def execute(self, inputs, node_data, context):
        # Without a binding the first operand falls back to the upstream input
        fallback = inputs.get("input", 0)
        number1 = self._number(get_parameter_value("number1", inputs, node_data, context, default=fallback))
        number2 = self._number(get_parameter_value("number2", inputs, node_data, context, default=0))
        operation = node_data.get("operation", "add")

        context.logger.info("Calculating", operation=operation, number1=number1, number2=number2)
        return {"output": self.calculate(operation, number1, number2)}

    @staticmethod
    def _number(value: Any) -> Number:
        number = coerce_number(value)
        return 0 if isinstance(number, float) and math.isnan(number) else number

    @staticmethod
    def calculate(operation: str, number1: Number, number2: Number) -> Number:
        if operation == "add":
            return number1 + number2
        if operation == "subtract":
            return number1 - number2
        if operation == "multiply":
            return number1 * number2
        if operation == "divide":
            return number1 / number2 if number2 != 0 else 0
        if operation == "power":
            result = number1 ** number2
            if isinstance(result, complex):
                raise ValueError(f"{number1} ** {number2} is not a real number")
            return result
        if operation == "sqrt":
            if number1 < 0:
                raise ValueError(f"Cannot take the square root of {number1}")
            return math.sqrt(number1)
        if operation == "abs":
            return abs(number1)
        if operation == "round":
            # Half up, unlike Python's banker's rounding
            return math.floor(number1 + 0.5)
        return number1


class ConditionalTemplate(NodeTemplate):
    """Compares two values and emits one of two results."""

    metadata = NodeMetadata(
        type="conditional",
        name="Conditional",
        description="Return one of two values depending on a comparison",
        category=NodeCategory.CONTROL,
        tags=["condition", "branch"],
    )

    parameters = [
        NodeParameter(key="value1", name="Value 1", required=True, default="", description="Left operand"),
        NodeParameter(key="value2", name="Value 2", required=True, default="", description="Right operand"),
        NodeParameter(
            key="trueValue", name="True value", required=True, default=True, description="Output when true"
        ),
        NodeParameter(
            key="falseValue", name="False value", required=True, default=False, description="Output when false"
        ),
    ]

    conditions = (
        "equals", "not_equals", "greater", "less", "greater_equal", "less_equal",
        "contains", "starts_with", "ends_with",
    )

    def initial_data(self) -> Dict[str, Any]:
        data = super().initial_data()
        data["condition"] = "equals"
        return data

    def validate(self, node_data: Dict[str, Any]) -> TemplateValidation:
        errors = self.check_parameter_selections(node_data)
        condition = node_data.get("condition", "equals")
        if condition not in self.conditions:
            errors.append(f"Unsupported condition: {condition}")
        return TemplateValidation.from_messages(errors)

    async def execute(self, inputs, node_data, context):
        value1 = get_parameter_value("value1", inputs, node_data, context, default="")
        value2 = get_parameter_value("value2", inputs, node_data, context, default="")
        true_value = get_parameter_value("trueValue", inputs, node_data, context, default=True)
        false_value = get_parameter_value("falseValue", inputs, node_data, context, default=False)
        condition = node_data.get("condition", "equals")

        result = self.compare(condition, value1, value2)
        context.logger.info("Condition evaluated", condition=condition, result=result)

        return {
            "output": true_value if result else false_value,
            "condition": result,
            "value1": value1,
            "value2": value2,
        }

    @staticmethod
    def compare(condition: str, value1: Any, value2: Any) -> bool:
        if condition == "equals":
            return strict_equals(value1, value2)
        if condition == "not_equals":
            return not strict_equals(value1, value2)
        if condition == "greater":
            return coerce_number(value1) > coerce_number(value2)
        if condition == "less":
            return coerce_number(value1) < coerce_number(value2)
        if condition == "greater_equal":
            return coerce_number(value1) >= coerce_number(value2)
        if condition == "less_equal":
            return coerce_number(value1) <= coerce_number(value2)
        if condition == "contains":
            return to_text(value2) in to_text(value1)
        if condition == "starts_with":
            return to_text(value1).startswith(to_text(value2))
        if condition == "ends_with":
            return to_text(value1).endswith(to_text(value2))
        return False

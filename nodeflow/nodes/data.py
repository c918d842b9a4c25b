"""Constant data nodes."""

from typing import Any, Dict, Tuple, Type

from .base import NodeCategory, NodeMetadata, NodeTemplate, TemplateValidation


class DataNodeTemplate(NodeTemplate):
    """Emits ``node_data['value']`` as its output."""

    value_types: Tuple[Type, ...] = (object,)
    default_value: Any = None

    def initial_data(self) -> Dict[str, Any]:
        return {"value": self.default_value}

    def validate(self, node_data: Dict[str, Any]) -> TemplateValidation:
        value = node_data.get("value")
        if value is None:
            return TemplateValidation.from_messages(["Value is not set"])
        if not self.accepts(value):
            return TemplateValidation.from_messages(
                [f"Value must be of type {self.metadata.type.split('-', 1)[-1]}"]
            )
        return TemplateValidation()

    def accepts(self, value: Any) -> bool:
        return isinstance(value, self.value_types)

    async def execute(self, inputs, node_data, context):
        return {"output": node_data.get("value")}


class StringDataTemplate(DataNodeTemplate):
    metadata = NodeMetadata(
        type="data-string",
        name="String",
        description="Constant string value",
        category=NodeCategory.DATA,
    )
    value_types = (str,)
    default_value = ""


class NumberDataTemplate(DataNodeTemplate):
    metadata = NodeMetadata(
        type="data-number",
        name="Number",
        description="Constant number value",
        category=NodeCategory.DATA,
    )
    value_types = (int, float)
    default_value = 0

    def accepts(self, value: Any) -> bool:
        return isinstance(value, self.value_types) and not isinstance(value, bool)


class BooleanDataTemplate(DataNodeTemplate):
    metadata = NodeMetadata(
        type="data-boolean",
        name="Boolean",
        description="Constant boolean value",
        category=NodeCategory.DATA,
    )
    value_types = (bool,)
    default_value = False


class ArrayDataTemplate(DataNodeTemplate):
    metadata = NodeMetadata(
        type="data-array",
        name="Array",
        description="Constant array value",
        category=NodeCategory.DATA,
    )
    value_types = (list,)

    def initial_data(self) -> Dict[str, Any]:
        return {"value": []}


class ObjectDataTemplate(DataNodeTemplate):
    metadata = NodeMetadata(
        type="data-object",
        name="Object",
        description="Constant object value",
        category=NodeCategory.DATA,
    )
    value_types = (dict,)

    def initial_data(self) -> Dict[str, Any]:
        return {"value": {}}

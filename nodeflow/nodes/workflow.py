"""Workflow boundary nodes: start and end."""

import json
import re
from typing import Any, Dict, List

from .base import (
    NodeCategory,
    NodeMetadata,
    NodeParameter,
    NodeTemplate,
    ParameterType,
    TemplateValidation,
    get_parameter_value,
)

FIELD_NAME_PATTERN = re.compile(r'^[A-Za-z_$][A-Za-z0-9_$]*$')
OUTPUT_FORMATS = ("json", "text", "table", "custom")

_MISSING = object()


def _to_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


class StartNodeTemplate(NodeTemplate):
    """Entry node publishing its configured fields."""

    metadata = NodeMetadata(
        type="workflow-start",
        name="Start",
        description="Workflow entry point that publishes configured input fields",
        category=NodeCategory.WORKFLOW,
        tags=["start", "input"],
    )

    def initial_data(self) -> Dict[str, Any]:
        return {
            "name": "Start",
            "fields": [
                {"name": "input", "type": "string", "defaultValue": "", "description": "Default input field"},
            ],
        }

    def validate(self, node_data: Dict[str, Any]) -> TemplateValidation:
        errors: List[str] = []
        fields = node_data.get("fields") or []

        if not fields:
            errors.append("At least one data field is required")

        names = [field.get("name") for field in fields]
        duplicates = sorted({name for name in names if name and names.count(name) > 1})
        if duplicates:
            errors.append(f"Duplicate field names: {', '.join(duplicates)}")

        for name in names:
            if not name or not str(name).strip():
                errors.append("Field name cannot be empty")
            elif not FIELD_NAME_PATTERN.match(str(name)):
                errors.append(f"Field name '{name}' is not a valid identifier")

        return TemplateValidation.from_messages(errors)

    async def execute(self, inputs, node_data, context):
        values = {
            field["name"]: field.get("defaultValue")
            for field in node_data.get("fields") or []
            if field.get("name")
        }
        context.logger.info("Start node emitting fields", fields=sorted(values))

        # Fields are also published individually so bindings can select them
        outputs: Dict[str, Any] = dict(values)
        outputs["output"] = values
        return outputs


class EndNodeTemplate(NodeTemplate):
    """Terminal node formatting the workflow's final output."""

    metadata = NodeMetadata(
        type="workflow-end",
        name="End",
        description="Workflow exit point that formats the final output",
        category=NodeCategory.WORKFLOW,
        tags=["end", "output"],
    )

    parameters = [
        NodeParameter(
            key="finalData",
            name="Final data",
            type=ParameterType.ANY,
            required=True,
            description="Data to publish as the workflow result",
        ),
    ]

    def initial_data(self) -> Dict[str, Any]:
        return {
            "name": "End",
            "parameterSelections": {},
            "outputFormat": {"type": "json", "customTemplate": ""},
            "saveToFile": False,
            "fileName": "",
        }

    def validate(self, node_data: Dict[str, Any]) -> TemplateValidation:
        errors: List[str] = []
        selections = node_data.get("parameterSelections") or {}
        final_data = selections.get("finalData")

        if not isinstance(final_data, dict):
            errors.append("End node needs an upstream data source")
        elif final_data.get("source") == "upstream" and not (
            final_data.get("sourceNodeId") and final_data.get("sourceOutputKey")
        ):
            errors.append("Final data must select a valid upstream output")

        if node_data.get("saveToFile") and not str(node_data.get("fileName") or "").strip():
            errors.append("File name cannot be empty when saving to a file")

        output_format = node_data.get("outputFormat") or {}
        format_type = output_format.get("type", "json")
        if format_type not in OUTPUT_FORMATS:
            errors.append(f"Unsupported output format: {format_type}")
        elif format_type == "custom" and not str(output_format.get("customTemplate") or "").strip():
            errors.append("Custom output format requires a template")

        return TemplateValidation.from_messages(errors)

    async def execute(self, inputs, node_data, context):
        data = get_parameter_value("finalData", inputs, node_data, context, default=_MISSING)
        if data is _MISSING:
            data = inputs["input"] if "input" in inputs else dict(inputs)

        output_format = node_data.get("outputFormat") or {}
        formatted = self.format_output(data, output_format)
        context.logger.info("Workflow completed", format=output_format.get("type", "json"))

        if node_data.get("saveToFile") and node_data.get("fileName"):
            # File output is left to the caller; the node only reports it
            context.logger.info("Final output marked for saving", file_name=node_data["fileName"])

        return {
            "finalOutput": formatted,
            "rawInput": data,
            "completed": True,
        }

    @staticmethod
    def format_output(data: Any, output_format: Dict[str, Any]) -> str:
        """Render data according to an ``outputFormat`` setting."""
        format_type = output_format.get("type", "json")

        if format_type == "text":
            if isinstance(data, str):
                return data
            if isinstance(data, (dict, list)):
                return _to_json(data)
            return str(data)

        if format_type == "table":
            if isinstance(data, dict):
                return "\n".join(
                    f"{key}: {json.dumps(value, ensure_ascii=False, default=str)}"
                    for key, value in data.items()
                )
            return _to_json(data)

        if format_type == "custom":
            rendered = output_format.get("customTemplate") or ""
            if isinstance(data, dict):
                for key, value in data.items():
                    rendered = rendered.replace(
                        "{{" + str(key) + "}}",
                        json.dumps(value, ensure_ascii=False, default=str),
                    )
            return rendered

        return _to_json(data)

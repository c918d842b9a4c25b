"""Base node template classes and definitions."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from nodeflow.executor.context import ExecutionContext

logger = structlog.get_logger()


class NodeCategory(str, Enum):
    """Node category enumeration."""
    WORKFLOW = "workflow"
    DATA = "data"
    PROCESSING = "processing"
    CONTROL = "control"
    CUSTOM = "custom"


class ParameterType(str, Enum):
    """Parameter type enumeration."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    OPTIONS = "options"
    EXPRESSION = "expression"
    ANY = "any"


class NodeParameter(BaseModel):
    """Node parameter definition."""
    key: str = Field(..., description="Parameter key used in parameterSelections")
    name: Optional[str] = Field(None, description="Parameter display name")
    type: ParameterType = Field(default=ParameterType.ANY, description="Parameter type")
    required: bool = Field(default=False, description="Is parameter required")
    default: Any = Field(default=None, description="Default value")
    description: Optional[str] = Field(None, description="Parameter description")

    # Type-specific attributes
    options: Optional[List[str]] = Field(None, description="Options for OPTIONS type")
    min_value: Optional[Union[int, float]] = Field(None, description="Minimum value for NUMBER type")
    max_value: Optional[Union[int, float]] = Field(None, description="Maximum value for NUMBER type")

    def accepts(self, value: Any) -> bool:
        """Check a parameter value against the declared type."""
        if value is None:
            return not self.required

        if self.type == ParameterType.STRING:
            return isinstance(value, str)

        elif self.type == ParameterType.NUMBER:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
            if self.min_value is not None and value < self.min_value:
                return False
            if self.max_value is not None and value > self.max_value:
                return False
            return True

        elif self.type == ParameterType.BOOLEAN:
            return isinstance(value, bool)

        elif self.type == ParameterType.ARRAY:
            return isinstance(value, list)

        elif self.type == ParameterType.OBJECT:
            return isinstance(value, dict)

        elif self.type == ParameterType.OPTIONS:
            return value in (self.options or [])

        elif self.type == ParameterType.EXPRESSION:
            return isinstance(value, str)

        return True


class NodeMetadata(BaseModel):
    """Node template metadata."""
    type: str = Field(..., description="Node type key")
    name: str = Field(..., description="Node display name")
    description: str = Field(..., description="Node description")
    category: NodeCategory = Field(..., description="Node category")
    version: str = Field(default="1.0", description="Template version")
    tags: List[str] = Field(default_factory=list, description="Search tags")


class TemplateValidation(BaseModel):
    """Result of validating a node's data against its template."""
    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def from_messages(cls, errors: List[str], warnings: Optional[List[str]] = None) -> "TemplateValidation":
        return cls(is_valid=not errors, errors=errors, warnings=warnings or [])


class NodeTemplate(ABC):
    """
    Base class for node templates.

    A template is stateless: the same instance executes every node of its
    type. ``execute`` receives the resolved inputs, the node's own data and
    an execution context, and returns the node's output map. Raising marks
    the node as failed.
    """

    metadata: NodeMetadata
    parameters: List[NodeParameter] = []

    def __init__(self):
        self.logger = logger.bind(template=self.metadata.type)

    @property
    def type(self) -> str:
        """Node type handled by this template."""
        return self.metadata.type

    def initial_data(self) -> Dict[str, Any]:
        """Default node data for a freshly created node."""
        selections = {
            param.key: {
                "parameterKey": param.key,
                "source": "static",
                "staticValue": param.default,
            }
            for param in self.parameters
        }
        return {"parameterSelections": selections} if selections else {}

    def validate(self, node_data: Dict[str, Any]) -> TemplateValidation:
        """Validate node data; the default checks required parameter bindings."""
        return TemplateValidation.from_messages(self.check_parameter_selections(node_data))

    def check_parameter_selections(self, node_data: Dict[str, Any]) -> List[str]:
        """Report required parameters without a usable binding."""
        errors = []
        selections = node_data.get("parameterSelections") or {}

        for param in self.parameters:
            if not param.required:
                continue
            selection = selections.get(param.key)
            if not isinstance(selection, dict):
                errors.append(f"Parameter '{param.key}' is not configured")
            elif selection.get("source") == "static" and "staticValue" not in selection:
                errors.append(f"Parameter '{param.key}' has no static value")
            elif selection.get("source") == "upstream" and not selection.get("sourceNodeId"):
                errors.append(f"Parameter '{param.key}' must select an upstream node")

        return errors

    @abstractmethod
    async def execute(
        self,
        inputs: Dict[str, Any],
        node_data: Dict[str, Any],
        context: "ExecutionContext",
    ) -> Dict[str, Any]:
        """Execute the node and return its outputs."""
        pass


def get_parameter_value(
    key: str,
    inputs: Dict[str, Any],
    node_data: Dict[str, Any],
    context: "ExecutionContext",
    default: Any = None,
) -> Any:
    """
    Resolve a template parameter.

    Lookup order: a value already supplied by input resolution, then a
    ``static`` binding's value, then an ``upstream`` binding read from the
    run state, then ``default``.
    """
    if key in inputs:
        return inputs[key]

    selections = node_data.get("parameterSelections")
    if not isinstance(selections, dict):
        return default

    selection = selections.get(key)
    if not isinstance(selection, dict):
        return default

    source = selection.get("source")
    if source == "static":
        return selection.get("staticValue", default)

    if source == "upstream" and selection.get("sourceNodeId"):
        outputs = context.get_upstream_data(selection["sourceNodeId"])
        if outputs is not None:
            return outputs.get(selection.get("sourceOutputKey") or "output", default)

    return default

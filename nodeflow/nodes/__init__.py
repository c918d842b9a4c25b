"""Node templates for workflow execution."""

from .base import (
    NodeCategory,
    NodeMetadata,
    NodeParameter,
    NodeTemplate,
    ParameterType,
    TemplateValidation,
    get_parameter_value,
)

from .workflow import (
    EndNodeTemplate,
    StartNodeTemplate,
)

from .data import (
    ArrayDataTemplate,
    BooleanDataTemplate,
    DataNodeTemplate,
    NumberDataTemplate,
    ObjectDataTemplate,
    StringDataTemplate,
)

from .processing import (
    ConditionalTemplate,
    MathProcessorTemplate,
    TextProcessorTemplate,
)

from .control import (
    LoopNodeTemplate,
)

from .registry import (
    NodeRegistry,
    create_default_registry,
)

from .expression import (
    ExpressionError,
    ExpressionEvaluator,
)

__all__ = [
    # Base classes
    "NodeCategory",
    "NodeMetadata",
    "NodeParameter",
    "NodeTemplate",
    "ParameterType",
    "TemplateValidation",
    "get_parameter_value",

    # Workflow nodes
    "EndNodeTemplate",
    "StartNodeTemplate",

    # Data nodes
    "ArrayDataTemplate",
    "BooleanDataTemplate",
    "DataNodeTemplate",
    "NumberDataTemplate",
    "ObjectDataTemplate",
    "StringDataTemplate",

    # Processing nodes
    "ConditionalTemplate",
    "MathProcessorTemplate",
    "TextProcessorTemplate",

    # Control nodes
    "LoopNodeTemplate",

    # Utilities
    "NodeRegistry",
    "create_default_registry",
    "ExpressionError",
    "ExpressionEvaluator",
]

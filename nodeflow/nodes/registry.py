"""Node template registry."""

from typing import Dict, List, Optional

import structlog

from nodeflow.exceptions import ConfigurationError, NotFoundError
from .base import NodeCategory, NodeTemplate

logger = structlog.get_logger()


class NodeRegistry:
    """
    Registry mapping node types to templates.

    Registries are plain objects handed to the executor, so tests and
    embedders can build one holding only the templates they need.
    """

    def __init__(self, templates: Optional[List[NodeTemplate]] = None):
        self._templates: Dict[str, NodeTemplate] = {}
        self.logger = logger.bind(component="node_registry")

        for template in templates or []:
            self.register(template)

    def register(self, template: NodeTemplate, replace: bool = False) -> NodeTemplate:
        """
        Register a template under its metadata type.

        Raises:
            ConfigurationError: If the template has no type or the type is taken
        """
        metadata = getattr(template, "metadata", None)
        if metadata is None or not metadata.type:
            raise ConfigurationError(f"Template {type(template).__name__} has no node type")

        if metadata.type in self._templates and not replace:
            raise ConfigurationError(f"Node type already registered: {metadata.type}")

        self._templates[metadata.type] = template
        self.logger.debug("Registered node type", type_key=metadata.type, template=type(template).__name__)
        return template

    def unregister(self, type_key: str) -> NodeTemplate:
        """
        Remove a template.

        Raises:
            NotFoundError: If no template is registered for the type
        """
        if type_key not in self._templates:
            raise NotFoundError(f"Node type not registered: {type_key}")
        self.logger.debug("Unregistered node type", type_key=type_key)
        return self._templates.pop(type_key)

    def get(self, type_key: str) -> Optional[NodeTemplate]:
        """Get template by type key."""
        return self._templates.get(type_key)

    def has(self, type_key: str) -> bool:
        """Check if a node type is registered."""
        return type_key in self._templates

    def list_types(self) -> List[str]:
        """Get all registered type keys."""
        return list(self._templates)

    def get_all(self) -> Dict[str, NodeTemplate]:
        """Get all registered templates."""
        return self._templates.copy()

    def get_by_category(self, category: NodeCategory) -> Dict[str, NodeTemplate]:
        """Get all templates in a specific category."""
        return {
            type_key: template
            for type_key, template in self._templates.items()
            if template.metadata.category == category
        }

    def get_categories(self) -> List[NodeCategory]:
        """Get the categories in use, in registration order."""
        categories: List[NodeCategory] = []
        for template in self._templates.values():
            if template.metadata.category not in categories:
                categories.append(template.metadata.category)
        return categories

    def search(self, query: str) -> Dict[str, NodeTemplate]:
        """Search templates by type, name, description or tag."""
        query_lower = query.lower()
        result = {}

        for type_key, template in self._templates.items():
            metadata = template.metadata
            haystack = [metadata.type, metadata.name, metadata.description, *metadata.tags]
            if any(query_lower in text.lower() for text in haystack):
                result[type_key] = template

        return result

    def __contains__(self, type_key: str) -> bool:
        return self.has(type_key)

    def __len__(self) -> int:
        return len(self._templates)


def create_default_registry() -> NodeRegistry:
    """Create a registry holding the built-in templates."""
    # Import here to avoid circular imports
    from .control import LoopNodeTemplate
    from .data import (
        ArrayDataTemplate,
        BooleanDataTemplate,
        NumberDataTemplate,
        ObjectDataTemplate,
        StringDataTemplate,
    )
    from .processing import ConditionalTemplate, MathProcessorTemplate, TextProcessorTemplate
    from .workflow import EndNodeTemplate, StartNodeTemplate

    return NodeRegistry([
        StartNodeTemplate(),
        EndNodeTemplate(),
        StringDataTemplate(),
        NumberDataTemplate(),
        BooleanDataTemplate(),
        ArrayDataTemplate(),
        ObjectDataTemplate(),
        TextProcessorTemplate(),
        MathProcessorTemplate(),
        ConditionalTemplate(),
        LoopNodeTemplate(),
    ])

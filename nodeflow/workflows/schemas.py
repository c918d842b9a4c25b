"""Workflow graph Pydantic schemas."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from nodeflow.exceptions import ValidationError


class ParameterSelection(BaseModel):
    """Binding descriptor for one logical node parameter."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    parameter_key: Optional[str] = Field(None, alias="parameterKey", description="Parameter name")
    source: Literal["static", "upstream"] = Field(default="static", description="Value source")
    static_value: Any = Field(default=None, alias="staticValue", description="Static value")
    source_node_id: Optional[str] = Field(None, alias="sourceNodeId", description="Upstream node id")
    source_output_key: Optional[str] = Field(
        None, alias="sourceOutputKey", description="Upstream output key"
    )


class LoopContext(BaseModel):
    """Per-iteration context injected into a loop-body node."""

    model_config = ConfigDict(populate_by_name=True)

    element: Any = Field(default=None, description="Current array element")
    index: int = Field(..., ge=0, description="Current element index")
    array: List[Any] = Field(default_factory=list, description="Array being iterated")
    loop_node_id: str = Field(..., alias="loopNodeId", description="Owning loop node id")


class GraphNode(BaseModel):
    """A node of a workflow graph document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Unique node id")
    type: str = Field(..., min_length=1, description="Template registry key")
    data: Dict[str, Any] = Field(default_factory=dict, description="Node configuration")
    position: Dict[str, float] = Field(
        default_factory=lambda: {"x": 0, "y": 0},
        description="Node position in the editor"
    )
    parent_node: Optional[str] = Field(None, alias="parentNode", description="Single upstream node id")
    loop_body_node: Optional[str] = Field(
        None, alias="loopBodyNode", description="Node run once per loop element"
    )
    is_loop_body_node: bool = Field(
        default=False, alias="isLoopBodyNode", description="Whether this node is a loop body"
    )
    loop_context: Optional[LoopContext] = Field(
        None, alias="loopContext", description="Transient per-iteration context"
    )

    @field_validator("data", mode="before")
    @classmethod
    def none_data_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def parameter_selections(self) -> Optional[Dict[str, ParameterSelection]]:
        """Parsed parameter bindings, or None when the node declares none."""
        raw = self.data.get("parameterSelections")
        if not isinstance(raw, dict):
            return None
        selections = {}
        for key, value in raw.items():
            if isinstance(value, ParameterSelection):
                selections[key] = value
            elif isinstance(value, dict):
                selections[key] = ParameterSelection.model_validate(value)
        return selections

    def with_loop_context(self, loop_context: LoopContext) -> "GraphNode":
        """Return a copy flagged as a loop body carrying the given context."""
        return self.model_copy(
            update={"is_loop_body_node": True, "loop_context": loop_context}
        )


class GraphEdge(BaseModel):
    """A directed connection between two nodes."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Edge id")
    source: str = Field(..., description="Source node id")
    source_handle: Optional[str] = Field(None, alias="sourceHandle", description="Source port")
    target: str = Field(..., description="Target node id")
    target_handle: Optional[str] = Field(None, alias="targetHandle", description="Target port")


class WorkflowGraph(BaseModel):
    """A complete workflow document: nodes, edges and workflow variables."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, description="Workflow id")
    name: Optional[str] = Field(None, description="Workflow name")
    description: Optional[str] = Field(None, description="Workflow description")
    nodes: List[GraphNode] = Field(default_factory=list, description="Workflow nodes")
    edges: List[GraphEdge] = Field(default_factory=list, description="Workflow edges")
    variables: Dict[str, Any] = Field(default_factory=dict, description="Workflow variables")

    @model_validator(mode="after")
    def check_unique_node_ids(self) -> "WorkflowGraph":
        seen = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id: {node.id}")
            seen.add(node.id)
        return self

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        """Get node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_by_id(self) -> Dict[str, GraphNode]:
        """Index nodes by ID."""
        return {node.id: node for node in self.nodes}

    @classmethod
    def from_document(
        cls,
        document: Dict[str, Any],
        loop_body_handle: str = "loop-body",
    ) -> "WorkflowGraph":
        """
        Build a graph from an editor document, deriving node pointers from edges.

        Each node's parent is the source of its first incoming edge. An edge leaving
        the loop-body handle also marks the source's loop body and flags the target.
        Pointers already present on a node are kept.
        """
        if not isinstance(document, dict):
            raise ValidationError("Workflow document must be a JSON object")

        try:
            graph = cls.model_validate(document)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid workflow document: {e}") from e
        nodes = graph.nodes_by_id()
        updates: Dict[str, Dict[str, Any]] = {node_id: {} for node_id in nodes}

        for edge in graph.edges:
            if edge.target in nodes:
                target_update = updates[edge.target]
                if nodes[edge.target].parent_node is None and "parent_node" not in target_update:
                    target_update["parent_node"] = edge.source
                if edge.source_handle == loop_body_handle:
                    target_update["is_loop_body_node"] = True
            if edge.source in nodes and edge.source_handle == loop_body_handle:
                if nodes[edge.source].loop_body_node is None:
                    updates[edge.source]["loop_body_node"] = edge.target

        graph.nodes = [
            node.model_copy(update=updates[node.id]) if updates[node.id] else node
            for node in graph.nodes
        ]
        return graph

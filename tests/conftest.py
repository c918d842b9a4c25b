"""Pytest configuration and fixtures."""

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from nodeflow.config import Settings
from nodeflow.executor.data import WorkflowRunState
from nodeflow.nodes.base import NodeCategory, NodeMetadata, NodeTemplate
from nodeflow.nodes.registry import NodeRegistry, create_default_registry
from nodeflow.workflows.schemas import GraphNode, WorkflowGraph


class EchoTemplate(NodeTemplate):
    """Returns ``node_data['outputs']`` and records every call."""

    metadata = NodeMetadata(
        type="echo",
        name="Echo",
        description="Test node returning configured outputs",
        category=NodeCategory.CUSTOM,
    )

    def __init__(self):
        super().__init__()
        self.calls: List[Dict[str, Any]] = []

    async def execute(self, inputs, node_data, context):
        self.calls.append({"node_id": context.node_id, "inputs": dict(inputs)})
        return dict(node_data.get("outputs", {"output": inputs.get("input")}))


class FailingTemplate(NodeTemplate):
    """Always raises."""

    metadata = NodeMetadata(
        type="failing",
        name="Failing",
        description="Test node that always fails",
        category=NodeCategory.CUSTOM,
    )

    async def execute(self, inputs, node_data, context):
        raise RuntimeError(node_data.get("message", "boom"))


class DoubleTemplate(NodeTemplate):
    """Doubles its loop element and records each invocation."""

    metadata = NodeMetadata(
        type="double",
        name="Double",
        description="Test loop body doubling the element",
        category=NodeCategory.CUSTOM,
    )

    def __init__(self):
        super().__init__()
        self.calls: List[Dict[str, Any]] = []

    async def execute(self, inputs, node_data, context):
        self.calls.append({"element": inputs.get("element"), "index": inputs.get("index")})
        if inputs.get("element") == node_data.get("failOn", object()):
            raise ValueError(f"cannot double {inputs['element']}")
        return {"output": inputs["element"] * 2}


@pytest.fixture
def test_settings():
    """Settings isolated from the environment."""
    return Settings(environment="testing")


@pytest.fixture
def echo_template():
    return EchoTemplate()


@pytest.fixture
def double_template():
    return DoubleTemplate()


@pytest.fixture
def registry(echo_template, double_template):
    """Default registry plus the test templates."""
    registry = create_default_registry()
    registry.register(echo_template)
    registry.register(FailingTemplate())
    registry.register(double_template)
    return registry


@pytest.fixture
def fake_registry(echo_template):
    """Registry holding only test templates under the start/end types."""
    start = EchoTemplate()
    start.metadata = start.metadata.model_copy(update={"type": "workflow-start"})
    end = EchoTemplate()
    end.metadata = end.metadata.model_copy(update={"type": "workflow-end"})
    return NodeRegistry([start, end, echo_template, FailingTemplate()])


@pytest.fixture
def run_state():
    return WorkflowRunState(workflow_id="wf-test")


def make_node(
    node_id: str,
    node_type: str = "echo",
    parent: Optional[str] = None,
    **data: Any,
) -> GraphNode:
    """Build a graph node with an explicit parent pointer."""
    return GraphNode(id=node_id, type=node_type, parent_node=parent, data=data)


def make_document(nodes: List[Dict[str, Any]], edges: List[tuple]) -> Dict[str, Any]:
    """Build an editor document; edges are ``(source, target)`` or ``(source, target, handle)``."""
    return {
        "id": "wf-test",
        "name": "Test workflow",
        "nodes": nodes,
        "edges": [
            {
                "id": f"{edge[0]}-{edge[1]}",
                "source": edge[0],
                "target": edge[1],
                "sourceHandle": edge[2] if len(edge) > 2 else "output",
                "targetHandle": "input",
            }
            for edge in edges
        ],
    }


def make_graph(nodes: List[Dict[str, Any]], edges: List[tuple]) -> WorkflowGraph:
    return WorkflowGraph.from_document(make_document(nodes, edges))


@pytest.fixture
def node_factory():
    return make_node


@pytest.fixture
def document_factory():
    return make_document


@pytest.fixture
def graph_factory():
    return make_graph


@pytest.fixture
def start_doc():
    """Start node document factory."""
    def build(node_id: str = "s1", **fields: Any) -> Dict[str, Any]:
        return {
            "id": node_id,
            "type": "workflow-start",
            "data": {
                "fields": [
                    {"name": name, "type": "any", "defaultValue": value}
                    for name, value in fields.items()
                ]
            },
        }
    return build


@pytest.fixture
def end_doc():
    """End node document factory."""
    def build(node_id: str = "e1", format_type: str = "json", **data: Any) -> Dict[str, Any]:
        return {
            "id": node_id,
            "type": "workflow-end",
            "data": {"outputFormat": {"type": format_type}, **data},
        }
    return build


def upstream(node_id: str, output_key: str, parameter_key: str) -> Dict[str, Any]:
    """Upstream parameter binding."""
    return {
        "parameterKey": parameter_key,
        "source": "upstream",
        "sourceNodeId": node_id,
        "sourceOutputKey": output_key,
    }


def static(value: Any, parameter_key: str) -> Dict[str, Any]:
    """Static parameter binding."""
    return {"parameterKey": parameter_key, "source": "static", "staticValue": value}


@pytest.fixture
def bindings():
    """Parameter binding builders."""
    return SimpleNamespace(upstream=upstream, static=static)

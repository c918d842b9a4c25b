"""Test input resolution."""

import pytest

from nodeflow.executor.data import ExecutionResult
from nodeflow.executor.inputs import resolve_inputs
from nodeflow.workflows.schemas import LoopContext


def record(run_state, node_id, outputs, success=True):
    run_state.set_result(ExecutionResult(
        node_id=node_id,
        node_type="echo",
        success=success,
        outputs=outputs if success else {},
        error=None if success else "failed",
    ))


@pytest.mark.unit
class TestResolveInputs:
    """Test the resolution precedence."""

    def test_no_parent_gives_empty_inputs(self, node_factory, run_state):
        assert resolve_inputs(node_factory("s1", "workflow-start"), run_state) == {}

    def test_missing_parent_result(self, node_factory, run_state):
        assert resolve_inputs(node_factory("a", parent="p"), run_state) == {}

    def test_failed_parent_result(self, node_factory, run_state):
        record(run_state, "p", {}, success=False)

        assert resolve_inputs(node_factory("a", parent="p"), run_state) == {}

    def test_fallback_default(self, node_factory, run_state):
        record(run_state, "p", {"output": [1, 2], "extra": "w"})

        inputs = resolve_inputs(node_factory("a", parent="p"), run_state)

        assert inputs == {"input": [1, 2], "inputArray": [1, 2], "extra": "w"}

    def test_fallback_without_output_key(self, node_factory, run_state):
        record(run_state, "p", {"finalOutput": "done"})

        inputs = resolve_inputs(node_factory("a", parent="p"), run_state)

        assert inputs == {"finalOutput": "done"}

    def test_upstream_bindings_on_parent(self, node_factory, run_state, bindings):
        record(run_state, "p", {"output": {"text": "hi"}, "text": "hi", "count": 3})
        node = node_factory("a", parent="p", parameterSelections={
            "textInput": bindings.upstream("p", "text", "textInput"),
            "times": bindings.upstream("p", "count", "times"),
            "whole": bindings.upstream("p", None, "whole"),
        })

        inputs = resolve_inputs(node, run_state)

        assert inputs == {"textInput": "hi", "times": 3, "whole": {"text": "hi"}}

    def test_static_and_foreign_bindings_skipped(self, node_factory, run_state, bindings):
        record(run_state, "p", {"output": 1})
        record(run_state, "other", {"output": 2})
        node = node_factory("a", parent="p", parameterSelections={
            "value1": bindings.static(10, "value1"),
            "value2": bindings.upstream("other", "output", "value2"),
        })

        assert resolve_inputs(node, run_state) == {}

    def test_missing_output_key_left_unset(self, node_factory, run_state, bindings):
        record(run_state, "p", {"output": 1})
        node = node_factory("a", parent="p", parameterSelections={
            "value": bindings.upstream("p", "absent", "value"),
        })

        assert resolve_inputs(node, run_state) == {}

    def test_loop_context_takes_precedence(self, node_factory, run_state, bindings):
        node = node_factory("b1", parent="loop", parameterSelections={
            "value": bindings.upstream("loop", "output", "value"),
        }).with_loop_context(LoopContext(element=7, index=1, array=[5, 7], loop_node_id="loop"))

        inputs = resolve_inputs(node, run_state)

        assert inputs == {
            "element": 7,
            "index": 1,
            "array": [5, 7],
            "loopNodeId": "loop",
            "input": 7,
            "inputArray": [7],
        }

    def test_loop_flag_without_context_uses_parent(self, node_factory, run_state):
        record(run_state, "loop", {"output": [1]})
        node = node_factory("b1", parent="loop").model_copy(update={"is_loop_body_node": True})

        assert resolve_inputs(node, run_state) == {"input": [1], "inputArray": [1]}

"""Test the command line interface."""

import json

import pytest
from typer.testing import CliRunner

from nodeflow.cli import app

runner = CliRunner()


def write_document(tmp_path, document, name="workflow.json"):
    path = tmp_path / name
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


@pytest.fixture
def minimal_document(document_factory, start_doc, end_doc):
    return document_factory([start_doc(x=5), end_doc()], [("s1", "e1")])


def last_json_line(output):
    return json.loads(output.strip().splitlines()[-1])


@pytest.mark.unit
class TestCommands:
    """Test CLI commands against workflow files."""

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "NodeFlow v0.1.0" in result.stdout

    def test_nodes(self):
        result = runner.invoke(app, ["nodes"])

        assert result.exit_code == 0
        assert "Node Types" in result.stdout
        assert "workflow-start" in result.stdout

    def test_validate_valid(self, tmp_path, minimal_document):
        result = runner.invoke(app, ["validate", str(write_document(tmp_path, minimal_document))])

        assert result.exit_code == 0
        assert "Workflow structure is valid" in result.stdout

    def test_validate_missing_end(self, tmp_path, document_factory, start_doc):
        path = write_document(tmp_path, document_factory([start_doc(x=1)], []))

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Workflow is not executable" in result.stdout

    def test_validate_unknown_type(self, tmp_path, document_factory, start_doc, end_doc):
        document = document_factory(
            [start_doc(x=1), {"id": "m", "type": "mystery"}, end_doc()],
            [("s1", "m"), ("m", "e1")],
        )

        result = runner.invoke(app, ["validate", str(write_document(tmp_path, document))])

        assert result.exit_code == 1

    def test_run_json(self, tmp_path, minimal_document):
        result = runner.invoke(app, ["run", str(write_document(tmp_path, minimal_document)), "--json"])

        assert result.exit_code == 0
        data = last_json_line(result.stdout)
        assert data["success"] is True
        assert data["finalOutput"] == json.dumps({"x": 5}, indent=2)
        assert set(data["results"]) == {"s1", "e1"}

    def test_run_json_failure(self, tmp_path, document_factory, start_doc):
        path = write_document(tmp_path, document_factory([start_doc(x=1)], []))

        result = runner.invoke(app, ["run", str(path), "--json", "-w", "cli-run"])

        assert result.exit_code == 1
        data = last_json_line(result.stdout)
        assert data["success"] is False
        assert data["results"] == {}
        assert "must contain an end node" in data["error"]

    def test_run_prints_final_output(self, tmp_path, minimal_document):
        result = runner.invoke(app, ["run", str(write_document(tmp_path, minimal_document))])

        assert result.exit_code == 0
        assert "Final Output" in result.stdout

    def test_run_loop_workflow(self, tmp_path, document_factory, start_doc, end_doc, bindings):
        loop = {
            "id": "loop",
            "type": "loop-processor",
            "data": {
                "loopType": "filter",
                "loopBodyExpression": "x => x > 1",
                "parameterSelections": {"inputArray": bindings.upstream("s1", "arr", "inputArray")},
            },
        }
        document = document_factory([start_doc(arr=[1, 2, 3]), loop, end_doc()], [("s1", "loop"), ("loop", "e1")])

        result = runner.invoke(app, ["run", str(write_document(tmp_path, document)), "--json"])

        assert result.exit_code == 0
        assert last_json_line(result.stdout)["results"]["loop"]["outputs"]["output"] == [2, 3]


@pytest.mark.unit
class TestBadInput:
    """Test unreadable workflow files."""

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "absent.json")])

        assert result.exit_code == 1
        assert "Cannot read" in result.stdout

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Invalid JSON" in result.stdout

    def test_duplicate_node_ids(self, tmp_path, document_factory, start_doc):
        document = document_factory([start_doc(x=1), start_doc(x=2)], [])

        result = runner.invoke(app, ["validate", str(write_document(tmp_path, document))])

        assert result.exit_code == 1
        assert "Invalid workflow document" in result.stdout

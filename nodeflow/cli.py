"""Command line interface for NodeFlow."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from nodeflow.config import settings
from nodeflow.exceptions import ValidationError
from nodeflow.executor import GraphValidator, WorkflowExecutor
from nodeflow.logging_setup import setup_logging
from nodeflow.nodes import create_default_registry
from nodeflow.workflows import WorkflowGraph

app = typer.Typer(
    name="nodeflow",
    help="NodeFlow - run node-graph workflows from the command line",
    add_completion=False,
)

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging before any command runs."""
    setup_logging(settings.model_copy(update={"debug": True}) if verbose else settings)


def load_graph(path: Path) -> WorkflowGraph:
    """Read a workflow document from disk, exiting with code 1 on bad input."""
    try:
        document: Dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        console.print(f"[red]Cannot read {path}: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {path}: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    try:
        return WorkflowGraph.from_document(document, loop_body_handle=settings.loop_body_handle)
    except ValidationError as e:
        console.print(f"[red]Invalid workflow document: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command("version")
def version():
    """Show version information."""
    version_info = f"""
NodeFlow v{settings.app_version}
Graph workflow execution engine

Environment: {settings.environment}
Python: {sys.version}
"""
    console.print(
        Panel(
            version_info.strip(),
            title="Version Information",
            border_style="green",
        )
    )


@app.command("validate")
def validate_workflow(
    path: Path = typer.Argument(..., help="Workflow JSON document"),
):
    """Validate a workflow's structure and node configuration."""
    graph = load_graph(path)
    registry = create_default_registry()
    structure = GraphValidator(settings).validate(graph)

    table = Table(title=f"Validation: {graph.name or graph.id or path.name}")
    table.add_column("Node", style="cyan")
    table.add_column("Type", style="dim")
    table.add_column("Level")
    table.add_column("Message")

    failed = not structure.valid
    if not structure.valid:
        table.add_row("-", "-", "[red]error[/red]", escape(structure.error or ""))

    for node in graph.nodes:
        template = registry.get(node.type)
        if template is None:
            failed = True
            table.add_row(node.id, node.type, "[red]error[/red]", "Unknown node type")
            continue

        result = template.validate(node.data)
        for error in result.errors:
            table.add_row(node.id, node.type, "[red]error[/red]", escape(error))
        for warning in result.warnings:
            table.add_row(node.id, node.type, "[yellow]warning[/yellow]", escape(warning))

    if table.row_count:
        console.print(table)

    if failed:
        console.print("[red]Workflow is not executable[/red]")
        raise typer.Exit(1)

    console.print("[green]Workflow structure is valid[/green]")


@app.command("run")
def run_workflow(
    path: Path = typer.Argument(..., help="Workflow JSON document"),
    workflow_id: Optional[str] = typer.Option(None, "--workflow-id", "-w", help="Run identifier"),
    as_json: bool = typer.Option(False, "--json", help="Print the run result as JSON"),
):
    """Execute a workflow and print its results."""
    graph = load_graph(path)
    executor = WorkflowExecutor(workflow_id or graph.id or path.stem, settings=settings)
    result = asyncio.run(executor.execute_workflow(graph))

    if as_json:
        typer.echo(result.to_json())
        if not result.success:
            raise typer.Exit(1)
        return

    table = Table(title="Node Results")
    table.add_column("Node", style="cyan")
    table.add_column("Type", style="dim")
    table.add_column("Status")
    table.add_column("Output")

    for node_id, node_result in result.results.items():
        status = "[green]success[/green]" if node_result.success else "[red]failed[/red]"
        detail = node_result.error if not node_result.success else json.dumps(
            node_result.outputs.get("output", node_result.outputs), ensure_ascii=False, default=str
        )
        table.add_row(node_id, node_result.node_type, status, escape(str(detail)))

    console.print(table)

    if not result.success:
        console.print(Panel(escape(str(result.error)), title="Run Failed", border_style="red"))
        raise typer.Exit(1)

    final_output = result.final_output if result.final_output is not None else ""
    console.print(Panel(escape(str(final_output)), title="Final Output", border_style="green"))


@app.command("nodes")
def list_nodes():
    """List registered node types."""
    registry = create_default_registry()

    table = Table(title="Node Types")
    table.add_column("Type", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Category")
    table.add_column("Description", style="dim")

    for type_key, template in registry.get_all().items():
        metadata = template.metadata
        table.add_row(type_key, metadata.name, metadata.category.value, metadata.description)

    console.print(table)


def main():
    """Main CLI entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()

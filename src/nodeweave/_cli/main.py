import ast
import logging
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import tomlkit
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from tomlkit.exceptions import ParseError

from nodeweave._deps import render_manifest
from nodeweave._errors import ContractViolationError, ManifestError
from nodeweave._evaluator import FnEvaluator
from nodeweave._node import Node, collect_node_deps, entry_points

from .config import ConfigError, ModuleSource, NodeweaveConfig, ScriptSource, get_config
from .discover import load_nodes_from_source

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()

PathArgument = Annotated[
    str | None,
    typer.Argument(help="Path to Python script or module path (e.g., examples.counter:nodes)"),
]
VarOption = Annotated[
    str | None,
    typer.Option("--var", help="Name of the variable holding the nodes (for script paths only)"),
]


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Nodeweave CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _get_config() -> NodeweaveConfig:
    try:
        return get_config()
    except ConfigError as e:
        err_console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _load_nodes(path: str | None, config: NodeweaveConfig, var: str | None) -> dict[str, Node]:
    """Load nodes from CLI path or config."""
    if path is not None:
        source = ModuleSource(module_path=path) if ":" in path else ScriptSource(script=Path(path), name=var)
    elif config.nodes is not None:
        source = config.nodes
        if var and isinstance(source, ScriptSource):
            source = replace(source, name=var)
    else:
        err_console.print(
            "[red]Error: No nodes specified. Provide a path argument or configure [tool.nodeweave].nodes[/red]",
        )
        raise typer.Exit(code=1)

    if isinstance(source, ScriptSource):
        err_console.print(f"[cyan]Loading nodes from script:[/cyan] {source.script}")
    else:
        err_console.print(f"[cyan]Loading nodes from module:[/cyan] {source.module_path}")
    return load_nodes_from_source(source)


def _entry_label(node: Node, kind: str) -> str:
    eval_fn = node.push_eval() if kind == "push" else node.pull_eval()
    return "-" if eval_fn is None else escape(eval_fn.signature.name)


@app.command()
def inspect(
    path: PathArgument = None,
    *,
    var: VarOption = None,
) -> None:
    """Show the shape of every node: arity, entry points, state and dependencies."""
    config = _get_config()
    nodes = _load_nodes(path, config, var)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Node", style="bold")
    table.add_column("Kind")
    table.add_column("Inputs", justify="right", style="yellow")
    table.add_column("Outputs", justify="right", style="yellow")
    table.add_column("Push")
    table.add_column("Pull")
    table.add_column("State")
    table.add_column("Dependencies")

    for label, node in nodes.items():
        evaluator = node.evaluator()
        state_type = node.state_type()
        table.add_row(
            escape(label),
            "fn" if isinstance(evaluator, FnEvaluator) else "expr",
            str(evaluator.n_inputs),
            str(evaluator.n_outputs),
            _entry_label(node, "push"),
            _entry_label(node, "pull"),
            "-" if state_type is None else escape(ast.unparse(state_type)),
            escape(", ".join(sorted(dep.name for dep in node.crate_deps()))) or "-",
        )

    out_console.print(Panel(table, title="[bold]Nodes[/bold]", subtitle=f"[dim]{len(nodes)} nodes[/dim]"))


@app.command()
def check(
    path: PathArgument = None,
    *,
    var: VarOption = None,
) -> None:
    """Check that every node satisfies the node contract."""
    config = _get_config()
    nodes = _load_nodes(path, config, var)
    err_console.print()

    failures: list[tuple[str, str]] = []
    for label, node in nodes.items():
        try:
            node.evaluator()
            entry_points(node)
        except ContractViolationError as e:
            failures.append((label, str(e)))

    if failures:
        for label, reason in failures:
            err_console.print(f"[red]✗ {escape(label)}:[/red] {escape(reason)}")
        err_console.print()
        err_console.print(f"[red]✗ {len(failures)} of {len(nodes)} nodes violate the node contract[/red]")
        raise typer.Exit(code=1)

    err_console.print(f"[green]✓ {len(nodes)} nodes satisfy the node contract[/green]")


@app.command()
def manifest(
    path: PathArgument = None,
    *,
    var: VarOption = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to the manifest TOML file (updated in place if it exists)"),
    ] = None,
    table: Annotated[
        str | None,
        typer.Option("--table", help="Dotted path of the dependency table"),
    ] = None,
) -> None:
    """Write the dependencies of all nodes into a TOML manifest."""
    config = _get_config()
    nodes = _load_nodes(path, config, var)

    deps = collect_node_deps(nodes.values()) | set(config.dependencies)
    effective_output = output if output is not None else config.manifest
    effective_table = table if table is not None else config.manifest_table

    doc = None
    if effective_output is not None and effective_output.exists():
        try:
            doc = tomlkit.parse(effective_output.read_text(encoding="utf-8"))
        except ParseError as e:
            err_console.print(f"[red]Error: existing manifest is not valid TOML: {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from e

    try:
        doc = render_manifest(deps, doc, effective_table)
    except ManifestError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    if effective_output is None:
        out_console.print(tomlkit.dumps(doc), end="", markup=False, highlight=False, soft_wrap=True)
        return

    effective_output.write_text(tomlkit.dumps(doc), encoding="utf-8")
    err_console.print(f"[green]✓ Wrote {len(deps)} dependencies to {effective_output}[/green]")


def main() -> None:
    app()

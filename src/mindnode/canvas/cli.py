import json
import logging
import sys
from pathlib import Path

import typer
import yaml
from rich.console import Console

from mindnode.canvas.config import AppConfig, generate_default_config, load_config
from mindnode.canvas.context import assemble_context
from mindnode.canvas.exceptions import MindNodeError
from mindnode.canvas.export import (
    export_branch_to_markdown,
    export_to_markdown,
    generate_export_filename,
    write_markdown,
)
from mindnode.canvas.layout import layout as layout_nodes
from mindnode.canvas.layout import layout_descendants
from mindnode.canvas.logging import configure_cli_logging
from mindnode.canvas.models import dump_nodes, load_canvas
from mindnode.canvas.prompt import build_prompt

_cli = typer.Typer(
    context_settings={"help_option_names": ["-h", "--help"]}, no_args_is_help=True
)

console = Console()
err_console = Console(stderr=True)

NodesOption = typer.Option(
    ...,
    "--nodes",
    "-n",
    exists=True,
    dir_okay=False,
    help="JSON file holding the mind map nodes",
)


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj["config"]


@_cli.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", help="Path to a YAML config file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    configure_cli_logging(logging.DEBUG if verbose else logging.INFO)
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)


@_cli.command("context", help="Print the context path of a node as JSON")
def context(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node to assemble the context for"),
    nodes_file: Path = NodesOption,
):
    nodes, _ = load_canvas(nodes_file)
    path = assemble_context(
        node_id, nodes, max_depth=_config(ctx).context.max_traversal_depth
    )
    payload = [entry.model_dump(mode="json", by_alias=True) for entry in path]
    console.print_json(json.dumps(payload))


@_cli.command("prompt", help="Print the AI prompt for a node")
def prompt(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node to build the prompt for"),
    nodes_file: Path = NodesOption,
    message: str | None = typer.Option(None, "--message", "-m", help="User question"),
    selection: str | None = typer.Option(
        None, "--selection", "-s", help="Selected text that triggered the branch"
    ),
    token_limit: int | None = typer.Option(
        None, "--token-limit", help="Override the configured token budget"
    ),
):
    nodes, _ = load_canvas(nodes_file)
    config = _config(ctx)
    options = config.prompt.to_options()
    if token_limit is not None:
        options = options.model_copy(update={"token_limit": token_limit})

    path = assemble_context(node_id, nodes, max_depth=config.context.max_traversal_depth)
    result = build_prompt(path, message, selection, options)

    console.print(result.prompt, markup=False, highlight=False, emoji=False, soft_wrap=True)
    if result.was_truncated:
        err_console.print(
            f"[yellow]Context truncated: kept {result.included_nodes} "
            f"of {result.total_nodes} nodes[/yellow]"
        )


@_cli.command("layout", help="Lay out the mind map and write the nodes as JSON")
def layout(
    ctx: typer.Context,
    nodes_file: Path = NodesOption,
    direction: str | None = typer.Option(
        None, "--direction", "-d", help="TB, BT, LR or RL"
    ),
    subtree: str | None = typer.Option(
        None, "--subtree", help="Only re-layout the descendants of this node"
    ),
    keep: list[str] = typer.Option(
        [], "--keep", help="Id of a manually positioned node to leave in place"
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="File to write; stdout when omitted"
    ),
):
    nodes, edges = load_canvas(nodes_file)
    layout_config = _config(ctx).layout
    if direction is not None:
        if direction.upper() not in ("TB", "BT", "LR", "RL"):
            err_console.print(f"[red]Unknown direction: {direction}[/red]")
            raise typer.Exit(1)
        layout_config = layout_config.model_copy(update={"direction": direction.upper()})
    options = layout_config.to_options(set(keep))

    if subtree is not None:
        result = layout_descendants(subtree, nodes, edges, options)
    else:
        result = layout_nodes(nodes, edges, options)

    text = dump_nodes(result.nodes)
    if output is None:
        console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)
    else:
        output.write_text(text, encoding="utf-8")
        err_console.print(f"[green]Wrote {len(result.nodes)} nodes to {output}[/green]")


@_cli.command("export", help="Export the mind map, or one branch, to Markdown")
def export(
    ctx: typer.Context,
    nodes_file: Path = NodesOption,
    branch: str | None = typer.Option(None, "--branch", "-b", help="Branch root id"),
    title: str | None = typer.Option(None, "--title", "-t", help="Document title"),
    types: bool = typer.Option(False, "--types", help="Mark user and AI nodes"),
    selections: bool = typer.Option(
        False, "--selections", help="Quote the selection each branch came from"
    ),
    output_dir: Path | None = typer.Option(
        None, "--output-dir", "-o", help="Directory to write the file to"
    ),
):
    nodes, _ = load_canvas(nodes_file)
    options = _config(ctx).export.to_options()
    updates: dict = {}
    if title is not None:
        updates["title"] = title
    if types:
        updates["include_node_types"] = True
    if selections:
        updates["include_selection_source"] = True
    options = options.model_copy(update=updates)

    if branch is not None:
        result = export_branch_to_markdown(nodes, branch, options)
    else:
        result = export_to_markdown(nodes, options)

    if output_dir is None:
        console.print(result.markdown, markup=False, highlight=False, emoji=False, soft_wrap=True)
        return

    path = write_markdown(
        result.markdown, output_dir, generate_export_filename(options.title)
    )
    err_console.print(
        f"[green]Exported {result.node_count} nodes "
        f"(depth {result.max_depth}) to {path}[/green]"
    )


@_cli.command("init-config", help="Write a default YAML config file")
def init_config(
    path: Path = typer.Argument(Path("mindnode.yaml"), help="Where to write the file"),
):
    if path.exists():
        err_console.print(f"[red]Config file already exists: {path}[/red]")
        raise typer.Exit(1)
    with open(path, "w") as f:
        yaml.safe_dump(generate_default_config(), f, sort_keys=False)
    console.print(f"[green]Wrote default config to {path}[/green]")


def cli():
    try:
        _cli()
    except MindNodeError as e:
        err_console.print(f"[red]{e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    cli()

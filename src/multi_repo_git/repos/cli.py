"""Repository listing and configuration inspection."""

from __future__ import annotations

import json
from pathlib import Path

import click

from multi_repo_git.common import DIM, style_dim, style_header
from multi_repo_git.repos.workspace import Workspace


def _short(path: Path) -> str:
    return str(path).replace(str(Path.home()), "~")


@click.group()
def cli() -> None:
    """Discovered repositories.

    EXAMPLES:
        mrg repos list              # List all discovered repos
        mrg repos ls --json         # JSON output
        mrg repos config            # Show the resolved configuration
    """


@cli.command("list")
@click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON")
@click.option("--path-only", is_flag=True, help="Output just paths (one per line)")
@click.pass_obj
def list_cmd(workspace: Workspace, *, as_json: bool, path_only: bool) -> None:
    """List all discovered repositories.

    EXAMPLES:
        mrg repos list               # List all repos
        mrg repos ls --json          # JSON output
        mrg repos ls --path-only     # Just paths for scripting
    """
    repos = workspace.discover()

    if as_json:
        click.echo(
            json.dumps([{"name": r.name, "path": str(r.path)} for r in repos], indent=2)
        )
        return

    if path_only:
        for r in repos:
            click.echo(r.path)
        return

    if not repos:
        click.echo(style_dim("No repositories found"))
        return

    max_name = max(len(r.name) for r in repos)
    for r in repos:
        name_styled = style_header(r.name.ljust(max_name))
        path_styled = click.style(_short(r.path), fg=DIM)
        click.echo(f"  {name_styled} {path_styled}")


@cli.command("config")
@click.pass_obj
def config_cmd(workspace: Workspace) -> None:
    """Show the resolved configuration and workspace roots as JSON."""
    config = workspace.config
    click.echo(
        json.dumps(
            {
                "scan_nested": config.scan_nested,
                "max_depth": config.max_depth,
                "exclude_folders": list(config.exclude_folders),
                "max_workers": config.max_workers,
                "roots": [str(r) for r in workspace.roots],
            },
            indent=2,
        )
    )


# Command aliases
cli.add_command(list_cmd, name="ls")

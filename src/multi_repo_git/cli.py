"""Unified CLI: run git operations and searches across many repositories."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from multi_repo_git.common import style_error
from multi_repo_git.common.config import ConfigError, load_config
from multi_repo_git.common.log import setup_logging
from multi_repo_git.ops.cli import COMMANDS, checkout, status
from multi_repo_git.repos.cli import cli as repos_cli
from multi_repo_git.repos.workspace import Workspace
from multi_repo_git.search.cli import cli as search_cli


@click.group()
@click.version_option(package_name="multi-repo-git")
@click.option(
    "--root",
    "-r",
    "roots",
    multiple=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Workspace root to scan (repeatable; default: configured roots or cwd)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: $MULTI_REPO_GIT_CONFIG or ~/.config/multi-repo-git/config.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug diagnostics on stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    roots: tuple[Path, ...],
    config_path: Path | None,
    *,
    verbose: bool,
) -> None:
    """Run git across every repository under your workspace roots.

    COMMANDS:
        repos     List discovered repositories
        search    Search branches and commits in every repository
        status, fetch, pull, push, commit, stage, unstage, discard,
        stash, pop, checkout, reset, exec, branch, tag, remote

    EXAMPLES:
        mrg status                       # Short status of every repo
        mrg -r ~/code fetch              # Fetch everything under ~/code
        mrg checkout                     # Pick a branch, check it out everywhere
        mrg pull --repo api              # Single repository
        mrg search branch release        # Find release branches
    """
    setup_logging(verbose=verbose)
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)
    ctx.obj = Workspace(config, list(roots))


cli.add_command(repos_cli, name="repos")
cli.add_command(search_cli, name="search")
for command in COMMANDS:
    cli.add_command(command)

# Command aliases
cli.add_command(status, name="st")
cli.add_command(checkout, name="co")


if __name__ == "__main__":
    cli()

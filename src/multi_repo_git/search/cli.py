"""Branch and commit search across every repository."""

from __future__ import annotations

import json
import sys
from typing import Any

import click

from multi_repo_git.common import (
    CYAN,
    DIM,
    GREEN,
    YELLOW,
    GitClient,
    ProcessError,
    ValidationError,
    branch_choices,
    fuzzy_select,
    select_from_menu,
    style_dim,
    style_error,
    style_header,
    style_info,
    style_success,
    style_warn,
)
from multi_repo_git.ops.actions import checkout_branch
from multi_repo_git.repos.discovery import RepositoryRef
from multi_repo_git.repos.events import RepositoryEvents
from multi_repo_git.repos.workspace import RepositoryNotFound, Workspace
from multi_repo_git.search.engine import (
    BranchMatch,
    CommitMatch,
    RepoSearchResult,
    SearchFilters,
    SearchSession,
    list_all_branches,
)


def result_to_dict(result: RepoSearchResult) -> dict[str, Any]:
    """Convert a search result to a JSON-serializable dict."""
    matches: list[dict[str, Any]] = []
    for m in result.matches:
        if isinstance(m, BranchMatch):
            matches.append({"type": "branch", "label": m.label, "name": m.name, "kind": m.kind})
        else:
            matches.append(
                {
                    "type": "commit",
                    "hash": m.hash,
                    "short_hash": m.short_hash,
                    "message": m.message,
                    "author": m.author,
                    "date": m.committed_at.isoformat(),
                    "refs": m.refs,
                }
            )
    return {
        "name": result.repo.name,
        "path": str(result.repo.path),
        "current_branch": result.current_branch,
        "matches": matches,
    }


def format_match(match: BranchMatch | CommitMatch) -> str:
    """Format one match for terminal output."""
    if isinstance(match, BranchMatch):
        if match.kind == "remote":
            return f"{click.style(match.name, fg=CYAN)}  {click.style(match.label, fg=DIM)}"
        return click.style(match.name, fg=GREEN)
    date = match.committed_at.strftime("%Y-%m-%d %H:%M")
    line = (
        f"{click.style(match.short_hash, fg=YELLOW)} {match.message}  "
        f"{click.style(f'{match.author}, {date}', fg=DIM)}"
    )
    if match.refs:
        line += f"  {click.style(f'({match.refs})', fg=CYAN)}"
    return line


def print_results(results: list[RepoSearchResult]) -> None:
    if not results:
        click.echo(style_dim("No matches found."))
        return
    for result in results:
        current = f"  {style_dim(f'current: {result.current_branch}')}" if result.current_branch else ""
        click.echo(f"{style_header(result.repo.name)}{current}")
        for match in result.matches:
            click.echo(f"  {format_match(match)}")


def _repos(workspace: Workspace, repo_name: str | None) -> list[RepositoryRef]:
    try:
        repos = workspace.select(repo_name)
    except RepositoryNotFound as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)
    if not repos:
        click.echo(style_warn("No git repositories found."), err=True)
        sys.exit(1)
    return repos


def _run_session(
    workspace: Workspace, *, as_json: bool
) -> tuple[SearchSession, list[RepoSearchResult]]:
    """Session printing a start notice and collecting the delivered results."""
    collected: list[RepoSearchResult] = []

    def on_started() -> None:
        if not as_json:
            click.echo(style_info("Searching..."), err=True)

    session = SearchSession(
        collected.extend,
        on_started,
        max_workers=workspace.config.max_workers,
    )
    return session, collected


def pick_and_checkout(results: list[RepoSearchResult]) -> None:
    """Let the operator pick one branch match and check it out in its repo."""
    choices: list[tuple[RepositoryRef, BranchMatch]] = [
        (r.repo, m) for r in results for m in r.matches if isinstance(m, BranchMatch)
    ]
    if not choices:
        return
    options = branch_choices([(repo.name, match.label) for repo, match in choices])
    index = fuzzy_select(options, "Select branch to checkout")
    if index is None:
        click.echo(style_dim("Cancelled."))
        return

    repo, match = choices[index]
    events = RepositoryEvents()
    events.on_change(
        lambda changed, branch: click.echo(
            style_success(f"{changed.name} is now on {branch}")
        )
    )
    try:
        checkout_branch(GitClient(repo.path), repo, match.name, events)
    except (ProcessError, ValidationError) as e:
        click.echo(style_error(f"Failed to checkout {match.name}: {e}"), err=True)
        sys.exit(1)


@click.group()
def cli() -> None:
    """Search branches and commits across all repositories.

    EXAMPLES:
        mrg search branch release          # Branches containing 'release'
        mrg search branch feat --checkout  # ...then pick one to check out
        mrg search commit "fix login"      # Commits whose message matches
        mrg search commit --author alice --since 2024-01-01
        mrg search branches                # Every branch name, deduplicated
    """


@cli.command("branch")
@click.argument("query")
@click.option("--checkout", "do_checkout", is_flag=True, help="Pick a match and check it out")
@click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON")
@click.option("--repo", "repo_name", metavar="NAME", help="Search a single repository")
@click.pass_obj
def branch_cmd(
    workspace: Workspace,
    query: str,
    repo_name: str | None,
    *,
    do_checkout: bool,
    as_json: bool,
) -> None:
    """Find branches whose name contains QUERY (case-sensitive).

    A remote branch with the same name as a local one is listed once, as local.
    """
    repos = _repos(workspace, repo_name)
    session, results = _run_session(workspace, as_json=as_json)
    session.search_branches(query, repos)

    if as_json:
        click.echo(json.dumps([result_to_dict(r) for r in results], indent=2))
        return
    print_results(results)
    if do_checkout and results:
        pick_and_checkout(results)


@cli.command("commit")
@click.argument("grep", required=False)
@click.option("--author", "-a", help="Only commits by this author")
@click.option("--since", help="Only commits after this date (e.g. 2024-01-31)")
@click.option("--until", help="Only commits before this date")
@click.option("--branch", "-b", help="Search only this branch instead of all refs")
@click.option("--pick-branch", is_flag=True, help="Pick the branch filter interactively")
@click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON")
@click.option("--repo", "repo_name", metavar="NAME", help="Search a single repository")
@click.pass_obj
def commit_cmd(
    workspace: Workspace,
    grep: str | None,
    author: str | None,
    since: str | None,
    until: str | None,
    branch: str | None,
    repo_name: str | None,
    *,
    pick_branch: bool,
    as_json: bool,
) -> None:
    """Find commits whose message matches GREP, filtered by author, date or branch."""
    repos = _repos(workspace, repo_name)

    if pick_branch:
        branch = select_from_menu(
            "Select branch to filter by",
            list_all_branches(repos, max_workers=workspace.config.max_workers),
        )
        if branch is None:
            click.echo(style_dim("Cancelled."))
            return

    filters = SearchFilters(grep=grep, author=author, since=since, until=until, branch=branch)
    if filters.is_empty():
        click.echo(
            style_error("Give a message pattern or at least one of --author, --since, --until, --branch"),
            err=True,
        )
        sys.exit(1)

    session, results = _run_session(workspace, as_json=as_json)
    try:
        session.search_commits(filters, repos)
    except ValidationError as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([result_to_dict(r) for r in results], indent=2))
        return
    print_results(results)


@cli.command("branches")
@click.option("--repo", "repo_name", metavar="NAME", help="List a single repository")
@click.pass_obj
def branches_cmd(workspace: Workspace, repo_name: str | None) -> None:
    """List every branch name across repositories, remote prefixes stripped."""
    repos = _repos(workspace, repo_name)
    for name in list_all_branches(repos, max_workers=workspace.config.max_workers):
        click.echo(name)


# Command aliases
cli.add_command(branch_cmd, name="br")
cli.add_command(commit_cmd, name="ci")

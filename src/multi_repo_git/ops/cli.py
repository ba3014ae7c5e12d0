"""Commands that run one git operation across every repository."""

from __future__ import annotations

import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import click

from multi_repo_git.common import (
    ValidationError,
    select_from_menu,
    style_dim,
    style_error,
    style_info,
    style_report_line,
    style_success,
    style_warn,
)
from multi_repo_git.ops import actions
from multi_repo_git.ops.orchestrator import (
    Action,
    CancelToken,
    NoRepositoriesFound,
    run_operation,
    summarize,
)
from multi_repo_git.repos.discovery import RepositoryRef
from multi_repo_git.repos.events import RepositoryEvents
from multi_repo_git.repos.workspace import RepositoryNotFound, Workspace
from multi_repo_git.search.engine import list_all_branches

repo_option = click.option(
    "--repo", "repo_name", metavar="NAME", help="Run in a single repository (name or path)"
)
yes_option = click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")


def echo_report(line: str) -> None:
    click.echo(style_report_line(line))


@contextmanager
def cancel_on_interrupt(token: CancelToken) -> Iterator[None]:
    """First Ctrl-C cancels after the current repository; a second one aborts."""

    def handler(signum: int, frame: Any) -> None:
        if token.cancelled:
            raise KeyboardInterrupt
        token.cancel()
        click.echo(
            style_warn("Stopping after the current repository (Ctrl-C again to abort)"),
            err=True,
        )

    try:
        previous = signal.signal(signal.SIGINT, handler)
    except ValueError:
        # Not the main thread; cancellation stays available through the token
        previous = None
    try:
        yield
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)


def select_repos(workspace: Workspace, repo_name: str | None) -> list[RepositoryRef]:
    try:
        return workspace.select(repo_name)
    except RepositoryNotFound as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)


def run_batch(
    workspace: Workspace,
    operation: str,
    action: Action,
    repo_name: str | None = None,
) -> None:
    """Run an action over the selected repositories and print a summary.

    Exits with status 1 if any repository failed.
    """
    repos = select_repos(workspace, repo_name)
    token = CancelToken()
    with cancel_on_interrupt(token):
        try:
            outcomes = run_operation(
                operation, repos, action, cancel=token, report=echo_report
            )
        except NoRepositoriesFound:
            click.echo(style_warn("No git repositories found."), err=True)
            return

    succeeded, failed = summarize(outcomes)
    click.echo()
    if token.cancelled:
        click.echo(
            style_warn(f"Cancelled after {len(outcomes)} of {len(repos)} repo(s)"),
            err=True,
        )
    if failed:
        click.echo(
            style_error(f"{operation}: {succeeded} succeeded, {failed} failed"), err=True
        )
        for outcome in outcomes:
            if not outcome.succeeded:
                click.echo(style_dim(f"  {outcome.repo.name}: {outcome.error}"), err=True)
        sys.exit(1)
    click.echo(style_success(f"{operation}: {succeeded} repo(s) done"))


def build_action(factory: Any, *args: Any) -> Action:
    """Create an action, turning invalid names into a CLI error."""
    try:
        return factory(*args)
    except ValidationError as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)


def confirm_destructive(message: str, *, yes: bool) -> bool:
    if yes:
        return True
    if not click.confirm(style_warn(message), default=False):
        click.echo(style_dim("Cancelled."))
        return False
    return True


@click.command()
@repo_option
@click.pass_obj
def status(workspace: Workspace, repo_name: str | None) -> None:
    """Show short status for every repository."""
    run_batch(workspace, "Status", actions.status(), repo_name)


@click.command()
@repo_option
@click.pass_obj
def fetch(workspace: Workspace, repo_name: str | None) -> None:
    """Fetch all remotes with pruning."""
    run_batch(workspace, "Fetch", actions.fetch(), repo_name)


@click.command()
@repo_option
@click.pass_obj
def pull(workspace: Workspace, repo_name: str | None) -> None:
    """Pull with rebase."""
    run_batch(workspace, "Pull (rebase)", actions.pull(), repo_name)


@click.command()
@repo_option
@click.pass_obj
def push(workspace: Workspace, repo_name: str | None) -> None:
    """Push the current branch."""
    run_batch(workspace, "Push", actions.push(), repo_name)


@click.command()
@click.argument("message")
@repo_option
@click.pass_obj
def commit(workspace: Workspace, message: str, repo_name: str | None) -> None:
    """Commit staged changes with MESSAGE.

    EXAMPLES:
        mrg stage && mrg commit "Bump dependencies"
    """
    if not message.strip():
        click.echo(style_error("Commit message cannot be empty"), err=True)
        sys.exit(1)
    run_batch(workspace, "Commit", actions.commit(message), repo_name)


@click.command()
@repo_option
@click.pass_obj
def stage(workspace: Workspace, repo_name: str | None) -> None:
    """Stage all changes."""
    run_batch(workspace, "Stage All", actions.stage_all(), repo_name)


@click.command()
@repo_option
@click.pass_obj
def unstage(workspace: Workspace, repo_name: str | None) -> None:
    """Unstage all changes."""
    run_batch(workspace, "Unstage All", actions.unstage_all(), repo_name)


@click.command()
@repo_option
@yes_option
@click.pass_obj
def discard(workspace: Workspace, repo_name: str | None, *, yes: bool) -> None:
    """Discard ALL uncommitted changes (reset --hard and clean)."""
    if not confirm_destructive(
        "Discard ALL uncommitted changes? This cannot be undone!", yes=yes
    ):
        return
    run_batch(workspace, "Discard Changes", actions.discard(), repo_name)


@click.command()
@click.option("--message", "-m", help="Stash message")
@repo_option
@click.pass_obj
def stash(workspace: Workspace, message: str | None, repo_name: str | None) -> None:
    """Stash changes."""
    run_batch(workspace, "Stash", actions.stash(message), repo_name)


@click.command()
@repo_option
@click.pass_obj
def pop(workspace: Workspace, repo_name: str | None) -> None:
    """Pop the latest stash."""
    run_batch(workspace, "Pop Stash", actions.stash_pop(), repo_name)


@click.command()
@click.argument("branch", required=False)
@repo_option
@click.pass_obj
def checkout(workspace: Workspace, branch: str | None, repo_name: str | None) -> None:
    """Check out BRANCH everywhere.

    Without BRANCH, pick from the union of branches across all repositories.

    EXAMPLES:
        mrg checkout              # Interactive branch picker
        mrg checkout main         # Check out main in every repo
        mrg co origin/release     # Remote prefixes are stripped
    """
    if branch is None:
        repos = select_repos(workspace, repo_name)
        if not repos:
            click.echo(style_warn("No git repositories found."), err=True)
            return
        branches = list_all_branches(repos, max_workers=workspace.config.max_workers)
        branch = select_from_menu("Select branch to checkout", branches)
        if branch is None:
            click.echo(style_dim("Cancelled."))
            return
    events = RepositoryEvents()
    events.on_change(
        lambda repo, current: click.echo(style_info(f"{repo.name} is now on {current}"))
    )
    action = build_action(actions.checkout, branch, events)
    run_batch(workspace, f"Checkout {branch}", action, repo_name)


@click.command()
@repo_option
@yes_option
@click.pass_obj
def reset(workspace: Workspace, repo_name: str | None, *, yes: bool) -> None:
    """Reset workspace: discard changes, fetch, then pull.

    A repository whose discard or fetch fails skips its remaining steps.
    """
    if not confirm_destructive(
        "Reset workspace? This will discard all changes, fetch and pull. "
        "This cannot be undone!",
        yes=yes,
    ):
        return
    run_batch(workspace, "Reset Workspace", actions.reset_workspace(), repo_name)


@click.command("exec", context_settings={"ignore_unknown_options": True})
@click.argument("git_args", nargs=-1, required=True, type=click.UNPROCESSED)
@repo_option
@click.pass_obj
def exec_cmd(workspace: Workspace, git_args: tuple[str, ...], repo_name: str | None) -> None:
    """Run custom git arguments (without the leading 'git').

    EXAMPLES:
        mrg exec -- log -1 --oneline
        mrg exec -- fetch --all --prune
    """
    args = list(git_args)
    run_batch(workspace, f"git {' '.join(args)}", actions.raw(args), repo_name)


@click.group()
def branch() -> None:
    """Create or delete a branch in every repository."""


@branch.command("create")
@click.argument("name")
@repo_option
@click.pass_obj
def branch_create(workspace: Workspace, name: str, repo_name: str | None) -> None:
    """Create and check out branch NAME."""
    action = build_action(actions.create_branch, name)
    run_batch(workspace, f"Create Branch {name}", action, repo_name)


@branch.command("delete")
@click.argument("name")
@repo_option
@click.pass_obj
def branch_delete(workspace: Workspace, name: str, repo_name: str | None) -> None:
    """Force-delete local branch NAME."""
    action = build_action(actions.delete_branch, name)
    run_batch(workspace, f"Delete Branch {name}", action, repo_name)


@click.group()
def tag() -> None:
    """Create or delete a tag in every repository."""


@tag.command("create")
@click.argument("name")
@repo_option
@click.pass_obj
def tag_create(workspace: Workspace, name: str, repo_name: str | None) -> None:
    """Create lightweight tag NAME at HEAD."""
    action = build_action(actions.create_tag, name)
    run_batch(workspace, f"Create Tag {name}", action, repo_name)


@tag.command("delete")
@click.argument("name")
@repo_option
@click.pass_obj
def tag_delete(workspace: Workspace, name: str, repo_name: str | None) -> None:
    """Delete local tag NAME."""
    action = build_action(actions.delete_tag, name)
    run_batch(workspace, f"Delete Tag {name}", action, repo_name)


@click.group()
def remote() -> None:
    """Add or remove a remote in every repository."""


@remote.command("add")
@click.argument("name")
@click.argument("url")
@repo_option
@click.pass_obj
def remote_add(workspace: Workspace, name: str, url: str, repo_name: str | None) -> None:
    """Add remote NAME pointing at URL."""
    action = build_action(actions.add_remote, name, url)
    run_batch(workspace, f"Add Remote {name}", action, repo_name)


@remote.command("remove")
@click.argument("name")
@repo_option
@click.pass_obj
def remote_remove(workspace: Workspace, name: str, repo_name: str | None) -> None:
    """Remove remote NAME."""
    action = build_action(actions.remove_remote, name)
    run_batch(workspace, f"Delete Remote {name}", action, repo_name)


COMMANDS = [
    status,
    fetch,
    pull,
    push,
    commit,
    stage,
    unstage,
    discard,
    stash,
    pop,
    checkout,
    reset,
    exec_cmd,
    branch,
    tag,
    remote,
]

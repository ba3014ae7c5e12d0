"""Named git operations, each an action the orchestrator runs per repository."""

from __future__ import annotations

import logging

from multi_repo_git.common.git import VcsClient
from multi_repo_git.common.validate import (
    validate_branch_name,
    validate_remote_name,
    validate_remote_url,
    validate_tag_name,
)
from multi_repo_git.ops.orchestrator import Action, PartialFailure
from multi_repo_git.repos.discovery import RepositoryRef
from multi_repo_git.repos.events import RepositoryEvents
from multi_repo_git.search.normalize import normalize_branch_name

logger = logging.getLogger(__name__)


class StepFailed(PartialFailure):
    """Raised when one step of a composed operation fails.

    ``output`` holds the lines of the steps that ran, the failing one included.
    """

    def __init__(self, step: str, cause: Exception, output: str = "") -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"{step} failed: {cause}", output)


def _git(args: list[str], done: str) -> Action:
    """Action running one git command, reporting its output then ``done``."""

    def action(client: VcsClient, repo: RepositoryRef) -> str:
        output = client.run_raw(args)
        return f"{output}\n{done}" if output else done

    return action


def status() -> Action:
    return _git(["status", "--short", "--branch"], "Status read.")


def fetch() -> Action:
    return _git(["fetch", "--all", "--prune"], "Fetch completed.")


def pull() -> Action:
    return _git(["pull", "--rebase"], "Pull completed.")


def push() -> Action:
    return _git(["push"], "Push completed.")


def commit(message: str) -> Action:
    return _git(["commit", "-m", message], f'Committed: "{message}"')


def stage_all() -> Action:
    return _git(["add", "."], "Staged all changes.")


def unstage_all() -> Action:
    return _git(["reset", "HEAD"], "Unstaged all changes.")


def discard() -> Action:
    """Hard-reset tracked files and remove untracked ones."""

    def action(client: VcsClient, repo: RepositoryRef) -> str:
        client.run_raw(["reset", "--hard", "HEAD"])
        client.run_raw(["clean", "-f", "-d"])
        return "Discarded all changes."

    return action


def stash(message: str | None = None) -> Action:
    args = ["stash", "push"]
    if message:
        args.extend(["-m", message])
    return _git(args, "Stashed changes.")


def stash_pop() -> Action:
    return _git(["stash", "pop"], "Popped stash.")


def checkout(branch: str, events: RepositoryEvents | None = None) -> Action:
    """Check out branch, remote prefix stripped.

    With events, each repository re-reads its current branch afterwards and
    reports it through the change callback.
    """
    target = validate_branch_name(normalize_branch_name(branch))

    def action(client: VcsClient, repo: RepositoryRef) -> str:
        client.checkout(target)
        if events is not None:
            events.refresh(repo, client)
        return f"Checked out {target}."

    return action


def create_branch(branch: str) -> Action:
    validate_branch_name(branch)
    return _git(["checkout", "-b", branch], f"Created and checked out {branch}.")


def delete_branch(branch: str) -> Action:
    validate_branch_name(branch)
    return _git(["branch", "-D", branch], f"Deleted branch {branch}.")


def create_tag(tag: str) -> Action:
    validate_tag_name(tag)
    return _git(["tag", tag], f"Created tag {tag}.")


def delete_tag(tag: str) -> Action:
    validate_tag_name(tag)
    return _git(["tag", "-d", tag], f"Deleted tag {tag}.")


def add_remote(name: str, url: str) -> Action:
    validate_remote_name(name)
    validate_remote_url(url)
    return _git(["remote", "add", name, url], f"Added remote {name}.")


def remove_remote(name: str) -> Action:
    validate_remote_name(name)
    return _git(["remote", "remove", name], f"Deleted remote {name}.")


def raw(args: list[str]) -> Action:
    """Run arbitrary git arguments (without the leading ``git``)."""
    return _git(list(args), "Done.")


def compose(*steps: tuple[str, Action]) -> Action:
    """Chain steps for one repository, stopping at the first failure."""

    def action(client: VcsClient, repo: RepositoryRef) -> str:
        lines: list[str] = []
        for label, step in steps:
            lines.append(f"{label}...")
            try:
                output = step(client, repo)
            except Exception as e:  # noqa: BLE001
                raise StepFailed(label, e, "\n".join(lines)) from e
            lines.append(f"✓ {output}")
        return "\n".join(lines)

    return action


def reset_workspace() -> Action:
    """Discard, then fetch, then pull. Later steps are skipped if one fails."""
    return compose(("Discard", discard()), ("Fetch", fetch()), ("Pull", pull()))


def checkout_branch(
    client: VcsClient,
    repo: RepositoryRef,
    branch: str,
    events: RepositoryEvents | None = None,
) -> str:
    """Check out a branch reported by search in one repository.

    Local branches are checked out directly. Anything else is handed to
    ``git checkout`` as given, which creates a tracking branch when exactly
    one remote has a branch of that name.
    Raises ValidationError before touching the repository if the name is
    not a valid branch name.
    """
    target = validate_branch_name(normalize_branch_name(branch))
    if target not in client.list_branches(include_remote=False):
        logger.debug("%s is not local in %s, relying on git to track it", target, repo.name)
    client.checkout(target)
    if events is not None:
        events.notify(repo, target)
    return target

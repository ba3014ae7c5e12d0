"""Sequential execution of one operation across a repository set.

Repositories are processed strictly one after another so combined output can
always be attributed to a repository and one remote never sees a burst of
simultaneous requests. A failing repository is recorded and skipped over;
cancellation is polled between repositories, never mid-operation.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import NamedTuple

from multi_repo_git.common.git import GitClient, VcsClient
from multi_repo_git.repos.discovery import RepositoryRef

logger = logging.getLogger(__name__)

Action = Callable[[VcsClient, RepositoryRef], str]
ClientFactory = Callable[[Path], VcsClient]
Reporter = Callable[[str], None]


class NoRepositoriesFound(Exception):
    """Raised when an operation is requested over an empty repository set."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"No git repositories found for {operation!r}")


class PartialFailure(Exception):
    """Raised by an action that produced some output before failing.

    The orchestrator reports ``output`` ahead of the failure footer.
    """

    def __init__(self, message: str, output: str = "") -> None:
        self.output = output
        super().__init__(message)


class OperationOutcome(NamedTuple):
    """Result of one operation on one repository."""

    repo: RepositoryRef
    succeeded: bool
    output: str
    error: str | None = None


class CancelToken:
    """Thread-safe cancellation flag polled between repositories."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _log_report(line: str) -> None:
    logger.info(line)


def run_operation(
    operation: str,
    repos: Sequence[RepositoryRef],
    action: Action,
    *,
    client_factory: ClientFactory = GitClient,
    cancel: CancelToken | None = None,
    report: Reporter | None = None,
) -> list[OperationOutcome]:
    """Run action against each repo in the given order.

    Returns one outcome per processed repository. If cancel is set before a
    repository starts, the outcomes gathered so far are returned.
    """
    if not repos:
        raise NoRepositoriesFound(operation)

    emit = report or _log_report
    outcomes: list[OperationOutcome] = []

    for repo in repos:
        if cancel is not None and cancel.cancelled:
            logger.debug(
                "%s cancelled after %d of %d repos", operation, len(outcomes), len(repos)
            )
            break

        emit(f"=== {repo.name} » {operation} ===")
        try:
            output = action(client_factory(repo.path), repo)
        except Exception as e:  # noqa: BLE001
            message = str(e) or e.__class__.__name__
            partial = e.output if isinstance(e, PartialFailure) else ""
            logger.debug("%s failed in %s", operation, repo.path, exc_info=True)
            if partial:
                emit(partial)
            emit(f"=== {repo.name} » {operation}: failed: {message} ===")
            outcomes.append(OperationOutcome(repo, False, partial, message))
            continue

        if output:
            emit(output)
        emit(f"=== {repo.name} » {operation}: done ===")
        outcomes.append(OperationOutcome(repo, True, output))

    return outcomes


def summarize(outcomes: Sequence[OperationOutcome]) -> tuple[int, int]:
    """Count (succeeded, failed) outcomes."""
    succeeded = sum(1 for o in outcomes if o.succeeded)
    return succeeded, len(outcomes) - succeeded

"""Repository-changed notifications (e.g. the checked-out branch moved)."""

from __future__ import annotations

import logging
from collections.abc import Callable

from multi_repo_git.common.git import ProcessError, VcsClient
from multi_repo_git.repos.discovery import RepositoryRef

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[RepositoryRef, str], None]


class RepositoryEvents:
    """Single registration point for "repository changed" callbacks.

    Hosts that watch repositories call notify() or refresh(); the core never
    subscribes to any host event system itself.
    """

    def __init__(self) -> None:
        self._callback: ChangeCallback | None = None

    def on_change(self, callback: ChangeCallback | None) -> None:
        """Register the callback, replacing any previous one. None unregisters."""
        self._callback = callback

    def notify(self, repo: RepositoryRef, branch: str) -> None:
        if self._callback is None:
            return
        self._callback(repo, branch)

    def refresh(self, repo: RepositoryRef, client: VcsClient) -> str | None:
        """Read the repository's current branch and notify. Returns the branch."""
        try:
            branch = client.current_branch()
        except ProcessError as e:
            logger.warning("Could not refresh %s: %s", repo.name, e)
            return None
        self.notify(repo, branch)
        return branch

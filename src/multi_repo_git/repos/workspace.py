"""The set of workspace roots a command operates on, plus its configuration."""

from __future__ import annotations

from pathlib import Path

from multi_repo_git.common.config import Config
from multi_repo_git.repos.discovery import RepositoryRef, discover_repos, find_repo


class RepositoryNotFound(Exception):
    """Raised when a --repo selector matches no discovered repository."""

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Repository '{selector}' not found")


class Workspace:
    """Workspace roots and config. Discovery is re-run on every call."""

    def __init__(self, config: Config, roots: list[Path] | None = None) -> None:
        self.config = config
        if roots:
            self.roots = list(roots)
        elif config.roots:
            self.roots = list(config.roots)
        else:
            self.roots = [Path.cwd()]

    def discover(self) -> list[RepositoryRef]:
        """Discover repositories, sorted by display name."""
        return discover_repos(self.roots, self.config.scan_policy())

    def select(self, selector: str | None = None) -> list[RepositoryRef]:
        """All repositories, or only the one named by selector."""
        repos = self.discover()
        if selector is None:
            return repos
        repo = find_repo(selector, repos)
        if repo is None:
            raise RepositoryNotFound(selector)
        return [repo]

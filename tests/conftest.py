"""Shared test fixtures for multi-repo-git."""

from __future__ import annotations

import subprocess
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path

import pytest

from multi_repo_git.common.git import CommitRecord, LogOptions, ProcessError
from multi_repo_git.repos.discovery import RepositoryRef


def git(repo: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=repo, capture_output=True, check=True)


def init_repo(repo: Path) -> Path:
    """Create a git repository with one commit at repo."""
    repo.mkdir(parents=True, exist_ok=True)
    git(repo, "init")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "user.name", "Test User")
    # Create initial commit so branch exists
    (repo / "README.md").write_text("# Test Repo\n")
    git(repo, "add", ".")
    git(repo, "commit", "-m", "Initial commit")
    return repo


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository for testing."""
    return init_repo(tmp_path / "test-repo")


@pytest.fixture
def make_git_repo() -> Callable[[Path], Path]:
    """Factory creating real git repositories with an initial commit."""
    return init_repo


class FakeClient:
    """In-memory stand-in for GitClient that records every call."""

    def __init__(
        self,
        path: Path,
        *,
        current: str = "main",
        local: Sequence[str] = ("main",),
        remote: Sequence[str] = (),
        commits: Sequence[CommitRecord] = (),
        broken: bool = False,
        failing_commands: Sequence[str] = (),
        outputs: dict[str, str] | None = None,
        on_query: Callable[[], None] | None = None,
    ) -> None:
        self.path = path
        self.current = current
        self.local = list(local)
        self.remote = list(remote)
        self.commits = list(commits)
        self.broken = broken
        self.failing_commands = set(failing_commands)
        self.outputs = outputs or {}
        self.on_query = on_query
        self.calls: list[list[str]] = []
        self.log_options: list[LogOptions] = []

    def _check(self, args: list[str]) -> None:
        self.calls.append(args)
        if self.broken:
            raise ProcessError(args, 128, "fatal: not a git repository")

    def current_branch(self) -> str:
        self._check(["branch", "--show-current"])
        if self.on_query is not None:
            self.on_query()
        return self.current

    def list_branches(self, *, include_remote: bool = False) -> list[str]:
        self._check(["branch", "-a"] if include_remote else ["branch"])
        if include_remote:
            return self.local + [f"remotes/{r}" for r in self.remote]
        return list(self.local)

    def list_remote_branches(self) -> list[str]:
        self._check(["branch", "-r"])
        return list(self.remote)

    def log(self, options: LogOptions) -> list[CommitRecord]:
        self._check(["log", *options.to_args()])
        self.log_options.append(options)
        return list(self.commits)

    def checkout(self, target: str) -> str:
        return self.run_raw(["checkout", target])

    def run_raw(self, args: list[str]) -> str:
        self._check(list(args))
        if args and args[0] in self.failing_commands:
            raise ProcessError(list(args), 1, f"error: {args[0]} failed")
        return self.outputs.get(args[0], "") if args else ""


class FakeGit:
    """Registry of fake clients keyed by repository path."""

    def __init__(self, base: Path) -> None:
        self.base = base
        self.clients: dict[Path, FakeClient] = {}
        self.created: list[Path] = []

    def add(self, name: str, **kwargs: object) -> RepositoryRef:
        path = self.base / name
        self.clients[path] = FakeClient(path, **kwargs)  # type: ignore[arg-type]
        return RepositoryRef(name, path)

    def factory(self, path: Path) -> FakeClient:
        self.created.append(path)
        return self.clients[path]

    def __getitem__(self, name: str) -> FakeClient:
        return self.clients[self.base / name]


@pytest.fixture
def fake_git(tmp_path: Path) -> FakeGit:
    """Fake clients for orchestrator and search tests."""
    return FakeGit(tmp_path)


def commit_record(
    message: str,
    *,
    hash: str = "0123456789abcdef0123456789abcdef01234567",
    author: str = "Test User",
    refs: str = "",
) -> CommitRecord:
    return CommitRecord(
        hash=hash,
        message=message,
        author_name=author,
        date=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
        refs=refs,
    )


@pytest.fixture
def make_commit() -> Callable[..., CommitRecord]:
    """Factory for CommitRecord values."""
    return commit_record

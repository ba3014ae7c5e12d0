"""Git client capability shared by discovery, operations and search."""

from __future__ import annotations

import logging
import subprocess
from datetime import datetime
from pathlib import Path
from typing import NamedTuple, Protocol

logger = logging.getLogger(__name__)

REPO_MARKER = ".git"

# Unit and record separators keep commit subjects with spaces or pipes intact
FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"
LOG_FORMAT = f"%H{FIELD_SEP}%s{FIELD_SEP}%an{FIELD_SEP}%cI{FIELD_SEP}%D{RECORD_SEP}"


class ProcessError(Exception):
    """Raised when git exits non-zero or cannot be started."""

    def __init__(self, args: list[str], returncode: int, stderr: str = "") -> None:
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exited with status {returncode}"
        super().__init__(f"git {' '.join(args)}: {detail}")


class LogOptions(NamedTuple):
    """Query plan for a commit log. ``ref=None`` means all refs."""

    grep: str | None = None
    author: str | None = None
    since: str | None = None
    until: str | None = None
    ref: str | None = None

    def to_args(self) -> list[str]:
        """Build the ``git log`` arguments for this plan."""
        args = [self.ref] if self.ref else ["--all"]
        if self.grep:
            args.append(f"--grep={self.grep}")
        if self.author:
            args.append(f"--author={self.author}")
        if self.since:
            args.append(f"--since={self.since}")
        if self.until:
            args.append(f"--until={self.until}")
        return args


class CommitRecord(NamedTuple):
    """One commit as reported by ``git log``."""

    hash: str
    message: str
    author_name: str
    date: datetime
    refs: str


class VcsClient(Protocol):
    """Repository-level operations the core depends on."""

    def current_branch(self) -> str: ...

    def list_branches(self, *, include_remote: bool = False) -> list[str]: ...

    def list_remote_branches(self) -> list[str]: ...

    def log(self, options: LogOptions) -> list[CommitRecord]: ...

    def checkout(self, target: str) -> str: ...

    def run_raw(self, args: list[str]) -> str: ...


def run_git(*args: str, cwd: Path | None = None, strip: bool = True) -> str:
    """Run a git command and return its stdout, stripped unless strip=False.

    Raises ProcessError on a non-zero exit or when git is not installed.
    """
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            cwd=cwd,
            check=False,
        )
    except (FileNotFoundError, NotADirectoryError) as e:
        raise ProcessError(list(args), -1, str(e)) from e
    if result.returncode != 0:
        raise ProcessError(list(args), result.returncode, result.stderr)
    return result.stdout.strip() if strip else result.stdout


def has_repo_marker(path: Path) -> bool:
    """Check for a ``.git`` directory or file (worktrees and submodules use a file)."""
    try:
        return (path / REPO_MARKER).exists()
    except OSError:
        return False


def parse_log(output: str) -> list[CommitRecord]:
    """Parse ``git log`` output produced with LOG_FORMAT."""
    commits: list[CommitRecord] = []
    for record in output.split(RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        fields = record.split(FIELD_SEP)
        if len(fields) != 5:
            logger.debug("Skipping malformed log record: %r", record)
            continue
        commit_hash, message, author, date, refs = fields
        commits.append(
            CommitRecord(
                hash=commit_hash,
                message=message,
                author_name=author,
                date=datetime.fromisoformat(date),
                refs=refs.strip(),
            )
        )
    return commits


class GitClient:
    """Subprocess-backed git client bound to one repository."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def run_raw(self, args: list[str]) -> str:
        return run_git(*args, cwd=self.path)

    def current_branch(self) -> str:
        """Get the current branch name (empty when HEAD is detached)."""
        return self.run_raw(["branch", "--show-current"])

    def list_branches(self, *, include_remote: bool = False) -> list[str]:
        """List local branches, plus ``remotes/<remote>/<name>`` labels if asked."""
        args = ["branch", "--format=%(refname)"]
        if include_remote:
            args.append("-a")

        branches: list[str] = []
        for line in self.run_raw(args).split("\n"):
            ref = line.strip()
            if not ref or ref.endswith("/HEAD"):
                continue
            if ref.startswith("refs/heads/"):
                branches.append(ref[len("refs/heads/") :])
            elif ref.startswith("refs/remotes/"):
                branches.append("remotes/" + ref[len("refs/remotes/") :])
        return branches

    def list_remote_branches(self) -> list[str]:
        """List remote-tracking branches as ``<remote>/<name>``."""
        branches: list[str] = []
        for line in self.run_raw(["branch", "-r", "--format=%(refname)"]).split("\n"):
            ref = line.strip()
            if ref.startswith("refs/remotes/") and not ref.endswith("/HEAD"):
                branches.append(ref[len("refs/remotes/") :])
        return branches

    def log(self, options: LogOptions) -> list[CommitRecord]:
        # Unstripped: str.strip() counts the separators as whitespace
        output = run_git(
            "log", f"--format={LOG_FORMAT}", *options.to_args(), cwd=self.path, strip=False
        )
        return parse_log(output)

    def checkout(self, target: str) -> str:
        return self.run_raw(["checkout", target])

"""Bounded, exclusion-aware repository discovery under workspace roots."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import NamedTuple

from multi_repo_git.common.git import has_repo_marker

logger = logging.getLogger(__name__)


class RepositoryRef(NamedTuple):
    """A discovered repository root. Identity is the resolved path."""

    name: str
    path: Path

    @classmethod
    def from_path(cls, path: Path) -> RepositoryRef:
        return cls(name=path.name, path=path)


class ScanPolicy(NamedTuple):
    """How deep to look and which folder names never to enter."""

    max_depth: int = 2
    excluded_names: frozenset[str] = frozenset()
    recurse_into_nested: bool = True


def _child_dirs(directory: Path, excluded: frozenset[str]) -> list[Path]:
    """List traversable child directories, or raise OSError if unreadable."""
    children: list[Path] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.name in (".", "..") or entry.name in excluded:
                continue
            try:
                # Symlinks are never followed, which also rules out cycles
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue
            children.append(Path(entry.path))
    return children


def discover(root: Path, policy: ScanPolicy) -> set[RepositoryRef]:
    """Find repository roots under root.

    Depth-first with an explicit stack. A repository is a leaf: once a
    directory carries a marker, nothing beneath it is visited. Unreadable
    directories are skipped so one bad subtree never fails the scan.
    """
    try:
        root = Path(root).expanduser().resolve()
    except (OSError, RuntimeError):
        logger.debug("Cannot resolve workspace root %s", root)
        return set()

    if not root.is_dir():
        return set()

    if not policy.recurse_into_nested:
        return {RepositoryRef.from_path(root)} if has_repo_marker(root) else set()

    repos: set[RepositoryRef] = set()
    stack: list[tuple[Path, int]] = [(root, 0)]

    while stack:
        directory, depth = stack.pop()

        if has_repo_marker(directory):
            repos.add(RepositoryRef.from_path(directory))
            continue

        if depth >= policy.max_depth:
            continue

        try:
            children = _child_dirs(directory, policy.excluded_names)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", directory, e)
            continue

        stack.extend((child, depth + 1) for child in children)

    return repos


def discover_repos(roots: Iterable[Path], policy: ScanPolicy) -> list[RepositoryRef]:
    """Discover across all workspace roots.

    Deduplicates by path and returns repos sorted by name (case-insensitive).
    """
    found: set[RepositoryRef] = set()
    for root in roots:
        found |= discover(root, policy)
    return sorted(found, key=lambda r: (r.name.lower(), str(r.path)))


def find_repo(name_or_path: str, repos: list[RepositoryRef]) -> RepositoryRef | None:
    """Find a repo by name or path from a list."""
    # Exact path match
    for r in repos:
        if str(r.path) == name_or_path:
            return r
    try:
        resolved = Path(name_or_path).expanduser().resolve()
    except (OSError, RuntimeError):
        resolved = None
    if resolved is not None:
        for r in repos:
            if r.path == resolved:
                return r
    # Name match (case-insensitive)
    name_lower = name_or_path.lower()
    for r in repos:
        if r.name.lower() == name_lower:
            return r
    return None

"""Concurrent fan-out queries across repositories.

Every repository is queried on its own worker; the engine waits for all of
them before returning one aggregated, repository-ordered report. A repository
whose query fails is logged and left out of the report.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Literal, NamedTuple, TypeVar, Union

from multi_repo_git.common.git import CommitRecord, GitClient, LogOptions, VcsClient
from multi_repo_git.common.validate import validate_branch_name
from multi_repo_git.repos.discovery import RepositoryRef
from multi_repo_git.search.normalize import normalize_branch_name

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8
SHORT_HASH_LENGTH = 7

ClientFactory = Callable[[Path], VcsClient]
T = TypeVar("T")


class BranchMatch(NamedTuple):
    """A branch whose name contains the query."""

    label: str  # as git lists it, e.g. origin/feature/x
    name: str  # logical name, e.g. feature/x
    kind: Literal["local", "remote"]


class CommitMatch(NamedTuple):
    """A commit selected by the search filters."""

    hash: str
    short_hash: str
    message: str
    author: str
    committed_at: datetime
    refs: str


Match = Union[BranchMatch, CommitMatch]


class RepoSearchResult(NamedTuple):
    """All matches from one repository."""

    repo: RepositoryRef
    current_branch: str
    matches: tuple[Match, ...]


class SearchFilters(NamedTuple):
    """Commit search filters. ``branch`` limits the search to one ref."""

    grep: str | None = None
    author: str | None = None
    since: str | None = None
    until: str | None = None
    branch: str | None = None

    def is_empty(self) -> bool:
        return not any(self)


def build_log_options(filters: SearchFilters) -> LogOptions | None:
    """Turn filters into a log query plan, or None when there is nothing to search.

    The branch scope replaces the all-refs scope rather than adding to it.
    Raises ValidationError if the branch scope is not a valid branch name.
    """
    if filters.is_empty():
        return None
    if filters.branch:
        validate_branch_name(filters.branch)
    return LogOptions(
        grep=filters.grep or None,
        author=filters.author or None,
        since=filters.since or None,
        until=filters.until or None,
        ref=filters.branch or None,
    )


def fan_out(
    repos: Sequence[RepositoryRef],
    query: Callable[[VcsClient, RepositoryRef], T],
    *,
    client_factory: ClientFactory = GitClient,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[tuple[RepositoryRef, T]]:
    """Run query against every repo concurrently and wait for all of them.

    Returns (repo, value) pairs in input order, skipping repos whose query
    raised.
    """
    if not repos:
        return []

    def run_one(repo: RepositoryRef) -> tuple[bool, T | None]:
        try:
            return True, query(client_factory(repo.path), repo)
        except Exception as e:  # noqa: BLE001
            logger.warning("Query failed for %s: %s", repo.path, e)
            return False, None

    workers = max(1, min(max_workers, len(repos)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(run_one, repo) for repo in repos]
        settled = [future.result() for future in futures]

    return [
        (repo, value)  # type: ignore[misc]
        for repo, (ok, value) in zip(repos, settled)
        if ok
    ]


def match_branches(
    query: str, local: Sequence[str], remote: Sequence[str]
) -> list[BranchMatch]:
    """Select branches containing query; a remote whose name is already listed is dropped."""
    matches = [BranchMatch(b, b, "local") for b in local if query in b]
    seen = {m.name for m in matches}
    for label in remote:
        if query not in label:
            continue
        name = normalize_branch_name(label)
        if name in seen:
            continue
        seen.add(name)
        matches.append(BranchMatch(label, name, "remote"))
    return matches


def search_branches(
    query: str,
    repos: Sequence[RepositoryRef],
    *,
    client_factory: ClientFactory = GitClient,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[RepoSearchResult]:
    """Find branches whose name contains query (case-sensitive) in every repo."""
    if not query:
        return []

    def query_repo(client: VcsClient, repo: RepositoryRef) -> RepoSearchResult:
        current = client.current_branch()
        local = client.list_branches(include_remote=False)
        remote = client.list_remote_branches()
        return RepoSearchResult(repo, current, tuple(match_branches(query, local, remote)))

    results = fan_out(repos, query_repo, client_factory=client_factory, max_workers=max_workers)
    return [result for _, result in results if result.matches]


def to_commit_match(record: CommitRecord) -> CommitMatch:
    return CommitMatch(
        hash=record.hash,
        short_hash=record.hash[:SHORT_HASH_LENGTH],
        message=record.message,
        author=record.author_name,
        committed_at=record.date,
        refs=record.refs,
    )


def search_commits(
    filters: SearchFilters,
    repos: Sequence[RepositoryRef],
    *,
    client_factory: ClientFactory = GitClient,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[RepoSearchResult]:
    """Find commits matching filters in every repo.

    Empty filters are a local no-op and return an empty list.
    """
    options = build_log_options(filters)
    if options is None:
        logger.debug("Commit search called without filters, nothing to do")
        return []

    def query_repo(client: VcsClient, repo: RepositoryRef) -> RepoSearchResult:
        current = client.current_branch()
        commits = client.log(options)
        return RepoSearchResult(repo, current, tuple(to_commit_match(c) for c in commits))

    results = fan_out(repos, query_repo, client_factory=client_factory, max_workers=max_workers)
    return [result for _, result in results if result.matches]


def list_all_branches(
    repos: Sequence[RepositoryRef],
    *,
    client_factory: ClientFactory = GitClient,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[str]:
    """Union of normalized local and remote branch names across repos, sorted."""

    def query_repo(client: VcsClient, repo: RepositoryRef) -> list[str]:
        return client.list_branches(include_remote=True)

    names: set[str] = set()
    for _, branches in fan_out(
        repos, query_repo, client_factory=client_factory, max_workers=max_workers
    ):
        names.update(normalize_branch_name(b) for b in branches)
    return sorted(names)


class SearchSession:
    """Stamps each search with a generation and drops stale results.

    on_started fires once when a search begins; on_results fires once with
    the aggregated report, unless a newer search started in the meantime.
    """

    def __init__(
        self,
        on_results: Callable[[list[RepoSearchResult]], None],
        on_started: Callable[[], None] | None = None,
        *,
        client_factory: ClientFactory = GitClient,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._on_results = on_results
        self._on_started = on_started
        self._client_factory = client_factory
        self._max_workers = max_workers
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def _begin(self) -> int:
        with self._lock:
            self._generation += 1
            generation = self._generation
        if self._on_started is not None:
            self._on_started()
        return generation

    def _deliver(self, generation: int, results: list[RepoSearchResult]) -> bool:
        with self._lock:
            if generation != self._generation:
                logger.debug(
                    "Dropping stale search results (generation %d, current %d)",
                    generation,
                    self._generation,
                )
                return False
        self._on_results(results)
        return True

    def search_branches(self, query: str, repos: Sequence[RepositoryRef]) -> bool:
        """Run a branch search. Returns False if the results were superseded."""
        if not query:
            return False
        generation = self._begin()
        results = search_branches(
            query,
            repos,
            client_factory=self._client_factory,
            max_workers=self._max_workers,
        )
        return self._deliver(generation, results)

    def search_commits(self, filters: SearchFilters, repos: Sequence[RepositoryRef]) -> bool:
        """Run a commit search. Returns False if filters are empty or results were superseded."""
        if build_log_options(filters) is None:
            return False
        generation = self._begin()
        results = search_commits(
            filters,
            repos,
            client_factory=self._client_factory,
            max_workers=self._max_workers,
        )
        return self._deliver(generation, results)

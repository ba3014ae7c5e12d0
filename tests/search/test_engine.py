"""Tests for the fan-out query engine."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from multi_repo_git.common.git import LogOptions, VcsClient
from multi_repo_git.common.validate import ValidationError
from multi_repo_git.repos.discovery import RepositoryRef
from multi_repo_git.search.engine import (
    BranchMatch,
    CommitMatch,
    RepoSearchResult,
    SearchFilters,
    SearchSession,
    build_log_options,
    fan_out,
    list_all_branches,
    match_branches,
    search_branches,
    search_commits,
)


class TestMatchBranches:
    def test_local_wins_over_same_named_remote(self) -> None:
        matches = match_branches("main", ["main"], ["origin/main"])

        assert matches == [BranchMatch("main", "main", "local")]

    def test_remote_only_branch(self) -> None:
        matches = match_branches("feat", ["main"], ["origin/feat/login"])

        assert matches == [BranchMatch("origin/feat/login", "feat/login", "remote")]

    def test_same_branch_on_two_remotes_listed_once(self) -> None:
        matches = match_branches("fix", [], ["origin/fix", "upstream/fix"])

        assert matches == [BranchMatch("origin/fix", "fix", "remote")]

    def test_unknown_remote_keeps_full_name(self) -> None:
        matches = match_branches("fix", [], ["fork/fix"])

        assert matches == [BranchMatch("fork/fix", "fork/fix", "remote")]

    def test_case_sensitive(self) -> None:
        assert match_branches("Main", ["main"], ["origin/main"]) == []


class TestSearchBranches:
    def test_local_and_remote_dedup_per_repo(self, fake_git: Any) -> None:
        repo = fake_git.add("api", local=["main"], remote=["origin/main"])

        results = search_branches("main", [repo], client_factory=fake_git.factory)

        assert results == [
            RepoSearchResult(repo, "main", (BranchMatch("main", "main", "local"),))
        ]

    def test_skips_empty_and_failing_repos(self, fake_git: Any) -> None:
        """Only repositories with matches appear; failures are omitted."""
        a = fake_git.add("A", local=["main", "release/1.0"])
        b = fake_git.add("B", local=["main"], remote=["origin/main"])
        c = fake_git.add("C", broken=True)

        results = search_branches("release", [a, b, c], client_factory=fake_git.factory)

        assert len(results) == 1
        assert results[0].repo == a
        assert results[0].matches == (BranchMatch("release/1.0", "release/1.0", "local"),)

    def test_results_follow_input_order(self, fake_git: Any) -> None:
        repos = [fake_git.add(name, local=["dev"]) for name in ["z", "m", "a"]]

        results = search_branches("dev", repos, client_factory=fake_git.factory)

        assert [r.repo.name for r in results] == ["z", "m", "a"]

    def test_empty_query_is_noop(self, fake_git: Any) -> None:
        repo = fake_git.add("api")

        assert search_branches("", [repo], client_factory=fake_git.factory) == []
        assert fake_git.created == []

    def test_queries_run_concurrently(self, fake_git: Any) -> None:
        """Every repo is in flight at once: each waits for all the others."""
        barrier = threading.Barrier(3, timeout=5)
        repos = [
            fake_git.add(name, local=["main"], on_query=barrier.wait) for name in "abc"
        ]

        results = search_branches("main", repos, client_factory=fake_git.factory, max_workers=3)

        assert len(results) == 3


class TestBuildLogOptions:
    def test_empty_filters_yield_no_query(self) -> None:
        assert build_log_options(SearchFilters()) is None
        assert build_log_options(SearchFilters(grep="", author="")) is None

    def test_branch_scope_replaces_all_refs(self) -> None:
        options = build_log_options(SearchFilters(branch="dev"))

        assert options == LogOptions(ref="dev")
        assert options is not None
        assert options.to_args() == ["dev"]

    def test_filters_are_independent(self) -> None:
        options = build_log_options(SearchFilters(author="alice", until="2024-06-01"))

        assert options == LogOptions(author="alice", until="2024-06-01")
        assert options is not None
        assert options.to_args()[0] == "--all"

    def test_option_like_branch_scope_rejected(self) -> None:
        with pytest.raises(ValidationError):
            build_log_options(SearchFilters(branch="--output=x"))


class TestSearchCommits:
    def test_maps_commits(self, fake_git: Any, make_commit: Any) -> None:
        record = make_commit("Fix login", refs="tag: v1.0")
        repo = fake_git.add("api", current="dev", commits=[record])

        (result,) = search_commits(
            SearchFilters(grep="login"), [repo], client_factory=fake_git.factory
        )

        assert result.current_branch == "dev"
        assert result.matches == (
            CommitMatch(
                hash=record.hash,
                short_hash=record.hash[:7],
                message="Fix login",
                author="Test User",
                committed_at=record.date,
                refs="tag: v1.0",
            ),
        )
        assert fake_git["api"].log_options == [LogOptions(grep="login")]

    def test_branch_scope_only(self, fake_git: Any, make_commit: Any) -> None:
        repo = fake_git.add("api", commits=[make_commit("x")])

        search_commits(SearchFilters(branch="dev"), [repo], client_factory=fake_git.factory)

        assert fake_git["api"].calls[-1] == ["log", "dev"]

    def test_empty_filters_touch_nothing(self, fake_git: Any) -> None:
        repo = fake_git.add("api")

        assert search_commits(SearchFilters(), [repo], client_factory=fake_git.factory) == []
        assert fake_git.created == []

    def test_repos_without_commits_omitted(self, fake_git: Any, make_commit: Any) -> None:
        hit = fake_git.add("hit", commits=[make_commit("Fix")])
        miss = fake_git.add("miss")
        broken = fake_git.add("broken", broken=True)

        results = search_commits(
            SearchFilters(grep="Fix"), [hit, miss, broken], client_factory=fake_git.factory
        )

        assert [r.repo for r in results] == [hit]


class TestListAllBranches:
    def test_union_sorted_and_normalized(self, fake_git: Any) -> None:
        a = fake_git.add("a", local=["main", "feature/x"], remote=["origin/main"])
        b = fake_git.add("b", local=["develop"], remote=["upstream/feature/x", "fork/hotfix"])
        c = fake_git.add("c", broken=True)

        branches = list_all_branches([a, b, c], client_factory=fake_git.factory)

        assert branches == ["develop", "feature/x", "hotfix", "main"]


class TestFanOut:
    def test_empty_repo_list(self) -> None:
        assert fan_out([], lambda client, repo: 1) == []

    def test_pairs_values_with_repos(self, fake_git: Any) -> None:
        repos = [fake_git.add("a", current="x"), fake_git.add("b", current="y")]

        def query(client: VcsClient, repo: RepositoryRef) -> str:
            return client.current_branch()

        assert fan_out(repos, query, client_factory=fake_git.factory) == [
            (repos[0], "x"),
            (repos[1], "y"),
        ]


class TestSearchSession:
    def test_started_then_one_results_payload(self, fake_git: Any) -> None:
        repo = fake_git.add("api", local=["release/2.0"])
        events: list[Any] = []
        session = SearchSession(
            lambda results: events.append(("results", results)),
            lambda: events.append("started"),
            client_factory=fake_git.factory,
        )

        assert session.search_branches("release", [repo]) is True

        assert events[0] == "started"
        assert events[1][0] == "results"
        assert len(events) == 2
        assert session.generation == 1

    def test_stale_results_are_dropped(self, fake_git: Any) -> None:
        """A search superseded while in flight never delivers its results."""
        delivered: list[list[RepoSearchResult]] = []
        session = SearchSession(delivered.append, client_factory=fake_git.factory)
        newer = fake_git.add("newer", local=["main"])

        def start_newer_search() -> None:
            session.search_branches("main", [newer])

        older = fake_git.add("older", local=["main"], on_query=start_newer_search)

        assert session.search_branches("main", [older]) is False
        assert len(delivered) == 1
        assert delivered[0][0].repo == newer
        assert session.generation == 2

    def test_empty_commit_filters_do_not_start(self, fake_git: Any) -> None:
        started: list[bool] = []
        session = SearchSession(lambda r: None, lambda: started.append(True))

        assert session.search_commits(SearchFilters(), [fake_git.add("a")]) is False
        assert started == []
        assert session.generation == 0

    def test_invalid_branch_scope_raises_before_start(self, fake_git: Any) -> None:
        started: list[bool] = []
        session = SearchSession(
            lambda r: None, lambda: started.append(True), client_factory=fake_git.factory
        )

        with pytest.raises(ValidationError):
            session.search_commits(SearchFilters(branch="-p"), [fake_git.add("a")])

        assert started == []
        assert fake_git.created == []

"""Tests for statcrab.types module."""

from dataclasses import FrozenInstanceError

import pytest

from statcrab.types import (
    STAT_FIELDS,
    CacheKey,
    CacheKind,
    LanguageRankEntry,
    RepositoryRecord,
    Resource,
    UserStats,
    fingerprint,
)


class TestEnums:
    """Tests for CacheKind and Resource enums."""

    def test_cache_kind_values(self):
        assert CacheKind.USER_STATS.value == "user_stats"
        assert CacheKind.LANGUAGE_RANKING.value == "language_ranking"

    def test_resource_from_string(self):
        assert Resource("merged_pull_requests") == Resource.MERGED_PULL_REQUESTS

    def test_invalid_resource(self):
        with pytest.raises(ValueError):
            Resource("stars")


class TestFingerprint:
    """Tests for fingerprint() and CacheKey.build()."""

    def test_collection_order_irrelevant(self):
        assert fingerprint({"exclude_repo": ["b", "a"]}) == fingerprint({"exclude_repo": frozenset({"a", "b"})})

    def test_key_order_irrelevant(self):
        a = fingerprint({"size_weight": 0.5, "count_weight": 0.25})
        b = fingerprint({"count_weight": 0.25, "size_weight": 0.5})
        assert a == b

    def test_distinct_options_distinct_digests(self):
        variants = [
            {},
            {"exclude_repo": []},
            {"exclude_repo": ["a"]},
            {"exclude_repo": ["a,b"]},
            {"exclude_repo": ["a", "b"]},
            {"max_languages": 8},
            {"max_languages": 9},
            {"size_weight": 0.1},
            {"size_weight": 0.1 + 1e-12},
        ]
        digests = {fingerprint(v) for v in variants}
        assert len(digests) == len(variants)

    def test_username_case_folded(self):
        a = CacheKey.build(CacheKind.USER_STATS, "OctoCat", {})
        b = CacheKey.build(CacheKind.USER_STATS, "octocat", {})
        assert a == b
        assert a.username == "octocat"
        assert hash(a) == hash(b)

    def test_kind_separates_keys(self):
        a = CacheKey.build(CacheKind.USER_STATS, "octocat", {})
        b = CacheKey.build(CacheKind.LANGUAGE_RANKING, "octocat", {})
        assert a != b


class TestRepositoryRecord:
    """Tests for RepositoryRecord dataclass."""

    def test_defaults(self):
        repo = RepositoryRecord(id="R_1", owner="octocat", name="hello")
        assert repo.is_fork is False
        assert repo.stars == 0
        assert repo.languages == {}

    def test_blank_language_names_dropped(self):
        repo = RepositoryRecord(id="R_1", owner="o", name="n", languages={"Rust": 10, "": 5, "  ": 3})
        assert repo.languages == {"Rust": 10}

    def test_frozen(self):
        repo = RepositoryRecord(id="R_1", owner="o", name="n")
        with pytest.raises(FrozenInstanceError):
            repo.stars = 5


class TestUserStats:
    """Tests for UserStats dataclass."""

    def test_all_fields_nullable(self):
        stats = UserStats()
        assert stats.visible_count() == 0
        assert list(stats.to_dict()) == list(STAT_FIELDS)

    def test_visible_blanks_hidden_fields(self):
        stats = UserStats(stars_count=3, commits_ytd_count=7, issues_count=0)
        visible = stats.visible({"commits_ytd_count"})
        assert visible.commits_ytd_count is None
        assert visible.stars_count == 3
        assert visible.issues_count == 0
        assert visible.visible_count() == 2
        assert stats.commits_ytd_count == 7

    def test_zero_is_not_missing(self):
        assert UserStats(issues_count=0).visible_count() == 1


class TestLanguageRankEntry:
    def test_to_dict(self):
        entry = LanguageRankEntry(name="Rust", score=1.0, rank=1, size_bytes=1200, repo_count=2)
        assert entry.to_dict() == {
            "name": "Rust",
            "score": 1.0,
            "rank": 1,
            "size_bytes": 1200,
            "repo_count": 2,
            "color": None,
        }

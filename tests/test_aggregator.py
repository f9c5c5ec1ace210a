"""Tests for statcrab.aggregator module."""

from conftest import contributions, make_repo
from statcrab.aggregator import STATS_RESOURCES, aggregate_stats, filter_repositories
from statcrab.types import Resource, UserStats


def full_streams():
    return {
        Resource.REPOSITORIES: [make_repo("A", stars=10), make_repo("B", stars=5), make_repo("C", stars=1)],
        Resource.COMMITS: contributions("A", count=30) + contributions("B", count=12),
        Resource.ISSUES: contributions("A", "A", "B", "other"),
        Resource.PULL_REQUESTS: contributions("A", "B", "B"),
        Resource.MERGED_PULL_REQUESTS: contributions("B"),
        Resource.REVIEWS: contributions("A", count=4) + contributions("B", count=6),
        Resource.DISCUSSIONS_STARTED: contributions("B"),
        Resource.DISCUSSIONS_ANSWERED: contributions("A", "B"),
    }


class TestAggregateStats:
    """Tests for aggregate_stats()."""

    def test_sums_every_stream(self):
        stats = aggregate_stats(full_streams())
        assert stats == UserStats(
            stars_count=16,
            commits_ytd_count=42,
            issues_count=4,
            pull_requests_count=3,
            merge_requests_count=1,
            reviews_count=10,
            started_discussions_count=1,
            answered_discussions_count=2,
        )

    def test_exclude_repo_removes_all_contributions(self):
        """Excluding B removes its stars and every contribution attributed to it."""
        stats = aggregate_stats(full_streams(), exclude_repo=frozenset({"B"}))
        assert stats == UserStats(
            stars_count=11,
            commits_ytd_count=30,
            issues_count=3,
            pull_requests_count=1,
            merge_requests_count=0,
            reviews_count=4,
            started_discussions_count=0,
            answered_discussions_count=1,
        )

    def test_exclude_repo_is_case_sensitive(self):
        stats = aggregate_stats(full_streams(), exclude_repo=frozenset({"b"}))
        assert stats.stars_count == 16

    def test_absent_stream_is_none(self):
        """A stream reported absent leaves its metric None, the others intact."""
        streams = full_streams()
        streams[Resource.DISCUSSIONS_STARTED] = None
        del streams[Resource.DISCUSSIONS_ANSWERED]
        stats = aggregate_stats(streams)
        assert stats.started_discussions_count is None
        assert stats.answered_discussions_count is None
        assert stats.stars_count == 16

    def test_empty_streams_are_zero(self):
        stats = aggregate_stats({resource: [] for resource in STATS_RESOURCES})
        assert stats.to_dict() == {name: 0 for name in stats.to_dict()}

    def test_forks_count_towards_stars(self):
        streams = {Resource.REPOSITORIES: [make_repo("A", stars=2), make_repo("F", stars=3, is_fork=True)]}
        assert aggregate_stats(streams).stars_count == 5


class TestFilterRepositories:
    """Tests for filter_repositories()."""

    def test_exact_name_match(self):
        repos = [make_repo("web"), make_repo("website"), make_repo("Web")]
        kept = filter_repositories(repos, frozenset({"web"}))
        assert [r.name for r in kept] == ["website", "Web"]

"""Fold exhausted upstream streams into one UserStats value."""

from typing import AbstractSet, Iterable, Mapping, Optional, Sequence

from .types import ContributionRecord, RepositoryRecord, Resource, UserStats

# UserStats field fed by each contribution stream
METRIC_STREAMS = {
    "commits_ytd_count": Resource.COMMITS,
    "issues_count": Resource.ISSUES,
    "pull_requests_count": Resource.PULL_REQUESTS,
    "merge_requests_count": Resource.MERGED_PULL_REQUESTS,
    "reviews_count": Resource.REVIEWS,
    "started_discussions_count": Resource.DISCUSSIONS_STARTED,
    "answered_discussions_count": Resource.DISCUSSIONS_ANSWERED,
}

STATS_RESOURCES = (Resource.REPOSITORIES,) + tuple(METRIC_STREAMS.values())


def filter_repositories(
    repositories: Iterable[RepositoryRecord],
    exclude_repo: AbstractSet[str] = frozenset(),
) -> list[RepositoryRecord]:
    """Drop repositories whose name is in exclude_repo (exact, case-sensitive)."""
    return [repo for repo in repositories if repo.name not in exclude_repo]


def sum_stars(repositories: Optional[Sequence[RepositoryRecord]]) -> Optional[int]:
    if repositories is None:
        return None
    return sum(repo.stars for repo in repositories)


def sum_contributions(
    records: Optional[Sequence[ContributionRecord]],
    exclude_repo: AbstractSet[str] = frozenset(),
) -> Optional[int]:
    if records is None:
        return None
    return sum(rec.count for rec in records if rec.repository not in exclude_repo)


def aggregate_stats(
    streams: Mapping[Resource, Optional[Sequence]],
    exclude_repo: AbstractSet[str] = frozenset(),
) -> UserStats:
    """
    Build UserStats from fully paginated streams.

    Args:
        streams: Records per resource. A missing key or None value means the
            upstream reported no such connection, and the metric stays None.
        exclude_repo: Repository names removed before any summation

    Returns:
        UserStats with every metric computed; hiding is applied later
    """
    repositories = streams.get(Resource.REPOSITORIES)
    if repositories is not None:
        repositories = filter_repositories(repositories, exclude_repo)

    counts = {
        name: sum_contributions(streams.get(resource), exclude_repo)
        for name, resource in METRIC_STREAMS.items()
    }
    return UserStats(stars_count=sum_stars(repositories), **counts)

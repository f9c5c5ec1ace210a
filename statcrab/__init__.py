"""
Statcrab — cached GitHub profile statistics and language rankings.

Fetches activity statistics and a weighted language ranking for a GitHub
user through the GraphQL API, coalescing concurrent identical requests
and caching results in memory.

Basic Usage:
    import asyncio
    from statcrab import StatcrabConfig, StatcrabEngine

    async def main():
        async with StatcrabEngine(config=StatcrabConfig.from_env()) as engine:
            stats = await engine.get_user_stats("octocat")
            print(stats.stars_count)

            for entry in await engine.get_language_ranking("octocat"):
                print(entry.rank, entry.name, round(entry.score, 3))

    asyncio.run(main())
"""

__version__ = "0.1.0"

from .aggregator import aggregate_stats
from .cache import CacheEntry, CacheStats, ResponseCache
from .client import GitHubClient, validate_username
from .config import StatcrabConfig
from .engine import StatcrabEngine, apply_hide
from .errors import (
    FetchError,
    FetchErrorKind,
    GraphQLError,
    InvalidUsername,
    MissingToken,
    NetworkError,
    RateLimitExceeded,
    UserNotFound,
    ValidationError,
)
from .ranker import rank_languages
from .types import (
    CacheKey,
    CacheKind,
    ContributionRecord,
    LanguageRankEntry,
    RepositoryRecord,
    Resource,
    UpstreamPage,
    UserStats,
)

__all__ = [
    "__version__",
    "StatcrabEngine",
    "StatcrabConfig",
    "apply_hide",
    "ResponseCache",
    "CacheEntry",
    "CacheStats",
    "GitHubClient",
    "validate_username",
    "aggregate_stats",
    "rank_languages",
    "CacheKey",
    "CacheKind",
    "ContributionRecord",
    "LanguageRankEntry",
    "RepositoryRecord",
    "Resource",
    "UpstreamPage",
    "UserStats",
    "FetchError",
    "FetchErrorKind",
    "GraphQLError",
    "InvalidUsername",
    "MissingToken",
    "NetworkError",
    "RateLimitExceeded",
    "UserNotFound",
    "ValidationError",
]

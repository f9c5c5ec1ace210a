"""
Statcrab engine — cached, coalesced GitHub statistics.

Composes the pieces for the two queries the presentation layer asks for:

    caller -> StatcrabEngine -> ResponseCache.get_or_compute(key)
           -> (miss) GitHubClient streams -> aggregate_stats / rank_languages

Inputs are validated before the cache or the network is touched, so bad
requests never consume upstream quota and are never cached.
"""

import logging
import math
from typing import Any, AbstractSet, Iterable, List, Optional

from .aggregator import STATS_RESOURCES, aggregate_stats, filter_repositories
from .cache import CacheStats, ResponseCache
from .client import GitHubClient, validate_username
from .config import StatcrabConfig
from .errors import ValidationError
from .ranker import DEFAULT_MAX_LANGUAGES, MAX_LANGUAGES, rank_languages
from .types import STAT_FIELDS, CacheKey, CacheKind, LanguageRankEntry, Resource, UserStats
from .utils.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)

MIN_VISIBLE_STATS = 2


def validate_hide(hide: Iterable[str]) -> frozenset:
    """Check hide names and that at least two statistics stay visible."""
    names = frozenset(h.strip() for h in hide if h and h.strip())
    unknown = sorted(names - set(STAT_FIELDS))
    if unknown:
        raise ValidationError("hide", f"invalid hide value: {', '.join(unknown)}")
    if len(STAT_FIELDS) - len(names) < MIN_VISIBLE_STATS:
        raise ValidationError(
            "hide", f"hide would remove too many stats; at least {MIN_VISIBLE_STATS} must remain"
        )
    return names


def validate_weight(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(name, f"{name} must be a number")
    value = float(value)
    if not math.isfinite(value) or value < 0:
        raise ValidationError(name, f"{name} must be a finite, non-negative number")
    return value


def validate_max_languages(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("max_languages", "max_languages must be an integer")
    if not 1 <= value <= MAX_LANGUAGES:
        raise ValidationError(
            "max_languages", f"max_languages must be between 1 and {MAX_LANGUAGES}"
        )
    return value


def normalize_excluded(exclude_repo: Iterable[str]) -> frozenset:
    return frozenset(name for name in exclude_repo if name)


class StatcrabEngine:
    """
    Orchestrates validation, caching and upstream fetches.

    The cache is owned by whoever constructs the engine; pass one in to
    share it between engines, or let the engine build one from config.

    Usage:
        config = StatcrabConfig.from_env()
        async with StatcrabEngine(config=config) as engine:
            stats = await engine.get_user_stats("octocat")
            langs = await engine.get_language_ranking("octocat", max_languages=5)
    """

    def __init__(
        self,
        config: Optional[StatcrabConfig] = None,
        client: Optional[Any] = None,
        cache: Optional[ResponseCache] = None,
        retry: Optional[RetryConfig] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Settings; defaults to StatcrabConfig()
            client: Upstream client exposing `fetch_all(resource, username)`;
                defaults to a GitHubClient built from config
            cache: Shared ResponseCache; defaults to one sized from config
            retry: NetworkError retry policy; defaults from config
        """
        self._config = config or StatcrabConfig()
        self._client = client if client is not None else GitHubClient.from_config(self._config)
        self._cache = cache if cache is not None else ResponseCache(
            max_capacity_bytes=self._config.cache_max_capacity_bytes,
        )
        self._retry = retry or RetryConfig(
            max_attempts=self._config.retry_max_attempts,
            backoff_base=self._config.retry_backoff_base,
            backoff_max=self._config.retry_backoff_max,
        )
        self._ttls = {
            CacheKind.USER_STATS: self._config.user_stats_ttl,
            CacheKind.LANGUAGE_RANKING: self._config.language_ranking_ttl,
        }

        logger.info(
            f"Statcrab engine ready: cache capacity {self._cache.max_capacity} bytes, "
            f"stats TTL {self._ttls[CacheKind.USER_STATS]}s, "
            f"languages TTL {self._ttls[CacheKind.LANGUAGE_RANKING]}s"
        )

    @classmethod
    def from_config(cls, config_path: Optional[str] = None) -> "StatcrabEngine":
        """Create an engine from an optional YAML file plus environment overrides."""
        return cls(config=StatcrabConfig.from_env(config_path))

    @property
    def config(self) -> StatcrabConfig:
        return self._config

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    # === Lifecycle ===

    async def start(self) -> None:
        """Start background cache sweeping (optional)."""
        self._cache.start_sweeper(self._config.cache_sweep_interval)

    async def close(self) -> None:
        await self._cache.close()
        aclose = getattr(self._client, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> "StatcrabEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # === Queries ===

    async def get_user_stats(
        self,
        username: str,
        hide: Iterable[str] = (),
        exclude_repo: Iterable[str] = (),
    ) -> UserStats:
        """
        Aggregate activity statistics for a user.

        `hide` is validated here but not applied: the returned value always
        carries every statistic so one cached result serves every hide
        selection. Use `UserStats.visible(hide)` when presenting it.

        Raises:
            FetchError: any taxonomy member; ValidationError/InvalidUsername
                are raised before the cache or network is consulted
        """
        validate_username(username)
        validate_hide(hide)
        excluded = normalize_excluded(exclude_repo)

        key = CacheKey.build(CacheKind.USER_STATS, username, {"exclude_repo": excluded})

        async def compute() -> UserStats:
            streams = {}
            for resource in STATS_RESOURCES:
                streams[resource] = await self._fetch(resource, username)
            return aggregate_stats(streams, excluded)

        return await self._cache.get_or_compute(key, self._ttls[CacheKind.USER_STATS], compute)

    async def get_language_ranking(
        self,
        username: str,
        max_languages: int = DEFAULT_MAX_LANGUAGES,
        size_weight: float = 0.5,
        count_weight: float = 0.5,
        exclude_repo: Iterable[str] = (),
    ) -> List[LanguageRankEntry]:
        """
        Weighted language ranking over the user's own, non-fork repositories.

        Raises:
            FetchError: any taxonomy member; ValidationError/InvalidUsername
                are raised before the cache or network is consulted
        """
        validate_username(username)
        size_weight = validate_weight("size_weight", size_weight)
        count_weight = validate_weight("count_weight", count_weight)
        max_languages = validate_max_languages(max_languages)
        excluded = normalize_excluded(exclude_repo)

        key = CacheKey.build(
            CacheKind.LANGUAGE_RANKING,
            username,
            {
                "exclude_repo": excluded,
                "size_weight": size_weight,
                "count_weight": count_weight,
                "max_languages": max_languages,
            },
        )

        async def compute() -> List[LanguageRankEntry]:
            repositories = await self._fetch(Resource.REPOSITORIES, username) or []
            owned = [repo for repo in filter_repositories(repositories, excluded) if not repo.is_fork]
            return rank_languages(owned, size_weight, count_weight, max_languages)

        return await self._cache.get_or_compute(
            key, self._ttls[CacheKind.LANGUAGE_RANKING], compute
        )

    async def _fetch(self, resource: Resource, username: str) -> Optional[list]:
        """Exhaust one stream, retrying NetworkError only."""

        def on_retry(attempt: int, exc: Exception) -> None:
            logger.warning(f"Retrying {resource.value} for {username} (attempt {attempt}): {exc}")

        return await retry_async(
            self._client.fetch_all, resource, username, config=self._retry, on_retry=on_retry,
        )

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()


def apply_hide(stats: UserStats, hide: AbstractSet[str]) -> UserStats:
    """Presentation helper: validate hide, then blank the hidden fields."""
    return stats.visible(validate_hide(hide))

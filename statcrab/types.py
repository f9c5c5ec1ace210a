"""
Statcrab type definitions.

This module contains the public value types passed between the client,
the cache, the aggregator and the ranker.
"""

import hashlib
import json
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class CacheKind(Enum):
    """Kinds of cached results, each with its own TTL."""
    USER_STATS = "user_stats"
    LANGUAGE_RANKING = "language_ranking"


class Resource(Enum):
    """Upstream record streams the client can paginate."""
    REPOSITORIES = "repositories"
    COMMITS = "commits"
    ISSUES = "issues"
    PULL_REQUESTS = "pull_requests"
    MERGED_PULL_REQUESTS = "merged_pull_requests"
    REVIEWS = "reviews"
    DISCUSSIONS_STARTED = "discussions_started"
    DISCUSSIONS_ANSWERED = "discussions_answered"


@dataclass(frozen=True)
class CacheKey:
    """Identity of a cached result: kind, case-folded login and option fingerprint."""
    kind: CacheKind
    username: str
    fingerprint: str

    @classmethod
    def build(cls, kind: CacheKind, username: str, options: Dict[str, Any]) -> "CacheKey":
        return cls(kind=kind, username=username.lower(), fingerprint=fingerprint(options))


def fingerprint(options: Dict[str, Any]) -> str:
    """
    Digest of the result-affecting options.

    Collections are sorted and floats encoded with repr() so that equal
    option sets always hash the same and distinct ones never collide.
    """
    canonical = {}
    for name, value in options.items():
        if isinstance(value, (set, frozenset, list, tuple)):
            canonical[name] = sorted(value)
        elif isinstance(value, float):
            canonical[name] = repr(value)
        else:
            canonical[name] = value
    payload = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class UpstreamPage:
    """One page of a cursor-paginated stream."""
    items: Tuple[Any, ...]
    end_cursor: Optional[str] = None
    has_next_page: bool = False
    rate_limit_remaining: Optional[int] = None
    rate_limit_reset_at: Optional[str] = None  # ISO 8601, as reported upstream


@dataclass(frozen=True)
class RepositoryRecord:
    """A repository owned by the user."""
    id: str
    owner: str
    name: str
    is_fork: bool = False
    is_private: bool = False
    stars: int = 0
    forks: int = 0
    languages: Dict[str, int] = field(default_factory=dict)  # language -> bytes
    language_colors: Dict[str, str] = field(default_factory=dict)  # language -> "#rrggbb"

    def __post_init__(self) -> None:
        # Blank language names never make it into the byte map.
        cleaned = {name: size for name, size in self.languages.items() if name and name.strip()}
        if len(cleaned) != len(self.languages):
            object.__setattr__(self, "languages", cleaned)


@dataclass(frozen=True)
class ContributionRecord:
    """Contributions attributed to one repository (commits, issues, reviews...)."""
    repository: str
    count: int = 1


STAT_FIELDS: Tuple[str, ...] = (
    "stars_count",
    "commits_ytd_count",
    "issues_count",
    "pull_requests_count",
    "merge_requests_count",
    "reviews_count",
    "started_discussions_count",
    "answered_discussions_count",
)


@dataclass(frozen=True)
class UserStats:
    """Aggregated activity statistics. Each count is independently nullable."""
    stars_count: Optional[int] = None
    commits_ytd_count: Optional[int] = None
    issues_count: Optional[int] = None
    pull_requests_count: Optional[int] = None
    merge_requests_count: Optional[int] = None
    reviews_count: Optional[int] = None
    started_discussions_count: Optional[int] = None
    answered_discussions_count: Optional[int] = None

    def visible(self, hide: Iterable[str] = ()) -> "UserStats":
        """Copy with the hidden fields set to None."""
        return replace(self, **{name: None for name in hide})

    def visible_count(self) -> int:
        return sum(1 for f in fields(self) if getattr(self, f.name) is not None)

    def to_dict(self) -> Dict[str, Optional[int]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class LanguageTotals:
    """Per-language aggregate before scoring."""
    name: str
    size_bytes: int
    repo_count: int
    color: Optional[str] = None


@dataclass(frozen=True)
class LanguageRankEntry:
    """A ranked language."""
    name: str
    score: float
    rank: int
    size_bytes: int = 0
    repo_count: int = 0
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "rank": self.rank,
            "size_bytes": self.size_bytes,
            "repo_count": self.repo_count,
            "color": self.color,
        }


LanguageRanking = List[LanguageRankEntry]

"""
Weighted language ranking.

Each language gets two totals across the supplied repositories: bytes of
code and the number of distinct repositories using it. Both totals are
normalized to [0, 1] by their maxima, so a single huge repository cannot
drown out a language used broadly in smaller ones. The score is the
weighted mean of the two normalized values:

    score = (size_weight * size / max_size + count_weight * count / max_count)
            / (size_weight + count_weight)

When both weights are zero the score falls back to equal weighting.
"""

from typing import Dict, Iterable, List, Set

from .types import LanguageRankEntry, LanguageTotals, RepositoryRecord

DEFAULT_MAX_LANGUAGES = 8
MAX_LANGUAGES = 20


def collect_language_totals(repositories: Iterable[RepositoryRecord]) -> List[LanguageTotals]:
    """Sum bytes and count distinct repositories per language, dropping zero-byte languages."""
    sizes: Dict[str, int] = {}
    repos: Dict[str, Set[str]] = {}
    colors: Dict[str, str] = {}
    for repo in repositories:
        for name, size in repo.languages.items():
            if not name or size <= 0:
                continue
            sizes[name] = sizes.get(name, 0) + size
            repos.setdefault(name, set()).add(repo.id)
            color = repo.language_colors.get(name)
            if color:
                colors.setdefault(name, color)
    return [
        LanguageTotals(
            name=name,
            size_bytes=sizes[name],
            repo_count=len(repos[name]),
            color=colors.get(name),
        )
        for name in sizes
    ]


def rank_languages(
    repositories: Iterable[RepositoryRecord],
    size_weight: float = 0.5,
    count_weight: float = 0.5,
    max_languages: int = DEFAULT_MAX_LANGUAGES,
) -> List[LanguageRankEntry]:
    """
    Rank languages by normalized weighted score.

    Args:
        repositories: Repositories to rank over (exclusions already applied)
        size_weight: Weight of the byte-size share (non-negative)
        count_weight: Weight of the repository-count share (non-negative)
        max_languages: Number of entries to keep

    Returns:
        Entries sorted by score desc, then bytes desc, then name asc,
        numbered from rank 1
    """
    totals = collect_language_totals(repositories)
    if not totals or max_languages <= 0:
        return []

    if size_weight + count_weight <= 0:
        size_weight = count_weight = 0.5
    weight_sum = size_weight + count_weight

    max_size = max(t.size_bytes for t in totals)
    max_count = max(t.repo_count for t in totals)

    scored = []
    for t in totals:
        norm_size = t.size_bytes / max_size
        norm_count = t.repo_count / max_count
        score = (size_weight * norm_size + count_weight * norm_count) / weight_sum
        scored.append((score, t))

    scored.sort(key=lambda item: (-item[0], -item[1].size_bytes, item[1].name))

    return [
        LanguageRankEntry(
            name=t.name,
            score=score,
            rank=position,
            size_bytes=t.size_bytes,
            repo_count=t.repo_count,
            color=t.color,
        )
        for position, (score, t) in enumerate(scored[:max_languages], start=1)
    ]

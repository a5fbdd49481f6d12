"""Similarity and relevance scoring. Deterministic, symmetric, side-effect free."""

from __future__ import annotations

from typing import Collection

from tale_mind.models import DAY, Memory

TAG_WEIGHT = 0.3
KIND_WEIGHT = 0.2
PERIOD_WEIGHT = 0.2
TEXT_WEIGHT = 0.3

KEYWORD_SCORE = 0.1
IMPORTANCE_WEIGHT = 0.3
RECENT_ACCESS_BONUS = 0.2


def words(text: str) -> set[str]:
    return set(text.lower().split())


def jaccard(a: Collection[str], b: Collection[str]) -> float:
    """|A ∩ B| / |A ∪ B|, 0.0 when both are empty."""
    sa, sb = set(a), set(b)
    union = len(sa | sb)
    if not union:
        return 0.0
    return len(sa & sb) / union


def text_similarity(a: str, b: str) -> float:
    return jaccard(words(a), words(b))


def similarity(a: Memory, b: Memory, same_period_days: float = 7.0) -> float:
    """How alike two memories are, 0.0 to 1.0.

    0.3 tag overlap + 0.2 same kind + 0.2 occurred within a week of each
    other + 0.3 summary word overlap.
    """
    score = TAG_WEIGHT * jaccard(a.tags, b.tags)
    if a.kind is b.kind:
        score += KIND_WEIGHT
    if abs(a.occurred_at - b.occurred_at) < same_period_days * DAY:
        score += PERIOD_WEIGHT
    score += TEXT_WEIGHT * text_similarity(a.summary, b.summary)
    return min(1.0, score)


def context_keywords(context: str) -> list[str]:
    """Distinct lower-cased words of ``context``, in order."""
    return list(dict.fromkeys(context.lower().split()))


def relevance(memory: Memory, keywords: list[str], now: float,
              recent_days: float = 7.0) -> float:
    """Score a memory against prompt keywords, 0.0 to 1.0."""
    text = " ".join([memory.title, memory.summary, *memory.tags]).lower()
    score = sum(KEYWORD_SCORE for word in keywords if word in text)
    score += memory.importance / 10 * IMPORTANCE_WEIGHT
    if memory.last_accessed is not None and now - memory.last_accessed < recent_days * DAY:
        score += RECENT_ACCESS_BONUS
    return min(1.0, score)


def search_relevance(memory: Memory, query: str) -> int:
    q = query.lower()
    score = 0
    if q in memory.title.lower():
        score += 3
    if q in memory.summary.lower():
        score += 2
    if any(q in tag for tag in memory.tags):
        score += 2
    if q in memory.content.lower():
        score += 1
    return score


def influence_score(memory: Memory) -> float:
    return (memory.importance * 0.4
            + memory.access_count * 0.3
            + memory.decay_resistance * 0.2
            + len(memory.source_ids) * 0.1)

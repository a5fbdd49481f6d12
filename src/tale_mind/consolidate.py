"""Memory consolidation. Similar memories merge into a stronger one."""

from __future__ import annotations

import time
from collections import Counter
from typing import Callable, Sequence

from loguru import logger

from tale_mind.errors import ValidationError
from tale_mind.models import MAX_IMPORTANCE, MemoryKind, MergedText, Memory
from tale_mind.similarity import similarity

# Type: (source texts, reason) -> MergedText. Usually backed by an LLM.
TextMerge = Callable[[list[str], str], MergedText]


def source_text(mem: Memory) -> str:
    text = f"{mem.title}: {mem.summary}"
    if mem.content:
        text += f"\n{mem.content}"
    return text


def fallback_text(memories: Sequence[Memory]) -> MergedText:
    """Deterministic concatenation, used when no merge provider is available."""
    titles = ", ".join(m.title for m in memories)
    summaries = ". ".join(m.summary.rstrip(".") for m in memories)
    return MergedText(
        title=f"Consolidated memory: {titles}",
        summary=f"Combined memory from {len(memories)} related experiences: {summaries}.",
        content="\n\n".join(f"{m.title}: {m.content}" for m in memories if m.content),
    )


def merged_text(memories: Sequence[Memory], reason: str,
                merge_fn: TextMerge | None = None) -> MergedText:
    """Ask ``merge_fn`` for a fluent merge, falling back to concatenation."""
    if merge_fn is not None:
        try:
            merged = merge_fn([source_text(m) for m in memories], reason)
            if merged.title.strip() and merged.summary.strip():
                return merged
            logger.warning("text merge returned an empty title or summary, using fallback")
        except Exception as exc:
            logger.warning(f"text merge failed ({exc!r}), using fallback")
    return fallback_text(memories)


def dominant_kind(memories: Sequence[Memory]) -> MemoryKind:
    """Most common kind; ties go to the kind of the most important memory."""
    counts = Counter(m.kind for m in memories)
    top_importance = {
        kind: max(m.importance for m in memories if m.kind is kind) for kind in counts
    }
    # max() keeps the first maximal element, so first-seen order breaks the last tie
    return max(counts, key=lambda kind: (counts[kind], top_importance[kind]))


def consolidated_importance(memories: Sequence[Memory]) -> int:
    return min(MAX_IMPORTANCE, max(m.importance for m in memories) + 1)


def merge_memories(memories: Sequence[Memory], reason: str,
                   merge_fn: TextMerge | None = None,
                   now: float | None = None) -> Memory:
    """Build the consolidated memory and link every source to it.

    - Kind: most common among the sources
    - Importance: highest source importance + 1, capped at 10
    - Tags, characters, emotions: unions, capped at their bounds
    - occurred_at: the earliest source
    Sources are marked consolidated in place; the caller persists them.
    """
    if len(memories) < 2:
        raise ValidationError("at least 2 memories are required for consolidation")
    if now is None:
        now = time.time()

    text = merged_text(memories, reason, merge_fn)
    merged = Memory(
        title=text.title,
        summary=text.summary,
        content=text.content,
        kind=dominant_kind(memories),
        importance=consolidated_importance(memories),
        character_id=memories[0].character_id,
        occurred_at=min(m.occurred_at for m in memories),
        created_at=now,
        source_ids=[m.id for m in memories],
    )
    for mem in memories:
        merged.tags.update(mem.tags)
        merged.associated_characters.update(mem.associated_characters)
        merged.emotional_context.update(mem.emotional_context)

    for mem in memories:
        mem.mark_consolidated(merged.id)
    return merged


def find_similar(memories: Sequence[Memory], threshold: float = 0.7,
                 same_period_days: float = 7.0) -> list[tuple[Memory, Memory, float]]:
    """Pairs of memories more similar than ``threshold``, most similar first."""
    pairs = []
    for i, a in enumerate(memories):
        for b in memories[i + 1:]:
            sim = similarity(a, b, same_period_days)
            if sim > threshold:
                pairs.append((a, b, sim))
    pairs.sort(key=lambda x: x[2], reverse=True)
    return pairs

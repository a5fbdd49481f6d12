"""Read view over one character's memories. Loaded once, queried many times."""

from __future__ import annotations

import time
from collections import Counter
from typing import Iterable

from tale_mind.consolidate import find_similar
from tale_mind.errors import NotFoundError
from tale_mind.models import MemoryAnalysis, MemoryKind, Memory
from tale_mind.similarity import influence_score, search_relevance, similarity

CROWDED_TOTAL = 80
NEGLECTED_COUNT = 20
TOP_TAGS = 10


class MemoryCatalog:
    """Memories keyed by id. Consolidation links resolve through ``get``."""

    def __init__(self, memories: Iterable[Memory] = (),
                 same_period_days: float = 7.0) -> None:
        self._memories: dict[str, Memory] = {m.id: m for m in memories}
        self._same_period_days = same_period_days

    def __len__(self) -> int:
        return len(self._memories)

    def __iter__(self):
        return iter(self._memories.values())

    def __contains__(self, memory_id: object) -> bool:
        return memory_id in self._memories

    def get(self, memory_id: str) -> Memory:
        try:
            return self._memories[memory_id]
        except KeyError:
            raise NotFoundError("memory", memory_id) from None

    def add(self, memory: Memory) -> None:
        self._memories[memory.id] = memory

    def active(self) -> list[Memory]:
        return [m for m in self._memories.values() if m.is_active]

    def sources_of(self, memory: Memory) -> list[Memory]:
        """Memories folded into ``memory``. Ids that are not loaded are skipped."""
        return [self._memories[i] for i in memory.source_ids if i in self._memories]

    # ── search ─────────────────────────────────────────────────────────

    def search(self, query: str, kind: MemoryKind | None = None) -> list[Memory]:
        """Active memories whose text or tags contain ``query``, best match first."""
        q = query.strip().lower()
        if not q:
            return []
        scored = []
        for mem in self.active():
            if kind is not None and mem.kind is not kind:
                continue
            score = search_relevance(mem, q)
            if score > 0:
                scored.append((score, mem))
        scored.sort(key=lambda x: (-x[0], -x[1].importance, x[1].id))
        return [mem for _, mem in scored]

    def by_topic(self) -> dict[str, list[Memory]]:
        """Group active memories under each tag and under their kind."""
        topics: dict[str, list[Memory]] = {}
        for mem in self.active():
            for tag in mem.tags:
                topics.setdefault(tag, []).append(mem)
            topics.setdefault(mem.kind.value, []).append(mem)
        return topics

    # ── similarity ─────────────────────────────────────────────────────

    def similar_to(self, memory: Memory, threshold: float = 0.6) -> list[Memory]:
        """Active memories more similar than ``threshold``, most similar first."""
        scored = []
        for other in self.active():
            if other.id == memory.id:
                continue
            sim = similarity(memory, other, self._same_period_days)
            if sim > threshold:
                scored.append((sim, other))
        scored.sort(key=lambda x: (-x[0], x[1].id))
        return [mem for _, mem in scored]

    def candidates(self, threshold: float = 0.7) -> list[Memory]:
        """Active memories that belong to at least one highly similar pair."""
        found: dict[str, Memory] = {}
        for a, b, _ in find_similar(self.active(), threshold, self._same_period_days):
            found.setdefault(a.id, a)
            found.setdefault(b.id, b)
        return list(found.values())

    def most_influential(self, count: int = 5) -> list[Memory]:
        ranked = sorted(self.active(), key=lambda m: (-influence_score(m), m.id))
        return ranked[:count]

    # ── analysis ───────────────────────────────────────────────────────

    def analyze(self, now: float | None = None) -> MemoryAnalysis:
        memories = list(self._memories.values())
        if not memories:
            return MemoryAnalysis(recommendations=["record a first memory"])
        now = time.time() if now is None else now

        kinds = Counter(m.kind.value for m in memories)
        tags = Counter(tag for m in memories for tag in m.tags)
        never_accessed = sum(1 for m in memories if m.access_count == 0)

        recommendations = []
        if len(memories) > CROWDED_TOTAL:
            recommendations.append("consolidate similar memories")
        if never_accessed > NEGLECTED_COUNT:
            recommendations.append("archive unused memories")
        if len(kinds) == 1:
            recommendations.append("diversify memory kinds")
        if any(m.is_active and m.strength(now) <= 0.2 for m in memories):
            recommendations.append("run decay on faded memories")

        return MemoryAnalysis(
            total=len(memories),
            active=sum(1 for m in memories if m.is_active),
            archived=sum(1 for m in memories if m.archived),
            consolidated=sum(1 for m in memories if m.consolidated),
            by_kind=dict(kinds),
            by_importance=dict(sorted(Counter(m.importance for m in memories).items())),
            average_importance=sum(m.importance for m in memories) / len(memories),
            top_tags=dict(tags.most_common(TOP_TAGS)),
            oldest=min(m.created_at for m in memories),
            newest=max(m.created_at for m in memories),
            most_accessed=max(memories, key=lambda m: m.access_count),
            never_accessed=never_accessed,
            recommendations=recommendations,
        )

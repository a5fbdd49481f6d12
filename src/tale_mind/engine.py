"""MemoryEngine: the lifecycle of a character's memories.

    engine.record_memory(cid, mem)      - store, dedupe, auto-consolidate, cap
    engine.consolidate(cid, mems, why)  - merge memories into a stronger one
    engine.relevant_memories(cid, ctx)  - what to remember for the next story
    engine.process_decay(cid)           - archive what has faded
    engine.enforce_limit(cid)           - archive the weakest above the cap

Every call loads the character's memories, works in memory, and saves what
changed. Callers serialize writes per character.
"""

from __future__ import annotations

import time
from typing import Callable, Sequence

from loguru import logger

from tale_mind.catalog import MemoryCatalog
from tale_mind.config import Settings, get_settings
from tale_mind.consolidate import TextMerge, merge_memories
from tale_mind.decay import apply_decay
from tale_mind.models import ImportanceTier, MemoryAnalysis, MemoryKind, Memory
from tale_mind.similarity import context_keywords, relevance, similarity
from tale_mind.storage import MemoryStore

LIMIT_REASON = "automatic archival due to memory limit"


class MemoryEngine:

    def __init__(self, store: MemoryStore, settings: Settings | None = None,
                 merge_fn: TextMerge | None = None,
                 clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._merge_fn = merge_fn
        self._clock = clock

    @property
    def settings(self) -> Settings:
        return self._settings

    def catalog(self, character_id: str) -> MemoryCatalog:
        return MemoryCatalog(self._store.load_by_character(character_id),
                             same_period_days=self._settings.same_period_days)

    def _similarity(self, a: Memory, b: Memory) -> float:
        return similarity(a, b, self._settings.same_period_days)

    # ── record ─────────────────────────────────────────────────────────

    def record_memory(self, character_id: str, memory: Memory) -> Memory:
        """Store a new memory.

        A near-duplicate of an active memory is merged into it instead. A
        memory close to several active ones is consolidated with them. Either
        way the consolidated memory is returned.
        """
        memory.character_id = character_id
        memory.validate()

        active = [m for m in self._store.load_by_character(character_id)
                  if m.is_active and m.id != memory.id]

        for existing in active:
            sim = self._similarity(existing, memory)
            if sim > self._settings.duplicate_threshold:
                logger.info(f"'{memory.title}' duplicates '{existing.title}' ({sim:.2f})")
                # No cap check: a duplicate merge leaves the active count unchanged.
                return self.consolidate(character_id, [existing, memory], "duplicate")

        self._store.save(memory)
        logger.info(f"recorded memory '{memory.title}' for {character_id}")

        related = [m for m in active
                   if self._similarity(m, memory) > self._settings.auto_consolidate_threshold]
        result = memory
        if len(related) >= self._settings.auto_consolidate_min_matches:
            result = self.consolidate(character_id, [memory, *related],
                                      "automatic consolidation of similar memories")

        self.enforce_limit(character_id)
        return result

    # ── consolidate ────────────────────────────────────────────────────

    def consolidate(self, character_id: str, memories: Sequence[Memory],
                    reason: str) -> Memory:
        merged = merge_memories(memories, reason, self._merge_fn, now=self._clock())
        merged.character_id = character_id
        self._store.save(merged)
        for source in memories:
            self._store.save(source)
        logger.info(f"consolidated {len(memories)} memories into '{merged.title}' ({reason})")
        return merged

    def consolidation_candidates(self, character_id: str) -> list[Memory]:
        return self.catalog(character_id).candidates(self._settings.candidate_threshold)

    # ── recall ─────────────────────────────────────────────────────────

    def relevant_memories(self, character_id: str, context: str,
                          max_results: int = 10) -> list[Memory]:
        """Active memories ranked against ``context``. Recalling counts as an access."""
        now = self._clock()
        keywords = context_keywords(context)
        scored = []
        for mem in self._store.load_by_character(character_id):
            if not mem.is_active:
                continue
            score = relevance(mem, keywords, now, self._settings.recent_access_days)
            scored.append((score, mem))
        scored.sort(key=lambda x: (-x[0], -x[1].importance, -x[1].access_count, x[1].id))

        result = []
        for score, mem in scored[:max_results]:
            logger.debug(f"recall '{mem.title}' score={score:.2f}")
            mem.access(now)
            self._store.save(mem)
            result.append(mem)
        return result

    # ── decay and limits ───────────────────────────────────────────────

    def process_decay(self, character_id: str) -> list[Memory]:
        """Archive faded memories. Returns the ones archived by this call."""
        memories = [m for m in self._store.load_by_character(character_id) if not m.archived]
        _, archived = apply_decay(memories, self._clock(),
                                  self._settings.decay_window_days,
                                  self._settings.decay_archive_factor)
        for mem in archived:
            logger.debug(f"archived '{mem.title}': {mem.archive_reason}")
            self._store.save(mem)
        if archived:
            logger.info(f"decay archived {len(archived)} memories for {character_id}")
        return archived

    def enforce_limit(self, character_id: str, max_active: int | None = None) -> list[Memory]:
        """Archive the weakest non-core active memories above the cap.

        Core memories neither count toward the cap nor get archived.
        """
        cap = self._settings.max_active_memories if max_active is None else max_active
        count = getattr(self._store, "count_active", self._store.count_by_character)
        if count(character_id) <= cap:
            return []

        eligible = [m for m in self._store.load_by_character(character_id)
                    if m.is_active and m.tier is not ImportanceTier.CORE]
        excess = len(eligible) - cap
        if excess <= 0:
            return []

        eligible.sort(key=lambda m: (m.importance, m.last_touched))
        archived = eligible[:excess]
        for mem in archived:
            mem.archive(LIMIT_REASON)
            self._store.save(mem)
        logger.info(f"memory limit {cap}: archived {len(archived)} for {character_id}")
        return archived

    # ── read views ─────────────────────────────────────────────────────

    def search(self, character_id: str, query: str,
               kind: MemoryKind | None = None) -> list[Memory]:
        return self.catalog(character_id).search(query, kind)

    def by_topic(self, character_id: str) -> dict[str, list[Memory]]:
        return self.catalog(character_id).by_topic()

    def most_influential(self, character_id: str, count: int = 5) -> list[Memory]:
        return self.catalog(character_id).most_influential(count)

    def analyze(self, character_id: str) -> MemoryAnalysis:
        return self.catalog(character_id).analyze(self._clock())

"""Tests for similarity, relevance, decay and consolidation primitives."""

import pytest

from tale_mind import Memory, MemoryKind, MergedText, ValidationError
from tale_mind.consolidate import dominant_kind, find_similar, merge_memories
from tale_mind.decay import apply_decay, compute_decay, decay_reason
from tale_mind.models import DAY
from tale_mind.similarity import (
    influence_score,
    jaccard,
    relevance,
    search_relevance,
    similarity,
)

NOW = 1_700_000_000.0


def mem(title="Dragon day", summary="Met a friendly dragon in the forest",
        kind=MemoryKind.EXPERIENCE, tags=("dragon", "forest"), occurred_at=NOW, **kw):
    return Memory(title, summary, kind, occurred_at=occurred_at, tags=list(tags), **kw)


# ── Similarity ─────────────────────────────────────────────────────────


class TestSimilarity:
    def test_identical_is_one(self):
        a = mem()
        b = mem(title="Another title")
        assert similarity(a, b) == pytest.approx(1.0)

    def test_symmetric(self):
        a = mem(tags=("dragon", "cave", "gold"))
        b = mem(summary="A dragon guarded the gold", kind=MemoryKind.DISCOVERY,
                occurred_at=NOW - 3 * DAY)
        assert similarity(a, b) == similarity(b, a)

    def test_unrelated_is_zero(self):
        a = mem()
        b = mem(summary="Baked cookies with grandma", kind=MemoryKind.LEARNING,
                tags=("baking",), occurred_at=NOW - 30 * DAY)
        assert similarity(a, b) == 0.0

    def test_components(self):
        a = mem(tags=("dragon", "forest"))
        b = mem(tags=("dragon",), summary="something else entirely",
                occurred_at=NOW - 10 * DAY)
        # 0.3 * 1/2 tags + 0.2 same kind
        assert similarity(a, b) == pytest.approx(0.35)

    def test_jaccard_empty(self):
        assert jaccard([], []) == 0.0
        assert jaccard(["a"], ["a", "b"]) == 0.5

    def test_find_similar(self):
        a = mem()
        b = mem(title="Again")
        c = mem(summary="Baked cookies", kind=MemoryKind.LEARNING, tags=(),
                occurred_at=NOW - 30 * DAY)
        pairs = find_similar([a, b, c], threshold=0.7)
        assert [(x.id, y.id) for x, y, _ in pairs] == [(a.id, b.id)]


class TestRelevance:
    def test_keywords_and_importance(self):
        m = mem(importance=10)
        # dragon + forest matched, cave not
        score = relevance(m, ["dragon", "forest", "cave"], NOW)
        assert score == pytest.approx(0.2 + 0.3)

    def test_recent_access_bonus(self):
        m = mem(importance=5)
        m.access(NOW - 2 * DAY)
        assert relevance(m, [], NOW) == pytest.approx(0.15 + 0.2)
        assert relevance(m, [], NOW + 30 * DAY) == pytest.approx(0.15)

    def test_capped_at_one(self):
        m = mem(importance=10, summary=" ".join(f"w{i}" for i in range(20)))
        m.access(NOW)
        keywords = [f"w{i}" for i in range(20)]
        assert relevance(m, keywords, NOW) == 1.0

    def test_search_relevance(self):
        m = mem(content="The dragon was named Ember")
        assert search_relevance(m, "dragon") == 3 + 2 + 2 + 1
        assert search_relevance(m, "ember") == 1
        assert search_relevance(m, "unicorn") == 0

    def test_influence_score(self):
        m = mem(importance=5, source_ids=["a", "b"])
        m.access(NOW)
        assert influence_score(m) == pytest.approx(5 * 0.4 + 0.3 + 2 * 0.2 + 0.2)


# ── Decay ──────────────────────────────────────────────────────────────


class TestDecay:
    def test_weak_memory_archived(self):
        m = mem(importance=2, created_at=NOW - 40 * DAY)
        assert m.decay_resistance == 1
        assert compute_decay(m, NOW) == pytest.approx(40 / 30 - 0.1 - 0.2)
        kept, archived = apply_decay([m], NOW)
        assert archived == [m]
        assert kept == []
        assert m.archived
        assert m.archive_reason == "natural decay"

    def test_important_memory_survives(self):
        m = mem(importance=8, created_at=NOW - 40 * DAY)
        assert decay_reason(m, NOW) is None

    def test_unaccessed_memory_archived(self):
        m = mem(importance=5, created_at=NOW - 100 * DAY)
        assert decay_reason(m, NOW) == "no access for 30 days"

    def test_accessed_medium_memory_survives(self):
        m = mem(importance=5, created_at=NOW - 100 * DAY)
        m.access(NOW - 60 * DAY)
        assert compute_decay(m, NOW) > 0.5
        assert decay_reason(m, NOW) is None

    def test_access_resets_clock(self):
        m = mem(importance=2, created_at=NOW - 40 * DAY)
        m.access(NOW - DAY)
        assert compute_decay(m, NOW) == 0.0

    def test_archived_is_skipped(self):
        m = mem(importance=1, created_at=NOW - 400 * DAY)
        m.archive("manual")
        assert decay_reason(m, NOW) is None


# ── Consolidation ──────────────────────────────────────────────────────


class TestMerge:
    def test_merge(self):
        a = mem(importance=6, tags=("dragon", "forest"), occurred_at=NOW - DAY,
                emotional_context=["brave"], character_id="c1")
        b = mem(importance=8, tags=("dragon", "fire"), associated_characters=["Ember"],
                character_id="c1")
        merged = merge_memories([a, b], "duplicate", now=NOW)
        assert merged.importance == 9
        assert merged.importance >= max(a.importance, b.importance)
        assert merged.source_ids == [a.id, b.id]
        assert list(merged.tags) == ["dragon", "forest", "fire"]
        assert list(merged.associated_characters) == ["Ember"]
        assert list(merged.emotional_context) == ["brave"]
        assert merged.occurred_at == NOW - DAY
        assert merged.character_id == "c1"
        assert merged.title.startswith("Consolidated memory:")
        for source in (a, b):
            assert source.consolidated
            assert source.consolidated_into == merged.id

    def test_importance_capped(self):
        merged = merge_memories([mem(importance=10), mem(importance=10)], "dup", now=NOW)
        assert merged.importance == 10

    def test_requires_two(self):
        with pytest.raises(ValidationError):
            merge_memories([mem()], "alone")

    def test_uses_merge_fn(self):
        calls = []

        def merge(texts, reason):
            calls.append((texts, reason))
            return MergedText("The dragon friendship", "Two visits to the dragon")

        merged = merge_memories([mem(), mem(title="Again")], "duplicate", merge, now=NOW)
        assert merged.title == "The dragon friendship"
        assert calls[0][1] == "duplicate"
        assert calls[0][0][1].startswith("Again:")

    def test_failing_merge_fn_falls_back(self):
        def merge(texts, reason):
            raise RuntimeError("provider down")

        merged = merge_memories([mem(), mem(title="Again")], "duplicate", merge, now=NOW)
        assert merged.title == "Consolidated memory: Dragon day, Again"

    def test_blank_merge_result_falls_back(self):
        merged = merge_memories([mem(), mem()], "dup", lambda t, r: MergedText("", ""), now=NOW)
        assert merged.summary.startswith("Combined memory from 2")

    def test_dominant_kind_by_count(self):
        memories = [mem(kind=MemoryKind.LEARNING), mem(kind=MemoryKind.LEARNING),
                    mem(kind=MemoryKind.EXPERIENCE, importance=10)]
        assert dominant_kind(memories) is MemoryKind.LEARNING

    def test_dominant_kind_tie_uses_importance(self):
        memories = [mem(kind=MemoryKind.LEARNING, importance=3),
                    mem(kind=MemoryKind.EXPERIENCE, importance=9)]
        assert dominant_kind(memories) is MemoryKind.EXPERIENCE

    def test_dominant_kind_full_tie_first_seen(self):
        memories = [mem(kind=MemoryKind.SKILL), mem(kind=MemoryKind.DISCOVERY)]
        assert dominant_kind(memories) is MemoryKind.SKILL

"""Tests for the reference stores."""

import os
import random
import tempfile

import pytest

from tale_mind import (
    Character,
    CharacterDNA,
    InMemoryStore,
    Memory,
    MemoryKind,
    MemoryStore,
    NotFoundError,
    SQLiteStore,
    StoreError,
    TraitKind,
)

NOW = 1_700_000_000.0


@pytest.fixture
def sqlite_store():
    """SQLite store on a temp file, removed afterwards."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    s = SQLiteStore(path)
    yield s
    s.close()
    os.unlink(path)


def character(owner="owner-1"):
    return Character("Pip", owner, CharacterDNA.random(random.Random(3)), created_at=NOW)


def rich_memory(**kw):
    mem = Memory.relationship("Met Ember", "Ember the dragon became a friend", "Ember",
                              importance=7, character_id="c1", story_id="story-9",
                              tags=["dragon", "Friendship"], content="Full text",
                              occurred_at=NOW, created_at=NOW, **kw)
    mem.add_emotion("Joyful")
    return mem


# ── Protocol ───────────────────────────────────────────────────────────


class TestProtocol:
    def test_both_stores_satisfy(self, sqlite_store):
        assert isinstance(InMemoryStore(), MemoryStore)
        assert isinstance(sqlite_store, MemoryStore)


# ── SQLite ─────────────────────────────────────────────────────────────


class TestSQLiteMemories:
    def test_round_trip(self, sqlite_store):
        mem = rich_memory()
        mem.access(NOW + 10)
        sqlite_store.save(mem)
        loaded = sqlite_store.load_memory(mem.id)
        assert loaded == mem
        assert loaded.kind is MemoryKind.RELATIONSHIP
        assert list(loaded.tags) == ["dragon", "friendship"]
        assert list(loaded.emotional_context) == ["joyful"]
        assert loaded.last_accessed == NOW + 10

    def test_load_by_character(self, sqlite_store):
        sqlite_store.save(rich_memory())
        sqlite_store.save(Memory("Other", "s", character_id="c2"))
        assert len(sqlite_store.load_by_character("c1")) == 1
        assert sqlite_store.load_by_character("nobody") == []

    def test_save_replaces(self, sqlite_store):
        mem = rich_memory()
        sqlite_store.save(mem)
        mem.mark_consolidated("merged-1")
        sqlite_store.save(mem)
        assert sqlite_store.count_by_character("c1") == 1
        loaded = sqlite_store.load_memory(mem.id)
        assert loaded.consolidated
        assert loaded.consolidated_into == "merged-1"
        assert sqlite_store.count_active("c1") == 0

    def test_source_ids_and_archive(self, sqlite_store):
        mem = rich_memory(source_ids=["a", "b"])
        mem.archive("natural decay")
        sqlite_store.save(mem)
        loaded = sqlite_store.load_memory(mem.id)
        assert loaded.source_ids == ["a", "b"]
        assert loaded.archived
        assert loaded.archive_reason == "natural decay"

    def test_missing_memory(self, sqlite_store):
        with pytest.raises(NotFoundError) as exc:
            sqlite_store.load_memory("nope")
        assert exc.value.kind == "memory"

    def test_active_count_matches_in_memory(self, sqlite_store):
        memory_store = InMemoryStore()
        live = Memory("Live", "s", character_id="c1")
        gone = Memory("Gone", "s", character_id="c1")
        gone.archive("manual")
        for s in (sqlite_store, memory_store):
            s.save(live)
            s.save(gone)
            assert s.count_by_character("c1") == 2
            assert s.count_active("c1") == 1

    def test_closed_store_raises_store_error(self):
        fd, path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        try:
            store = SQLiteStore(path)
            store.close()
            with pytest.raises(StoreError):
                store.count_by_character("c1")
        finally:
            os.unlink(path)


class TestSQLiteCharacters:
    def test_round_trip(self, sqlite_store):
        c = character()
        c.add_story_experience(150, new_words=4, now=NOW + 5)
        sqlite_store.save_character(c)
        loaded = sqlite_store.load_character(c.id)
        assert loaded.name == "Pip"
        assert loaded.level == c.level == 2
        assert loaded.words_learned == 4
        assert loaded.dna == c.dna
        assert loaded.traits.value_map() == c.traits.value_map()

    def test_missing_character(self, sqlite_store):
        with pytest.raises(NotFoundError):
            sqlite_store.load_character("nope")

    def test_context_manager(self):
        fd, path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        try:
            with SQLiteStore(path) as store:
                store.save(rich_memory())
            with SQLiteStore(path) as store:
                assert store.count_by_character("c1") == 1
        finally:
            os.unlink(path)


# ── In memory ──────────────────────────────────────────────────────────


class TestInMemoryStore:
    def test_hands_out_copies(self):
        store = InMemoryStore()
        mem = rich_memory()
        store.save(mem)
        loaded = store.load_by_character("c1")[0]
        loaded.archive("changed outside")
        assert not store.load_memory(mem.id).archived
        mem.access(NOW)
        assert store.load_memory(mem.id).access_count == 0

    def test_characters(self):
        store = InMemoryStore()
        c = character()
        store.save_character(c)
        loaded = store.load_character(c.id)
        assert loaded is not c
        assert loaded.traits[TraitKind.COURAGE].value == c.traits[TraitKind.COURAGE].value
        with pytest.raises(NotFoundError):
            store.load_character("nope")

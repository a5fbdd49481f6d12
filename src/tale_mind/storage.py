"""Memory persistence. The engine only needs the MemoryStore protocol.

Two implementations ship: an in-process dict store (tests, prototyping) and a
SQLite store (one file = every character's memories and traits).
"""

from __future__ import annotations

import json
import sqlite3
from functools import wraps
from pathlib import Path
from typing import Protocol, runtime_checkable

from tale_mind.character import Character
from tale_mind.errors import NotFoundError, StoreError
from tale_mind.models import Memory


@runtime_checkable
class MemoryStore(Protocol):
    def load_by_character(self, character_id: str) -> list[Memory]: ...

    def save(self, memory: Memory) -> Memory: ...

    def count_by_character(self, character_id: str) -> int: ...


class InMemoryStore:
    """Dict-backed store. Hands out copies so only save() changes state."""

    def __init__(self) -> None:
        self._memories: dict[str, dict[str, Memory]] = {}
        self._characters: dict[str, Character] = {}

    def load_by_character(self, character_id: str) -> list[Memory]:
        return [m.copy() for m in self._memories.get(character_id, {}).values()]

    def save(self, memory: Memory) -> Memory:
        self._memories.setdefault(memory.character_id, {})[memory.id] = memory.copy()
        return memory

    def count_by_character(self, character_id: str) -> int:
        return len(self._memories.get(character_id, {}))

    def count_active(self, character_id: str) -> int:
        return sum(1 for m in self._memories.get(character_id, {}).values() if m.is_active)

    def load_memory(self, memory_id: str) -> Memory:
        for memories in self._memories.values():
            if memory_id in memories:
                return memories[memory_id].copy()
        raise NotFoundError("memory", memory_id)

    def save_character(self, character: Character) -> Character:
        self._characters[character.id] = Character.from_dict(character.to_dict())
        return character

    def load_character(self, character_id: str) -> Character:
        try:
            stored = self._characters[character_id]
        except KeyError:
            raise NotFoundError("character", character_id) from None
        return Character.from_dict(stored.to_dict())


def _translate_errors(method):
    """Re-raise sqlite3 failures as StoreError."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except sqlite3.Error as exc:
            raise StoreError(f"{method.__name__} failed: {exc}") from exc
    return wrapper


class SQLiteStore:
    """SQLite backend. Zero config. Portable."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            self.conn = sqlite3.connect(str(self.path))
            self.conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open {self.path}: {exc}") from exc
        self._init_schema()

    @_translate_errors
    def _init_schema(self) -> None:
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS memories (
                id TEXT PRIMARY KEY,
                character_id TEXT NOT NULL,
                title TEXT NOT NULL,
                summary TEXT NOT NULL,
                content TEXT NOT NULL DEFAULT '',
                kind TEXT NOT NULL DEFAULT 'experience',
                importance INTEGER NOT NULL,
                decay_resistance INTEGER NOT NULL,
                occurred_at REAL NOT NULL,
                created_at REAL NOT NULL,
                last_accessed REAL,
                access_count INTEGER NOT NULL DEFAULT 0,
                tags TEXT NOT NULL DEFAULT '[]',
                associated_characters TEXT NOT NULL DEFAULT '[]',
                emotional_context TEXT NOT NULL DEFAULT '[]',
                story_id TEXT,
                consolidated INTEGER NOT NULL DEFAULT 0,
                consolidated_into TEXT,
                source_ids TEXT NOT NULL DEFAULT '[]',
                archived INTEGER NOT NULL DEFAULT 0,
                archive_reason TEXT NOT NULL DEFAULT ''
            );

            CREATE INDEX IF NOT EXISTS idx_memories_character
                ON memories(character_id);
            CREATE INDEX IF NOT EXISTS idx_memories_importance
                ON memories(importance DESC);

            CREATE TABLE IF NOT EXISTS characters (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                document TEXT NOT NULL,
                updated_at REAL NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_characters_owner
                ON characters(owner_id);
        """)
        self.conn.commit()

    # ── Memory ─────────────────────────────────────────────────────────

    @_translate_errors
    def save(self, memory: Memory) -> Memory:
        self.conn.execute(
            """INSERT OR REPLACE INTO memories
               (id, character_id, title, summary, content, kind, importance,
                decay_resistance, occurred_at, created_at, last_accessed,
                access_count, tags, associated_characters, emotional_context,
                story_id, consolidated, consolidated_into, source_ids,
                archived, archive_reason)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                memory.id, memory.character_id, memory.title, memory.summary,
                memory.content, memory.kind.value, memory.importance,
                memory.decay_resistance, memory.occurred_at, memory.created_at,
                memory.last_accessed, memory.access_count,
                json.dumps(list(memory.tags)),
                json.dumps(list(memory.associated_characters)),
                json.dumps(list(memory.emotional_context)),
                memory.story_id, int(memory.consolidated), memory.consolidated_into,
                json.dumps(memory.source_ids), int(memory.archived),
                memory.archive_reason,
            ),
        )
        self.conn.commit()
        return memory

    @_translate_errors
    def load_by_character(self, character_id: str) -> list[Memory]:
        rows = self.conn.execute(
            "SELECT * FROM memories WHERE character_id = ?", (character_id,)
        ).fetchall()
        return [self._row_to_memory(r) for r in rows]

    @_translate_errors
    def count_by_character(self, character_id: str) -> int:
        return self.conn.execute(
            "SELECT COUNT(*) FROM memories WHERE character_id = ?", (character_id,)
        ).fetchone()[0]

    @_translate_errors
    def load_memory(self, memory_id: str) -> Memory:
        row = self.conn.execute(
            "SELECT * FROM memories WHERE id = ?", (memory_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("memory", memory_id)
        return self._row_to_memory(row)

    @_translate_errors
    def count_active(self, character_id: str) -> int:
        return self.conn.execute(
            """SELECT COUNT(*) FROM memories
               WHERE character_id = ? AND archived = 0 AND consolidated = 0""",
            (character_id,),
        ).fetchone()[0]

    # ── Character ──────────────────────────────────────────────────────

    @_translate_errors
    def save_character(self, character: Character) -> Character:
        self.conn.execute(
            """INSERT OR REPLACE INTO characters (id, owner_id, document, updated_at)
               VALUES (?, ?, ?, strftime('%s', 'now'))""",
            (character.id, character.owner_id, json.dumps(character.to_dict())),
        )
        self.conn.commit()
        return character

    @_translate_errors
    def load_character(self, character_id: str) -> Character:
        row = self.conn.execute(
            "SELECT document FROM characters WHERE id = ?", (character_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("character", character_id)
        return Character.from_dict(json.loads(row[0]))

    # ── Close ──────────────────────────────────────────────────────────

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> SQLiteStore:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # ── Row mappers ────────────────────────────────────────────────────

    @staticmethod
    def _row_to_memory(row: tuple) -> Memory:
        return Memory(
            id=row[0],
            character_id=row[1],
            title=row[2],
            summary=row[3],
            content=row[4],
            kind=row[5],
            importance=row[6],
            decay_resistance=row[7],
            occurred_at=row[8],
            created_at=row[9],
            last_accessed=row[10],
            access_count=row[11],
            tags=json.loads(row[12]),
            associated_characters=json.loads(row[13]),
            emotional_context=json.loads(row[14]),
            story_id=row[15],
            consolidated=bool(row[16]),
            consolidated_into=row[17],
            source_ids=json.loads(row[18]),
            archived=bool(row[19]),
            archive_reason=row[20],
        )

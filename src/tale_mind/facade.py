"""CharacterDevelopment: the entry point for the story workflow.

API:
    dev.create_character(name, owner)          - new character + welcome memory
    dev.apply_story_experience(character, ...) - a story finished, traits grow
    dev.record_story_memory(character, ...)    - remember what happened
    dev.relevant_memories(character, context)  - what matters for the next story
    dev.prompt_context(character, context)     - personality + memories, as text
    dev.process_decay(character)               - let old memories fade
    dev.adopt(character, new_owner)            - a fresh copy for another family
"""

from __future__ import annotations

import random
import time
from pathlib import Path
from typing import Callable, Mapping, Sequence

from loguru import logger

from tale_mind.character import Character
from tale_mind.config import Settings, get_settings
from tale_mind.consolidate import TextMerge
from tale_mind.dna import CharacterDNA
from tale_mind.engine import MemoryEngine
from tale_mind.errors import ValidationError
from tale_mind.models import (
    InfluenceContext,
    MemoryAnalysis,
    MemoryKind,
    Memory,
    TraitChangeResult,
    TraitKind,
)
from tale_mind.storage import MemoryStore, SQLiteStore
from tale_mind.traits import TraitEngine

WELCOME_IMPORTANCE = 8
ADOPTION_MIN_IMPORTANCE = 4
ADOPTION_MEMORY_COUNT = 3


class CharacterDevelopment:
    """Trait growth and memory for story characters. One store, many characters."""

    def __init__(self, store: MemoryStore | None = None,
                 settings: Settings | None = None,
                 merge_fn: TextMerge | None = None,
                 clock: Callable[[], float] = time.time,
                 path: str | Path | None = None) -> None:
        self._settings = settings or get_settings()
        self._store = store or SQLiteStore(path or self._settings.database_path)
        self._clock = clock
        self.traits = TraitEngine(clock=clock)
        self.memories = MemoryEngine(self._store, self._settings, merge_fn, clock)

    @property
    def store(self) -> MemoryStore:
        return self._store

    # ── characters ─────────────────────────────────────────────────────

    def create_character(self, name: str, owner_id: str,
                         dna: CharacterDNA | None = None,
                         description: str = "",
                         rng: random.Random | None = None) -> Character:
        """New character from ``dna`` (random if omitted), with a first memory."""
        now = self._clock()
        character = Character(name, owner_id, dna or CharacterDNA.random(rng),
                              description=description, created_at=now)
        welcome = Memory(
            title="Meeting my new friend",
            summary=f"{character.name} came to life and met a new friend for the first time.",
            kind=MemoryKind.USER_INTERACTION,
            importance=WELCOME_IMPORTANCE,
            occurred_at=now,
            created_at=now,
            tags=["first meeting", "beginning", "friendship"],
            emotional_context=["excited", "happy"],
        )
        self.memories.record_memory(character.id, welcome)
        self._save_character(character)
        logger.info(f"created character '{character.name}' ({character.dna.archetype}) "
                    f"for {owner_id}")
        return character

    def adopt(self, character: Character, new_owner_id: str) -> Character:
        """Copy ``character`` for a new owner: base traits, a few faded memories."""
        now = self._clock()
        adopted = Character(
            character.name,
            new_owner_id,
            character.dna.adoption_copy(),
            traits=character.traits.adoption_copy(self.traits),
            description=character.description,
            original_id=character.id,
            created_at=now,
        )
        keep = [m for m in self._store.load_by_character(character.id)
                if m.is_active and m.importance >= ADOPTION_MIN_IMPORTANCE]
        keep.sort(key=lambda m: (-m.importance, m.id))
        for mem in keep[:ADOPTION_MEMORY_COUNT]:
            copy = mem.adoption_copy(adopted.id)
            copy.created_at = now
            self._store.save(copy)
        self._save_character(adopted)
        logger.info(f"'{character.name}' adopted by {new_owner_id} as {adopted.id}")
        return adopted

    # ── stories ────────────────────────────────────────────────────────

    def apply_story_experience(self, character: Character, story_id: str,
                               experience_points: int,
                               new_words: Sequence[str] = (),
                               trait_influences: Mapping[TraitKind | str, float] | None = None,
                               learning_moments: Sequence[str] = (),
                               genre: str = "") -> list[TraitChangeResult]:
        """A finished story. Updates the character's stats and grows its traits.

        Positive influences add ``experience_points * influence`` to the trait,
        negative ones challenge it with intensity ``-influence`` (at most 1).
        Learning moments feed curiosity and intelligence; new words feed
        intelligence.
        """
        if experience_points < 0:
            raise ValidationError(
                f"experience points cannot be negative, got {experience_points}")
        influences = {}
        for kind, influence in (trait_influences or {}).items():
            try:
                influences[TraitKind(kind)] = influence
            except ValueError:
                raise ValidationError(f"unknown trait: {kind!r}") from None

        now = self._clock()
        if character.add_story_experience(experience_points, len(new_words), now):
            logger.info(f"'{character.name}' reached level {character.level}")

        context = InfluenceContext(genre=genre, learning_context=tuple(learning_moments))
        description = f"story {story_id}"
        results = []

        for kind, influence in influences.items():
            trait = character.traits[kind]
            if influence > 0:
                points = experience_points * influence
                if points > 0:
                    results.append(self.traits.add_experience(trait, points, description, context))
            elif influence < 0:
                results.append(self.traits.challenge(trait, min(1.0, -influence),
                                                     description, context))

        for moment in learning_moments:
            for kind in (TraitKind.CURIOSITY, TraitKind.INTELLIGENCE):
                results.append(self.traits.add_experience(
                    character.traits[kind], self._settings.learning_moment_experience,
                    f"Learned: {moment}", context))

        if new_words:
            results.append(self.traits.add_experience(
                character.traits[TraitKind.INTELLIGENCE],
                len(new_words) * self._settings.word_experience,
                f"Learned {len(new_words)} new words", context))

        changed = [r for r in results if r.value_changed]
        logger.debug(f"story {story_id}: {len(results)} trait updates, {len(changed)} changed")
        self._save_character(character)
        return results

    def record_story_memory(self, character: Character, story_summary: str,
                            importance: int, story_id: str | None = None,
                            title: str | None = None,
                            tags: Sequence[str] = (),
                            emotions: Sequence[str] = (),
                            characters: Sequence[str] = ()) -> Memory:
        now = self._clock()
        memory = Memory(
            title=title or f"Story experience {story_id or ''}".strip(),
            summary=story_summary,
            kind=MemoryKind.EXPERIENCE,
            importance=importance,
            occurred_at=now,
            created_at=now,
            story_id=story_id,
            tags=list(tags),
            emotional_context=list(emotions),
            associated_characters=list(characters),
        )
        return self.memories.record_memory(character.id, memory)

    # ── traits ─────────────────────────────────────────────────────────

    def reinforce_trait(self, character: Character, kind: TraitKind, reason: str,
                        multiplier: float = 1.5) -> TraitChangeResult:
        result = self.traits.reinforce(character.traits.get(kind), reason, multiplier)
        self._save_character(character)
        return result

    def challenge_trait(self, character: Character, kind: TraitKind,
                        intensity: float, reason: str) -> TraitChangeResult:
        result = self.traits.challenge(character.traits.get(kind), intensity, reason)
        self._save_character(character)
        return result

    def _save_character(self, character: Character) -> None:
        save = getattr(self._store, "save_character", None)
        if save is not None:
            save(character)

    # ── memories ───────────────────────────────────────────────────────

    def relevant_memories(self, character: Character, context: str,
                          max_results: int = 10) -> list[Memory]:
        return self.memories.relevant_memories(character.id, context, max_results)

    def process_decay(self, character: Character) -> list[Memory]:
        return self.memories.process_decay(character.id)

    def analyze(self, character: Character) -> MemoryAnalysis:
        return self.memories.analyze(character.id)

    def prompt_context(self, character: Character, context: str,
                       max_results: int = 5) -> str:
        """Text block describing the character for the next story prompt."""
        lines = [
            f"{character.name}: {character.traits.personality_description()}",
            f"Archetype: {character.dna.archetype}. Motivation: {character.dna.motivation}.",
        ]
        memories = self.relevant_memories(character, context, max_results)
        if memories:
            lines.append("Remembers:")
            lines.extend(f"- {m.title}: {m.summary}" for m in memories)
        return "\n".join(lines)

    # ── lifecycle ──────────────────────────────────────────────────────

    def close(self) -> None:
        close = getattr(self._store, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> CharacterDevelopment:
        return self

    def __exit__(self, *args) -> None:
        self.close()

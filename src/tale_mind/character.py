"""A character: DNA, evolving traits and story statistics."""

from __future__ import annotations

import math
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from tale_mind.dna import CharacterDNA
from tale_mind.errors import ValidationError
from tale_mind.traits import TraitSet

MAX_NAME_LENGTH = 50
MAX_LEVEL = 50


def level_for_experience(experience_points: int) -> int:
    """Character level: sqrt(xp / 100) + 1, capped at 50."""
    return min(MAX_LEVEL, int(math.sqrt(experience_points / 100)) + 1)


@dataclass
class Character:
    name: str
    owner_id: str
    dna: CharacterDNA
    traits: TraitSet | None = None
    description: str = ""
    level: int = 1
    experience_points: int = 0
    stories_experienced: int = 0
    words_learned: int = 0
    original_id: str | None = None          # set for adopted characters
    created_at: float = field(default_factory=time.time)
    last_story_at: float | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self) -> None:
        self.name = self.name.strip()
        if not self.name:
            raise ValidationError("character name cannot be empty")
        if len(self.name) > MAX_NAME_LENGTH:
            raise ValidationError(f"character name cannot exceed {MAX_NAME_LENGTH} characters")
        if self.traits is None:
            self.traits = TraitSet.from_base_values(self.dna.base_traits, self.created_at)

    @property
    def is_adopted(self) -> bool:
        return self.original_id is not None

    def add_story_experience(self, points: int, new_words: int = 0,
                             now: float | None = None) -> bool:
        """Count a finished story. Returns True if the character leveled up."""
        if points < 0:
            raise ValidationError(f"experience points cannot be negative, got {points}")
        self.experience_points += points
        self.stories_experienced += 1
        self.words_learned += new_words
        self.last_story_at = time.time() if now is None else now

        new_level = level_for_experience(self.experience_points)
        if new_level > self.level:
            self.level = new_level
            return True
        return False

    def can_share_publicly(self) -> bool:
        return self.stories_experienced >= 3 and self.level >= 2

    def can_adopt_new_characters(self) -> bool:
        """An owner who has raised this character may adopt others."""
        return self.stories_experienced >= 5 and self.level >= 3

    def display_info(self) -> str:
        return f"{self.name} (level {self.level}) - {self.stories_experienced} stories experienced"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "description": self.description,
            "dna": self.dna.to_dict(),
            "traits": self.traits.to_dict(),
            "level": self.level,
            "experience_points": self.experience_points,
            "stories_experienced": self.stories_experienced,
            "words_learned": self.words_learned,
            "original_id": self.original_id,
            "created_at": self.created_at,
            "last_story_at": self.last_story_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Character:
        data = dict(data)
        data["dna"] = CharacterDNA.from_dict(data["dna"])
        data["traits"] = TraitSet.from_dict(data["traits"])
        return cls(**data)

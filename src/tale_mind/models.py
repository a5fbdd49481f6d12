"""Core data models. A Memory has a lifecycle; a Trait has a history."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tale_mind.bounded import BoundedSet
from tale_mind.errors import ValidationError

MAX_TAGS = 10
MAX_ASSOCIATED_CHARACTERS = 20
MAX_EMOTIONS = 5
MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 10
MAX_DECAY_RESISTANCE = 5
DAY = 24 * 3600


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class TraitKind(str, Enum):
    COURAGE = "courage"
    CURIOSITY = "curiosity"
    KINDNESS = "kindness"
    CREATIVITY = "creativity"
    INTELLIGENCE = "intelligence"
    HUMOR = "humor"
    WISDOM = "wisdom"
    EMPATHY = "empathy"
    DETERMINATION = "determination"
    OPTIMISM = "optimism"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class EvolutionKind(str, Enum):
    CREATED = "created"
    INCREASED = "increased"
    CHALLENGED = "challenged"
    RESET = "reset"


class MemoryKind(str, Enum):
    EXPERIENCE = "experience"            # something lived through in a story
    LEARNING = "learning"                # a lesson or new knowledge
    EMOTIONAL = "emotional"              # an emotionally significant event
    RELATIONSHIP = "relationship"        # meeting or bonding with someone
    ACHIEVEMENT = "achievement"
    USER_INTERACTION = "user_interaction"
    SKILL = "skill"                      # a skill that developed
    CHALLENGE = "challenge"
    DISCOVERY = "discovery"
    REFLECTION = "reflection"


# Every MemoryKind must have an entry (checked in tests).
KIND_KEYWORDS: dict[MemoryKind, tuple[str, ...]] = {
    MemoryKind.EXPERIENCE: ("experience", "adventure", "journey"),
    MemoryKind.LEARNING: ("learning", "knowledge", "lesson"),
    MemoryKind.EMOTIONAL: ("feeling", "emotion", "mood"),
    MemoryKind.RELATIONSHIP: ("friendship", "relationship", "meeting"),
    MemoryKind.ACHIEVEMENT: ("success", "achieved", "accomplished"),
    MemoryKind.USER_INTERACTION: ("conversation", "together", "talk"),
    MemoryKind.SKILL: ("skill", "practice", "ability"),
    MemoryKind.CHALLENGE: ("challenge", "obstacle", "struggle"),
    MemoryKind.DISCOVERY: ("discovery", "found", "explore"),
    MemoryKind.REFLECTION: ("reflection", "thought", "wonder"),
}


class ImportanceTier(str, Enum):
    TRIVIAL = "trivial"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
    CORE = "core"      # part of the personality, never evicted for space

    @classmethod
    def for_importance(cls, importance: int) -> ImportanceTier:
        if importance >= 10:
            return cls.CORE
        if importance >= 9:
            return cls.CRITICAL
        if importance >= 7:
            return cls.HIGH
        if importance >= 5:
            return cls.MEDIUM
        if importance >= 3:
            return cls.LOW
        return cls.TRIVIAL


def decay_resistance_for(importance: int) -> int:
    if importance >= 8:
        return 5
    if importance >= 6:
        return 3
    if importance >= 4:
        return 2
    return 1


def _clean(text: str) -> str:
    return text.strip().lower()


@dataclass
class Memory:
    """One episodic record. Accessed, tagged, consolidated, archived; never deleted."""

    title: str
    summary: str
    kind: MemoryKind = MemoryKind.EXPERIENCE
    importance: int = 5
    content: str = ""
    character_id: str = ""
    occurred_at: float = field(default_factory=time.time)
    created_at: float = field(default_factory=time.time)
    last_accessed: float | None = None
    access_count: int = 0
    decay_resistance: int = 0               # 0 = derive from importance
    tags: BoundedSet = field(default_factory=lambda: BoundedSet(MAX_TAGS))
    associated_characters: BoundedSet = field(
        default_factory=lambda: BoundedSet(MAX_ASSOCIATED_CHARACTERS, key=str.lower))
    emotional_context: BoundedSet = field(default_factory=lambda: BoundedSet(MAX_EMOTIONS))
    story_id: str | None = None
    consolidated: bool = False
    consolidated_into: str | None = None
    source_ids: list[str] = field(default_factory=list)
    archived: bool = False
    archive_reason: str = ""
    id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        if isinstance(self.kind, str) and not isinstance(self.kind, MemoryKind):
            self.kind = MemoryKind(self.kind)
        self.title = self.title.strip()
        self.summary = self.summary.strip()
        self.content = (self.content or "").strip()
        if not isinstance(self.tags, BoundedSet):
            raw, self.tags = self.tags, BoundedSet(MAX_TAGS)
            for tag in raw:
                self.add_tag(tag)
        if not isinstance(self.associated_characters, BoundedSet):
            raw = self.associated_characters
            self.associated_characters = BoundedSet(MAX_ASSOCIATED_CHARACTERS, key=str.lower)
            for name in raw:
                self.add_associated_character(name)
        if not isinstance(self.emotional_context, BoundedSet):
            raw, self.emotional_context = self.emotional_context, BoundedSet(MAX_EMOTIONS)
            for emotion in raw:
                self.add_emotion(emotion)
        if not self.decay_resistance and MIN_IMPORTANCE <= self.importance <= MAX_IMPORTANCE:
            self.decay_resistance = decay_resistance_for(self.importance)

    # ── derived ────────────────────────────────────────────────────────

    @property
    def tier(self) -> ImportanceTier:
        return ImportanceTier.for_importance(self.importance)

    @property
    def is_active(self) -> bool:
        return not self.archived and not self.consolidated

    @property
    def last_touched(self) -> float:
        """Last access, or creation if never accessed."""
        return self.last_accessed if self.last_accessed is not None else self.created_at

    def validate(self) -> None:
        if not self.title.strip():
            raise ValidationError("memory title cannot be empty")
        if not self.summary.strip():
            raise ValidationError("memory summary cannot be empty")
        if not MIN_IMPORTANCE <= self.importance <= MAX_IMPORTANCE:
            raise ValidationError(
                f"memory importance must be between {MIN_IMPORTANCE} and "
                f"{MAX_IMPORTANCE}, got {self.importance}")

    # ── mutation ───────────────────────────────────────────────────────

    def access(self, now: float | None = None) -> None:
        """Accessing a memory strengthens it: every 5th access adds importance."""
        self.access_count += 1
        self.last_accessed = time.time() if now is None else now
        if self.importance < MAX_IMPORTANCE and self.access_count % 5 == 0:
            self._raise_importance(1)

    def add_tag(self, tag: str) -> None:
        if tag and tag.strip():
            self.tags.add(_clean(tag))

    def add_emotion(self, emotion: str) -> None:
        if emotion and emotion.strip():
            self.emotional_context.add(_clean(emotion))

    def add_associated_character(self, name: str) -> None:
        if name and name.strip():
            self.associated_characters.add(name.strip())

    def mark_consolidated(self, into_id: str) -> None:
        """Superseded by ``into_id``. Consolidated memories get stronger."""
        self.consolidated = True
        self.consolidated_into = into_id
        self._raise_importance(1)
        self.decay_resistance = min(MAX_DECAY_RESISTANCE, self.decay_resistance + 1)

    def archive(self, reason: str) -> None:
        self.archived = True
        self.archive_reason = reason

    def _raise_importance(self, amount: int) -> None:
        self.importance = min(MAX_IMPORTANCE, self.importance + amount)
        self.decay_resistance = max(self.decay_resistance,
                                    decay_resistance_for(self.importance))

    # ── queries ────────────────────────────────────────────────────────

    def is_recent(self, now: float, hours: float = 24) -> bool:
        return now - self.created_at <= hours * 3600

    def strength(self, now: float | None = None) -> float:
        """How vivid the memory is, 0.1 to 1.0."""
        now = time.time() if now is None else now
        base = self.importance / 10
        access_bonus = min(0.3, self.access_count * 0.05)
        age_days = (now - self.created_at) / DAY
        time_decay = 0.0 if self.is_recent(now) else min(0.5, age_days * 0.01)
        consolidation_bonus = 0.2 if self.consolidated else 0.0
        return max(0.1, min(1.0, base + access_bonus + consolidation_bonus - time_decay))

    def should_be_preserved(self) -> bool:
        return (self.importance >= 7
                or self.access_count >= 5
                or self.consolidated
                or self.kind is MemoryKind.ACHIEVEMENT)

    def context_keywords(self) -> list[str]:
        keywords = [*self.tags, *self.associated_characters, *self.emotional_context,
                    *KIND_KEYWORDS[self.kind]]
        return list(dict.fromkeys(keywords))

    def adoption_copy(self, character_id: str = "") -> Memory:
        """Reduced-fidelity copy for a character adopted by a new owner."""
        return Memory(
            title=self.title,
            summary=self.summary,
            kind=self.kind,
            importance=max(MIN_IMPORTANCE, self.importance - 2),
            character_id=character_id,
            occurred_at=self.occurred_at,
            tags=list(self.tags)[:3],
            emotional_context=list(self.emotional_context)[:2],
        )

    # ── factories ──────────────────────────────────────────────────────

    @classmethod
    def story(cls, title: str, summary: str, importance: int, story_id: str,
              **kwargs: Any) -> Memory:
        return cls(title, summary, MemoryKind.EXPERIENCE, importance,
                   story_id=story_id, **kwargs)

    @classmethod
    def learning(cls, title: str, summary: str, importance: int = 6,
                 **kwargs: Any) -> Memory:
        return cls(title, summary, MemoryKind.LEARNING, importance, **kwargs)

    @classmethod
    def emotional(cls, title: str, summary: str, emotion: str,
                  importance: int = 7, **kwargs: Any) -> Memory:
        mem = cls(title, summary, MemoryKind.EMOTIONAL, importance, **kwargs)
        mem.add_emotion(emotion)
        return mem

    @classmethod
    def achievement(cls, title: str, summary: str, importance: int = 8,
                    **kwargs: Any) -> Memory:
        return cls(title, summary, MemoryKind.ACHIEVEMENT, importance, **kwargs)

    @classmethod
    def relationship(cls, title: str, summary: str, character_name: str,
                     importance: int = 6, **kwargs: Any) -> Memory:
        mem = cls(title, summary, MemoryKind.RELATIONSHIP, importance, **kwargs)
        mem.add_associated_character(character_name)
        return mem

    # ── serialization ──────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "character_id": self.character_id,
            "title": self.title,
            "summary": self.summary,
            "content": self.content,
            "kind": self.kind.value,
            "importance": self.importance,
            "decay_resistance": self.decay_resistance,
            "occurred_at": self.occurred_at,
            "created_at": self.created_at,
            "last_accessed": self.last_accessed,
            "access_count": self.access_count,
            "tags": list(self.tags),
            "associated_characters": list(self.associated_characters),
            "emotional_context": list(self.emotional_context),
            "story_id": self.story_id,
            "consolidated": self.consolidated,
            "consolidated_into": self.consolidated_into,
            "source_ids": list(self.source_ids),
            "archived": self.archived,
            "archive_reason": self.archive_reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Memory:
        return cls(**data)

    def copy(self) -> Memory:
        return Memory.from_dict(self.to_dict())

    def __str__(self) -> str:
        return f"{self.title} (importance {self.importance}/10, {self.kind.value})"


@dataclass(frozen=True)
class TraitEvolution:
    timestamp: float
    kind: EvolutionKind
    value: int
    reason: str
    experience: float


@dataclass(frozen=True)
class TraitChangeResult:
    trait: TraitKind
    previous_value: int
    new_value: int
    experience_gained: float
    value_changed: bool
    message: str


@dataclass(frozen=True)
class InfluenceContext:
    """What shaped an experience. Feeds analytics weights, not leveling."""

    genre: str = ""
    emotional_tone: str = ""
    learning_context: tuple[str, ...] = ()


@dataclass(frozen=True)
class MergedText:
    title: str
    summary: str
    content: str = ""


@dataclass
class MemoryAnalysis:
    total: int = 0
    active: int = 0
    archived: int = 0
    consolidated: int = 0
    by_kind: dict[str, int] = field(default_factory=dict)
    by_importance: dict[int, int] = field(default_factory=dict)
    average_importance: float = 0.0
    top_tags: dict[str, int] = field(default_factory=dict)
    oldest: float | None = None
    newest: float | None = None
    most_accessed: Memory | None = None
    never_accessed: int = 0
    recommendations: list[str] = field(default_factory=list)

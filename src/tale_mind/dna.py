"""Character DNA: the immutable personality template fixed at creation.

Randomness only happens here, and always through an injected
``random.Random`` so generation is reproducible in tests.
"""

from __future__ import annotations

import random as _random
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

from tale_mind.errors import ValidationError
from tale_mind.models import TraitKind

ARCHETYPES = (
    "explorer", "helper", "creator", "protector", "seeker", "dreamer",
    "leader", "friend", "scholar", "comedian", "peacemaker", "adventurer",
)

# Inclusive (low, high) ranges that override the default 3..7 roll.
ARCHETYPE_TRAITS: dict[str, dict[TraitKind, tuple[int, int]]] = {
    "explorer": {TraitKind.CURIOSITY: (7, 10), TraitKind.COURAGE: (6, 9)},
    "helper": {TraitKind.KINDNESS: (8, 10), TraitKind.EMPATHY: (7, 9)},
    "creator": {TraitKind.CREATIVITY: (8, 10), TraitKind.DETERMINATION: (6, 8)},
    "scholar": {TraitKind.INTELLIGENCE: (7, 10), TraitKind.WISDOM: (6, 9)},
    "comedian": {TraitKind.HUMOR: (8, 10), TraitKind.OPTIMISM: (7, 9)},
}

ARCHETYPE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "explorer": ("curious", "brave", "adventurous", "experimental"),
    "helper": ("helpful", "compassionate", "friendly", "supportive"),
    "creator": ("creative", "inventive", "imaginative", "artistic"),
    "scholar": ("inquisitive", "analytical", "thoughtful", "studious"),
    "dreamer": ("imaginative", "dreamy", "idealistic", "visionary"),
}

MOTIVATIONS: dict[str, tuple[str, ...]] = {
    "explorer": ("Discover new worlds", "Explore the unknown", "Push past limits"),
    "helper": ("Help others", "Bring joy", "Solve problems"),
    "creator": ("Make something beautiful", "Bring ideas to life", "Make the world colorful"),
    "scholar": ("Learn new things", "Uncover secrets", "Understand how things work"),
}
DEFAULT_MOTIVATIONS = ("Make friends", "Have fun", "Be good", "Grow and learn")

LEARNING_STYLES = ("visual", "auditory", "kinesthetic", "mixed")

GENRES = (
    "adventure", "fantasy", "mystery", "educational", "friendship", "family",
    "nature", "science", "space", "historical", "fairy_tale", "comedy",
)
ARCHETYPE_GENRES: dict[str, tuple[str, ...]] = {
    "explorer": ("adventure", "mystery", "nature"),
    "helper": ("friendship", "family", "educational"),
    "creator": ("fantasy", "fairy_tale", "adventure"),
    "scholar": ("educational", "science", "historical"),
}
DEFAULT_GENRES = ("adventure", "friendship", "family")

AVOIDED_TOPICS = ("violence", "death", "war", "nightmares")
AVOIDED_TOPICS_YOUNG = ("separation", "loss", "complex problems")

MAX_KEYWORDS = 5
MAX_GENRES = 4


def _fears_for(child_age: int) -> tuple[str, ...]:
    if child_age <= 6:
        return ("Being left alone", "The dark", "Loud noises")
    if child_age <= 10:
        return ("Failing", "Being rejected", "Hurting others", "Losing something important")
    return ("Not being good enough", "Letting friends down", "Being treated unfairly")


def _age_profile(child_age: int, rng: _random.Random) -> tuple[int, int, bool]:
    """(emotional depth, complexity preference, prefers happy endings)"""
    if child_age <= 6:
        return rng.randint(2, 4), rng.randint(1, 3), True
    if child_age <= 10:
        return rng.randint(4, 6), rng.randint(3, 6), rng.randint(1, 10) > 2
    return rng.randint(5, 8), rng.randint(4, 8), rng.randint(1, 10) > 4


def _avoided_topics(child_age: int) -> tuple[str, ...]:
    if child_age <= 6:
        return AVOIDED_TOPICS + AVOIDED_TOPICS_YOUNG
    return AVOIDED_TOPICS


def _genres(archetype: str, rng: _random.Random) -> tuple[str, ...]:
    genres = list(ARCHETYPE_GENRES.get(archetype, DEFAULT_GENRES))
    others = [g for g in GENRES if g not in genres]
    genres.extend(rng.sample(others, 2))
    return tuple(genres[:MAX_GENRES])


def _clamp(value: int) -> int:
    return max(1, min(10, value))


@dataclass(frozen=True)
class CharacterDNA:
    archetype: str
    base_traits: Mapping[TraitKind, int]
    keywords: tuple[str, ...] = ()
    motivation: str = ""
    fear: str = ""
    learning_style: str = "mixed"
    adaptability: int = 5
    emotional_depth: int = 5
    social_tendency: int = 5
    complexity_preference: int = 5
    challenge_affinity: int = 5
    prefers_happy_endings: bool = True
    preferred_genres: tuple[str, ...] = ()
    avoided_topics: tuple[str, ...] = ()
    created_at: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self) -> None:
        traits = {TraitKind(k): int(v) for k, v in dict(self.base_traits).items()}
        missing = [k.value for k in TraitKind if k not in traits]
        if missing:
            raise ValidationError(f"DNA is missing base traits: {', '.join(missing)}")
        for kind, value in traits.items():
            if not 1 <= value <= 10:
                raise ValidationError(f"base trait {kind.value} out of range: {value}")
        object.__setattr__(self, "base_traits", traits)
        object.__setattr__(self, "keywords", tuple(self.keywords)[:MAX_KEYWORDS])
        object.__setattr__(self, "preferred_genres", tuple(self.preferred_genres))
        object.__setattr__(self, "avoided_topics", tuple(self.avoided_topics))

    # ── construction ───────────────────────────────────────────────────

    @classmethod
    def random(cls, rng: _random.Random | None = None,
               archetype: str | None = None,
               emphasized: Iterable[TraitKind] = (),
               child_age: int = 7) -> CharacterDNA:
        rng = rng or _random.Random()
        if archetype not in ARCHETYPES:
            archetype = rng.choice(ARCHETYPES)

        traits = {kind: rng.randint(3, 7) for kind in TraitKind}
        for kind, (low, high) in ARCHETYPE_TRAITS.get(archetype, {}).items():
            traits[kind] = rng.randint(low, high)
        for kind in emphasized:
            traits[kind] = min(10, traits[kind] + rng.randint(1, 3))

        depth, complexity, happy = _age_profile(child_age, rng)
        return cls(
            archetype=archetype,
            base_traits=traits,
            keywords=cls._keywords(archetype, traits, rng),
            motivation=rng.choice(MOTIVATIONS.get(archetype, DEFAULT_MOTIVATIONS)),
            fear=rng.choice(_fears_for(child_age)),
            learning_style=rng.choice(LEARNING_STYLES),
            adaptability=rng.randint(3, 8),
            emotional_depth=depth,
            social_tendency=rng.randint(2, 8),
            complexity_preference=complexity,
            challenge_affinity=rng.randint(3, 7),
            prefers_happy_endings=happy,
            preferred_genres=_genres(archetype, rng),
            avoided_topics=_avoided_topics(child_age),
        )

    @classmethod
    def custom(cls, archetype: str, traits: Mapping[TraitKind, int],
               keywords: Iterable[str], motivation: str,
               learning_style: str = "mixed", child_age: int = 7,
               rng: _random.Random | None = None) -> CharacterDNA:
        """User-specified DNA. Out-of-range values are clamped, gaps filled with 5."""
        rng = rng or _random.Random()
        normalized = {kind: _clamp(traits.get(kind, 5)) for kind in TraitKind}
        depth, complexity, happy = _age_profile(child_age, rng)
        return cls(
            archetype=archetype,
            base_traits=normalized,
            keywords=tuple(keywords),
            motivation=motivation,
            fear=rng.choice(_fears_for(child_age)),
            learning_style=learning_style,
            emotional_depth=depth,
            complexity_preference=complexity,
            prefers_happy_endings=happy,
            preferred_genres=_genres(archetype, rng),
            avoided_topics=_avoided_topics(child_age),
        )

    @staticmethod
    def _keywords(archetype: str, traits: Mapping[TraitKind, int],
                  rng: _random.Random) -> tuple[str, ...]:
        keywords: list[str] = []
        pool = ARCHETYPE_KEYWORDS.get(archetype)
        if pool:
            keywords.extend(rng.sample(pool, 2))
        top = sorted(traits.items(), key=lambda kv: kv[1], reverse=True)[:2]
        keywords.extend(kind.value for kind, _ in top)
        return tuple(dict.fromkeys(keywords))[:MAX_KEYWORDS]

    def adoption_copy(self) -> CharacterDNA:
        """Copy for a new owner: same traits, fewer keywords and genres."""
        return replace(
            self,
            keywords=self.keywords[:3],
            preferred_genres=self.preferred_genres[:2],
            created_at=time.time(),
            id=uuid.uuid4().hex[:12],
        )

    # ── reads ──────────────────────────────────────────────────────────

    def compatibility(self, other: CharacterDNA) -> float:
        """0..1. Similar traits, shared genres and social tendency score high."""
        score = 0.0
        factors = 0
        for kind, value in self.base_traits.items():
            if kind in other.base_traits:
                score += (10 - abs(value - other.base_traits[kind])) / 10
                factors += 1

        longest = max(len(self.preferred_genres), len(other.preferred_genres))
        if longest:
            common = len(set(self.preferred_genres) & set(other.preferred_genres))
            score += common / longest
        factors += 1

        score += (10 - abs(self.social_tendency - other.social_tendency)) / 10
        factors += 1
        return score / factors

    def summary(self) -> str:
        top = sorted(self.base_traits.items(), key=lambda kv: kv[1], reverse=True)[:3]
        names = ", ".join(kind.value for kind, _ in top)
        return f"{self.archetype.capitalize()} • {names} • {self.motivation}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "archetype": self.archetype,
            "base_traits": {k.value: v for k, v in self.base_traits.items()},
            "keywords": list(self.keywords),
            "motivation": self.motivation,
            "fear": self.fear,
            "learning_style": self.learning_style,
            "adaptability": self.adaptability,
            "emotional_depth": self.emotional_depth,
            "social_tendency": self.social_tendency,
            "complexity_preference": self.complexity_preference,
            "challenge_affinity": self.challenge_affinity,
            "prefers_happy_endings": self.prefers_happy_endings,
            "preferred_genres": list(self.preferred_genres),
            "avoided_topics": list(self.avoided_topics),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CharacterDNA:
        return cls(**data)

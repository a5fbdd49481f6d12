"""Trait growth. Experience climbs an exponential curve; stability resists regression."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Mapping

from loguru import logger

from tale_mind.errors import ValidationError
from tale_mind.models import (
    EvolutionKind,
    InfluenceContext,
    TraitChangeResult,
    TraitEvolution,
    TraitKind,
)

MIN_VALUE = 1
MAX_VALUE = 10
MIN_FACTOR = 0.5        # lower bound for stability and growth rate
MAX_FACTOR = 2.0
HISTORY_LIMIT = 50
RECENT_LIMIT = 10

# Level v costs LEVEL_COST * (v-1)^GROWTH_EXPONENT accumulated experience.
LEVEL_COST = 10.0
GROWTH_EXPONENT = 2.2

STABILITY_GAIN = 0.05
GROWTH_PENALTY = 0.1
REGRESSION_PRESSURE = 0.3

GROWTH_MODIFIERS: dict[TraitKind, float] = {
    TraitKind.CURIOSITY: 1.2,
    TraitKind.CREATIVITY: 1.1,
    TraitKind.WISDOM: 0.8,
    TraitKind.INTELLIGENCE: 0.9,
}

BASE_INFLUENCE: dict[str, float] = {
    "stories": 1.0,
    "social_interaction": 0.8,
    "learning_activities": 0.9,
    "challenges": 0.7,
    "success": 1.1,
    "positive_feedback": 1.2,
}

TRAIT_INFLUENCE: dict[TraitKind, dict[str, float]] = {
    TraitKind.EMPATHY: {"social_interaction": 1.5, "emotional_stories": 1.3},
    TraitKind.COURAGE: {"challenges": 1.4, "adventure_stories": 1.2},
    TraitKind.INTELLIGENCE: {"learning_activities": 1.4, "problem_solving": 1.3},
}

SYNERGIES: dict[frozenset[TraitKind], float] = {
    frozenset({TraitKind.COURAGE, TraitKind.DETERMINATION}): 0.8,
    frozenset({TraitKind.EMPATHY, TraitKind.KINDNESS}): 0.9,
    frozenset({TraitKind.EMPATHY, TraitKind.WISDOM}): 0.6,
    frozenset({TraitKind.CREATIVITY, TraitKind.CURIOSITY}): 0.8,
    frozenset({TraitKind.CREATIVITY, TraitKind.INTELLIGENCE}): 0.5,
}

ADJECTIVES: dict[TraitKind, str] = {
    TraitKind.COURAGE: "brave",
    TraitKind.CURIOSITY: "curious",
    TraitKind.KINDNESS: "kind",
    TraitKind.CREATIVITY: "creative",
    TraitKind.INTELLIGENCE: "clever",
    TraitKind.HUMOR: "funny",
    TraitKind.WISDOM: "wise",
    TraitKind.EMPATHY: "caring",
    TraitKind.DETERMINATION: "determined",
    TraitKind.OPTIMISM: "cheerful",
}

REINFORCEMENT_CONTEXT = InfluenceContext(
    genre="positive_reinforcement",
    emotional_tone="positive",
    learning_context=("reinforcement", "success"),
)


def threshold(level: int) -> float:
    """Accumulated experience needed to reach ``level`` on the curve."""
    if level <= 1:
        return 0.0
    return LEVEL_COST * (level - 1) ** GROWTH_EXPONENT


def level_for(experience: float) -> int:
    for level in range(MAX_VALUE, MIN_VALUE, -1):
        if experience >= threshold(level):
            return level
    return MIN_VALUE


def initial_growth_rate(kind: TraitKind, base_value: int) -> float:
    """Low base values grow faster; some traits are naturally quicker."""
    adjustment = (11 - base_value) / 10
    rate = adjustment * GROWTH_MODIFIERS.get(kind, 1.0)
    return max(MIN_FACTOR, min(MAX_FACTOR, rate))


def default_influence(kind: TraitKind) -> dict[str, float]:
    weights = dict(BASE_INFLUENCE)
    weights.update(TRAIT_INFLUENCE.get(kind, {}))
    return weights


@dataclass
class Trait:
    """One personality dimension of one character."""

    kind: TraitKind
    base_value: int
    value: int = 0                  # 0 = start at base_value
    experience: float = 0.0
    stability: float = 1.0
    growth_rate: float = 0.0        # 0 = derive from kind and base
    times_reinforced: int = 0
    times_challenged: int = 0
    history: deque = field(default_factory=lambda: deque(maxlen=HISTORY_LIMIT))
    recent_experiences: deque = field(default_factory=lambda: deque(maxlen=RECENT_LIMIT))
    influence_weights: dict[str, float] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    last_modified: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.kind = TraitKind(self.kind)
        if not MIN_VALUE <= self.base_value <= MAX_VALUE:
            raise ValidationError(
                f"base value must be between {MIN_VALUE} and {MAX_VALUE}, got {self.base_value}")
        if not MIN_FACTOR <= self.stability <= MAX_FACTOR:
            raise ValidationError(
                f"stability must be between {MIN_FACTOR} and {MAX_FACTOR}, got {self.stability}")
        if not self.value:
            self.value = self.base_value
        if not self.growth_rate:
            self.growth_rate = initial_growth_rate(self.kind, self.base_value)
        if not self.influence_weights:
            self.influence_weights = default_influence(self.kind)
        if not isinstance(self.history, deque) or self.history.maxlen != HISTORY_LIMIT:
            self.history = deque(self.history, maxlen=HISTORY_LIMIT)
        if not isinstance(self.recent_experiences, deque) or \
                self.recent_experiences.maxlen != RECENT_LIMIT:
            self.recent_experiences = deque(self.recent_experiences, maxlen=RECENT_LIMIT)
        if not self.history:
            self.record(EvolutionKind.CREATED, "created from DNA", self.created_at)

    @property
    def ceiling(self) -> int:
        """Value the accumulated experience has earned above the base."""
        return min(MAX_VALUE, self.base_value + level_for(self.experience) - 1)

    def record(self, kind: EvolutionKind, reason: str, now: float) -> None:
        self.history.append(TraitEvolution(now, kind, self.value, reason, self.experience))

    def remember(self, description: str) -> None:
        self.recent_experiences.appendleft(description)

    def absorb(self, context: InfluenceContext | None) -> None:
        if context is None:
            return
        if context.genre:
            key = f"genre:{context.genre.lower()}"
            self.influence_weights[key] = self.influence_weights.get(key, 0.5) + 0.1
        for item in context.learning_context:
            key = f"context:{item.lower()}"
            self.influence_weights[key] = self.influence_weights.get(key, 0.5) + 0.05

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "base_value": self.base_value,
            "value": self.value,
            "experience": self.experience,
            "stability": self.stability,
            "growth_rate": self.growth_rate,
            "times_reinforced": self.times_reinforced,
            "times_challenged": self.times_challenged,
            "history": [
                [e.timestamp, e.kind.value, e.value, e.reason, e.experience]
                for e in self.history
            ],
            "recent_experiences": list(self.recent_experiences),
            "influence_weights": dict(self.influence_weights),
            "created_at": self.created_at,
            "last_modified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Trait:
        data = dict(data)
        data["history"] = [
            TraitEvolution(ts, EvolutionKind(kind), value, reason, xp)
            for ts, kind, value, reason, xp in data.get("history", [])
        ]
        return cls(**data)


class TraitEngine:
    """Applies experience, challenges and reinforcement to traits."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    # ── growth ─────────────────────────────────────────────────────────

    def add_experience(self, trait: Trait, points: float, description: str,
                       context: InfluenceContext | None = None) -> TraitChangeResult:
        if points <= 0:
            raise ValidationError(f"experience points must be positive, got {points}")
        now = self._clock()
        previous = trait.value
        trait.experience += points * trait.growth_rate

        new_value = trait.ceiling
        changed = new_value != previous
        if changed:
            trait.value = new_value
            trait.record(EvolutionKind.INCREASED, description, now)
            trait.times_reinforced += 1
            trait.stability = min(MAX_FACTOR, trait.stability + STABILITY_GAIN)
            logger.debug(f"{trait.kind.value}: {previous} -> {new_value} ({description})")

        trait.absorb(context)
        trait.remember(description)
        trait.last_modified = now
        return TraitChangeResult(trait.kind, previous, trait.value, points, changed,
                                 self._message(trait.kind, previous, trait.value, description))

    def challenge(self, trait: Trait, intensity: float, description: str,
                  context: InfluenceContext | None = None) -> TraitChangeResult:
        """Push back on a trait. Only unstable traits above their base regress."""
        if not 0 < intensity <= 1:
            raise ValidationError(f"challenge intensity must be in (0, 1], got {intensity}")
        now = self._clock()
        previous = trait.value

        pressure = (1 - trait.stability) * intensity
        if pressure > REGRESSION_PRESSURE and trait.value > trait.base_value:
            reduction = max(1, round(intensity * 2))
            trait.value = max(trait.base_value, trait.value - reduction)
            trait.record(EvolutionKind.CHALLENGED, description, now)
            trait.times_challenged += 1
            trait.growth_rate = max(MIN_FACTOR, trait.growth_rate - GROWTH_PENALTY)
            logger.debug(f"{trait.kind.value} challenged: {previous} -> {trait.value}")

        trait.absorb(context)
        trait.remember(f"Challenged: {description}")
        trait.last_modified = now
        return TraitChangeResult(trait.kind, previous, trait.value, 0.0,
                                 previous != trait.value,
                                 self._message(trait.kind, previous, trait.value, description))

    def reinforce(self, trait: Trait, description: str,
                  multiplier: float = 1.5) -> TraitChangeResult:
        bonus = 5.0 * (1 + trait.value / 10) * multiplier
        return self.add_experience(trait, bonus, f"Reinforced: {description}",
                                   REINFORCEMENT_CONTEXT)

    def reset(self, trait: Trait) -> Trait:
        """Fresh copy at the base value, for an adopted character."""
        now = self._clock()
        fresh = Trait(trait.kind, trait.base_value, created_at=now, last_modified=now)
        fresh.history.clear()
        fresh.record(EvolutionKind.RESET, "reset for adoption", now)
        return fresh

    # ── reads ──────────────────────────────────────────────────────────

    @staticmethod
    def synergy(a: Trait, b: Trait) -> float:
        weight = SYNERGIES.get(frozenset({a.kind, b.kind}), 0.0)
        if not weight or a.kind is b.kind:
            return 0.0
        return weight * min(a.value, b.value) / 10

    @staticmethod
    def experience_to_next_level(trait: Trait) -> float:
        if trait.value >= MAX_VALUE:
            return 0.0
        needed = threshold(trait.value + 1 - trait.base_value + 1)
        return max(0.0, needed - trait.experience)

    @staticmethod
    def level_description(trait: Trait) -> str:
        v = trait.value
        if v <= 2:
            label = "beginner"
        elif v <= 4:
            label = "developing"
        elif v <= 6:
            label = "well developed"
        elif v <= 8:
            label = "strong"
        elif v <= 9:
            label = "very strong"
        else:
            label = "exceptional"
        return f"{trait.kind.label}: {label}"

    @staticmethod
    def influence_map(trait: Trait) -> dict[str, float]:
        influence = dict(trait.influence_weights)
        influence["stability"] = trait.stability
        influence["growth_rate"] = trait.growth_rate
        influence["reinforcements"] = min(2.0, trait.times_reinforced / 10)
        influence["challenges"] = max(0.5, 1.0 - trait.times_challenged / 20)
        return influence

    @staticmethod
    def ready_for_recognition(trait: Trait) -> bool:
        return trait.value >= 8 and trait.times_reinforced >= 5 and trait.stability >= 1.5

    @staticmethod
    def _message(kind: TraitKind, previous: int, new: int, description: str) -> str:
        if new > previous:
            return f"{kind.label} grew from {previous} to {new} through '{description}'!"
        if new < previous:
            return f"{kind.label} was challenged by '{description}' ({previous} -> {new})"
        return f"{kind.label} was strengthened by '{description}'"


class TraitSet:
    """Exactly one Trait per TraitKind."""

    def __init__(self, traits: Iterable[Trait]) -> None:
        self._traits: dict[TraitKind, Trait] = {t.kind: t for t in traits}
        missing = [k.value for k in TraitKind if k not in self._traits]
        if missing:
            raise ValidationError(f"trait set is missing: {', '.join(missing)}")

    @classmethod
    def from_base_values(cls, base_values: Mapping[TraitKind, int],
                         now: float | None = None) -> TraitSet:
        now = time.time() if now is None else now
        return cls(
            Trait(kind, base_values.get(kind, 5), created_at=now, last_modified=now)
            for kind in TraitKind
        )

    def __getitem__(self, kind: TraitKind) -> Trait:
        return self._traits[TraitKind(kind)]

    def get(self, kind: TraitKind | str) -> Trait:
        return self[TraitKind(kind)]

    def __iter__(self) -> Iterator[Trait]:
        return iter(self._traits[k] for k in TraitKind)

    def __len__(self) -> int:
        return len(self._traits)

    def value_map(self) -> dict[TraitKind, int]:
        return {t.kind: t.value for t in self}

    def dominant(self, count: int = 3, minimum: int = 7) -> list[Trait]:
        strong = [t for t in self if t.value >= minimum]
        strong.sort(key=lambda t: t.value, reverse=True)
        return strong[:count]

    def total_synergy(self) -> float:
        return sum(TraitEngine.synergy(self[a], self[b]) for a, b in SYNERGIES)

    def personality_description(self) -> str:
        dominant = self.dominant()
        if not dominant:
            return "A balanced character with many sides."
        parts = []
        for trait in dominant:
            intensity = "very" if trait.value >= 9 else "quite"
            parts.append(f"{intensity} {ADJECTIVES[trait.kind]}")
        return ", ".join(parts).capitalize() + "."

    def adoption_copy(self, engine: TraitEngine) -> TraitSet:
        return TraitSet(engine.reset(t) for t in self)

    def to_dict(self) -> dict[str, Any]:
        return {t.kind.value: t.to_dict() for t in self}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TraitSet:
        return cls(Trait.from_dict(d) for d in data.values())

    def __repr__(self) -> str:
        values = ", ".join(f"{t.kind.value}={t.value}" for t in self)
        return f"TraitSet({values})"

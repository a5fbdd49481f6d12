"""Tests for trait growth, challenge and synergy."""

import pytest

from tale_mind import TraitKind, ValidationError
from tale_mind.models import EvolutionKind, InfluenceContext
from tale_mind.traits import (
    HISTORY_LIMIT,
    Trait,
    TraitEngine,
    TraitSet,
    level_for,
    threshold,
)

NOW = 1_700_000_000.0


@pytest.fixture
def engine():
    return TraitEngine(clock=lambda: NOW)


def all_fives():
    return {kind: 5 for kind in TraitKind}


# ── Curve ──────────────────────────────────────────────────────────────


class TestCurve:
    def test_first_level_is_free(self):
        assert threshold(1) == 0.0

    def test_second_level_costs_ten(self):
        assert threshold(2) == pytest.approx(10.0)

    def test_strictly_increasing(self):
        costs = [threshold(v) for v in range(1, 11)]
        assert all(a < b for a, b in zip(costs, costs[1:]))

    def test_level_for(self):
        assert level_for(0) == 1
        assert level_for(9.99) == 1
        assert level_for(12) == 2
        assert level_for(threshold(10)) == 10
        assert level_for(1e9) == 10


# ── Growth ─────────────────────────────────────────────────────────────


class TestAddExperience:
    def test_curiosity_levels_up(self, engine):
        trait = Trait(TraitKind.CURIOSITY, 5, growth_rate=1.0)
        result = engine.add_experience(trait, 12, "Explored the old lighthouse")
        assert result.previous_value == 5
        assert result.new_value == 6
        assert result.value_changed
        assert trait.value == 6
        assert trait.times_reinforced == 1
        assert trait.stability == pytest.approx(1.05)
        assert trait.history[-1].kind is EvolutionKind.INCREASED

    def test_small_gain_keeps_value(self, engine):
        trait = Trait(TraitKind.CURIOSITY, 5, growth_rate=1.0)
        result = engine.add_experience(trait, 3, "Looked at a map")
        assert not result.value_changed
        assert trait.value == 5
        assert trait.experience == pytest.approx(3.0)
        assert "strengthened" in result.message

    def test_growth_rate_scales_experience(self, engine):
        trait = Trait(TraitKind.COURAGE, 5, growth_rate=0.5)
        engine.add_experience(trait, 10, "Crossed a bridge")
        assert trait.experience == pytest.approx(5.0)

    def test_rejects_non_positive(self, engine):
        trait = Trait(TraitKind.HUMOR, 5)
        with pytest.raises(ValidationError):
            engine.add_experience(trait, 0, "nothing")
        with pytest.raises(ValidationError):
            engine.add_experience(trait, -3, "nothing")

    def test_value_never_above_ten(self, engine):
        trait = Trait(TraitKind.WISDOM, 9, growth_rate=2.0)
        engine.add_experience(trait, 10_000, "A long life")
        assert trait.value == 10

    def test_context_updates_influence(self, engine):
        trait = Trait(TraitKind.EMPATHY, 5)
        context = InfluenceContext(genre="Friendship", learning_context=("sharing",))
        engine.add_experience(trait, 5, "Shared lunch", context)
        assert trait.influence_weights["genre:friendship"] == pytest.approx(0.6)
        assert trait.influence_weights["context:sharing"] == pytest.approx(0.55)
        assert trait.influence_weights["social_interaction"] == 1.5

    def test_recent_experiences_newest_first(self, engine):
        trait = Trait(TraitKind.KINDNESS, 5)
        for i in range(12):
            engine.add_experience(trait, 1, f"kind act {i}")
        assert len(trait.recent_experiences) == 10
        assert trait.recent_experiences[0] == "kind act 11"


# ── Challenge ──────────────────────────────────────────────────────────


class TestChallenge:
    def _grown(self, engine):
        trait = Trait(TraitKind.COURAGE, 5, stability=0.5, growth_rate=1.0)
        engine.add_experience(trait, 12, "Faced the storm")
        assert trait.value == 6
        return trait

    def test_unstable_trait_regresses(self, engine):
        trait = self._grown(engine)
        result = engine.challenge(trait, 1.0, "Got lost in the woods")
        assert result.value_changed
        assert trait.value == 5
        assert trait.times_challenged == 1
        assert trait.growth_rate == pytest.approx(0.9)
        assert trait.history[-1].kind is EvolutionKind.CHALLENGED
        assert trait.recent_experiences[0] == "Challenged: Got lost in the woods"

    def test_experience_is_kept(self, engine):
        trait = self._grown(engine)
        before = trait.experience
        engine.challenge(trait, 1.0, "Got lost")
        assert trait.experience == before

    def test_stable_trait_resists(self, engine):
        trait = Trait(TraitKind.COURAGE, 5, stability=1.0, growth_rate=1.0)
        engine.add_experience(trait, 12, "Faced the storm")
        result = engine.challenge(trait, 1.0, "Got lost")
        assert not result.value_changed
        assert trait.value == 6
        assert trait.recent_experiences[0] == "Challenged: Got lost"

    def test_never_below_base(self, engine):
        trait = Trait(TraitKind.COURAGE, 5, stability=0.5)
        engine.challenge(trait, 1.0, "Scary night")
        assert trait.value == 5
        assert trait.times_challenged == 0

    def test_invalid_intensity(self, engine):
        trait = Trait(TraitKind.COURAGE, 5)
        with pytest.raises(ValidationError):
            engine.challenge(trait, 0, "x")
        with pytest.raises(ValidationError):
            engine.challenge(trait, 1.5, "x")

    def test_value_bounded_by_base_and_ceiling(self, engine):
        trait = Trait(TraitKind.DETERMINATION, 4, stability=0.5, growth_rate=1.5)
        previous = trait.value
        for step in range(30):
            if step % 4 == 3:
                engine.challenge(trait, 0.9, f"setback {step}")
            else:
                result = engine.add_experience(trait, 7, f"practice {step}")
                assert result.new_value >= previous
            assert trait.base_value <= trait.value <= trait.ceiling
            previous = trait.value


# ── Reinforcement and reads ────────────────────────────────────────────


class TestReinforce:
    def test_bonus_depends_on_value(self, engine):
        trait = Trait(TraitKind.CURIOSITY, 5, growth_rate=1.0)
        result = engine.reinforce(trait, "Asked a great question")
        # 5 * (1 + 5/10) * 1.5
        assert trait.experience == pytest.approx(11.25)
        assert result.new_value == 6
        assert trait.influence_weights["genre:positive_reinforcement"] == pytest.approx(0.6)

    def test_recognition(self, engine):
        trait = Trait(TraitKind.KINDNESS, 8, stability=1.6, times_reinforced=5)
        assert engine.ready_for_recognition(trait)
        trait.stability = 1.2
        assert not engine.ready_for_recognition(trait)


class TestReads:
    def test_synergy_symmetric(self):
        courage = Trait(TraitKind.COURAGE, 8)
        determination = Trait(TraitKind.DETERMINATION, 6)
        assert TraitEngine.synergy(courage, determination) == pytest.approx(0.48)
        assert TraitEngine.synergy(determination, courage) == pytest.approx(0.48)

    def test_synergy_absent_pair(self):
        assert TraitEngine.synergy(Trait(TraitKind.HUMOR, 9), Trait(TraitKind.WISDOM, 9)) == 0.0

    def test_experience_to_next_level(self, engine):
        trait = Trait(TraitKind.CURIOSITY, 5, growth_rate=1.0)
        assert engine.experience_to_next_level(trait) == pytest.approx(10.0)
        engine.add_experience(trait, 4, "peeked")
        assert engine.experience_to_next_level(trait) == pytest.approx(6.0)
        assert engine.experience_to_next_level(Trait(TraitKind.HUMOR, 10)) == 0.0

    def test_level_description(self):
        assert TraitEngine.level_description(Trait(TraitKind.CURIOSITY, 5)) == \
            "Curiosity: well developed"
        assert TraitEngine.level_description(Trait(TraitKind.HUMOR, 10)).endswith("exceptional")

    def test_influence_map(self):
        trait = Trait(TraitKind.EMPATHY, 5, times_challenged=4)
        influence = TraitEngine.influence_map(trait)
        assert influence["stability"] == 1.0
        assert influence["challenges"] == pytest.approx(0.8)
        assert influence["emotional_stories"] == 1.3

    def test_history_is_bounded(self):
        trait = Trait(TraitKind.HUMOR, 5)
        for i in range(HISTORY_LIMIT + 10):
            trait.record(EvolutionKind.INCREASED, f"joke {i}", NOW)
        assert len(trait.history) == HISTORY_LIMIT
        assert trait.history[-1].reason == f"joke {HISTORY_LIMIT + 9}"


# ── TraitSet ───────────────────────────────────────────────────────────


class TestTraitSet:
    def test_one_trait_per_kind(self):
        traits = TraitSet.from_base_values(all_fives(), NOW)
        assert len(traits) == len(TraitKind)
        assert [t.kind for t in traits] == list(TraitKind)

    def test_missing_kind_rejected(self):
        with pytest.raises(ValidationError):
            TraitSet([Trait(TraitKind.COURAGE, 5)])

    def test_get_by_name(self):
        traits = TraitSet.from_base_values(all_fives(), NOW)
        assert traits.get("humor").kind is TraitKind.HUMOR

    def test_balanced_description(self):
        traits = TraitSet.from_base_values(all_fives(), NOW)
        assert traits.dominant() == []
        assert traits.personality_description() == "A balanced character with many sides."

    def test_dominant_description(self):
        values = all_fives()
        values[TraitKind.COURAGE] = 9
        values[TraitKind.KINDNESS] = 7
        traits = TraitSet.from_base_values(values, NOW)
        assert [t.kind for t in traits.dominant()] == [TraitKind.COURAGE, TraitKind.KINDNESS]
        assert traits.personality_description() == "Very brave, quite kind."

    def test_total_synergy(self):
        values = all_fives()
        values[TraitKind.EMPATHY] = 10
        values[TraitKind.KINDNESS] = 10
        traits = TraitSet.from_base_values(values, NOW)
        # 0.9*1.0 + 0.6*0.5 + (0.8 + 0.8 + 0.5)*0.5
        assert traits.total_synergy() == pytest.approx(2.25)

    def test_adoption_copy_resets(self, engine):
        traits = TraitSet.from_base_values(all_fives(), NOW)
        curiosity = traits[TraitKind.CURIOSITY]
        engine.add_experience(curiosity, 100, "Big adventure")
        assert curiosity.value > 5

        fresh = traits.adoption_copy(engine)
        copy = fresh[TraitKind.CURIOSITY]
        assert copy.value == 5
        assert copy.experience == 0.0
        assert [e.kind for e in copy.history] == [EvolutionKind.RESET]

    def test_dict_round_trip(self, engine):
        traits = TraitSet.from_base_values(all_fives(), NOW)
        engine.add_experience(traits[TraitKind.HUMOR], 30, "Told a joke")
        restored = TraitSet.from_dict(traits.to_dict())
        assert restored.value_map() == traits.value_map()
        humor = restored[TraitKind.HUMOR]
        assert humor.experience == traits[TraitKind.HUMOR].experience
        assert list(humor.history) == list(traits[TraitKind.HUMOR].history)

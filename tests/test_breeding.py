from dataclasses import replace

import pytest

from menagerie.economy.breeding import breeding_cost, exhaustion_multiplier, recovery_cost
from menagerie.errors import (
    BreedingCooldown,
    BreedingLimitReached,
    InsufficientFunds,
    UnknownParent,
    ValidationError,
)
from menagerie.settings import BreedingSettings
from menagerie.state import actions as a
from menagerie.state.models import Creature, PlayerState, default_state
from menagerie.state.reducer import Reducer


def roster_state(reducer, creatures, gold=1000):
    state = replace(default_state(), player=PlayerState(level=5, gold=gold))
    return reducer.reduce(state, a.SeedCreatures(creatures=tuple(creatures), at=1.0))


def test_breeding_scenario(reducer, parents):
    state = roster_state(reducer, parents)
    before = state.creatures.last_updated

    nxt = reducer.reduce(state, a.BreedCreatures("A", "B", at=50.0))

    assert nxt.player.gold == 700
    offspring = [c for c in nxt.creatures.entries.values() if c.id not in ("A", "B")]
    assert len(offspring) == 1
    child = offspring[0]
    assert child.generation == 1
    assert child.parent_ids == ("A", "B")
    assert child.exhaustion_level == 0

    parent_a = nxt.creatures.entries["A"]
    assert parent_a.exhaustion_level == 1
    assert parent_a.stats["atk"] == 80
    assert parent_a.base_stats["atk"] == 100
    assert nxt.creatures.entries["B"].exhaustion_level == 1
    assert nxt.creatures.last_updated != before
    assert nxt.creatures.breeding_attempts == 1


def test_offspring_gets_fresh_id_and_mean_stats(reducer, parents):
    state = roster_state(reducer, parents)
    nxt = reducer.reduce(state, a.BreedCreatures("A", "B", at=50.0))
    child = nxt.creatures.entries["creature-3"]
    assert child.species == "slime"
    assert child.base_stats == {"atk": 80, "def": 60}
    assert nxt.creatures.next_id == 4


def test_insufficient_gold_changes_nothing(reducer, parents):
    state = roster_state(reducer, parents, gold=299)
    outcome = reducer.apply(state, a.BreedCreatures("A", "B", at=50.0))
    assert isinstance(outcome.error, InsufficientFunds)
    assert outcome.state is state
    assert outcome.state.creatures.breeding_attempts == 0


def test_unknown_parent(reducer, parents):
    state = roster_state(reducer, parents)
    outcome = reducer.apply(state, a.BreedCreatures("A", "Z", at=50.0))
    assert isinstance(outcome.error, UnknownParent)
    assert isinstance(outcome.error, ValidationError)
    assert outcome.state is state


def test_cannot_breed_with_itself(reducer, parents):
    state = roster_state(reducer, parents)
    outcome = reducer.apply(state, a.BreedCreatures("A", "A", at=50.0))
    assert isinstance(outcome.error, ValidationError)


def test_parents_rest_between_breeds(reducer, settings, parents):
    settings.breeding.cooldown_seconds = 900.0
    extra = Creature.wild("C", "slime", {"atk": 10, "def": 10})
    state = roster_state(reducer, parents + (extra,), gold=5000)
    state = reducer.reduce(state, a.BreedCreatures("A", "B", at=100.0))

    outcome = reducer.apply(state, a.BreedCreatures("A", "C", at=100.0 + 10))
    assert isinstance(outcome.error, BreedingCooldown)

    rested = 100.0 + settings.breeding.cooldown_seconds
    assert reducer.apply(state, a.BreedCreatures("A", "C", at=rested)).ok


def test_generation_is_one_more_than_deepest_parent(reducer):
    old = replace(Creature.wild("old", "drake", {"atk": 10}), generation=3)
    young = Creature.wild("young", "drake", {"atk": 20})
    state = roster_state(reducer, (old, young), gold=5000)

    nxt = reducer.reduce(state, a.BreedCreatures("young", "old", at=10.0))
    child = nxt.creatures.entries["creature-3"]
    assert child.generation == 4
    assert child.parent_ids == ("young", "old")
    # 300 * (1 + 0.25 * 3)
    assert nxt.player.gold == 5000 - 525


def test_last_updated_always_moves_forward(reducer, settings):
    creatures = [Creature.wild(cid, "slime", {"atk": 10}) for cid in "ABCD"]
    state = roster_state(reducer, creatures, gold=5000)
    state = reducer.reduce(state, a.BreedCreatures("A", "B", at=0.5))
    first = state.creatures.last_updated
    state = reducer.reduce(state, a.BreedCreatures("C", "D", at=0.5))
    assert state.creatures.last_updated > first


def test_stats_never_drop_below_floor():
    settings = BreedingSettings()
    assert exhaustion_multiplier(1, settings) == pytest.approx(0.8)
    assert exhaustion_multiplier(4, settings) == pytest.approx(0.2)
    assert exhaustion_multiplier(10, settings) == pytest.approx(settings.min_stat_multiplier)


def test_breeding_cost_scales_with_generation():
    settings = BreedingSettings()
    a0 = Creature.wild("a", "x", {})
    assert breeding_cost(a0, a0, settings) == 300
    assert breeding_cost(replace(a0, generation=2), a0, settings) == 450


def test_custom_offspring_factory(settings, catalog, parents):
    reducer = Reducer(settings, catalog, offspring_factory=lambda p1, p2: ("hybrid", {"atk": 1}))
    state = roster_state(reducer, parents)
    child = reducer.reduce(state, a.BreedCreatures("A", "B", at=50.0)).creatures.entries["creature-3"]
    assert child.species == "hybrid"
    assert child.stats == {"atk": 1}


def test_breeding_cost_grows_with_each_parent_use():
    settings = BreedingSettings()
    fresh = Creature.wild("a", "x", {})
    used = replace(fresh, breeding_count=2)
    # 300 * 1.2 ** 2
    assert breeding_cost(used, fresh, settings) == 432
    # 300 * 1.2 ** 3
    assert breeding_cost(used, replace(fresh, breeding_count=1), settings) == 518


def test_breeding_counts_uses_and_raises_next_price(reducer, parents):
    state = roster_state(reducer, parents, gold=5000)
    state = reducer.reduce(state, a.BreedCreatures("A", "B", at=10.0))
    assert state.creatures.entries["A"].breeding_count == 1
    assert state.creatures.entries["B"].breeding_count == 1
    assert state.creatures.entries["creature-3"].breeding_count == 0

    gold = state.player.gold
    state = reducer.reduce(state, a.BreedCreatures("A", "B", at=20.0))
    assert gold - state.player.gold == 432


@pytest.mark.parametrize(
    "limited",
    [
        replace(Creature.wild("A", "slime", {"atk": 10}), generation=5),
        replace(Creature.wild("A", "slime", {"atk": 10}), exhaustion_level=5),
    ],
)
def test_parents_at_a_breeding_limit_are_rejected(reducer, limited):
    other = Creature.wild("B", "slime", {"atk": 10})
    state = roster_state(reducer, (limited, other), gold=5000)
    outcome = reducer.apply(state, a.BreedCreatures("B", "A", at=10.0))
    assert isinstance(outcome.error, BreedingLimitReached)
    assert outcome.state is state


def test_recovery_restores_stats_for_gold(reducer, parents):
    state = roster_state(reducer, parents, gold=5000)
    state = reducer.reduce(state, a.BreedCreatures("A", "B", at=10.0))
    state = reducer.reduce(state, a.BreedCreatures("A", "B", at=20.0))
    tired = state.creatures.entries["A"]
    assert tired.exhaustion_level == 2
    assert tired.stats["atk"] == 60

    gold = state.player.gold
    partial = reducer.reduce(state, a.RecoverCreature("A", levels=1, at=30.0))
    assert gold - partial.player.gold == 100
    assert partial.creatures.entries["A"].exhaustion_level == 1
    assert partial.creatures.entries["A"].stats["atk"] == 80
    assert partial.creatures.last_updated > state.creatures.last_updated

    full = reducer.reduce(state, a.RecoverCreature("A", at=30.0))
    assert gold - full.player.gold == recovery_cost(2, BreedingSettings())
    rested = full.creatures.entries["A"]
    assert rested.exhaustion_level == 0
    assert rested.stats == rested.base_stats
    assert rested.breeding_count == 2


def test_recovery_of_rested_creature_is_a_no_op(reducer, parents):
    state = roster_state(reducer, parents)
    assert reducer.reduce(state, a.RecoverCreature("A", at=5.0)) is state


def test_recovery_without_gold_changes_nothing(reducer, parents):
    tired = replace(parents[0], exhaustion_level=3)
    state = roster_state(reducer, (tired, parents[1]), gold=299)
    outcome = reducer.apply(state, a.RecoverCreature("A", at=5.0))
    assert isinstance(outcome.error, InsufficientFunds)
    assert outcome.state is state


@pytest.mark.parametrize("creature_id, levels", [("Z", None), ("A", 0), ("A", -1)])
def test_recovery_rejects_bad_arguments(reducer, parents, creature_id, levels):
    tired = replace(parents[0], exhaustion_level=1)
    state = roster_state(reducer, (tired, parents[1]))
    outcome = reducer.apply(state, a.RecoverCreature(creature_id, levels, at=5.0))
    assert isinstance(outcome.error, ValidationError)

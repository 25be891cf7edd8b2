from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Mapping, Optional, Tuple

from ..errors import BreedingCooldown, BreedingLimitReached, InsufficientFunds, UnknownParent, ValidationError
from ..settings import BreedingSettings
from ..state.actions import BreedCreatures, RecoverCreature
from ..state.context import ReducerContext
from ..state.models import CanonicalState, Creature, CreatureRoster

logger = logging.getLogger(__name__)

# Minimum step applied to creatures.last_updated so that it always moves forward.
_TIMESTAMP_EPSILON = 1e-6


def breeding_cost(parent1: Creature, parent2: Creature, settings: BreedingSettings) -> int:
    """Gold cost of breeding two creatures.

    Deeper lineages cost more, and every previous breed of either parent
    multiplies the price by ``breeding_count_tax``.
    """
    generation = max(parent1.generation, parent2.generation)
    uses = parent1.breeding_count + parent2.breeding_count
    cost = settings.base_cost * (1 + settings.generation_cost_scale * generation)
    return int(round(cost * settings.breeding_count_tax ** uses))


def recovery_cost(levels: int, settings: BreedingSettings) -> int:
    return settings.recovery_cost_per_level * levels


def exhaustion_multiplier(exhaustion_level: int, settings: BreedingSettings) -> float:
    multiplier = 1 - settings.exhaustion_penalty_per_level * exhaustion_level
    return max(settings.min_stat_multiplier, multiplier)


def effective_stats(base_stats: Mapping[str, float], multiplier: float) -> Dict[str, float]:
    stats: Dict[str, float] = {}
    for name, value in base_stats.items():
        scaled = value * multiplier
        stats[name] = int(round(scaled)) if isinstance(value, int) else scaled
    return stats


def breeding_limit(creature: Creature, settings: BreedingSettings) -> Optional[str]:
    """Return why the creature may not breed any more, or None if it may."""
    if creature.generation >= settings.max_generation:
        return f"{creature.id} is at the maximum generation ({settings.max_generation})"
    if creature.exhaustion_level >= settings.max_exhaustion:
        return f"{creature.id} is too exhausted to breed ({creature.exhaustion_level})"
    return None


def exhaust(creature: Creature, now: float, settings: BreedingSettings) -> Creature:
    """Return the creature after one breeding use."""
    level = creature.exhaustion_level + 1
    return replace(
        creature,
        exhaustion_level=level,
        stats=effective_stats(creature.base_stats, exhaustion_multiplier(level, settings)),
        breeding_cooldown_until=now + settings.cooldown_seconds,
        breeding_count=creature.breeding_count + 1,
    )


def _fresh_id(roster: CreatureRoster) -> Tuple[str, int]:
    n = roster.next_id
    while f"creature-{n}" in roster.entries:
        n += 1
    return f"creature-{n}", n + 1


def breed_creatures(state: CanonicalState, action: BreedCreatures, ctx: ReducerContext) -> CanonicalState:
    settings = ctx.settings.breeding
    roster = state.creatures
    now = action.at or 0.0

    missing = [pid for pid in (action.parent_id1, action.parent_id2) if pid not in roster.entries]
    if missing:
        raise UnknownParent(f"Unknown parent id(s): {', '.join(map(str, missing))}")
    if action.parent_id1 == action.parent_id2:
        raise ValidationError("A creature cannot breed with itself")

    parent1 = roster.entries[action.parent_id1]
    parent2 = roster.entries[action.parent_id2]
    for parent in (parent1, parent2):
        reason = breeding_limit(parent, settings)
        if reason is not None:
            raise BreedingLimitReached(reason)
    for parent in (parent1, parent2):
        if now < parent.breeding_cooldown_until:
            raise BreedingCooldown(
                f"{parent.id} is resting for another {parent.breeding_cooldown_until - now:.0f}s"
            )

    cost = breeding_cost(parent1, parent2, settings)
    if cost > state.player.gold:
        raise InsufficientFunds(f"Breeding costs {cost} gold, have {state.player.gold}")

    species, base_stats = ctx.offspring_factory(parent1, parent2)
    offspring_id, next_id = _fresh_id(roster)
    offspring = Creature(
        id=offspring_id,
        species=species,
        generation=max(parent1.generation, parent2.generation) + 1,
        parent_ids=(parent1.id, parent2.id),
        base_stats=dict(base_stats),
        stats=dict(base_stats),
    )

    entries = dict(roster.entries)
    entries[offspring_id] = offspring
    entries[parent1.id] = exhaust(parent1, now, settings)
    entries[parent2.id] = exhaust(parent2, now, settings)

    creatures = replace(
        roster,
        entries=entries,
        last_updated=max(now, roster.last_updated + _TIMESTAMP_EPSILON),
        next_id=next_id,
        breeding_attempts=roster.breeding_attempts + 1,
    )
    logger.debug("Bred %s (gen %d) from %s and %s for %d gold",
                 offspring_id, offspring.generation, parent1.id, parent2.id, cost)
    return replace(
        state,
        player=replace(state.player, gold=state.player.gold - cost),
        creatures=creatures,
    )


def recover_creature(state: CanonicalState, action: RecoverCreature, ctx: ReducerContext) -> CanonicalState:
    """Remove exhaustion levels from a creature for gold and restore its stats."""
    settings = ctx.settings.breeding
    roster = state.creatures
    creature = roster.entries.get(action.creature_id)
    if creature is None:
        raise ValidationError(f"Unknown creature id: {action.creature_id}")
    if action.levels is not None and (
        not isinstance(action.levels, int) or isinstance(action.levels, bool) or action.levels <= 0
    ):
        raise ValidationError(f"levels must be a positive integer, got {action.levels!r}")
    if creature.exhaustion_level == 0:
        return state

    removed = creature.exhaustion_level if action.levels is None else min(action.levels, creature.exhaustion_level)
    cost = recovery_cost(removed, settings)
    if cost > state.player.gold:
        raise InsufficientFunds(f"Recovery costs {cost} gold, have {state.player.gold}")

    level = creature.exhaustion_level - removed
    entries = dict(roster.entries)
    entries[creature.id] = replace(
        creature,
        exhaustion_level=level,
        stats=effective_stats(creature.base_stats, exhaustion_multiplier(level, settings)),
    )
    now = action.at or 0.0
    logger.debug("Recovered %d exhaustion level(s) of %s for %d gold", removed, creature.id, cost)
    return replace(
        state,
        player=replace(state.player, gold=state.player.gold - cost),
        creatures=replace(
            roster,
            entries=entries,
            last_updated=max(now, roster.last_updated + _TIMESTAMP_EPSILON),
        ),
    )

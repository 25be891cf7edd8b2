"""Canonical game-state data model.

Every object here is a frozen dataclass. Mappings held by these objects are
never mutated in place: reducers build a new mapping along the changed path
and share every untouched subtree by reference, so consumers can detect
changes with an identity check.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional, Tuple

from ..settings import Settings

TRANSACTION_HISTORY_LIMIT = 10
STARTING_AREA = "starting_village"

BUY = "buy"
SELL = "sell"


@dataclass(frozen=True)
class PlayerState:
    level: int = 1
    gold: int = 0
    experience: int = 0


@dataclass(frozen=True)
class ItemStack:
    item_id: str
    quantity: int


@dataclass(frozen=True)
class Creature:
    """A creature owned by the player.

    ``base_stats`` are the creature's rested attributes; ``stats`` are the
    effective values after the exhaustion penalty.
    """

    id: str
    species: str
    generation: int = 0
    parent_ids: Tuple[str, ...] = ()
    base_stats: Mapping[str, float] = field(default_factory=dict)
    stats: Mapping[str, float] = field(default_factory=dict)
    exhaustion_level: int = 0
    breeding_cooldown_until: float = 0.0
    breeding_count: int = 0

    @classmethod
    def wild(cls, creature_id: str, species: str, stats: Mapping[str, float]) -> "Creature":
        """Build a generation-0 creature whose effective stats equal its base stats."""
        return cls(id=creature_id, species=species, base_stats=dict(stats), stats=dict(stats))


@dataclass(frozen=True)
class CreatureRoster:
    entries: Mapping[str, Creature] = field(default_factory=dict)
    last_updated: float = 0.0
    next_id: int = 1
    breeding_attempts: int = 0

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class Transaction:
    shop_id: str
    item_id: str
    quantity: int
    unit_value: float
    total_value: int
    direction: str
    timestamp: float


@dataclass(frozen=True)
class ShopState:
    discovered: Tuple[str, ...] = ()
    unlocked: Tuple[str, ...] = ()
    current_shop: Optional[str] = None
    inventories: Mapping[str, Tuple[ItemStack, ...]] = field(default_factory=dict)
    transactions: Tuple[Transaction, ...] = ()
    completed_trades: Tuple[str, ...] = ()
    trade_cooldowns: Mapping[str, float] = field(default_factory=dict)
    shop_tutorial_completed: bool = False
    trade_tutorial_completed: bool = False


@dataclass(frozen=True)
class CanonicalState:
    player: PlayerState = field(default_factory=PlayerState)
    inventory: Tuple[ItemStack, ...] = ()
    creatures: CreatureRoster = field(default_factory=CreatureRoster)
    shops: ShopState = field(default_factory=ShopState)
    story_flags: FrozenSet[str] = frozenset()
    unlocked_areas: FrozenSet[str] = frozenset()


def default_state(settings: Optional[Settings] = None) -> CanonicalState:
    """Return the fresh-game state."""
    settings = settings or Settings()
    return CanonicalState(
        player=PlayerState(
            level=settings.economy.starting_level,
            gold=settings.economy.starting_gold,
            experience=0,
        ),
        inventory=(),
        creatures=CreatureRoster(),
        shops=ShopState(),
        story_flags=frozenset(),
        unlocked_areas=frozenset({STARTING_AREA}),
    )

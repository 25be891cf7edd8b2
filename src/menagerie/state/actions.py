"""Declared actions: the only way to request a state change.

Actions that depend on time carry ``at``. The store stamps it from its clock
when the caller leaves it as None; the reducer itself never reads a clock.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .models import CanonicalState, Creature, ItemStack, Transaction


@dataclass(frozen=True, kw_only=True)
class Action:
    """Base class for all actions."""

    at: Optional[float] = None


# Core


@dataclass(frozen=True)
class SetStoryFlag(Action):
    flag: str


@dataclass(frozen=True)
class UnlockArea(Action):
    area_id: str


@dataclass(frozen=True)
class SeedCreatures(Action):
    """Hydrate an empty roster from a derived cache."""

    creatures: Tuple[Creature, ...] = ()


@dataclass(frozen=True)
class LoadState(Action):
    """Replace the whole canonical state (new game or completed load)."""

    state: CanonicalState


# Shop


@dataclass(frozen=True)
class DiscoverShop(Action):
    shop_id: str


@dataclass(frozen=True)
class UnlockShop(Action):
    shop_id: str


@dataclass(frozen=True)
class OpenShop(Action):
    shop_id: str


@dataclass(frozen=True)
class CloseShop(Action):
    pass


@dataclass(frozen=True)
class CacheShopInventory(Action):
    shop_id: str
    items: Tuple[ItemStack, ...] = ()


@dataclass(frozen=True)
class BuyItem(Action):
    shop_id: str
    item_id: str
    quantity: int
    total_cost: int


@dataclass(frozen=True)
class SellItem(Action):
    shop_id: str
    item_id: str
    quantity: int
    total_value: int


@dataclass(frozen=True)
class AddTransaction(Action):
    transaction: Transaction


@dataclass(frozen=True)
class CompleteShopTutorial(Action):
    pass


@dataclass(frozen=True)
class CompleteTradeTutorial(Action):
    pass


@dataclass(frozen=True)
class CompleteNPCTrade(Action):
    trade_id: str


@dataclass(frozen=True)
class ExecuteNPCTrade(Action):
    """Exchange items and gold with an NPC, then record the completion.

    ``rng_seed`` drives the offered-item chance rolls; the store draws it
    from its random source when the caller leaves it as None.
    """

    trade_id: str
    rng_seed: Optional[int] = None


# Breeding


@dataclass(frozen=True)
class BreedCreatures(Action):
    parent_id1: str
    parent_id2: str


@dataclass(frozen=True)
class RecoverCreature(Action):
    """Pay gold to remove exhaustion levels; ``levels=None`` removes all."""

    creature_id: str
    levels: Optional[int] = None


TIMED_ACTIONS = (
    BuyItem,
    SellItem,
    CompleteNPCTrade,
    ExecuteNPCTrade,
    BreedCreatures,
    RecoverCreature,
    SeedCreatures,
)
SEEDED_ACTIONS = (ExecuteNPCTrade,)

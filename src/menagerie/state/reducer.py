"""The single mutation point of the canonical state.

``Reducer.reduce(state, action)`` is pure and deterministic: it performs no
I/O and reads no clock. Handlers return a new top-level state and new
objects only along the path they change; untouched subtrees are returned by
reference.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Type

from ..catalog import Catalog
from ..economy import breeding, shop
from ..errors import ActionRejected, MenagerieError, UnknownActionError, ValidationError
from ..settings import Settings
from . import actions as a
from .context import OffspringFactory, ReducerContext, default_offspring
from .models import CanonicalState

logger = logging.getLogger(__name__)

Handler = Callable[[CanonicalState, a.Action, ReducerContext], CanonicalState]


@dataclass(frozen=True)
class Outcome:
    """Result of applying one action.

    ``error`` is None when the action was applied (or was a legitimate no-op);
    otherwise it is the rejection and ``state`` is the unchanged input state.
    """

    state: CanonicalState
    error: Optional[MenagerieError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def set_story_flag(state: CanonicalState, action: a.SetStoryFlag, ctx: ReducerContext) -> CanonicalState:
    if not isinstance(action.flag, str) or not action.flag:
        raise ValidationError("flag must be a non-empty string")
    if action.flag in state.story_flags:
        return state
    return replace(state, story_flags=state.story_flags | {action.flag})


def unlock_area(state: CanonicalState, action: a.UnlockArea, ctx: ReducerContext) -> CanonicalState:
    if not isinstance(action.area_id, str) or not action.area_id:
        raise ValidationError("area_id must be a non-empty string")
    if action.area_id in state.unlocked_areas:
        return state
    return replace(state, unlocked_areas=state.unlocked_areas | {action.area_id})


def seed_creatures(state: CanonicalState, action: a.SeedCreatures, ctx: ReducerContext) -> CanonicalState:
    roster = state.creatures
    if roster.entries:
        # Canonical state already holds creatures; a late seed must not clobber them.
        logger.debug("Ignoring roster seed of %d creatures; roster holds %d", len(action.creatures), len(roster))
        return state
    if not action.creatures:
        return state
    entries = {}
    for creature in action.creatures:
        if creature.id in entries:
            raise ValidationError(f"Duplicate creature id in seed: {creature.id}")
        entries[creature.id] = creature
    now = action.at or 0.0
    return replace(
        state,
        creatures=replace(
            roster,
            entries=entries,
            last_updated=max(now, roster.last_updated),
            next_id=max(roster.next_id, len(entries) + 1),
        ),
    )


def load_state(state: CanonicalState, action: a.LoadState, ctx: ReducerContext) -> CanonicalState:
    if not isinstance(action.state, CanonicalState):
        raise ValidationError("LoadState requires a CanonicalState")
    return action.state


HANDLERS: Dict[Type[a.Action], Handler] = {
    a.SetStoryFlag: set_story_flag,
    a.UnlockArea: unlock_area,
    a.SeedCreatures: seed_creatures,
    a.LoadState: load_state,
    a.AddTransaction: shop.add_transaction,
    a.DiscoverShop: shop.discover_shop,
    a.UnlockShop: shop.unlock_shop,
    a.OpenShop: shop.open_shop,
    a.CloseShop: shop.close_shop,
    a.CacheShopInventory: shop.cache_shop_inventory,
    a.BuyItem: shop.buy_item,
    a.SellItem: shop.sell_item,
    a.CompleteShopTutorial: shop.complete_shop_tutorial,
    a.CompleteTradeTutorial: shop.complete_trade_tutorial,
    a.CompleteNPCTrade: shop.complete_npc_trade,
    a.ExecuteNPCTrade: shop.execute_npc_trade,
    a.BreedCreatures: breeding.breed_creatures,
    a.RecoverCreature: breeding.recover_creature,
}


class Reducer:
    """Maps (state, action) to the next state using the registered handlers."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        catalog: Optional[Catalog] = None,
        offspring_factory: OffspringFactory = default_offspring,
        strict: Optional[bool] = None,
    ) -> None:
        settings = settings or Settings()
        self.context = ReducerContext(
            settings=settings,
            catalog=catalog or Catalog(),
            offspring_factory=offspring_factory,
        )
        self.strict = settings.strict_actions if strict is None else strict

    @property
    def settings(self) -> Settings:
        return self.context.settings

    def apply(self, state: CanonicalState, action: a.Action) -> Outcome:
        handler = HANDLERS.get(type(action))
        if handler is None:
            error = UnknownActionError(f"No handler for action {type(action).__name__}")
            if self.strict:
                raise error
            logger.warning("Ignoring unknown action %r", action)
            return Outcome(state=state, error=error)
        try:
            return Outcome(state=handler(state, action, self.context))
        except ActionRejected as rejection:
            return Outcome(state=state, error=rejection)

    def reduce(self, state: CanonicalState, action: a.Action) -> CanonicalState:
        return self.apply(state, action).state

"""Read-only queries over canonical state."""
from __future__ import annotations

from typing import List, Optional

from ..catalog import Catalog, Repeatability, requirements_met
from ..economy.shop import owned_quantity as _owned_quantity
from .models import CanonicalState, Creature, Transaction


def has_story_flag(state: CanonicalState, flag: str) -> bool:
    return flag in state.story_flags


def get_transaction_history(state: CanonicalState) -> List[Transaction]:
    """Most recent transaction first, at most ten entries."""
    return list(state.shops.transactions)


def is_shop_unlocked(state: CanonicalState, shop_id: str) -> bool:
    return shop_id in state.shops.unlocked


def is_shop_discovered(state: CanonicalState, shop_id: str) -> bool:
    return shop_id in state.shops.discovered


def can_unlock_shop(state: CanonicalState, catalog: Catalog, shop_id: str) -> bool:
    shop = catalog.get_shop(shop_id)
    return shop is not None and requirements_met(state, shop.unlock_requirements)


def get_creature(state: CanonicalState, creature_id: str) -> Optional[Creature]:
    return state.creatures.entries.get(creature_id)


def owned_quantity(state: CanonicalState, item_id: str) -> int:
    return _owned_quantity(state.inventory, item_id)


def is_trade_available(state: CanonicalState, catalog: Catalog, trade_id: str, now: float) -> bool:
    """True when CompleteNPCTrade(trade_id) would be accepted at time ``now``."""
    trade = catalog.get_trade(trade_id)
    if trade is None:
        return False
    if trade.repeatability is Repeatability.ONE_TIME and trade_id in state.shops.completed_trades:
        return False
    expiry = state.shops.trade_cooldowns.get(trade_id)
    if expiry is not None and now < expiry:
        return False
    return requirements_met(state, trade.requirements)


def can_execute_trade(state: CanonicalState, catalog: Catalog, trade_id: str, now: float) -> bool:
    """True when the trade is available and the player holds its items and gold."""
    if not is_trade_available(state, catalog, trade_id, now):
        return False
    trade = catalog.get_trade(trade_id)
    if trade.gold_required > state.player.gold:
        return False
    return all(owned_quantity(state, req.item_id) >= req.quantity for req in trade.required_items)

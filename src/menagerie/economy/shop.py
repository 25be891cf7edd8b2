"""Shop and trade reducers.

Handlers take the current state, the action and the reducer context, and
return the next state. Business-rule failures are raised as ActionRejected
subclasses; the reducer turns them into an unchanged state plus an error.
"""
from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import List, Tuple

from ..catalog import Repeatability, TradeDefinition, requirements_met
from ..errors import InsufficientFunds, InsufficientInventory, InventoryFull, TradeUnavailable, ValidationError
from ..state import actions as a
from ..state.context import ReducerContext
from ..state.models import (
    BUY,
    SELL,
    TRANSACTION_HISTORY_LIMIT,
    CanonicalState,
    ItemStack,
    ShopState,
    Transaction,
)

logger = logging.getLogger(__name__)


def _require_id(value: str, what: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{what} must be a non-empty string")
    return value


def _require_positive(value: int, what: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(f"{what} must be a positive integer, got {value!r}")
    return value


def _require_non_negative(value: int, what: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValidationError(f"{what} must be a non-negative integer, got {value!r}")
    return value


def _with_shops(state: CanonicalState, shops: ShopState) -> CanonicalState:
    return replace(state, shops=shops)


def record_transaction(shops: ShopState, tx: Transaction) -> ShopState:
    """Insert tx at the head of the history, keeping the most recent entries."""
    history = (tx,) + shops.transactions
    return replace(shops, transactions=history[:TRANSACTION_HISTORY_LIMIT])


def owned_quantity(inventory: Tuple[ItemStack, ...], item_id: str) -> int:
    return sum(stack.quantity for stack in inventory if stack.item_id == item_id)


def add_items(inventory: Tuple[ItemStack, ...], item_id: str, quantity: int, capacity: int) -> Tuple[ItemStack, ...]:
    """Merge quantity into the item's stack, or append a new stack if there is room."""
    stacks = list(inventory)
    for i, stack in enumerate(stacks):
        if stack.item_id == item_id:
            stacks[i] = replace(stack, quantity=stack.quantity + quantity)
            return tuple(stacks)
    if len(stacks) >= capacity:
        raise InventoryFull(f"Inventory holds {capacity} stacks; no room for {item_id}")
    stacks.append(ItemStack(item_id=item_id, quantity=quantity))
    return tuple(stacks)


def remove_items(inventory: Tuple[ItemStack, ...], item_id: str, quantity: int) -> Tuple[ItemStack, ...]:
    """Take quantity units of an item, draining stacks in order and dropping empty ones."""
    owned = owned_quantity(inventory, item_id)
    if owned < quantity:
        raise InsufficientInventory(f"Need {quantity} {item_id}; only {owned} owned")
    remaining = quantity
    stacks: List[ItemStack] = []
    for stack in inventory:
        if stack.item_id != item_id or remaining == 0:
            stacks.append(stack)
            continue
        taken = min(stack.quantity, remaining)
        remaining -= taken
        if stack.quantity > taken:
            stacks.append(replace(stack, quantity=stack.quantity - taken))
    return tuple(stacks)


def discover_shop(state: CanonicalState, action: a.DiscoverShop, ctx: ReducerContext) -> CanonicalState:
    shop_id = _require_id(action.shop_id, "shop_id")
    if shop_id in state.shops.discovered:
        return state
    return _with_shops(state, replace(state.shops, discovered=state.shops.discovered + (shop_id,)))


def unlock_shop(state: CanonicalState, action: a.UnlockShop, ctx: ReducerContext) -> CanonicalState:
    shop_id = _require_id(action.shop_id, "shop_id")
    shops = state.shops
    if shop_id in shops.unlocked and shop_id in shops.discovered:
        return state
    discovered = shops.discovered if shop_id in shops.discovered else shops.discovered + (shop_id,)
    unlocked = shops.unlocked if shop_id in shops.unlocked else shops.unlocked + (shop_id,)
    return _with_shops(state, replace(shops, discovered=discovered, unlocked=unlocked))


def open_shop(state: CanonicalState, action: a.OpenShop, ctx: ReducerContext) -> CanonicalState:
    shop_id = _require_id(action.shop_id, "shop_id")
    if state.shops.current_shop == shop_id:
        return state
    return _with_shops(state, replace(state.shops, current_shop=shop_id))


def close_shop(state: CanonicalState, action: a.CloseShop, ctx: ReducerContext) -> CanonicalState:
    if state.shops.current_shop is None:
        return state
    return _with_shops(state, replace(state.shops, current_shop=None))


def cache_shop_inventory(state: CanonicalState, action: a.CacheShopInventory, ctx: ReducerContext) -> CanonicalState:
    shop_id = _require_id(action.shop_id, "shop_id")
    seen = set()
    for stack in action.items:
        _require_id(stack.item_id, "item_id")
        _require_positive(stack.quantity, "stock quantity")
        if stack.item_id in seen:
            raise ValidationError(f"Duplicate stock entry for {stack.item_id}")
        seen.add(stack.item_id)
    inventories = dict(state.shops.inventories)
    inventories[shop_id] = tuple(action.items)
    return _with_shops(state, replace(state.shops, inventories=inventories))


def buy_item(state: CanonicalState, action: a.BuyItem, ctx: ReducerContext) -> CanonicalState:
    shop_id = _require_id(action.shop_id, "shop_id")
    item_id = _require_id(action.item_id, "item_id")
    quantity = _require_positive(action.quantity, "quantity")
    total_cost = _require_non_negative(action.total_cost, "total_cost")

    gold = state.player.gold
    if total_cost > gold:
        raise InsufficientFunds(f"Need {total_cost} gold to buy {quantity} {item_id}, have {gold}")
    inventory = add_items(state.inventory, item_id, quantity, ctx.settings.economy.inventory_capacity)

    tx = Transaction(
        shop_id=shop_id,
        item_id=item_id,
        quantity=quantity,
        unit_value=total_cost / quantity,
        total_value=total_cost,
        direction=BUY,
        timestamp=action.at or 0.0,
    )
    return replace(
        state,
        player=replace(state.player, gold=gold - total_cost),
        inventory=inventory,
        shops=record_transaction(state.shops, tx),
    )


def sell_item(state: CanonicalState, action: a.SellItem, ctx: ReducerContext) -> CanonicalState:
    shop_id = _require_id(action.shop_id, "shop_id")
    item_id = _require_id(action.item_id, "item_id")
    quantity = _require_positive(action.quantity, "quantity")
    total_value = _require_non_negative(action.total_value, "total_value")

    inventory = remove_items(state.inventory, item_id, quantity)
    gold = min(state.player.gold + total_value, ctx.settings.economy.gold_max)
    tx = Transaction(
        shop_id=shop_id,
        item_id=item_id,
        quantity=quantity,
        unit_value=total_value / quantity,
        total_value=total_value,
        direction=SELL,
        timestamp=action.at or 0.0,
    )
    return replace(
        state,
        player=replace(state.player, gold=gold),
        inventory=inventory,
        shops=record_transaction(state.shops, tx),
    )


def add_transaction(state: CanonicalState, action: a.AddTransaction, ctx: ReducerContext) -> CanonicalState:
    tx = action.transaction
    if not isinstance(tx, Transaction):
        raise ValidationError("transaction must be a Transaction")
    if tx.direction not in (BUY, SELL):
        raise ValidationError(f"Unknown transaction direction: {tx.direction!r}")
    _require_positive(tx.quantity, "transaction quantity")
    return _with_shops(state, record_transaction(state.shops, tx))


def complete_shop_tutorial(state: CanonicalState, action: a.CompleteShopTutorial, ctx: ReducerContext) -> CanonicalState:
    if state.shops.shop_tutorial_completed:
        return state
    return _with_shops(state, replace(state.shops, shop_tutorial_completed=True))


def complete_trade_tutorial(state: CanonicalState, action: a.CompleteTradeTutorial, ctx: ReducerContext) -> CanonicalState:
    if state.shops.trade_tutorial_completed:
        return state
    return _with_shops(state, replace(state.shops, trade_tutorial_completed=True))


def _lookup_trade(trade_id: str, ctx: ReducerContext) -> TradeDefinition:
    trade = ctx.catalog.get_trade(_require_id(trade_id, "trade_id"))
    if trade is None:
        raise ValidationError(f"Unknown trade id: {trade_id}")
    return trade


def _check_trade_open(state: CanonicalState, trade: TradeDefinition, now: float) -> None:
    expiry = state.shops.trade_cooldowns.get(trade.id)
    if expiry is not None and now < expiry:
        raise TradeUnavailable(f"Trade {trade.id} is on cooldown for another {expiry - now:.0f}s")
    if not requirements_met(state, trade.requirements):
        raise TradeUnavailable(f"Requirements for trade {trade.id} are not met")


def _mark_trade_completed(shops: ShopState, trade: TradeDefinition, now: float) -> ShopState:
    completed = shops.completed_trades
    if trade.id not in completed:
        completed = completed + (trade.id,)
    cooldowns = shops.trade_cooldowns
    if trade.repeatability is not Repeatability.ONE_TIME:
        cooldowns = dict(cooldowns)
        cooldowns[trade.id] = now + trade.effective_cooldown
    return replace(shops, completed_trades=completed, trade_cooldowns=cooldowns)


def complete_npc_trade(state: CanonicalState, action: a.CompleteNPCTrade, ctx: ReducerContext) -> CanonicalState:
    trade = _lookup_trade(action.trade_id, ctx)
    if trade.repeatability is Repeatability.ONE_TIME and trade.id in state.shops.completed_trades:
        logger.debug("One-time trade %s already completed; ignoring", trade.id)
        return state

    now = action.at or 0.0
    _check_trade_open(state, trade, now)
    return _with_shops(state, _mark_trade_completed(state.shops, trade, now))


def execute_npc_trade(state: CanonicalState, action: a.ExecuteNPCTrade, ctx: ReducerContext) -> CanonicalState:
    """Perform the whole exchange of an NPC trade, or nothing.

    Required items and gold are taken, each offered item is granted when its
    chance roll succeeds, offered gold is credited up to the gold cap, and the
    completion and cooldown are recorded.
    """
    trade = _lookup_trade(action.trade_id, ctx)
    if trade.repeatability is Repeatability.ONE_TIME and trade.id in state.shops.completed_trades:
        raise TradeUnavailable(f"Trade {trade.id} can only be completed once")

    now = action.at or 0.0
    _check_trade_open(state, trade, now)

    gold = state.player.gold
    if trade.gold_required > gold:
        raise InsufficientFunds(f"Trade {trade.id} needs {trade.gold_required} gold, have {gold}")

    inventory = state.inventory
    for required in trade.required_items:
        owned = owned_quantity(inventory, required.item_id)
        if owned < required.quantity:
            raise InsufficientInventory(f"Trade {trade.id} needs {required.quantity} {required.item_id}, have {owned}")
        if required.consumed:
            inventory = remove_items(inventory, required.item_id, required.quantity)

    rng = random.Random(action.rng_seed)
    capacity = ctx.settings.economy.inventory_capacity
    granted = []
    for offer in trade.offered_items:
        if rng.random() <= offer.chance:
            inventory = add_items(inventory, offer.item_id, offer.quantity, capacity)
            granted.append(offer.item_id)

    gold = min(gold - trade.gold_required + trade.gold_offered, ctx.settings.economy.gold_max)
    logger.debug("Executed trade %s; granted %s", trade.id, granted or "nothing")
    return replace(
        state,
        player=replace(state.player, gold=gold),
        inventory=inventory,
        shops=_mark_trade_completed(state.shops, trade, now),
    )

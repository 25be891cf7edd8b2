from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from ..errors import CorruptRecord
from ..settings import EconomySettings
from ..state.models import (
    TRANSACTION_HISTORY_LIMIT,
    CanonicalState,
    Creature,
    CreatureRoster,
    ItemStack,
    PlayerState,
    ShopState,
    Transaction,
)
from .migrations import CURRENT_VERSION, migrate

logger = logging.getLogger(__name__)


class PersistedRecord(BaseModel):
    """Versioned envelope around a serialized canonical state."""

    version: int = Field(CURRENT_VERSION, ge=1, description="Schema version of the payload")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Serialized canonical state")


# Encoding


def _stacks_to_list(stacks) -> list:
    return [{"itemId": s.item_id, "quantity": s.quantity} for s in stacks]


def _creature_to_dict(c: Creature) -> Dict[str, Any]:
    return {
        "id": c.id,
        "species": c.species,
        "generation": c.generation,
        "parentIds": list(c.parent_ids),
        "baseStats": dict(c.base_stats),
        "stats": dict(c.stats),
        "exhaustionLevel": c.exhaustion_level,
        "breedingCooldownUntil": c.breeding_cooldown_until,
        "breedingCount": c.breeding_count,
    }


def _transaction_to_dict(tx: Transaction) -> Dict[str, Any]:
    return {
        "shopId": tx.shop_id,
        "itemId": tx.item_id,
        "quantity": tx.quantity,
        "unitValue": tx.unit_value,
        "totalValue": tx.total_value,
        "direction": tx.direction,
        "timestamp": tx.timestamp,
    }


def snapshot(state: CanonicalState) -> Dict[str, Any]:
    """Return a JSON-serializable payload for the state."""
    shops = state.shops
    return {
        "player": {
            "level": state.player.level,
            "gold": state.player.gold,
            "experience": state.player.experience,
        },
        "inventory": _stacks_to_list(state.inventory),
        "creatures": {
            "entries": {cid: _creature_to_dict(c) for cid, c in state.creatures.entries.items()},
            "lastUpdated": state.creatures.last_updated,
            "nextId": state.creatures.next_id,
            "breedingAttempts": state.creatures.breeding_attempts,
        },
        "shops": {
            "discovered": list(shops.discovered),
            "unlocked": list(shops.unlocked),
            "currentShop": shops.current_shop,
            "inventories": {sid: _stacks_to_list(stock) for sid, stock in shops.inventories.items()},
            "transactions": [_transaction_to_dict(tx) for tx in shops.transactions],
            "completedTrades": list(shops.completed_trades),
            "tradeCooldowns": dict(shops.trade_cooldowns),
            "shopTutorialCompleted": shops.shop_tutorial_completed,
            "tradeTutorialCompleted": shops.trade_tutorial_completed,
        },
        "storyFlags": sorted(state.story_flags),
        "unlockedAreas": sorted(state.unlocked_areas),
    }


def serialize(state: CanonicalState) -> PersistedRecord:
    return PersistedRecord(version=CURRENT_VERSION, payload=snapshot(state))


def encode_record(record: PersistedRecord) -> str:
    """Encode a record to a pretty-printed JSON string."""
    return json.dumps(record.model_dump(), ensure_ascii=False, sort_keys=True, indent=2)


# Decoding


def _require_int(value: Any, context: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise CorruptRecord(f"{context} must be an integer.")
    return value


def _require_non_negative(value: Any, context: str) -> int:
    value = _require_int(value, context)
    if value < 0:
        raise CorruptRecord(f"{context} must be non-negative.")
    return value


def _require_number(value: Any, context: str) -> Union[int, float]:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise CorruptRecord(f"{context} must be a number.")
    return value


def _stats_from_dict(values: Any, context: str) -> Dict[str, Union[int, float]]:
    if not isinstance(values, Mapping):
        raise CorruptRecord(f"{context} must be a mapping.")
    return {str(name): _require_number(v, f"{context}.{name}") for name, v in values.items()}


def _unique(values: Any, context: str) -> tuple:
    if not isinstance(values, list):
        raise CorruptRecord(f"{context} must be a list.")
    seen = []
    for v in values:
        if not isinstance(v, str):
            raise CorruptRecord(f"{context} entries must be strings.")
        if v not in seen:
            seen.append(v)
    return tuple(seen)


def _stacks_from_list(values: Any, context: str) -> tuple:
    if not isinstance(values, list):
        raise CorruptRecord(f"{context} must be a list.")
    stacks = []
    seen = set()
    for entry in values:
        item_id = str(entry["itemId"])
        if item_id in seen:
            raise CorruptRecord(f"{context} holds more than one stack of {item_id}.")
        seen.add(item_id)
        quantity = _require_int(entry["quantity"], f"{context} quantity")
        if quantity <= 0:
            raise CorruptRecord(f"{context} quantities must be positive.")
        stacks.append(ItemStack(item_id=item_id, quantity=quantity))
    return tuple(stacks)


def _creature_from_dict(data: Mapping[str, Any]) -> Creature:
    parent_ids = tuple(data.get("parentIds", []))
    if len(parent_ids) not in (0, 2):
        raise CorruptRecord(f"Creature {data.get('id')} must have zero or two parents.")
    return Creature(
        id=str(data["id"]),
        species=str(data["species"]),
        generation=_require_non_negative(data["generation"], "creature.generation"),
        parent_ids=parent_ids,
        base_stats=_stats_from_dict(data["baseStats"], "creature.baseStats"),
        stats=_stats_from_dict(data["stats"], "creature.stats"),
        exhaustion_level=_require_non_negative(data["exhaustionLevel"], "creature.exhaustionLevel"),
        breeding_cooldown_until=_require_number(data["breedingCooldownUntil"], "creature.breedingCooldownUntil"),
        breeding_count=_require_non_negative(data["breedingCount"], "creature.breedingCount"),
    )


def _transaction_from_dict(data: Mapping[str, Any]) -> Transaction:
    return Transaction(
        shop_id=str(data["shopId"]),
        item_id=str(data["itemId"]),
        quantity=_require_int(data["quantity"], "transaction.quantity"),
        unit_value=_require_number(data["unitValue"], "transaction.unitValue"),
        total_value=_require_int(data["totalValue"], "transaction.totalValue"),
        direction=str(data["direction"]),
        timestamp=_require_number(data["timestamp"], "transaction.timestamp"),
    )


def _state_from_payload(payload: Mapping[str, Any], gold_max: int) -> CanonicalState:
    player_data = payload.get("player")
    if not isinstance(player_data, Mapping):
        raise CorruptRecord("Save data is missing the player section.")
    if "gold" not in player_data or "level" not in player_data:
        raise CorruptRecord("player.gold and player.level are required.")
    gold = _require_non_negative(player_data["gold"], "player.gold")
    if gold > gold_max:
        raise CorruptRecord(f"player.gold {gold} exceeds the cap of {gold_max}.")
    player = PlayerState(
        level=_require_int(player_data["level"], "player.level"),
        gold=gold,
        experience=_require_non_negative(player_data.get("experience", 0), "player.experience"),
    )

    roster_data = payload["creatures"]
    creatures = CreatureRoster(
        entries={cid: _creature_from_dict(c) for cid, c in roster_data["entries"].items()},
        last_updated=_require_number(roster_data["lastUpdated"], "creatures.lastUpdated"),
        next_id=_require_int(roster_data["nextId"], "creatures.nextId"),
        breeding_attempts=_require_non_negative(roster_data["breedingAttempts"], "creatures.breedingAttempts"),
    )

    shops_data = payload["shops"]
    shops = ShopState(
        discovered=_unique(shops_data["discovered"], "shops.discovered"),
        unlocked=_unique(shops_data["unlocked"], "shops.unlocked"),
        current_shop=shops_data["currentShop"],
        inventories={
            sid: _stacks_from_list(stock, f"shops.inventories[{sid}]")
            for sid, stock in shops_data["inventories"].items()
        },
        transactions=tuple(
            _transaction_from_dict(tx) for tx in shops_data["transactions"]
        )[:TRANSACTION_HISTORY_LIMIT],
        completed_trades=_unique(shops_data["completedTrades"], "shops.completedTrades"),
        trade_cooldowns={
            str(tid): _require_number(expiry, f"shops.tradeCooldowns[{tid}]")
            for tid, expiry in shops_data["tradeCooldowns"].items()
        },
        shop_tutorial_completed=bool(shops_data["shopTutorialCompleted"]),
        trade_tutorial_completed=bool(shops_data["tradeTutorialCompleted"]),
    )

    return CanonicalState(
        player=player,
        inventory=_stacks_from_list(payload.get("inventory", []), "inventory"),
        creatures=creatures,
        shops=shops,
        story_flags=frozenset(_unique(payload.get("storyFlags", []), "storyFlags")),
        unlocked_areas=frozenset(_unique(payload.get("unlockedAreas", []), "unlockedAreas")),
    )


def deserialize(
    record: Union[PersistedRecord, Mapping[str, Any]],
    gold_max: Optional[int] = None,
) -> CanonicalState:
    """Rebuild a CanonicalState from a record, migrating older schemas first.

    ``gold_max`` defaults to the stock economy cap. Raises CorruptRecord on
    any malformed input; never returns a partial state.
    """
    if gold_max is None:
        gold_max = EconomySettings().gold_max
    if not isinstance(record, PersistedRecord):
        try:
            record = PersistedRecord.model_validate(record)
        except ValidationError as e:
            raise CorruptRecord(f"Invalid save record: {e}") from e
    try:
        payload = migrate(record.payload, from_version=record.version)
        return _state_from_payload(payload, gold_max)
    except CorruptRecord:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CorruptRecord(f"Save payload is malformed: {e!r}") from e


def decode_record(text: str) -> PersistedRecord:
    """Decode JSON text into a PersistedRecord envelope."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CorruptRecord(f"Invalid JSON: {e}") from e
    try:
        return PersistedRecord.model_validate(data)
    except ValidationError as e:
        raise CorruptRecord(f"Invalid save record: {e}") from e

import json
from dataclasses import replace

import pytest

from menagerie.errors import CorruptRecord
from menagerie.persistence import (
    CURRENT_VERSION,
    PersistedRecord,
    decode_record,
    deserialize,
    encode_record,
    migrate,
    serialize,
)
from menagerie.persistence.migrations import default_shops_payload
from menagerie.state import actions as a
from menagerie.state.models import (
    BUY,
    SELL,
    CanonicalState,
    Creature,
    CreatureRoster,
    ItemStack,
    PlayerState,
    ShopState,
    Transaction,
    default_state,
)


def played_state(reducer, parents):
    state = replace(default_state(), player=PlayerState(level=4, gold=2000, experience=55))
    for action in (
        a.SeedCreatures(creatures=parents, at=1.0),
        a.BreedCreatures("A", "B", at=2.0),
        a.BuyItem("mistwood_general_store", "potion", 3, 30, at=3.0),
        a.SellItem("mistwood_general_store", "potion", 1, 8, at=4.0),
        a.UnlockShop("mistwood_general_store"),
        a.OpenShop("mistwood_general_store"),
        a.CacheShopInventory("mistwood_general_store", items=(ItemStack("ether", 2),)),
        a.CompleteNPCTrade("herbalist_slime_trade", at=5.0),
        a.CompleteShopTutorial(),
        a.SetStoryFlag("met_elder"),
        a.UnlockArea("crystal_caves"),
    ):
        state = reducer.reduce(state, action)
    return state


def test_round_trip_is_lossless(reducer, parents):
    state = played_state(reducer, parents)
    restored = deserialize(decode_record(encode_record(serialize(state))))
    assert restored == state


def test_encoded_record_is_versioned_json():
    text = encode_record(serialize(default_state()))
    data = json.loads(text)
    assert data["version"] == CURRENT_VERSION
    assert data["payload"]["player"]["gold"] == 100
    assert data["payload"]["unlockedAreas"] == ["starting_village"]


def test_v2_record_without_shops_gets_defaults():
    payload = serialize(default_state()).payload
    del payload["shops"]
    state = deserialize({"version": 2, "payload": payload})
    assert state.shops.transactions == ()
    assert state.shops.discovered == ()
    assert state.shops.current_shop is None
    assert not state.shops.shop_tutorial_completed


def test_v1_record_is_migrated_in_order():
    v1 = {
        "player": {"level": 2, "gold": 50},
        "inventory": [{"itemId": "potion", "quantity": 1}],
        "creatures": {"entries": {"c1": {"id": "c1", "species": "slime", "stats": {"atk": 7}}}},
        "storyFlags": ["intro_done"],
        "unlockedAreas": ["starting_village"],
    }
    state = deserialize({"version": 1, "payload": v1})
    creature = state.creatures.entries["c1"]
    assert creature.generation == 0
    assert creature.parent_ids == ()
    assert creature.base_stats == {"atk": 7}
    assert state.creatures.next_id == 2
    assert state.shops.transactions == ()
    assert state.story_flags == {"intro_done"}


def test_migrate_does_not_mutate_input():
    payload = {"player": {"level": 1, "gold": 0}, "creatures": {"entries": {}}}
    migrated = migrate(payload, from_version=1)
    assert "shops" not in payload
    assert migrated["shops"] == default_shops_payload()


def test_newer_version_is_rejected():
    record = serialize(default_state()).model_dump()
    record["version"] = CURRENT_VERSION + 1
    with pytest.raises(CorruptRecord):
        deserialize(record)


def test_missing_gold_is_corrupt():
    payload = serialize(default_state()).payload
    del payload["player"]["gold"]
    with pytest.raises(CorruptRecord):
        deserialize(PersistedRecord(version=CURRENT_VERSION, payload=payload))


@pytest.mark.parametrize(
    "mutate",
    [
        lambda p: p["player"].__setitem__("gold", -1),
        lambda p: p["player"].__setitem__("level", "high"),
        lambda p: p.__setitem__("inventory", [{"itemId": "x", "quantity": 0}]),
        lambda p: p["creatures"].pop("entries"),
        lambda p: p.pop("player"),
    ],
)
def test_malformed_payloads_are_corrupt(mutate):
    payload = serialize(default_state()).payload
    mutate(payload)
    with pytest.raises(CorruptRecord):
        deserialize({"version": CURRENT_VERSION, "payload": payload})


def test_invalid_json_is_corrupt():
    with pytest.raises(CorruptRecord):
        decode_record("{not json")
    with pytest.raises(CorruptRecord):
        decode_record(json.dumps({"version": 0, "payload": {}}))


def test_round_trip_with_every_shop_field_populated():
    creature = replace(
        Creature.wild("c1", "drake", {"atk": 12, "spd": 3.5}),
        generation=2,
        parent_ids=("p1", "p2"),
        stats={"atk": 10, "spd": 2.8},
        exhaustion_level=1,
        breeding_cooldown_until=1_900.5,
        breeding_count=3,
    )
    state = CanonicalState(
        player=PlayerState(level=9, gold=999_999, experience=420),
        inventory=(ItemStack("potion", 4), ItemStack("slime_gel", 1)),
        creatures=CreatureRoster(entries={"c1": creature}, last_updated=1_000.25, next_id=7, breeding_attempts=5),
        shops=ShopState(
            discovered=("mistwood_general_store", "oakwood_weapon_emporium"),
            unlocked=("mistwood_general_store",),
            current_shop="mistwood_general_store",
            inventories={
                "mistwood_general_store": (ItemStack("potion", 10), ItemStack("ether", 2)),
                "oakwood_weapon_emporium": (ItemStack("iron_sword", 1),),
            },
            transactions=(
                Transaction("mistwood_general_store", "potion", 3, 2.5, 7, SELL, 900.0),
                Transaction("mistwood_general_store", "ether", 1, 40.0, 40, BUY, 800.0),
            ),
            completed_trades=("elder_lost_charm", "collector_crystal_trade"),
            trade_cooldowns={"collector_crystal_trade": 87_400.0},
            shop_tutorial_completed=True,
            trade_tutorial_completed=True,
        ),
        story_flags=frozenset({"met_elder", "quest:merchant_rescue"}),
        unlocked_areas=frozenset({"starting_village", "crystal_caves"}),
    )
    restored = deserialize(decode_record(encode_record(serialize(state))))
    assert restored == state
    assert restored.creatures.entries["c1"].breeding_count == 3


def creature_payload():
    state = replace(default_state(), creatures=CreatureRoster(
        entries={"c1": Creature.wild("c1", "slime", {"atk": 7})}, next_id=2))
    state = replace(state, shops=replace(
        state.shops,
        transactions=(Transaction("s", "potion", 1, 5.0, 5, BUY, 10.0),),
        trade_cooldowns={"herbalist_slime_trade": 10.0},
    ))
    return serialize(state).payload


def test_v3_record_gets_breeding_counts():
    payload = creature_payload()
    for creature in payload["creatures"]["entries"].values():
        del creature["breedingCount"]
    state = deserialize({"version": 3, "payload": payload})
    assert state.creatures.entries["c1"].breeding_count == 0


@pytest.mark.parametrize("section", ["inventory", "shop"])
def test_duplicate_item_stacks_are_corrupt(section):
    payload = serialize(default_state()).payload
    stacks = [{"itemId": "potion", "quantity": 1}, {"itemId": "potion", "quantity": 2}]
    if section == "inventory":
        payload["inventory"] = stacks
    else:
        payload["shops"]["inventories"]["mistwood_general_store"] = stacks
    with pytest.raises(CorruptRecord):
        deserialize({"version": CURRENT_VERSION, "payload": payload})


@pytest.mark.parametrize(
    "mutate",
    [
        lambda p: p["creatures"]["entries"]["c1"]["baseStats"].__setitem__("atk", "strong"),
        lambda p: p["creatures"]["entries"]["c1"]["stats"].__setitem__("atk", None),
        lambda p: p["creatures"]["entries"]["c1"].__setitem__("breedingCooldownUntil", "soon"),
        lambda p: p["creatures"]["entries"]["c1"].__setitem__("breedingCount", -1),
        lambda p: p["creatures"].__setitem__("lastUpdated", "yesterday"),
        lambda p: p["shops"]["transactions"][0].__setitem__("unitValue", "5"),
        lambda p: p["shops"]["transactions"][0].__setitem__("timestamp", True),
        lambda p: p["shops"]["tradeCooldowns"].__setitem__("herbalist_slime_trade", [10.0]),
    ],
)
def test_non_numeric_values_are_corrupt(mutate):
    payload = creature_payload()
    mutate(payload)
    with pytest.raises(CorruptRecord):
        deserialize({"version": CURRENT_VERSION, "payload": payload})


def test_gold_above_cap_is_corrupt():
    payload = serialize(default_state()).payload
    payload["player"]["gold"] = 1_000_000
    with pytest.raises(CorruptRecord):
        deserialize({"version": CURRENT_VERSION, "payload": payload})

    payload["player"]["gold"] = 600
    with pytest.raises(CorruptRecord):
        deserialize({"version": CURRENT_VERSION, "payload": payload}, gold_max=500)
    assert deserialize({"version": CURRENT_VERSION, "payload": payload}, gold_max=600).player.gold == 600

"""Forward migrations for persisted payloads.

Each step is a pure function taking a payload of version v and returning an
equivalent payload of version v + 1 with defaults for the fields introduced
in that version. Steps are applied in order and never skipped.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict

from ..errors import CorruptRecord

logger = logging.getLogger(__name__)

# Increment when making schema changes, and register the step below.
CURRENT_VERSION = 4

Payload = Dict[str, Any]
Migration = Callable[[Payload], Payload]


def default_shops_payload() -> Payload:
    return {
        "discovered": [],
        "unlocked": [],
        "currentShop": None,
        "inventories": {},
        "transactions": [],
        "completedTrades": [],
        "tradeCooldowns": {},
        "shopTutorialCompleted": False,
        "tradeTutorialCompleted": False,
    }


def migrate_v1_to_v2(payload: Payload) -> Payload:
    """Version 2 introduced creature lineage, exhaustion and roster counters."""
    data = copy.deepcopy(payload)
    roster = data.setdefault("creatures", {})
    entries = roster.setdefault("entries", {})
    for creature in entries.values():
        stats = creature.get("stats", {})
        creature.setdefault("generation", 0)
        creature.setdefault("parentIds", [])
        creature.setdefault("baseStats", dict(stats))
        creature.setdefault("exhaustionLevel", 0)
        creature.setdefault("breedingCooldownUntil", 0.0)
    roster.setdefault("lastUpdated", 0.0)
    roster.setdefault("nextId", len(entries) + 1)
    roster.setdefault("breedingAttempts", 0)
    return data


def migrate_v2_to_v3(payload: Payload) -> Payload:
    """Version 3 introduced the shop/trade state."""
    data = copy.deepcopy(payload)
    shops = data.get("shops")
    if not isinstance(shops, dict):
        data["shops"] = default_shops_payload()
    else:
        data["shops"] = {**default_shops_payload(), **shops}
    return data


def migrate_v3_to_v4(payload: Payload) -> Payload:
    """Version 4 counts how many times each creature has bred."""
    data = copy.deepcopy(payload)
    for creature in data.get("creatures", {}).get("entries", {}).values():
        creature.setdefault("breedingCount", 0)
    return data


MIGRATIONS: Dict[int, Migration] = {
    1: migrate_v1_to_v2,
    2: migrate_v2_to_v3,
    3: migrate_v3_to_v4,
}


def migrate(payload: Payload, from_version: int, to_version: int = CURRENT_VERSION) -> Payload:
    """Migrate a payload between schema versions, one step at a time."""
    if from_version == to_version:
        return payload
    if from_version > to_version:
        raise CorruptRecord(
            f"Save schema version {from_version} is newer than supported {to_version}."
        )
    if from_version < 1:
        raise CorruptRecord(f"Invalid save schema version {from_version}")

    data = payload
    for version in range(from_version, to_version):
        step = MIGRATIONS.get(version)
        if step is None:
            raise CorruptRecord(f"No migration registered from version {version}")
        logger.info("Migrating save payload v%d -> v%d", version, version + 1)
        data = step(data)
    return data

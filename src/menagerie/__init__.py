"""
Menagerie game-state engine.

Headless core of a creature-collecting RPG client:
- Canonical immutable-update state mutated only through declared actions
- Shop, NPC trade and breeding reducers that keep the economy consistent
- One-shot hydration guard for derived roster caches
- Versioned save records with forward migrations and debounced autosave

UI layers should dispatch actions to the store and observe its events.
"""
from .catalog import Catalog, load_catalog
from .errors import (
    ActionRejected,
    BreedingCooldown,
    BreedingLimitReached,
    CorruptRecord,
    InsufficientFunds,
    InsufficientInventory,
    InventoryFull,
    MenagerieError,
    PersistenceError,
    PersistenceWriteFailure,
    TradeUnavailable,
    UnknownActionError,
    UnknownParent,
    ValidationError,
)
from .settings import Settings
from .state.models import CanonicalState, Creature, ItemStack, Transaction, default_state
from .state.reducer import Outcome, Reducer
from .state.store import GameStore
from .session import GameSession

__version__ = "0.1.0"

__all__ = [
    "Catalog",
    "load_catalog",
    "ActionRejected",
    "BreedingCooldown",
    "BreedingLimitReached",
    "CorruptRecord",
    "InsufficientFunds",
    "InsufficientInventory",
    "InventoryFull",
    "MenagerieError",
    "PersistenceError",
    "PersistenceWriteFailure",
    "TradeUnavailable",
    "UnknownActionError",
    "UnknownParent",
    "ValidationError",
    "Settings",
    "CanonicalState",
    "Creature",
    "ItemStack",
    "Transaction",
    "default_state",
    "Outcome",
    "Reducer",
    "GameStore",
    "GameSession",
]

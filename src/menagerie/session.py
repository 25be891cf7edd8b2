from __future__ import annotations

import logging
import random
import time
from typing import Callable, List, Optional

from .catalog import Catalog, load_catalog
from .persistence.autosave import AutosaveScheduler
from .persistence.manager import SaveManager
from .persistence.storage import FileStorage, KeyValueStorage
from .settings import Settings
from .state import actions as a
from .state import selectors
from .state.context import OffspringFactory, default_offspring
from .state.models import CanonicalState, Transaction, default_state
from .state.reducer import Outcome, Reducer
from .state.store import GameStore

logger = logging.getLogger(__name__)


class GameSession:
    """Wires settings, catalog, store, save slots and autosave together.

    Life-cycle:
    - Construct (defaults: packaged settings and catalog, file storage)
    - ``await load()`` to restore the manual slot (or start fresh)
    - call the action methods; each returns the dispatch Outcome
    - ``await save()`` for a manual save; autosave runs on its own
    - ``await close()`` flushes pending changes
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        catalog: Optional[Catalog] = None,
        storage: Optional[KeyValueStorage] = None,
        clock: Callable[[], float] = time.time,
        offspring_factory: OffspringFactory = default_offspring,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings or Settings.load()
        self.catalog = catalog if catalog is not None else load_catalog()
        self.reducer = Reducer(self.settings, self.catalog, offspring_factory)
        self.store = GameStore(self.reducer, clock=clock, rng=rng)
        self.saves = SaveManager(storage or FileStorage.from_settings(self.settings), self.settings)
        self.autosave = AutosaveScheduler(self.store, self.saves, self.settings)

    @property
    def state(self) -> CanonicalState:
        return self.store.state

    async def load(self, slot: Optional[str] = None) -> CanonicalState:
        return await self.saves.load_into(self.store, slot)

    async def save(self, slot: Optional[str] = None) -> None:
        await self.saves.save(self.store.state, slot)

    async def close(self) -> None:
        await self.autosave.flush()
        await self.autosave.wait_idle()
        self.autosave.close()

    def new_game(self) -> Outcome:
        return self.store.dispatch(a.LoadState(state=default_state(self.settings)))

    # Actions

    def discover_shop(self, shop_id: str) -> Outcome:
        return self.store.dispatch(a.DiscoverShop(shop_id))

    def unlock_shop(self, shop_id: str) -> Outcome:
        return self.store.dispatch(a.UnlockShop(shop_id))

    def open_shop(self, shop_id: str) -> Outcome:
        return self.store.dispatch(a.OpenShop(shop_id))

    def close_shop(self) -> Outcome:
        return self.store.dispatch(a.CloseShop())

    def buy_item(self, shop_id: str, item_id: str, quantity: int, total_cost: int) -> Outcome:
        return self.store.dispatch(a.BuyItem(shop_id, item_id, quantity, total_cost))

    def sell_item(self, shop_id: str, item_id: str, quantity: int, total_value: int) -> Outcome:
        return self.store.dispatch(a.SellItem(shop_id, item_id, quantity, total_value))

    def add_transaction(self, tx: Transaction) -> Outcome:
        return self.store.dispatch(a.AddTransaction(tx))

    def complete_shop_tutorial(self) -> Outcome:
        return self.store.dispatch(a.CompleteShopTutorial())

    def complete_trade_tutorial(self) -> Outcome:
        return self.store.dispatch(a.CompleteTradeTutorial())

    def complete_npc_trade(self, trade_id: str) -> Outcome:
        return self.store.dispatch(a.CompleteNPCTrade(trade_id))

    def execute_npc_trade(self, trade_id: str) -> Outcome:
        return self.store.dispatch(a.ExecuteNPCTrade(trade_id))

    def breed_creatures(self, parent_id1: str, parent_id2: str) -> Outcome:
        return self.store.dispatch(a.BreedCreatures(parent_id1, parent_id2))

    def recover_creature(self, creature_id: str, levels: Optional[int] = None) -> Outcome:
        return self.store.dispatch(a.RecoverCreature(creature_id, levels))

    def set_story_flag(self, flag: str) -> Outcome:
        return self.store.dispatch(a.SetStoryFlag(flag))

    def unlock_area(self, area_id: str) -> Outcome:
        return self.store.dispatch(a.UnlockArea(area_id))

    # Queries

    def has_story_flag(self, flag: str) -> bool:
        return selectors.has_story_flag(self.state, flag)

    def get_transaction_history(self) -> List[Transaction]:
        return selectors.get_transaction_history(self.state)

    def is_shop_unlocked(self, shop_id: str) -> bool:
        return selectors.is_shop_unlocked(self.state, shop_id)

    def is_trade_available(self, trade_id: str) -> bool:
        return selectors.is_trade_available(self.state, self.catalog, trade_id, self.store.clock())

    def can_execute_trade(self, trade_id: str) -> bool:
        return selectors.can_execute_trade(self.state, self.catalog, trade_id, self.store.clock())

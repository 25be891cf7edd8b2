from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Mapping, Optional, Tuple

from ..events import Event
from ..state.actions import SeedCreatures
from ..state.models import Creature
from ..state.store import GameStore

logger = logging.getLogger(__name__)


class RosterCache:
    """Read-oriented view of the creature roster.

    The cache may be created with a local seed, e.g. a capture list freshly
    loaded from another source. ``hydrate`` pushes that seed into canonical
    state only when the canonical roster is empty, and only once. After that
    the cache just mirrors canonical state and never writes back.

    Usage:
        cache = RosterCache(store, seed=captured)
        cache.hydrate()          # inside a running event loop
        cache.view["creature-1"]
    """

    def __init__(self, store: GameStore, seed: Iterable[Creature] = ()) -> None:
        self._store = store
        self._seed: Tuple[Creature, ...] = tuple(seed)
        self._hydrated = False
        self._pending: Optional[asyncio.Handle] = None
        self._view: Mapping[str, Creature] = store.state.creatures.entries
        self._unsubscribe = store.subscribe(self._on_state_changed)

    @property
    def view(self) -> Mapping[str, Creature]:
        return self._view

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    def __len__(self) -> int:
        return len(self._view)

    def hydrate(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> bool:
        """Seed canonical state if and only if its roster is empty.

        The seed is dispatched on the next event-loop tick so it never runs
        inside another component's update pass. Returns True when a seed was
        scheduled.
        """
        if self._hydrated:
            return False

        canonical = self._store.state.creatures
        if len(canonical) > 0:
            logger.debug("Canonical roster holds %d creatures; discarding local seed of %d",
                         len(canonical), len(self._seed))
            self._hydrated = True
            self._seed = ()
            self._view = canonical.entries
            return False
        if not self._seed:
            self._hydrated = True
            return False

        # Raises outside a running loop, leaving the cache free to hydrate later.
        loop = loop or asyncio.get_running_loop()
        self._hydrated = True
        seed, self._seed = self._seed, ()
        self._pending = loop.call_soon(self._push_seed, seed)
        logger.debug("Scheduled roster hydration with %d creatures", len(seed))
        return True

    def close(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._unsubscribe()

    def _push_seed(self, seed: Tuple[Creature, ...]) -> None:
        self._pending = None
        self._store.dispatch(SeedCreatures(creatures=seed))

    def _on_state_changed(self, event: Event) -> None:
        current = event.payload["current"].creatures
        if current.entries is not self._view:
            self._view = current.entries

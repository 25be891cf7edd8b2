from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from ..errors import PersistenceWriteFailure
from ..settings import Settings
from ..state.models import CanonicalState
from ..state.store import GameStore
from .manager import SaveManager

logger = logging.getLogger(__name__)

WATCHED_SELECTORS = (
    lambda s: s.player,
    lambda s: s.inventory,
    lambda s: s.creatures.last_updated,
    lambda s: s.shops,
    lambda s: s.story_flags,
    lambda s: s.unlocked_areas,
)


class AutosaveScheduler:
    """Debounced autosave driven by changes to watched state.

    Every watched change marks the store dirty and restarts a single timer;
    a burst of mutations inside the window therefore produces one write.
    Writes run as tasks, so dispatching never waits on storage, and they are
    serialized: a save that fires while another is in flight waits for it.
    A failed write is logged and leaves the store dirty; the next mutation
    schedules the retry.
    """

    def __init__(
        self,
        store: GameStore,
        manager: SaveManager,
        settings: Optional[Settings] = None,
        slot: Optional[str] = None,
    ) -> None:
        settings = settings or manager.settings
        self.store = store
        self.manager = manager
        self.delay = settings.persistence.autosave_delay
        self.slot = slot or settings.persistence.autosave_slot
        self.save_count = 0
        self.failure_count = 0
        self._dirty = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()
        self._unwatch = store.watch(WATCHED_SELECTORS, self._on_watched_change)

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def mark_dirty(self) -> None:
        self._dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; autosave deferred until flush()")
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.delay, self._on_timer)

    async def flush(self) -> bool:
        """Save now if dirty, bypassing the debounce window."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return await self._save()

    async def wait_idle(self) -> None:
        """Wait for in-flight writes to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._unwatch()

    def _on_watched_change(self, previous: CanonicalState, current: CanonicalState) -> None:
        self.mark_dirty()

    def _on_timer(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._save())
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._dirty = True
            self.failure_count += 1
            logger.error("Autosave task failed unexpectedly", exc_info=exc)

    async def _save(self) -> bool:
        async with self._write_lock:
            if not self._dirty:
                return False
            state = self.store.state
            # Mutations applied while this write is in flight mark dirty again.
            self._dirty = False
            try:
                await self.manager.save(state, self.slot)
            except PersistenceWriteFailure as exc:
                self._dirty = True
                self.failure_count += 1
                logger.warning("Autosave failed; will retry on next change: %s", exc)
                return False
            self.save_count += 1
            return True

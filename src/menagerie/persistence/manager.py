from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from ..errors import PersistenceWriteFailure
from ..settings import Settings
from ..state.actions import LoadState
from ..state.models import CanonicalState, default_state
from ..state.store import GameStore
from .codec import PersistedRecord, decode_record, deserialize, encode_record, serialize
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)


class SaveManager:
    """Reads and writes save slots through a key-value storage.

    A load either yields a complete state or raises CorruptRecord; the
    caller's state is never touched by a failed load.
    """

    def __init__(self, storage: KeyValueStorage, settings: Optional[Settings] = None) -> None:
        self.storage = storage
        self.settings = settings or Settings()

    def key_for(self, slot: str) -> str:
        return f"{self.settings.persistence.key_prefix}{slot}"

    async def save(self, state: CanonicalState, slot: Optional[str] = None) -> PersistedRecord:
        slot = slot or self.settings.persistence.manual_slot
        record = serialize(state)
        text = encode_record(record)
        try:
            await self.storage.set(self.key_for(slot), text)
        except Exception as exc:
            raise PersistenceWriteFailure(f"Failed to write slot {slot!r}: {exc}") from exc
        logger.info("Saved slot %s (schema v%d)", slot, record.version)
        return record

    async def has_save(self, slot: Optional[str] = None) -> bool:
        slot = slot or self.settings.persistence.manual_slot
        return await self.storage.get(self.key_for(slot)) is not None

    async def load(self, slot: Optional[str] = None) -> CanonicalState:
        """Load a slot; an absent slot yields the fresh-game state."""
        slot = slot or self.settings.persistence.manual_slot
        text = await self.storage.get(self.key_for(slot))
        if text is None:
            logger.info("Slot %s is empty; starting a new game", slot)
            return default_state(self.settings)
        state = deserialize(decode_record(text), gold_max=self.settings.economy.gold_max)
        logger.info("Loaded slot %s", slot)
        return state

    async def load_into(self, store: GameStore, slot: Optional[str] = None) -> CanonicalState:
        """Load a slot and replace the store's state only after a full decode."""
        state = await self.load(slot)
        store.dispatch(LoadState(state=state))
        return state

    async def export_save(self, path: Path, slot: Optional[str] = None) -> bool:
        """Copy a slot's record to a file. Returns False when the slot is empty."""
        slot = slot or self.settings.persistence.manual_slot
        text = await self.storage.get(self.key_for(slot))
        if text is None:
            return False
        path = Path(path)
        await asyncio.to_thread(_write_text, path, text)
        logger.info("Exported slot %s to %s", slot, path)
        return True

    async def import_save(self, path: Path, slot: Optional[str] = None) -> CanonicalState:
        """Validate a save file and store it in a slot.

        The file is fully decoded before anything is written, so a corrupt
        file leaves the slot as it was.
        """
        slot = slot or self.settings.persistence.manual_slot
        text = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        state = deserialize(decode_record(text), gold_max=self.settings.economy.gold_max)
        await self.save(state, slot)
        logger.info("Imported %s into slot %s", path, slot)
        return state


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")

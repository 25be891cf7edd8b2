from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
from pathlib import Path
from typing import Dict, Optional, Protocol

from platformdirs import PlatformDirs

from ..settings import Settings

logger = logging.getLogger(__name__)

APP_NAME = "Menagerie"
ENV_SAVE_DIR = "MENAGERIE_SAVE_DIR"


class KeyValueStorage(Protocol):
    """Durable key-value store with asynchronous, possibly failing operations."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class MemoryStorage:
    """In-memory storage for headless runs and tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


def default_save_dir() -> Path:
    override = os.getenv(ENV_SAVE_DIR)
    if override:
        return Path(override).expanduser().resolve()
    dirs = PlatformDirs(appname=APP_NAME, appauthor=False)
    return Path(dirs.user_data_dir) / "saves"


class FileStorage:
    """Filesystem-backed storage: one JSON file per key.

    Writes are atomic (temporary file, fsync, replace) and the previous
    contents are kept as a ``.bak`` file. Blocking file I/O runs in a worker
    thread so the event loop keeps processing actions.
    """

    def __init__(self, root: Optional[Path] = None) -> None:
        self.root = Path(root) if root is not None else default_save_dir()
        self.root.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileStorage":
        save_dir = settings.persistence.save_dir
        return cls(Path(save_dir).expanduser() if save_dir else None)

    def path_for(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]+", "__", key).strip("_") or "default"
        return self.root / f"{safe}.json"

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, self.path_for(key))

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._atomic_write, self.path_for(key), value)

    @staticmethod
    def _read(path: Path) -> Optional[str]:
        try:
            with path.open("r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    @staticmethod
    def _atomic_write(path: Path, text: str) -> None:
        tmp = path.with_suffix(path.suffix + ".tmp")
        bak = path.with_suffix(path.suffix + ".bak")
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Writing save to temporary file: %s", tmp)
        with tmp.open("w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            shutil.copy2(str(path), str(bak))
        os.replace(tmp, path)

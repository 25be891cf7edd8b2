from .autosave import AutosaveScheduler
from .codec import PersistedRecord, decode_record, deserialize, encode_record, serialize
from .manager import SaveManager
from .migrations import CURRENT_VERSION, MIGRATIONS, migrate
from .storage import FileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "AutosaveScheduler",
    "PersistedRecord",
    "decode_record",
    "deserialize",
    "encode_record",
    "serialize",
    "SaveManager",
    "CURRENT_VERSION",
    "MIGRATIONS",
    "migrate",
    "FileStorage",
    "KeyValueStorage",
    "MemoryStorage",
]

"""Virtual filesystem bridge and its persistent backing store."""

from .bridge import VirtualFileBridge
from .file_store import FileRecord, PersistentFileStore, dispose_engines

__all__ = [
    "FileRecord",
    "PersistentFileStore",
    "VirtualFileBridge",
    "dispose_engines",
]

"""Move file contents in and out of the emulator's virtual filesystem."""

from __future__ import annotations

from typing import Callable, Optional

from ..config import StoreConfig
from ..emulator.base import VirtualFilesystem
from ..errors import NotReadyError, VirtualFileNotFoundError
from ..logging_utils import get_logger
from .file_store import PersistentFileStore


class VirtualFileBridge:
    """Write into the live filesystem, read back from the synced store.

    Files saved by the emulated program only become visible once the live
    filesystem has been flushed to the persistent store, so reads always
    force a sync and go through the store.
    """

    def __init__(
        self,
        filesystem_provider: Callable[[], Optional[VirtualFilesystem]],
        store_config: StoreConfig,
    ) -> None:
        self._filesystem_provider = filesystem_provider
        self._store_config = store_config
        self._log = get_logger("files")

    def _filesystem(self) -> VirtualFilesystem:
        fs = self._filesystem_provider()
        if fs is None:
            raise NotReadyError("Emulator filesystem is not available yet")
        return fs

    async def write(self, path: str, contents: bytes) -> None:
        fs = self._filesystem()
        # The filesystem cannot overwrite in place.
        if fs.exists(path):
            fs.unlink(path)
        fs.create_file(path, bytes(contents))
        self._log.debug("Wrote {} bytes to {}", len(contents), path)

    async def read(self, path: str) -> bytes:
        fs = self._filesystem()
        await fs.force_sync()
        store = PersistentFileStore.open(self._store_config)
        record = store.get(path)
        if record is None:
            raise VirtualFileNotFoundError(path)
        self._log.debug("Read {} bytes from {}", len(record.contents), path)
        return record.contents

"""Deterministic in-process emulator used by tests and dry runs."""

from __future__ import annotations

import io
import posixpath
import time
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Sequence

import numpy as np

from ..config import StoreConfig
from ..errors import NotReadyError
from ..image_utils import ensure_rgba
from ..logging_utils import get_logger
from ..storage.file_store import PersistentFileStore
from .base import Canvas, EmulatorInstance, EmulatorOptions, EmulatorRuntime, VirtualFilesystem

if TYPE_CHECKING:
    from ..config import HarnessConfig

KeyHook = Callable[["InMemoryEmulator", int, bool], None]


@dataclass(frozen=True, slots=True)
class KeyEvent:
    code: int
    is_down: bool
    at: float


class InMemoryCanvas(Canvas):
    def __init__(self, width: int, height: int) -> None:
        self._frame = np.zeros((height, width, 4), dtype=np.uint8)
        self._frame[..., 3] = 255

    @property
    def size(self) -> tuple[int, int]:
        height, width, _ = self._frame.shape
        return width, height

    def get_frame(self) -> np.ndarray:
        return self._frame.copy()

    def paint(self, x: int, y: int, pixels: np.ndarray) -> None:
        rgba = ensure_rgba(pixels)
        height, width, _ = rgba.shape
        frame_h, frame_w, _ = self._frame.shape
        if x < 0 or y < 0 or x + width > frame_w or y + height > frame_h:
            raise ValueError(f"{width}x{height} patch at ({x}, {y}) leaves the canvas")
        self._frame[y : y + height, x : x + width] = rgba

    def fill(self, color: tuple[int, int, int, int]) -> None:
        self._frame[...] = np.asarray(color, dtype=np.uint8)


class InMemoryFilesystem(VirtualFilesystem):
    """Flat mapping of absolute paths to bytes.

    ``force_sync`` mirrors every file under the store's mount point into the
    persistent store, removing records for files that no longer exist.
    """

    def __init__(self, store_config: Optional[StoreConfig] = None) -> None:
        self.files: dict[str, bytes] = {}
        self.cwd = "/"
        self.sync_count = 0
        self._store_config = store_config
        self._log = get_logger("memfs")

    def _resolve(self, path: str) -> str:
        return posixpath.normpath(posixpath.join(self.cwd, path))

    def _is_dir(self, path: str) -> bool:
        if path == "/":
            return True
        prefix = path.rstrip("/") + "/"
        return any(name.startswith(prefix) for name in self.files)

    async def extract(self, archive: Path | bytes, mount_path: str) -> None:
        source = io.BytesIO(archive) if isinstance(archive, (bytes, bytearray)) else Path(archive)
        mount = self._resolve(mount_path)
        with zipfile.ZipFile(source) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                target = posixpath.normpath(posixpath.join(mount, info.filename))
                if not target.startswith(mount.rstrip("/") + "/"):
                    raise ValueError(f"Archive member escapes mount path: {info.filename}")
                self.files[target] = zf.read(info)
        self._log.debug("Extracted archive into {} ({} files)", mount, len(self.files))

    def change_directory(self, path: str) -> None:
        target = self._resolve(path)
        if not self._is_dir(target):
            raise FileNotFoundError(f"No such directory: {target}")
        self.cwd = target

    def exists(self, path: str) -> bool:
        target = self._resolve(path)
        return target in self.files or self._is_dir(target)

    def unlink(self, path: str) -> None:
        target = self._resolve(path)
        if target not in self.files:
            raise FileNotFoundError(f"No such file: {target}")
        del self.files[target]

    def create_file(self, path: str, contents: bytes) -> None:
        target = self._resolve(path)
        if target in self.files:
            raise FileExistsError(f"File exists: {target}")
        self.files[target] = bytes(contents)

    def program_write(self, path: str, contents: bytes) -> None:
        """Write as the emulated program would, replacing any existing file."""

        self.files[self._resolve(path)] = bytes(contents)

    async def force_sync(self) -> None:
        self.sync_count += 1
        if self._store_config is None:
            return
        mount = self._store_config.name.rstrip("/")
        persisted = {
            path: data
            for path, data in self.files.items()
            if not mount or path.startswith(mount + "/")
        }
        PersistentFileStore.open(self._store_config).replace_all(persisted)


class InMemoryEmulator(EmulatorInstance):
    def __init__(
        self,
        options: EmulatorOptions,
        store_config: Optional[StoreConfig] = None,
        on_key: Optional[KeyHook] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.options = options
        self.key_events: list[KeyEvent] = []
        self.run_args: Optional[list[str]] = None
        self.terminate_calls = 0
        self._canvas = InMemoryCanvas(*options.canvas_size)
        self._filesystem = InMemoryFilesystem(store_config)
        self._on_key = on_key
        self._clock = clock

    @property
    def canvas(self) -> InMemoryCanvas:
        return self._canvas

    @property
    def filesystem(self) -> InMemoryFilesystem:
        return self._filesystem

    @property
    def terminated(self) -> bool:
        return self.terminate_calls > 0

    def inject_key_event(self, code: int, is_down: bool) -> None:
        if self.terminated:
            raise NotReadyError("Emulator instance was terminated")
        self.key_events.append(KeyEvent(code=code, is_down=is_down, at=self._clock()))
        if self._on_key is not None:
            self._on_key(self, code, is_down)

    async def run(self, args: Sequence[str]) -> None:
        self.run_args = list(args)

    def terminate(self) -> None:
        self.terminate_calls += 1


class InMemoryEmulatorRuntime(EmulatorRuntime):
    def __init__(
        self,
        store_config: Optional[StoreConfig] = None,
        *,
        on_key: Optional[KeyHook] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store_config = store_config
        self._on_key = on_key
        self._clock = clock
        self.instances: list[InMemoryEmulator] = []

    async def start(self, options: EmulatorOptions) -> InMemoryEmulator:
        instance = InMemoryEmulator(
            options,
            store_config=self._store_config,
            on_key=self._on_key,
            clock=self._clock,
        )
        self.instances.append(instance)
        return instance


def create_runtime(config: "HarnessConfig") -> InMemoryEmulatorRuntime:
    return InMemoryEmulatorRuntime(store_config=config.store)

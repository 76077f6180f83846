"""Interfaces implemented by emulator runtimes driven by the harness."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

import numpy as np


@dataclass(frozen=True, slots=True)
class EmulatorOptions:
    module_url: str
    autolock: bool = True
    keyboard_target: Optional[Any] = None
    canvas_size: tuple[int, int] = (640, 480)


class Canvas(abc.ABC):
    """Rendered output of the emulated display."""

    @abc.abstractmethod
    def get_frame(self) -> np.ndarray:
        """Return the current frame as an ``HxWx4`` uint8 RGBA array."""


class VirtualFilesystem(abc.ABC):
    """Live in-memory filesystem of the emulator and its sync hook."""

    @abc.abstractmethod
    async def extract(self, archive: Path | bytes, mount_path: str) -> None:
        """Unpack a zip archive under ``mount_path``."""

    @abc.abstractmethod
    def change_directory(self, path: str) -> None:
        """Set the working directory of the emulated program."""

    @abc.abstractmethod
    def exists(self, path: str) -> bool:
        """Return whether ``path`` exists in the live filesystem."""

    @abc.abstractmethod
    def unlink(self, path: str) -> None:
        """Remove ``path`` from the live filesystem."""

    @abc.abstractmethod
    def create_file(self, path: str, contents: bytes) -> None:
        """Create a new file; fails if ``path`` already exists."""

    @abc.abstractmethod
    async def force_sync(self) -> None:
        """Flush the live filesystem into its persistent store."""


class EmulatorInstance(abc.ABC):
    """A booted emulator. Owned by exactly one harness session."""

    @property
    @abc.abstractmethod
    def canvas(self) -> Canvas:
        """Display surface the program renders to."""

    @property
    @abc.abstractmethod
    def filesystem(self) -> VirtualFilesystem:
        """Live filesystem of the emulated machine."""

    @abc.abstractmethod
    def inject_key_event(self, code: int, is_down: bool) -> None:
        """Deliver one key-down or key-up event."""

    @abc.abstractmethod
    async def run(self, args: Sequence[str]) -> None:
        """Start the emulated program with DOSBox command line ``args``."""

    @abc.abstractmethod
    def terminate(self) -> None:
        """Release the instance. Must be safe to call more than once."""


class EmulatorRuntime(abc.ABC):
    """Factory that boots emulator instances."""

    @abc.abstractmethod
    async def start(self, options: EmulatorOptions) -> EmulatorInstance:
        """Boot a new instance rendering at ``options.canvas_size``."""

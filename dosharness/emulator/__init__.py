"""Emulator contract consumed by the harness, plus an in-memory double."""

from .base import Canvas, EmulatorInstance, EmulatorOptions, EmulatorRuntime, VirtualFilesystem
from .factory import build_runtime, load_runtime_factory
from .memory import InMemoryEmulator, InMemoryEmulatorRuntime, KeyEvent

__all__ = [
    "Canvas",
    "EmulatorInstance",
    "EmulatorOptions",
    "EmulatorRuntime",
    "InMemoryEmulator",
    "InMemoryEmulatorRuntime",
    "KeyEvent",
    "VirtualFilesystem",
    "build_runtime",
    "load_runtime_factory",
]

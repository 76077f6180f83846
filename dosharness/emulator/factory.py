"""Resolve emulator runtime factories from ``module:attribute`` paths."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Callable

from ..errors import EmulatorSetupError
from .base import EmulatorRuntime

if TYPE_CHECKING:
    from ..config import HarnessConfig

RuntimeFactory = Callable[["HarnessConfig"], EmulatorRuntime]


def load_runtime_factory(path: str) -> RuntimeFactory:
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise EmulatorSetupError(f"Invalid emulator factory path {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise EmulatorSetupError(f"Cannot import emulator module {module_name!r}") from exc
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise EmulatorSetupError(f"{path!r} is not a callable emulator factory")
    return factory


def build_runtime(config: "HarnessConfig", factory_path: str | None = None) -> EmulatorRuntime:
    factory = load_runtime_factory(factory_path or config.emulator.factory)
    runtime = factory(config)
    if not isinstance(runtime, EmulatorRuntime):
        raise EmulatorSetupError(
            f"Emulator factory returned {type(runtime).__name__}, expected EmulatorRuntime"
        )
    return runtime

"""Input-simulation and visual-verification harness for emulated DOS programs."""

from __future__ import annotations

from .config import HarnessConfig, load_config
from .errors import (
    HarnessError,
    InvalidStrokeError,
    NotReadyError,
    VirtualFileNotFoundError,
)
from .logging_utils import configure_logging
from .session import AutomationFacade, DosboxSession
from .vision.watch_image import WatchImage

__all__ = [
    "AutomationFacade",
    "DosboxSession",
    "HarnessConfig",
    "HarnessError",
    "InvalidStrokeError",
    "NotReadyError",
    "VirtualFileNotFoundError",
    "WatchImage",
    "configure_logging",
    "load_config",
]

"""Visual verification: reference regions, matching and polling."""

from .matcher import FrameSource, ImageMatcher, StillFrame
from .watch_image import WatchImage, load_watch_image, save_watch_image
from .watcher import DEFAULT_INTERVAL_MS, ImageWatcher

__all__ = [
    "DEFAULT_INTERVAL_MS",
    "FrameSource",
    "ImageMatcher",
    "ImageWatcher",
    "StillFrame",
    "WatchImage",
    "load_watch_image",
    "save_watch_image",
]

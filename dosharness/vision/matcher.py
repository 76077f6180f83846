"""Exact comparison of a rendered region against a reference encoding."""

from __future__ import annotations

from typing import Protocol

import numpy as np

from ..image_utils import crop_region, encode_region
from .watch_image import WatchImage


class FrameSource(Protocol):
    def get_frame(self) -> np.ndarray: ...


class ImageMatcher:
    """Single-frame check; rendering is deterministic so there is no tolerance."""

    def __init__(self, canvas: FrameSource) -> None:
        self._canvas = canvas

    def matches(self, image: WatchImage) -> bool:
        frame = self._canvas.get_frame()
        region = crop_region(frame, image.sx, image.sy, image.sw, image.sh)
        if region is None:
            return False
        return encode_region(region) == image.image_data


class StillFrame:
    """Frame source over a single captured frame, e.g. a saved screenshot."""

    def __init__(self, frame: np.ndarray) -> None:
        self._frame = frame

    def get_frame(self) -> np.ndarray:
        return self._frame

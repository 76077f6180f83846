"""Keyboard input translation and sequencing."""

from .sequencer import InputSequencer, KeySurface
from .strokes import NAMED_KEYS, translate, translate_token

__all__ = [
    "InputSequencer",
    "KeySurface",
    "NAMED_KEYS",
    "translate",
    "translate_token",
]

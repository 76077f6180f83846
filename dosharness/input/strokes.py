"""Translate symbolic stroke tokens into virtual key codes."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable

from ..errors import InvalidStrokeError

LITERAL_PREFIX = ":"

# Windows virtual key codes, matching what the emulator's keyboard listener expects.
NAMED_KEYS = MappingProxyType(
    {
        "left": 37,
        "up": 38,
        "right": 39,
        "down": 40,
        "alt": 18,
        "enter": 13,
        "esc": 27,
    }
)


def _literal_code(char: str, token: str) -> int:
    upper = char.upper()
    if len(upper) == 1 and ("0" <= upper <= "9" or "A" <= upper <= "Z"):
        return ord(upper)
    raise InvalidStrokeError(
        f"Got non-alphanumeric char {char!r} in command string {token!r}",
        token=token,
        character=char,
    )


def translate_token(token: str) -> list[int]:
    if token.startswith(LITERAL_PREFIX):
        return [_literal_code(char, token) for char in token[len(LITERAL_PREFIX) :]]
    code = NAMED_KEYS.get(token.lower())
    if code is None:
        raise InvalidStrokeError(f"Can't convert {token!r} into keycode", token=token)
    return [code]


def translate(strokes: Iterable[str]) -> list[int]:
    """Expand stroke tokens into key codes, preserving input order.

    ``":ABC"`` yields one code per character; any other token is looked up
    case-insensitively in :data:`NAMED_KEYS`.
    """

    codes: list[int] = []
    for token in strokes:
        codes.extend(translate_token(token))
    return codes

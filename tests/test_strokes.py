from __future__ import annotations

import pytest

from dosharness.errors import InvalidStrokeError
from dosharness.input.strokes import NAMED_KEYS, translate


def test_literal_and_named_tokens_keep_order() -> None:
    assert translate([":AB", "enter"]) == [65, 66, 13]


def test_literal_characters_are_upper_cased() -> None:
    assert translate([":az09"]) == [65, 90, 48, 57]


def test_every_alphanumeric_maps_to_its_ordinal() -> None:
    chars = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
    codes = translate([":" + chars])
    assert len(codes) == len(chars)
    assert codes == [ord(char.upper()) for char in chars]


@pytest.mark.parametrize(
    ("token", "code"),
    [
        ("left", 37),
        ("up", 38),
        ("right", 39),
        ("down", 40),
        ("alt", 18),
        ("enter", 13),
        ("esc", 27),
    ],
)
def test_named_keys(token: str, code: int) -> None:
    assert translate([token]) == [code]
    assert NAMED_KEYS[token] == code


def test_named_keys_are_case_insensitive() -> None:
    assert translate(["ENTER", "Esc", "lEfT"]) == [13, 27, 37]


def test_bare_literal_prefix_expands_to_nothing() -> None:
    assert translate([":", "up"]) == [38]


def test_empty_sequence() -> None:
    assert translate([]) == []


@pytest.mark.parametrize("token", [":A B", ":AB!", ":é", ":ß", ":-"])
def test_non_alphanumeric_literal_fails(token: str) -> None:
    with pytest.raises(InvalidStrokeError) as excinfo:
        translate([":OK", token])
    assert excinfo.value.token == token
    assert excinfo.value.character is not None
    assert token in str(excinfo.value)


def test_unknown_named_key_fails() -> None:
    with pytest.raises(InvalidStrokeError) as excinfo:
        translate(["enter", "space"])
    assert excinfo.value.token == "space"
    assert excinfo.value.character is None


def test_invalid_stroke_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        translate(["f1"])

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from eth_utils import keccak

from dtraits.core.constants import FALSE_WORD, TRUE_WORD, ZERO_WORD
from dtraits.core.errors import InvalidConstraint, OutOfRange, Overflow
from dtraits.core.grammar import word_from_int, word_to_hex
from dtraits.core.loader import load_schema
from dtraits.core.schema import TraitSchema, TraitSchemaEntry
from dtraits.engine.values import denormalize, is_raw_candidate, normalize_value

from conftest import LITERAL_KEY, ONE_HEX, ZERO_HEX


def _entry(schema: TraitSchema, name: str) -> TraitSchemaEntry:
    return schema[keccak(text=name)]


def _single(data_type: dict) -> TraitSchemaEntry:
    schema = load_schema({"traits": {"t": {"displayName": "T", "dataType": data_type}}})
    return next(iter(schema))


def test_raw_candidates() -> None:
    assert is_raw_candidate(ZERO_HEX)
    assert is_raw_candidate(bytes(32))
    assert not is_raw_candidate("0x0")
    assert not is_raw_candidate(5)
    assert not is_raw_candidate("red")


# ----------------------------------------------------------------------------- string


def test_string_mapped_and_unmapped(schema: TraitSchema) -> None:
    color = _entry(schema, "color")
    red = normalize_value(color, "red")
    assert red.mapped
    assert red.raw == (1).to_bytes(32, "big")

    blue = normalize_value(color, "blue")
    assert not blue.mapped
    assert blue.raw == b"blue".ljust(32, b"\x00")
    assert denormalize(color, blue.raw) == "blue"
    assert denormalize(color, "0x2") == "green"


def test_string_raw_mapping_takes_precedence(schema: TraitSchema) -> None:
    name = _entry(schema, "name")
    v = normalize_value(name, ZERO_HEX)
    assert v.mapped and v.display == "Unnamed"
    assert normalize_value(name, "Unnamed").raw == ZERO_WORD
    assert denormalize(name, ZERO_WORD) == "Unnamed"


def test_string_length_bounds(schema: TraitSchema) -> None:
    name = _entry(schema, "name")
    assert normalize_value(name, "x" * 32).display == "x" * 32
    with pytest.raises(OutOfRange):
        normalize_value(name, "")
    with pytest.raises(OutOfRange):
        normalize_value(name, "x" * 33)


def test_length_counts_characters_not_bytes(schema: TraitSchema) -> None:
    name = _entry(schema, "name")
    text = "é" * 20  # 20 characters, 40 UTF-8 bytes
    v = normalize_value(name, text)
    assert v.display == text
    assert v.raw == keccak(text.encode("utf-8"))


def test_long_strings_are_hashed_and_decode_to_hex(schema: TraitSchema) -> None:
    color = _entry(schema, "color")
    text = "a rather long colour description"
    text += " indeed"
    v = normalize_value(color, text)
    assert v.raw == keccak(text=text)
    assert denormalize(color, v.raw) == word_to_hex(v.raw)


def test_string_rejects_non_strings_and_bad_raw(schema: TraitSchema) -> None:
    color = _entry(schema, "color")
    with pytest.raises(OutOfRange):
        normalize_value(color, 5)
    with pytest.raises(OutOfRange):
        normalize_value(color, "nul\x00byte")
    with pytest.raises(OutOfRange):
        normalize_value(color, "0x" + "ff" * 32)


def test_string_null_requires_mapping(schema: TraitSchema) -> None:
    with pytest.raises(OutOfRange):
        normalize_value(_entry(schema, "color"), None)
    nullable = _single({"type": "string", "valueMappings": {"0x0": None}})
    v = normalize_value(nullable, None)
    assert v.raw == ZERO_WORD and v.display is None and v.mapped
    assert denormalize(nullable, "0x0") is None


# ----------------------------------------------------------------------------- decimal


def test_decimal_bits_boundary(schema: TraitSchema) -> None:
    points = _entry(schema, "points")
    assert normalize_value(points, 65535).raw == (65535).to_bytes(32, "big")
    with pytest.raises(Overflow):
        normalize_value(points, 65536)
    with pytest.raises(Overflow):
        normalize_value(points, (65536).to_bytes(32, "big"))
    with pytest.raises(OutOfRange):
        normalize_value(points, -1)


def test_decimal_accepts_numeric_strings(schema: TraitSchema) -> None:
    points = _entry(schema, "points")
    assert normalize_value(points, "1E+2").display == 100
    assert normalize_value(points, Decimal("42")).display == 42
    with pytest.raises(OutOfRange):
        normalize_value(points, "12.5")
    with pytest.raises(OutOfRange):
        normalize_value(points, "lots")
    with pytest.raises(OutOfRange):
        normalize_value(points, "NaN")
    with pytest.raises(OutOfRange):
        normalize_value(points, True)
    with pytest.raises(OutOfRange):
        normalize_value(points, float("nan"))
    with pytest.raises(OutOfRange):
        normalize_value(points, float("inf"))
    with pytest.raises(OutOfRange):
        normalize_value(points, float("-inf"))


def test_fixed_point_round_trip() -> None:
    price = _single({"type": "decimal", "signed": True, "bits": 64, "decimals": 2})
    v = normalize_value(price, "-12.34")
    assert v.raw == word_from_int(-1234, signed=True)
    assert v.display == Decimal("-12.34")
    assert denormalize(price, v.raw) == Decimal("-12.34")
    assert normalize_value(price, 1.5).display == Decimal("1.50")
    with pytest.raises(OutOfRange):
        normalize_value(price, "0.001")


@pytest.mark.parametrize(
    "value, ok",
    [(127, True), (-128, True), (128, False), (-129, False)],
)
def test_signed_bits(value: int, ok: bool) -> None:
    small = _single({"type": "decimal", "signed": True, "bits": 8})
    if ok:
        assert denormalize(small, normalize_value(small, value).raw) == value
    else:
        with pytest.raises(Overflow):
            normalize_value(small, value)


def test_denormalize_rejects_words_wider_than_bits(schema: TraitSchema) -> None:
    with pytest.raises(Overflow):
        denormalize(_entry(schema, "points"), "0x10000")


# ----------------------------------------------------------------------------- boolean


def test_boolean_canonical_words(schema: TraitSchema) -> None:
    redeemed = _entry(schema, "redeemed")
    assert normalize_value(redeemed, True).raw == TRUE_WORD
    assert normalize_value(redeemed, False).raw == FALSE_WORD
    assert denormalize(redeemed, ONE_HEX) is True
    assert denormalize(redeemed, "0x0") is False


@pytest.mark.parametrize("candidate", ["true", 1, 0, "0x" + "00" * 31 + "02"])
def test_boolean_rejects_non_canonical(schema: TraitSchema, candidate: object) -> None:
    with pytest.raises(InvalidConstraint):
        normalize_value(_entry(schema, "redeemed"), candidate)


def test_boolean_mapped_alias_word() -> None:
    flag = _single({"type": "boolean", "valueMappings": {"0x2": True}})
    v = normalize_value(flag, "0x" + "00" * 31 + "02")
    assert v.mapped and v.display is True
    assert denormalize(flag, "0x2") is True


# ----------------------------------------------------------------------------- epochSeconds


def test_epoch_seconds_ints_and_datetimes(schema: TraitSchema) -> None:
    birthday = _entry(schema, "birthday")
    assert normalize_value(birthday, 1696702201).display == 1696702201
    naive = datetime(2023, 10, 7, 18, 10, 1)
    assert normalize_value(birthday, naive).display == 1696702201
    aware = datetime(2023, 10, 7, 20, 10, 1, tzinfo=timezone(timedelta(hours=2)))
    assert normalize_value(birthday, aware).display == 1696702201
    assert normalize_value(birthday, datetime(2023, 10, 7, 18, 10, 1, tzinfo=UTC)).raw == (
        1696702201
    ).to_bytes(32, "big")


def test_epoch_seconds_rejections(schema: TraitSchema) -> None:
    birthday = _entry(schema, "birthday")
    with pytest.raises(OutOfRange):
        normalize_value(birthday, -1)
    with pytest.raises(OutOfRange):
        normalize_value(birthday, True)
    with pytest.raises(OutOfRange):
        normalize_value(birthday, "yesterday")
    with pytest.raises(Overflow):
        normalize_value(birthday, 2**256)


def test_mapped_null_and_mapped_constant(schema: TraitSchema) -> None:
    birthday = _entry(schema, "birthday")
    assert denormalize(birthday, "0x0") is None
    assert normalize_value(birthday, None).raw == ZERO_WORD

    ship = schema[bytes.fromhex(LITERAL_KEY[2:])]
    assert denormalize(ship, "0x0") == 1696702201
    v = normalize_value(ship, 1696702201)
    assert v.mapped and v.raw == ZERO_WORD


def test_null_without_mapping_is_rejected(schema: TraitSchema) -> None:
    with pytest.raises(OutOfRange):
        normalize_value(_entry(schema, "points"), None)


@pytest.mark.parametrize(
    "candidate, error",
    [
        ("1E999999999", Overflow),
        ("-1E999999999", OutOfRange),
        ("1E-999999999", OutOfRange),
        (Decimal("9" * 40), Overflow),
        ("65536.000", Overflow),
    ],
)
def test_extreme_exponents_are_rejected_from_the_exponent(
    schema: TraitSchema, candidate: object, error: type[Exception]
) -> None:
    with pytest.raises(error):
        normalize_value(_entry(schema, "points"), candidate)


def test_trailing_zeros_do_not_count_as_fractional_digits(schema: TraitSchema) -> None:
    points = _entry(schema, "points")
    assert normalize_value(points, "150.000").display == 150
    assert normalize_value(points, "1.5E+2").display == 150
    assert normalize_value(points, Decimal("0E-50")).raw == ZERO_WORD


def test_encoding_onto_a_mapping_key_is_rejected(schema: TraitSchema) -> None:
    ship = schema[bytes.fromhex(LITERAL_KEY[2:])]
    with pytest.raises(OutOfRange):
        normalize_value(ship, 0)
    birthday = _entry(schema, "birthday")
    with pytest.raises(OutOfRange):
        normalize_value(birthday, 0)
    with pytest.raises(OutOfRange):
        normalize_value(birthday, datetime(1970, 1, 1))

    nullable = _single({"type": "string", "valueMappings": {"0x0": None}})
    with pytest.raises(OutOfRange):
        normalize_value(nullable, "")


def test_every_accepted_display_value_reads_back(schema: TraitSchema) -> None:
    cases = {
        "color": ["red", "blue"],
        "name": ["Unnamed", "Ada"],
        "birthday": [None, 1, 1696702201],
        "points": [0, 150, 65535],
        "redeemed": [True, False],
    }
    for name, values in cases.items():
        entry = _entry(schema, name)
        for value in values:
            assert denormalize(entry, normalize_value(entry, value).raw) == value

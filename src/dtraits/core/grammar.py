"""
Canonical dtraits grammar and helpers.

Defines the closed set of trait data types, sale-consumption policies, caller roles
and event names, plus zero-IO helpers for the 32-byte word representation used by
trait keys and raw trait values.

Responsibilities
- Define enums whose serialized values match the trait metadata document
  (camelCase where the document uses camelCase, e.g. ``epochSeconds``).
- Normalize enum-like strings from documents and CLI input.
- Convert between words (``bytes`` of length 32), ``0x`` hex strings and integers.

Naming
------
- Enum classes: PascalCase
- Enum member names: UPPER_SNAKE
- Enum serialized values: as written in trait metadata documents

Word encodings
--------------
| Form              | Example                                   | Helper
|-------------------|-------------------------------------------|---------------------
| literal key / raw | 0x + 64 hex digits (any case)             | word_from_hex
| mapping key       | 0x + 1..64 hex digits, left-padded        | word_from_short_hex
| unsigned integer  | big-endian                                | uint_from_word / word_from_uint
| signed integer    | big-endian two's complement               | int_from_word / word_from_int

Examples
--------
>>> from dtraits.core.grammar import DataTypeKind, data_type_from_value, word_from_short_hex
>>> data_type_from_value("EpochSeconds") is DataTypeKind.EPOCH_SECONDS
True
>>> word_from_short_hex("0x1") == (1).to_bytes(32, "big")
True
"""

from __future__ import annotations

import re
from enum import Enum

from .constants import MAX_BITS, WORD_SIZE

__all__ = [
    "DataTypeKind",
    "SaleValidation",
    "CallerRole",
    "EventName",
    "data_type_from_value",
    "sale_validation_from_value",
    "caller_role_from_value",
    "is_word_hex",
    "word_from_hex",
    "word_from_short_hex",
    "word_to_hex",
    "coerce_word",
    "uint_from_word",
    "int_from_word",
    "word_from_uint",
    "word_from_int",
]


class DataTypeKind(str, Enum):
    """Closed set of trait data types (``dataType.type``)."""

    STRING = "string"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    EPOCH_SECONDS = "epochSeconds"


class SaleValidation(str, Enum):
    """Consumption validation policies a marketplace applies before a sale."""

    NONE = "none"
    REQUIRE_EQ = "requireEq"
    REQUIRE_UINT_GTE = "requireUintGte"
    REQUIRE_UINT_LTE = "requireUintLte"


class CallerRole(str, Enum):
    """Role of the caller of a trait update, as seen by the permission policy."""

    TOKEN_OWNER = "token_owner"
    PRIVILEGED = "privileged"
    PUBLIC = "public"


class EventName(str, Enum):
    """Event names emitted by hosts on trait and metadata updates."""

    TRAIT_UPDATED = "TraitUpdated"
    TRAIT_UPDATED_BULK_RANGE = "TraitUpdatedBulkRange"
    TRAIT_UPDATED_BULK_LIST = "TraitUpdatedBulkList"
    TRAIT_METADATA_URI_UPDATED = "TraitMetadataURIUpdated"


_WORD_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]{64}$")
_SHORT_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]{1,64}$")


def _lookup(enum_cls: type[Enum], value: str, what: str) -> Enum:
    if isinstance(value, enum_cls):
        return value
    s = str(value).strip()
    for member in enum_cls:
        if member.value.lower() == s.lower():
            return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise ValueError(f"unknown {what} {value!r} (expected one of: {allowed})")


def data_type_from_value(value: str) -> DataTypeKind:
    """
    Normalize a ``dataType.type`` string to DataTypeKind (case-insensitive).

    Raises:
        ValueError: If the value is not a recognised data type.
    """
    return _lookup(DataTypeKind, value, "data type")  # type: ignore[return-value]


def sale_validation_from_value(value: str) -> SaleValidation:
    """Normalize a consumption validation policy string (case-insensitive)."""
    return _lookup(SaleValidation, value, "sale validation")  # type: ignore[return-value]


def caller_role_from_value(value: str) -> CallerRole:
    """Normalize a caller role string (case-insensitive)."""
    return _lookup(CallerRole, value, "caller role")  # type: ignore[return-value]


def is_word_hex(s: object) -> bool:
    """Return True if ``s`` is a ``0x``-prefixed string of exactly 64 hex digits."""
    return isinstance(s, str) and _WORD_HEX_RE.match(s) is not None


def word_from_hex(s: str) -> bytes:
    """
    Parse a well-formed 32-byte hex string.

    Raises:
        ValueError: If ``s`` is not ``0x`` followed by exactly 64 hex digits.
    """
    if not is_word_hex(s):
        raise ValueError(f"not a 32-byte hex string: {s!r}")
    return bytes.fromhex(s[2:])


def word_from_short_hex(s: str) -> bytes:
    """
    Parse a ``0x`` hex string of 1..64 digits, left-padding it to 32 bytes.

    Used for value mapping keys, where ``0x0`` denotes the all-zero word.

    Raises:
        ValueError: If ``s`` is not a ``0x`` hex string of at most 32 bytes.
    """
    if not isinstance(s, str) or _SHORT_HEX_RE.match(s) is None:
        raise ValueError(f"not a hex word of at most {WORD_SIZE} bytes: {s!r}")
    return int(s, 16).to_bytes(WORD_SIZE, "big")


def word_to_hex(word: bytes) -> str:
    """Render a word as ``0x`` + 64 lowercase hex digits."""
    return "0x" + bytes(word).hex()


def coerce_word(value: bytes | bytearray | str) -> bytes:
    """
    Accept a word as bytes or as a 32-byte hex string.

    Raises:
        ValueError: If the value is not exactly 32 bytes.
    """
    if isinstance(value, str):
        return word_from_hex(value)
    if isinstance(value, (bytes, bytearray)) and len(value) == WORD_SIZE:
        return bytes(value)
    raise ValueError(f"expected a {WORD_SIZE}-byte word, got {value!r}")


def uint_from_word(word: bytes) -> int:
    """Read a word as a big-endian unsigned integer."""
    return int.from_bytes(word, "big")


def int_from_word(word: bytes, *, signed: bool = False) -> int:
    """Read a word as a big-endian integer, two's complement when ``signed``."""
    return int.from_bytes(word, "big", signed=signed)


def word_from_uint(value: int) -> bytes:
    """
    Encode a non-negative integer as a big-endian word.

    Raises:
        ValueError: If the value is negative or wider than 256 bits.
    """
    if value < 0 or value.bit_length() > MAX_BITS:
        raise ValueError(f"value does not fit an unsigned {MAX_BITS}-bit word: {value}")
    return value.to_bytes(WORD_SIZE, "big")


def word_from_int(value: int, *, signed: bool = False) -> bytes:
    """
    Encode an integer as a word, two's complement when ``signed``.

    Raises:
        ValueError: If the value does not fit 256 bits.
    """
    if not signed:
        return word_from_uint(value)
    try:
        return value.to_bytes(WORD_SIZE, "big", signed=True)
    except OverflowError as exc:
        raise ValueError(f"value does not fit a signed {MAX_BITS}-bit word: {value}") from exc

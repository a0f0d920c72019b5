"""
Trait value validation, normalization, and denormalization.

``validate_and_normalize`` turns a candidate value into the raw 32-byte word a host
persists; ``denormalize`` turns a stored word back into its display form. Both use the
entry's value mapping table first and fall back to the data type's own encoding.

Candidates
- Raw: ``bytes`` of length 32, or ``0x`` + 64 hex digits. Always treated as raw,
  even for string traits.
- Display: ``str`` (string), ``int``/``Decimal``/``float``/numeric ``str`` (decimal),
  ``bool`` (boolean), ``int``/``datetime`` (epochSeconds), or ``None`` when the
  unset marker is mapped.

Encodings
| Type          | Raw word
|---------------|-------------------------------------------------------------
| string        | UTF-8 right-padded with zeros; keccak-256 when longer than 32 bytes
| decimal       | n = value * 10**decimals, big-endian, two's complement if signed
| boolean       | 0 (false) / 1 (true)
| epochSeconds  | unsigned big-endian seconds

Examples:
    >>> from dtraits.core.loader import load_schema
    >>> from dtraits.core.grammar import CallerRole
    >>> schema = load_schema({"traits": {"points": {"displayName": "Points",
    ...     "dataType": {"type": "decimal", "bits": 16, "decimals": 1}}}})
    >>> entry = next(iter(schema))
    >>> v = validate_and_normalize(entry, "12.5", CallerRole.PRIVILEGED)
    >>> int.from_bytes(v.raw, "big"), v.display
    (125, Decimal('12.5'))
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from dtraits.core.constants import FALSE_WORD, MAX_BITS, TRUE_WORD, WORD_SIZE
from dtraits.core.errors import InvalidConstraint, OutOfRange, Overflow
from dtraits.core.grammar import (
    CallerRole,
    DataTypeKind,
    coerce_word,
    int_from_word,
    is_word_hex,
    uint_from_word,
    word_from_int,
    word_from_short_hex,
    word_to_hex,
)
from dtraits.core.hashing import keccak256
from dtraits.core.schema import (
    BooleanType,
    DataType,
    DecimalType,
    EpochSecondsType,
    StringType,
    TraitSchemaEntry,
)
from dtraits.core.typing import DisplayValue

from .permissions import DEFAULT_POLICY, PermissionPolicy, check_permission

__all__ = [
    "NormalizedValue",
    "is_raw_candidate",
    "normalize_value",
    "validate_and_normalize",
    "denormalize",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedValue:
    """
    Validated trait value.

    Attributes:
        raw (bytes): 32-byte word to persist.
        display (DisplayValue): Human-facing value (None when mapped to unset).
        mapped (bool): True if resolved through the entry's value mappings.
    """

    raw: bytes
    display: DisplayValue
    mapped: bool = False

    @property
    def raw_hex(self) -> str:
        return word_to_hex(self.raw)


def is_raw_candidate(candidate: Any) -> bool:
    """Return True if a candidate is a raw 32-byte word (bytes or hex string)."""
    if isinstance(candidate, (bytes, bytearray)):
        return True
    return is_word_hex(candidate)


# ----------------------------------------------------------------------------
# string
# ----------------------------------------------------------------------------


def _check_length(dt: StringType, s: str) -> None:
    if not dt.min_length <= len(s) <= dt.max_length:
        raise OutOfRange(
            f"string length {len(s)} outside [{dt.min_length}, {dt.max_length}]"
        )


def _unpack_string(raw: bytes) -> str | None:
    body = raw.rstrip(b"\x00")
    if b"\x00" in body:
        return None
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError:
        return None


def _string_from_raw(dt: StringType, raw: bytes) -> NormalizedValue:
    s = _unpack_string(raw)
    if s is None:
        raise OutOfRange(f"raw value {word_to_hex(raw)} is not a packed UTF-8 string")
    _check_length(dt, s)
    return NormalizedValue(raw, s)


def _string_coerce(dt: StringType, value: Any) -> str:
    if not isinstance(value, str):
        raise OutOfRange(f"string trait expects a str, got {value!r}")
    return value


def _string_encode(dt: StringType, s: str) -> NormalizedValue:
    if "\x00" in s:
        raise OutOfRange("string values must not contain NUL characters")
    _check_length(dt, s)
    data = s.encode("utf-8")
    if len(data) <= WORD_SIZE:
        raw = data.ljust(WORD_SIZE, b"\x00")
    else:
        raw = keccak256(data)
    return NormalizedValue(raw, s)


# ----------------------------------------------------------------------------
# decimal
# ----------------------------------------------------------------------------


def _scale_down(n: int, decimals: int) -> int | Decimal:
    if decimals == 0:
        return n
    # String construction is exact regardless of the decimal context precision.
    return Decimal(f"{n}E-{decimals}")


def _check_bits(dt: DecimalType, n: int) -> None:
    if not dt.min_value <= n <= dt.max_value:
        sign = "signed" if dt.signed else "unsigned"
        raise Overflow(f"value {n} does not fit {sign} {dt.bits} bits")


def _decimal_from_raw(dt: DecimalType, raw: bytes) -> NormalizedValue:
    n = int_from_word(raw, signed=dt.signed)
    _check_bits(dt, n)
    return NormalizedValue(raw, _scale_down(n, dt.decimals))


def _decimal_coerce(dt: DecimalType, value: Any) -> int | Decimal:
    if isinstance(value, bool):
        raise OutOfRange(f"decimal trait expects a number, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, (Decimal, str)):
        try:
            d = Decimal(value)
        except InvalidOperation as exc:
            raise OutOfRange(f"decimal trait expects a number, got {value!r}") from exc
        if not d.is_finite():
            raise OutOfRange(f"decimal trait expects a finite number, got {value!r}")
        return d
    raise OutOfRange(f"decimal trait expects a number, got {value!r}")


def _max_digits(dt: DecimalType) -> int:
    return len(str(max(dt.max_value, -dt.min_value)))


def _scale_up(value: int | Decimal, decimals: int, max_digits: int) -> int:
    if isinstance(value, int):
        return value * 10**decimals
    sign, digits, exponent = value.as_tuple()
    significant = "".join(str(d) for d in digits).rstrip("0")
    if not significant:
        return 0
    # Bounds are checked on the exponent so 10**shift stays small.
    shift = int(exponent) + len(digits) - len(significant) + decimals
    if shift < 0:
        raise OutOfRange(f"{value} has more than {decimals} fractional digits")
    if len(significant) + shift > max_digits:
        raise Overflow(f"value {value} does not fit {max_digits} decimal digits")
    n = int(significant) * 10**shift
    return -n if sign else n


def _decimal_encode(dt: DecimalType, value: int | Decimal) -> NormalizedValue:
    if value < 0 and not dt.signed:
        raise OutOfRange(f"unsigned decimal trait cannot hold {value}")
    n = _scale_up(value, dt.decimals, _max_digits(dt))
    _check_bits(dt, n)
    return NormalizedValue(word_from_int(n, signed=dt.signed), _scale_down(n, dt.decimals))


# ----------------------------------------------------------------------------
# boolean
# ----------------------------------------------------------------------------


def _boolean_from_raw(dt: BooleanType, raw: bytes) -> NormalizedValue:
    if raw == TRUE_WORD:
        return NormalizedValue(raw, True)
    if raw == FALSE_WORD:
        return NormalizedValue(raw, False)
    raise InvalidConstraint(
        f"raw value {word_to_hex(raw)} is neither a canonical boolean nor a mapped alias"
    )


def _boolean_coerce(dt: BooleanType, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidConstraint(f"boolean trait expects a bool, got {value!r}")
    return value


def _boolean_encode(dt: BooleanType, value: bool) -> NormalizedValue:
    return NormalizedValue(TRUE_WORD if value else FALSE_WORD, value)


# ----------------------------------------------------------------------------
# epochSeconds
# ----------------------------------------------------------------------------


def _epoch_from_raw(dt: EpochSecondsType, raw: bytes) -> NormalizedValue:
    return NormalizedValue(raw, uint_from_word(raw))


def _epoch_coerce(dt: EpochSecondsType, value: Any) -> int:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return int(value.timestamp())
    if isinstance(value, bool) or not isinstance(value, int):
        raise OutOfRange(f"epochSeconds trait expects an int or datetime, got {value!r}")
    return value


def _epoch_encode(dt: EpochSecondsType, seconds: int) -> NormalizedValue:
    if seconds < 0:
        raise OutOfRange(f"epochSeconds cannot be negative: {seconds}")
    if seconds.bit_length() > MAX_BITS:
        raise Overflow(f"epochSeconds value {seconds} does not fit {MAX_BITS} bits")
    return NormalizedValue(word_from_int(seconds), seconds)


_FROM_RAW: dict[DataTypeKind, Callable[[Any, bytes], NormalizedValue]] = {
    DataTypeKind.STRING: _string_from_raw,
    DataTypeKind.DECIMAL: _decimal_from_raw,
    DataTypeKind.BOOLEAN: _boolean_from_raw,
    DataTypeKind.EPOCH_SECONDS: _epoch_from_raw,
}

_COERCE: dict[DataTypeKind, Callable[[Any, Any], Any]] = {
    DataTypeKind.STRING: _string_coerce,
    DataTypeKind.DECIMAL: _decimal_coerce,
    DataTypeKind.BOOLEAN: _boolean_coerce,
    DataTypeKind.EPOCH_SECONDS: _epoch_coerce,
}

_ENCODE: dict[DataTypeKind, Callable[[Any, Any], NormalizedValue]] = {
    DataTypeKind.STRING: _string_encode,
    DataTypeKind.DECIMAL: _decimal_encode,
    DataTypeKind.BOOLEAN: _boolean_encode,
    DataTypeKind.EPOCH_SECONDS: _epoch_encode,
}


def _raw_to_value(dt: DataType, raw: bytes) -> NormalizedValue:
    table = dt.value_mappings
    if table is not None:
        found, display = table.lookup_raw(raw)
        if found:
            return NormalizedValue(raw, display, mapped=True)
    return _FROM_RAW[dt.kind](dt, raw)


def normalize_value(entry: TraitSchemaEntry, candidate: Any) -> NormalizedValue:
    """
    Validate a candidate against an entry's data type, without a permission check.

    Args:
        entry (TraitSchemaEntry): Schema entry for the trait.
        candidate (Any): Raw word or display value.

    Returns:
        NormalizedValue: Raw word plus its display form.

    Raises:
        OutOfRange: Length/range/type violations, or an unmapped value whose
            encoding is reserved by a value mapping key.
        Overflow: Value wider than the declared bits.
        InvalidConstraint: Boolean value neither canonical nor mapped.
    """
    dt = entry.data_type
    if is_raw_candidate(candidate):
        try:
            raw = coerce_word(candidate)
        except ValueError as exc:
            raise OutOfRange(str(exc)) from exc
        return _raw_to_value(dt, raw)

    table = dt.value_mappings
    value = candidate if candidate is None else _COERCE[dt.kind](dt, candidate)
    if table is not None:
        raw = table.lookup_display(value)
        if raw is not None:
            return NormalizedValue(raw, table.by_raw[raw], mapped=True)
    if value is None:
        raise OutOfRange(f"trait {entry.name!r} has no mapping for the unset value")
    encoded = _ENCODE[dt.kind](dt, value)
    # A word that is a mapping key always reads back as its alias.
    if table is not None and encoded.raw in table:
        raise OutOfRange(
            f"{value!r} encodes to {encoded.raw_hex}, which is reserved for the mapped value "
            f"{table.by_raw[encoded.raw]!r} of trait {entry.name!r}"
        )
    return encoded


def validate_and_normalize(
    entry: TraitSchemaEntry,
    candidate: Any,
    caller_role: CallerRole,
    *,
    policy: PermissionPolicy = DEFAULT_POLICY,
) -> NormalizedValue:
    """
    Check permission, then validate and normalize a candidate value.

    Args:
        entry (TraitSchemaEntry): Schema entry for the trait.
        candidate (Any): Raw word or display value.
        caller_role (CallerRole): Role of the caller.
        policy (PermissionPolicy): Authorization scheme (default: owner flag + privileged).

    Returns:
        NormalizedValue: Raw word to persist plus its display form.

    Raises:
        Unauthorized: Checked first, regardless of value validity.
        OutOfRange, Overflow, InvalidConstraint: See ``normalize_value``.
    """
    check_permission(entry, caller_role, policy)
    value = normalize_value(entry, candidate)
    logger.debug("normalized %r for trait %r to %s", candidate, entry.name, value.raw_hex)
    return value


def denormalize(entry: TraitSchemaEntry, raw: bytes | str) -> DisplayValue:
    """
    Decode a stored raw word to its display form.

    Hex strings may be shortened (``0x0`` is the zero word), as in value mappings.

    Mapped words resolve to their mapped value (including None for unset). Unmapped
    string words that are not packed UTF-8 (e.g. hashes of long strings) decode to
    their hex form.

    Raises:
        Overflow: Decimal word wider than the declared bits.
        InvalidConstraint: Boolean word neither canonical nor mapped.
    """
    word = word_from_short_hex(raw) if isinstance(raw, str) else coerce_word(raw)
    dt = entry.data_type
    if isinstance(dt, StringType):
        table = dt.value_mappings
        if table is not None:
            found, display = table.lookup_raw(word)
            if found:
                return display
        s = _unpack_string(word)
        return word_to_hex(word) if s is None else s
    return _raw_to_value(dt, word).display

"""
Pydantic v2 models for trait metadata: data type variants, value mapping tables,
schema entries, and the immutable loaded schema.

Responsibilities
- Model ``dataType`` as a closed tagged variant (string | decimal | boolean |
  epochSeconds), each arm carrying its own constraints and validators.
- Build value mapping tables once per entry with two co-maintained lookups
  (raw word -> display value, display value -> raw word).
- Hold the loaded schema as an immutable value keyed by trait key.

Style
- Zero-IO (stdlib + pydantic only).
- Field names are snake_case; document aliases are camelCase as written in trait
  metadata documents (``displayName``, ``dataType``, ``valueMappings``...).
- Validators raise ValueError; dtraits.core.loader translates the resulting
  pydantic ValidationError into InvalidConstraint.

References
- grammar: src/dtraits/core/grammar.py (enums, word helpers)
- loader: src/dtraits/core/loader.py (cross-entry checks)
- tests: tests/core/*
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Any, ClassVar, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import DEFAULT_DECIMAL_BITS, DEFAULT_MAX_STRING_LENGTH, MAX_BITS, WORD_SIZE
from .grammar import (
    DataTypeKind,
    SaleValidation,
    sale_validation_from_value,
    word_from_short_hex,
    word_to_hex,
)
from .typing import DisplayValue, JsonDict, TraitKey

__all__ = [
    "ValueMappingTable",
    "display_key",
    "StringType",
    "DecimalType",
    "BooleanType",
    "EpochSecondsType",
    "DataType",
    "DATA_TYPE_MODELS",
    "TraitSchemaEntry",
    "TraitSchema",
]


# ============================================================================
# Value mappings
# ============================================================================


def display_key(value: Any) -> tuple[Any, ...]:
    """
    Comparison key for display values.

    Numbers compare by value (``1 == 1.0``), booleans never compare equal to numbers,
    and None is its own class.

    Raises:
        ValueError: If the value is not a supported display type.
    """
    if value is None:
        return ("null",)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, Decimal)):
        return ("number", Decimal(value))
    if isinstance(value, float):
        return ("number", Decimal(str(value)))
    if isinstance(value, str):
        return ("str", value)
    raise ValueError(f"unsupported display value {value!r}")


@dataclass(frozen=True)
class ValueMappingTable:
    """
    Bidirectional alias table between raw words and display values.

    Attributes:
        by_raw (Mapping[bytes, DisplayValue]): raw word -> display value.
        by_display (Mapping[tuple, bytes]): display_key(value) -> raw word.

    Notes:
        Built once at load time; uniqueness of display values is enforced in
        ``build`` and never re-checked per call.

    Examples:
        >>> t = ValueMappingTable.build({"0x0": None, "0x1": "one"}, lambda v: True)
        >>> t.lookup_raw(bytes(32))
        (True, None)
        >>> t.lookup_display("one") == (1).to_bytes(32, "big")
        True
    """

    by_raw: Mapping[bytes, DisplayValue]
    by_display: Mapping[tuple[Any, ...], bytes]

    @classmethod
    def build(
        cls,
        mappings: Mapping[str, Any],
        accepts: Callable[[Any], bool],
    ) -> ValueMappingTable:
        """
        Build a table from a document ``valueMappings`` object.

        Args:
            mappings: hex string -> display value.
            accepts: Predicate for display values allowed by the owning data type.

        Raises:
            ValueError: On malformed keys, keys that normalise to the same word,
                display values of the wrong type, or duplicate display values.
        """
        by_raw: dict[bytes, DisplayValue] = {}
        by_display: dict[tuple[Any, ...], bytes] = {}
        for raw_hex, display in mappings.items():
            raw = word_from_short_hex(raw_hex)
            if raw in by_raw:
                raise ValueError(f"valueMappings key {raw_hex!r} duplicates {word_to_hex(raw)}")
            if not accepts(display):
                raise ValueError(f"valueMappings value {display!r} not allowed for this data type")
            if isinstance(display, float):
                display = Decimal(str(display))
            dkey = display_key(display)
            if dkey in by_display:
                raise ValueError(f"valueMappings value {display!r} is mapped more than once")
            by_raw[raw] = display
            by_display[dkey] = raw
        return cls(by_raw=MappingProxyType(by_raw), by_display=MappingProxyType(by_display))

    def lookup_raw(self, raw: bytes) -> tuple[bool, DisplayValue]:
        """Return ``(found, display)`` for a raw word."""
        if raw in self.by_raw:
            return True, self.by_raw[raw]
        return False, None

    def lookup_display(self, value: Any) -> bytes | None:
        """Return the raw word mapped to a display value, or None."""
        try:
            return self.by_display.get(display_key(value))
        except ValueError:
            return None

    def to_document(self) -> JsonDict:
        return {word_to_hex(raw): _display_to_doc(v) for raw, v in self.by_raw.items()}

    def __len__(self) -> int:
        return len(self.by_raw)

    def __contains__(self, raw: object) -> bool:
        return raw in self.by_raw


def _display_to_doc(value: DisplayValue) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


# ============================================================================
# Data type variants
# ============================================================================


class _DataTypeBase(BaseModel):
    """Fields shared by every data type variant."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    kind: ClassVar[DataTypeKind]
    # Document field names accepted for this variant (strict mode).
    document_fields: ClassVar[frozenset[str]] = frozenset({"type", "valueMappings"})

    value_mappings: ValueMappingTable | None = Field(default=None, alias="valueMappings")

    @classmethod
    def accepts_display(cls, value: Any) -> bool:
        raise NotImplementedError

    @field_validator("value_mappings", mode="before")
    @classmethod
    def _build_value_mappings(cls, v: Any) -> Any:
        if v is None or isinstance(v, ValueMappingTable):
            return v
        if not isinstance(v, Mapping):
            raise ValueError("valueMappings must be an object")
        return ValueMappingTable.build(v, cls.accepts_display)

    def to_document(self) -> JsonDict:
        out: dict[str, Any] = {"type": self.kind.value}
        out.update(self._constraints_to_document())
        if self.value_mappings is not None:
            out["valueMappings"] = self.value_mappings.to_document()
        return out

    def _constraints_to_document(self) -> dict[str, Any]:
        return {}


class StringType(_DataTypeBase):
    """
    String trait.

    Attributes:
        min_length (int): Minimum display length of unmapped values (default 0).
        max_length (int): Maximum display length of unmapped values
            (default DEFAULT_MAX_STRING_LENGTH).
        value_mappings (ValueMappingTable | None): raw -> str | None aliases.

    Raises:
        pydantic.ValidationError: If minLength > maxLength or either is negative.
    """

    kind: ClassVar[DataTypeKind] = DataTypeKind.STRING
    document_fields: ClassVar[frozenset[str]] = frozenset(
        {"type", "valueMappings", "minLength", "maxLength"}
    )

    type: Literal["string"] = "string"
    min_length: int = Field(default=0, ge=0, alias="minLength", strict=True)
    max_length: int = Field(default=DEFAULT_MAX_STRING_LENGTH, ge=0, alias="maxLength", strict=True)

    @classmethod
    def accepts_display(cls, value: Any) -> bool:
        return value is None or isinstance(value, str)

    @model_validator(mode="after")
    def _check_bounds(self) -> StringType:
        if self.min_length > self.max_length:
            raise ValueError(
                f"minLength ({self.min_length}) must not exceed maxLength ({self.max_length})"
            )
        return self

    def _constraints_to_document(self) -> dict[str, Any]:
        return {"minLength": self.min_length, "maxLength": self.max_length}


class DecimalType(_DataTypeBase):
    """
    Fixed-point numeric trait.

    Attributes:
        signed (bool): Two's complement when True (default False).
        bits (int): Maximum bit width of the stored integer, 1..256 (default 256).
        decimals (int): Fractional digits shown on display (default 0, must be <= bits).
        value_mappings (ValueMappingTable | None): raw -> number | None aliases.

    Notes:
        A stored integer ``n`` displays as ``n / 10**decimals``.

    Examples:
        >>> DecimalType(bits=16).max_value
        65535
        >>> DecimalType(bits=8, signed=True).min_value
        -128
    """

    kind: ClassVar[DataTypeKind] = DataTypeKind.DECIMAL
    document_fields: ClassVar[frozenset[str]] = frozenset(
        {"type", "valueMappings", "signed", "bits", "decimals"}
    )

    type: Literal["decimal"] = "decimal"
    signed: bool = Field(default=False, strict=True)
    bits: int = Field(default=DEFAULT_DECIMAL_BITS, ge=1, le=MAX_BITS, strict=True)
    decimals: int = Field(default=0, ge=0, strict=True)

    @classmethod
    def accepts_display(cls, value: Any) -> bool:
        return value is None or (
            isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)
        )

    @model_validator(mode="after")
    def _check_decimals(self) -> DecimalType:
        if self.decimals > self.bits:
            raise ValueError(f"decimals ({self.decimals}) must not exceed bits ({self.bits})")
        return self

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    def _constraints_to_document(self) -> dict[str, Any]:
        return {"signed": self.signed, "bits": self.bits, "decimals": self.decimals}


class BooleanType(_DataTypeBase):
    """Boolean trait; canonical words are 0 (false) and 1 (true)."""

    kind: ClassVar[DataTypeKind] = DataTypeKind.BOOLEAN

    type: Literal["boolean"] = "boolean"

    @classmethod
    def accepts_display(cls, value: Any) -> bool:
        return value is None or isinstance(value, bool)


class EpochSecondsType(_DataTypeBase):
    """Unsigned seconds since the Unix epoch."""

    kind: ClassVar[DataTypeKind] = DataTypeKind.EPOCH_SECONDS

    type: Literal["epochSeconds"] = "epochSeconds"

    @classmethod
    def accepts_display(cls, value: Any) -> bool:
        return value is None or (
            isinstance(value, int) and not isinstance(value, bool) and value >= 0
        )


DataType = Union[StringType, DecimalType, BooleanType, EpochSecondsType]

DATA_TYPE_MODELS: Mapping[DataTypeKind, type[_DataTypeBase]] = MappingProxyType(
    {
        DataTypeKind.STRING: StringType,
        DataTypeKind.DECIMAL: DecimalType,
        DataTypeKind.BOOLEAN: BooleanType,
        DataTypeKind.EPOCH_SECONDS: EpochSecondsType,
    }
)


# ============================================================================
# Entries and schema
# ============================================================================


class TraitSchemaEntry(BaseModel):
    """
    One trait in a metadata document.

    Attributes:
        name (str): Trait name as written in the document (literal key or plain name).
        key (bytes): Canonical 32-byte trait key derived from ``name``.
        display_name (str): Human-readable label, unique across the schema.
        data_type (DataType): Tagged data type variant.
        token_owner_can_update_value (bool): Owner may set this trait (default False).
        consumption_validation_on_sale (SaleValidation): Marketplace policy
            (default ``none``). Accepts ``validateOnSale`` as an alias.

    Examples:
        >>> from dtraits.core.schema import TraitSchemaEntry, BooleanType
        >>> e = TraitSchemaEntry(name="burned", key=bytes(32), displayName="Burned",
        ...                      dataType=BooleanType())
        >>> e.consumption_validation_on_sale.value
        'none'
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, arbitrary_types_allowed=True)

    document_fields: ClassVar[frozenset[str]] = frozenset(
        {
            "displayName",
            "dataType",
            "tokenOwnerCanUpdateValue",
            "consumptionValidationOnSale",
            "validateOnSale",
        }
    )

    name: str
    key: bytes
    display_name: str = Field(alias="displayName", min_length=1, strict=True)
    data_type: DataType = Field(alias="dataType")
    token_owner_can_update_value: bool = Field(
        default=False, alias="tokenOwnerCanUpdateValue", strict=True
    )
    consumption_validation_on_sale: SaleValidation = Field(
        default=SaleValidation.NONE,
        validation_alias=AliasChoices(
            "consumptionValidationOnSale", "validateOnSale", "consumption_validation_on_sale"
        ),
    )

    @field_validator("key", mode="before")
    @classmethod
    def _check_key(cls, v: Any) -> Any:
        if not isinstance(v, (bytes, bytearray)) or len(v) != WORD_SIZE:
            raise ValueError(f"trait key must be {WORD_SIZE} bytes")
        return bytes(v)

    @field_validator("consumption_validation_on_sale", mode="before")
    @classmethod
    def _normalize_sale_validation(cls, v: Any) -> Any:
        if v is None:
            return SaleValidation.NONE
        if isinstance(v, SaleValidation):
            return v
        if not isinstance(v, str):
            raise ValueError(f"consumptionValidationOnSale must be a string, got {v!r}")
        return sale_validation_from_value(v)

    @property
    def kind(self) -> DataTypeKind:
        return self.data_type.kind

    @property
    def key_hex(self) -> str:
        return word_to_hex(self.key)

    @property
    def value_mappings(self) -> ValueMappingTable | None:
        return self.data_type.value_mappings

    def to_document(self) -> JsonDict:
        """Render the descriptor back to its document form (camelCase)."""
        out: dict[str, Any] = {
            "displayName": self.display_name,
            "dataType": self.data_type.to_document(),
        }
        if self.token_owner_can_update_value:
            out["tokenOwnerCanUpdateValue"] = True
        if self.consumption_validation_on_sale is not SaleValidation.NONE:
            out["consumptionValidationOnSale"] = self.consumption_validation_on_sale.value
        return out


@dataclass(frozen=True)
class TraitSchema:
    """
    Immutable result of a successful load.

    Attributes:
        entries (Mapping[TraitKey, TraitSchemaEntry]): trait key -> entry, document order.
        names (Mapping[str, TraitKey]): trait name as written -> trait key.
        display_names (Mapping[str, TraitKey]): displayName -> trait key.
        fingerprint (bytes): keccak-256 of the canonical JSON of the source document.

    Notes:
        Schemas are replaced wholesale on a metadata URI update; entries are never
        mutated in place.
    """

    entries: Mapping[TraitKey, TraitSchemaEntry]
    names: Mapping[str, TraitKey]
    display_names: Mapping[str, TraitKey]
    fingerprint: bytes

    def get(self, key: bytes) -> TraitSchemaEntry | None:
        return self.entries.get(key)

    def __getitem__(self, key: bytes) -> TraitSchemaEntry:
        return self.entries[key]

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __iter__(self) -> Iterator[TraitSchemaEntry]:
        return iter(self.entries.values())

    def __len__(self) -> int:
        return len(self.entries)

    def to_document(self) -> JsonDict:
        return {"traits": {e.name: e.to_document() for e in self}}

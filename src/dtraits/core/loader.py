"""
Schema loader: parse a trait metadata document into an immutable TraitSchema.

The load is a pure, one-shot parse + validate. It either returns a fully validated
schema or raises a SchemaLoadError subclass; no partial schema is produced.

Checks, in order:
1. Document shape (and unknown fields when ``strict``) -> InvalidConstraint
2. ``dataType.type`` is a recognised variant -> UnknownDataType
3. Type-specific constraints and value mappings -> InvalidConstraint
4. Key derivation collisions -> KeyCollision / AmbiguousKey
5. displayName uniqueness -> DisplayNameCollision

Examples:
    >>> from dtraits.core.loader import load_schema
    >>> schema = load_schema({"traits": {"points": {
    ...     "displayName": "Points",
    ...     "dataType": {"type": "decimal", "bits": 16}}}})
    >>> len(schema)
    1
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from .constants import DEFAULT_MAX_STRING_LENGTH
from .errors import DisplayNameCollision, InvalidConstraint, UnknownDataType
from .grammar import DataTypeKind, data_type_from_value
from .hashing import hash_document
from .keys import build_key_index
from .schema import DATA_TYPE_MODELS, DataType, TraitSchema, TraitSchemaEntry
from .typing import TraitKey

__all__ = ["load_schema", "TOP_LEVEL_FIELDS"]

logger = logging.getLogger(__name__)

TOP_LEVEL_FIELDS: frozenset[str] = frozenset({"traits"})


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def _check_unknown_fields(where: str, data: Mapping[str, Any], allowed: frozenset[str]) -> None:
    extras = sorted(k for k in data if k not in allowed)
    if extras:
        raise InvalidConstraint(f"{where}: unexpected fields {extras!r}")


def _parse_data_type(
    name: str,
    raw: Any,
    *,
    default_max_length: int,
    strict: bool,
) -> DataType:
    if not isinstance(raw, Mapping):
        raise InvalidConstraint(f"trait {name!r}: dataType must be an object")
    if "type" not in raw:
        raise UnknownDataType(f"trait {name!r}: dataType.type is missing")
    type_value = raw["type"]
    if not isinstance(type_value, str):
        raise UnknownDataType(f"trait {name!r}: dataType.type must be a string, got {type_value!r}")
    try:
        kind = data_type_from_value(type_value)
    except ValueError as exc:
        raise UnknownDataType(f"trait {name!r}: {exc}") from exc

    model = DATA_TYPE_MODELS[kind]
    if strict:
        _check_unknown_fields(f"trait {name!r} dataType", raw, model.document_fields)

    data = dict(raw)
    data["type"] = kind.value
    if kind is DataTypeKind.STRING:
        data.setdefault("maxLength", default_max_length)
    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError as exc:
        raise InvalidConstraint(
            f"trait {name!r} dataType: {_format_validation_error(exc)}"
        ) from exc


def load_schema(
    document: Mapping[str, Any],
    *,
    default_max_length: int = DEFAULT_MAX_STRING_LENGTH,
    strict: bool = True,
) -> TraitSchema:
    """
    Load and fully validate a trait metadata document.

    Args:
        document (Mapping[str, Any]): Decoded JSON with a top-level ``traits`` object.
        default_max_length (int): maxLength applied to string traits that omit it.
        strict (bool): Reject unknown fields at every level.

    Returns:
        TraitSchema: Immutable schema keyed by trait key.

    Raises:
        InvalidConstraint: Malformed document or violated type constraint.
        UnknownDataType: Unrecognised ``dataType.type``.
        KeyCollision: Literal key equals another trait's hashed name.
        AmbiguousKey: Two names derive the same key.
        DisplayNameCollision: Duplicate displayName.
    """
    if not isinstance(document, Mapping):
        raise InvalidConstraint("trait metadata document must be an object")
    if strict:
        _check_unknown_fields("document", document, TOP_LEVEL_FIELDS)
    traits = document.get("traits")
    if not isinstance(traits, Mapping):
        raise InvalidConstraint("trait metadata document requires a 'traits' object")

    for name, descriptor in traits.items():
        if not isinstance(name, str) or not name:
            raise InvalidConstraint(f"trait names must be non-empty strings, got {name!r}")
        if not isinstance(descriptor, Mapping):
            raise InvalidConstraint(f"trait {name!r}: descriptor must be an object")

    # Parse every data type before deriving keys so constraint errors win over collisions.
    data_types: dict[str, DataType] = {}
    for name, descriptor in traits.items():
        if strict:
            _check_unknown_fields(f"trait {name!r}", descriptor, TraitSchemaEntry.document_fields)
        data_types[name] = _parse_data_type(
            name,
            descriptor.get("dataType"),
            default_max_length=default_max_length,
            strict=strict,
        )

    key_index = build_key_index(traits.keys())

    entries: dict[TraitKey, TraitSchemaEntry] = {}
    display_names: dict[str, TraitKey] = {}
    for name, descriptor in traits.items():
        payload = dict(descriptor)
        payload["dataType"] = data_types[name]
        try:
            entry = TraitSchemaEntry.model_validate({**payload, "name": name, "key": key_index[name]})
        except ValidationError as exc:
            raise InvalidConstraint(f"trait {name!r}: {_format_validation_error(exc)}") from exc
        prev = display_names.get(entry.display_name)
        if prev is not None:
            raise DisplayNameCollision(
                f"displayName {entry.display_name!r} is used by more than one trait "
                f"({entries[prev].name!r} and {name!r})"
            )
        display_names[entry.display_name] = key_index[name]
        entries[key_index[name]] = entry

    try:
        fingerprint = hash_document(document)
    except (TypeError, ValueError) as exc:
        raise InvalidConstraint(f"trait metadata document is not JSON-serializable: {exc}") from exc

    schema = TraitSchema(
        entries=MappingProxyType(entries),
        names=MappingProxyType(dict(key_index)),
        display_names=MappingProxyType(display_names),
        fingerprint=fingerprint,
    )
    logger.debug("loaded trait schema with %d traits", len(schema))
    return schema

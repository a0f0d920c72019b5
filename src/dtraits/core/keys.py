"""
Trait key resolution.

A trait name resolves to exactly one 32-byte key: a ``0x``-prefixed 64-hex-digit
name IS the literal key, any other name is hashed with keccak-256 over its UTF-8
bytes. Derivation is schema-independent; the loader uses ``build_key_index`` to
detect collisions between names when a document is loaded.

Examples:
    >>> from dtraits.core.keys import derive_trait_key, is_literal_key
    >>> is_literal_key("0x" + "ab" * 32)
    True
    >>> derive_trait_key("0x" + "AB" * 32) == bytes([0xAB]) * 32
    True
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .errors import AmbiguousKey, KeyCollision
from .grammar import is_word_hex, word_from_hex, word_to_hex
from .hashing import keccak_text
from .schema import TraitSchema
from .typing import TraitKey

__all__ = [
    "is_literal_key",
    "derive_trait_key",
    "build_key_index",
    "resolve",
    "resolve_display_name",
]

logger = logging.getLogger(__name__)


def is_literal_key(name_or_key: str) -> bool:
    """Return True if the string is a well-formed 32-byte hex literal key."""
    return is_word_hex(name_or_key)


def derive_trait_key(name_or_key: str) -> TraitKey:
    """
    Derive the canonical trait key for a name or literal key string.

    Args:
        name_or_key (str): Trait name, or ``0x`` + 64 hex digits.

    Returns:
        TraitKey: The literal key, or keccak-256 of the UTF-8 name.
    """
    if is_literal_key(name_or_key):
        return TraitKey(word_from_hex(name_or_key))
    return TraitKey(keccak_text(name_or_key))


def build_key_index(names: Iterable[str]) -> dict[str, TraitKey]:
    """
    Derive keys for every trait name in a document and check them for collisions.

    Args:
        names (Iterable[str]): Trait names as written in the document.

    Returns:
        dict[str, TraitKey]: name -> key, in input order.

    Raises:
        KeyCollision: A literal key equals the hash of another trait's name.
        AmbiguousKey: Two names derive the same key any other way (e.g. the same
            literal key written in different letter case).
    """
    index: dict[str, TraitKey] = {}
    owners: dict[TraitKey, str] = {}
    for name in names:
        key = derive_trait_key(name)
        prev = owners.get(key)
        if prev is not None:
            literal_prev, literal_new = is_literal_key(prev), is_literal_key(name)
            if literal_prev != literal_new:
                literal, hashed = (prev, name) if literal_prev else (name, prev)
                raise KeyCollision(
                    f"literal key {literal} collides with the hash of trait name {hashed!r}"
                )
            raise AmbiguousKey(
                f"trait names {prev!r} and {name!r} both derive key {word_to_hex(key)}"
            )
        owners[key] = name
        index[name] = key
    return index


def resolve(schema: TraitSchema | None, name_or_key: str | bytes) -> TraitKey:
    """
    Resolve a trait name or key to its canonical trait key.

    Literal keys are valid even when absent from the schema, since a schema is
    advisory. Plain names consult the schema's name table first and fall back to
    hashing.

    Args:
        schema (TraitSchema | None): Loaded schema, if any.
        name_or_key (str | bytes): Trait name, hex literal key, or raw 32-byte key.

    Returns:
        TraitKey: The 32-byte trait key.

    Raises:
        ValueError: If ``name_or_key`` is bytes of the wrong length.
    """
    if isinstance(name_or_key, (bytes, bytearray)):
        if len(name_or_key) != 32:
            raise ValueError(f"trait key must be 32 bytes, got {len(name_or_key)}")
        return TraitKey(bytes(name_or_key))
    if is_literal_key(name_or_key):
        return TraitKey(word_from_hex(name_or_key))
    if schema is not None:
        key = schema.names.get(name_or_key)
        if key is not None:
            return TraitKey(key)
    key = TraitKey(keccak_text(name_or_key))
    logger.debug("resolved trait name %r to %s", name_or_key, word_to_hex(key))
    return key


def resolve_display_name(schema: TraitSchema, display_name: str) -> TraitKey:
    """
    Look up a trait key by its displayName.

    Raises:
        KeyError: If no trait carries that displayName.
    """
    try:
        return TraitKey(schema.display_names[display_name])
    except KeyError:
        raise KeyError(f"no trait with displayName {display_name!r}") from None

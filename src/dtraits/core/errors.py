"""
Core exception types raised by schema loading and trait value validation.

Two families, matching their propagation policy:
- SchemaLoadError: raised while loading a trait metadata document. Fatal to that
  load; no partial schema is ever produced.
- ValueValidationError: raised while validating a single set/get. Recoverable; the
  schema and other records are unaffected.

Notes:
    - Both families subclass ValueError so callers that only care about "bad input"
      can catch the builtin.
    - Pydantic ValidationError raised by schema models is translated to
      InvalidConstraint by dtraits.core.loader.

Examples:
    >>> from dtraits.core.errors import KeyCollision, SchemaLoadError
    >>> issubclass(KeyCollision, SchemaLoadError)
    True
"""

from __future__ import annotations

__all__ = [
    "TraitError",
    "SchemaLoadError",
    "KeyCollision",
    "AmbiguousKey",
    "DisplayNameCollision",
    "UnknownDataType",
    "InvalidConstraint",
    "ValueValidationError",
    "Unauthorized",
    "OutOfRange",
    "Overflow",
    "TraitValueUnchanged",
]


class TraitError(Exception):
    """Base class for every dtraits domain error."""


class SchemaLoadError(TraitError, ValueError):
    """Trait metadata document rejected; the whole load is aborted."""


class KeyCollision(SchemaLoadError):
    """A literal trait key equals the hash-derived key of another trait."""


class AmbiguousKey(KeyCollision):
    """Two different trait names derive the same trait key."""


class DisplayNameCollision(SchemaLoadError):
    """Two traits share a displayName."""


class UnknownDataType(SchemaLoadError):
    """dataType.type is not one of the recognised variants."""


class InvalidConstraint(SchemaLoadError):
    """
    Type-specific constraint violated.

    Also raised at value-validation time when a boolean raw value is neither the
    canonical encoding nor a mapped alias.
    """


class ValueValidationError(TraitError, ValueError):
    """A single trait value was rejected; nothing was persisted."""


class Unauthorized(ValueValidationError):
    """Caller is not permitted to update the trait."""


class OutOfRange(ValueValidationError):
    """Value violates a length or range bound."""


class Overflow(ValueValidationError):
    """Value requires more bits than the data type declares."""


class TraitValueUnchanged(ValueValidationError):
    """New raw value equals the stored raw value."""

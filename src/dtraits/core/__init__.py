"""
Core package aggregator for dtraits contracts (grammar, schema models, keys, loader,
hashing/serde, errors).

## Contracts (single source of truth)
- Grammar — data type / sale policy / caller role / event enums and 32-byte word helpers.
- Schema — pydantic models for data type variants, value mapping tables and entries.
- Keys — trait name -> trait key derivation and collision detection.
- Loader — document -> immutable TraitSchema (all-or-nothing).
- Hashing/Serde — keccak-256 and canonical JSON.
- Errors — SchemaLoadError and ValueValidationError families.

## Notes
- Zero-IO policy: stdlib + pydantic + eth-utils only; no file/network IO.

## Examples
```python
from dtraits.core import load_schema, resolve

schema = load_schema({"traits": {"name": {
    "displayName": "Name",
    "dataType": {"type": "string", "minLength": 1, "maxLength": 32},
    "tokenOwnerCanUpdateValue": True,
}}})
key = resolve(schema, "name")
schema[key].token_owner_can_update_value  # True
```
"""

from .errors import (
    AmbiguousKey,
    DisplayNameCollision,
    InvalidConstraint,
    KeyCollision,
    OutOfRange,
    Overflow,
    SchemaLoadError,
    TraitError,
    TraitValueUnchanged,
    Unauthorized,
    UnknownDataType,
    ValueValidationError,
)
from .grammar import CallerRole, DataTypeKind, EventName, SaleValidation
from .keys import derive_trait_key, resolve, resolve_display_name
from .loader import load_schema
from .schema import TraitSchema, TraitSchemaEntry, ValueMappingTable

__all__ = [
    "AmbiguousKey",
    "DisplayNameCollision",
    "InvalidConstraint",
    "KeyCollision",
    "OutOfRange",
    "Overflow",
    "SchemaLoadError",
    "TraitError",
    "TraitValueUnchanged",
    "Unauthorized",
    "UnknownDataType",
    "ValueValidationError",
    "CallerRole",
    "DataTypeKind",
    "EventName",
    "SaleValidation",
    "derive_trait_key",
    "resolve",
    "resolve_display_name",
    "load_schema",
    "TraitSchema",
    "TraitSchemaEntry",
    "ValueMappingTable",
]

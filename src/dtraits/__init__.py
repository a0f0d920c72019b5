"""
dtraits — dynamic, typed trait metadata for non-fungible tokens.

## Layers
- dtraits.core — grammar, schema models, key resolver, schema loader (zero-IO).
- dtraits.engine — permission policy, value validation/decoding, sale checks.
- dtraits.host — reference host: trait storage, caller roles, update events.
- dtraits.io — settings, document loading (data/file URIs), Parquet snapshots.
- dtraits.cli — command line utilities.

## Examples
```python
from dtraits.core import CallerRole, load_schema, resolve
from dtraits.engine import denormalize, validate_and_normalize

schema = load_schema(document)
entry = schema[resolve(schema, "points")]
value = validate_and_normalize(entry, 150, CallerRole.PRIVILEGED)
denormalize(entry, value.raw)  # 150
```
"""

__version__ = "0.1.0"

__all__ = ["__version__"]

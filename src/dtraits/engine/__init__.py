"""
dtraits.engine — Trait Value Engine.

## Responsibilities
- Permission policy (capability-gated updates), independent of type validation.
- Value validation/normalization against a schema entry and the reverse decode.
- Sale-consumption checks for marketplaces.

## Import DAG discipline
- Depends only on dtraits.core; stateless and side-effect free.
"""

from .permissions import (
    DEFAULT_POLICY,
    DefaultPermissionPolicy,
    DenyAllPolicy,
    PermissionPolicy,
    check_permission,
)
from .sale import check_consumption_on_sale, entry_accepts_sale
from .values import (
    NormalizedValue,
    denormalize,
    is_raw_candidate,
    normalize_value,
    validate_and_normalize,
)

__all__ = [
    "DEFAULT_POLICY",
    "DefaultPermissionPolicy",
    "DenyAllPolicy",
    "PermissionPolicy",
    "check_permission",
    "check_consumption_on_sale",
    "entry_accepts_sale",
    "NormalizedValue",
    "denormalize",
    "is_raw_candidate",
    "normalize_value",
    "validate_and_normalize",
]

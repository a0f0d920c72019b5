"""
Lightweight typing aliases used across dtraits.

Provides a NewType for 32-byte trait keys, the display value union and a JSON-like
mapping alias for document boundaries. This module contains no runtime logic and
is zero-IO.

Examples:
    >>> from dtraits.core.typing import TraitKey
    >>> len(TraitKey(bytes(32)))
    32
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, NewType, Union

__all__ = [
    "TraitKey",
    "DisplayValue",
    "JsonDict",
]

# Canonical 32-byte trait identifier.
TraitKey = NewType("TraitKey", bytes)

# Human-facing value after mapping/decoding; None is the "unset" marker.
DisplayValue = Union[str, int, Decimal, bool, None]

# Decoded JSON object, as read from or rendered to a trait metadata document.
JsonDict = dict[str, Any]

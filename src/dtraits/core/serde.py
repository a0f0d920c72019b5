"""
Lightweight JSON serialization/deserialization utilities.

Provides `json_loads` as a thin wrapper around the stdlib `json` module and
re-exports `json_dumps_canonical` from `dtraits.core.hashing` to keep a single
canonical JSON policy. Display values are converted to JSON-friendly forms with
`display_to_json`.

Notes:
    - Decimal display values are rendered as strings to keep their exact digits.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

# Re-export canonical dumps to keep a single canonicalization policy.
from .hashing import json_dumps_canonical  # noqa: F401
from .typing import DisplayValue

__all__ = [
    "json_loads",
    "json_dumps_canonical",
    "display_to_json",
]


def json_loads(s: str, **kwargs: Any) -> Any:
    """
    Deserialize a JSON string to Python objects using the stdlib json module.

    Keyword arguments are passed through to ``json.loads`` (e.g. object_pairs_hook).
    """
    return json.loads(s, **kwargs)


def display_to_json(value: DisplayValue) -> Any:
    """
    Convert a display value into a JSON-serializable value.

    Examples:
        >>> from decimal import Decimal
        >>> display_to_json(Decimal("1.50"))
        '1.50'
        >>> display_to_json(None) is None
        True
    """
    if isinstance(value, Decimal):
        return str(value)
    return value

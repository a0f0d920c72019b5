"""
Keccak-256 hashing and canonical JSON helpers.

Trait names that are not literal 32-byte keys are hashed with keccak-256 over their
UTF-8 bytes, the same derivation a contract performs with ``keccak256(bytes(name))``.
Long string values and whole metadata documents are fingerprinted the same way.

Notes:
    - Canonical JSON: sort_keys=True, separators=(",", ":"), ensure_ascii=False.
    - Hashing uses eth_utils.keccak; a keccak backend (pycryptodome) must be installed.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

from eth_utils import keccak

__all__ = [
    "json_dumps_canonical",
    "keccak256",
    "keccak_text",
    "hash_document",
]


def json_dumps_canonical(obj: Any, default: Callable[[Any], Any] | None = None) -> str:
    """
    Serialize an object to a canonical JSON string.

    Args:
        obj (Any): JSON-serializable object.
        default (Callable | None): Fallback for objects json cannot encode (as in ``json.dumps``).

    Returns:
        str: Canonical JSON string with sorted keys and compact separators.
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=default
    )


def keccak256(data: bytes) -> bytes:
    """Return the 32-byte keccak-256 digest of ``data``."""
    return bytes(keccak(primitive=bytes(data)))


def keccak_text(text: str) -> bytes:
    """
    Return the keccak-256 digest of a string's UTF-8 bytes.

    Examples:
        >>> keccak_text("").hex()[:8]
        'c5d24601'
    """
    return bytes(keccak(text=text))


def _decimal_as_text(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def hash_document(document: Mapping[str, Any]) -> bytes:
    """
    Fingerprint a metadata document by hashing its canonical JSON.

    Re-ordering keys does not change the result.

    Decimal values (documents built in Python) are rendered as their exact string.

    Raises:
        TypeError: If the document holds other values JSON cannot encode.
    """
    return keccak_text(json_dumps_canonical(dict(document), default=_decimal_as_text))

"""
dtraits core constants.

Defines word sizes, canonical encodings, and engine defaults consumed by the loader,
the value engine, and the IO layer. This module is zero-IO and uses only the Python
standard library.

Notes:
    - Raw trait values and trait keys are always 32-byte words.
    - DEFAULT_MAX_STRING_LENGTH bounds unmapped string values when a document omits
      ``maxLength``. Settings in dtraits.io.config may override it per process.
"""

from __future__ import annotations

__all__ = [
    "WORD_SIZE",
    "MAX_BITS",
    "ZERO_WORD",
    "FALSE_WORD",
    "TRUE_WORD",
    "DEFAULT_MAX_STRING_LENGTH",
    "DEFAULT_DECIMAL_BITS",
    "COMPRESSION",
]

# Size in bytes of trait keys and raw trait values.
WORD_SIZE: int = 32

# Widest integer a raw word can hold.
MAX_BITS: int = WORD_SIZE * 8

ZERO_WORD: bytes = bytes(WORD_SIZE)

# Canonical boolean encodings.
FALSE_WORD: bytes = ZERO_WORD
TRUE_WORD: bytes = (1).to_bytes(WORD_SIZE, "big")

# Upper bound for unmapped string lengths when a document omits maxLength.
DEFAULT_MAX_STRING_LENGTH: int = 256

DEFAULT_DECIMAL_BITS: int = MAX_BITS

# Default compression codec for snapshot exports.
COMPRESSION: str = "zstd"

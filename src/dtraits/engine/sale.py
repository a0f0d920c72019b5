"""
Sale-consumption checks.

A marketplace captures a trait's raw value when an offer is made and re-checks it
before the sale settles. The entry's ``consumptionValidationOnSale`` policy decides
whether the current value is still acceptable:

| Policy          | Accept iff
|-----------------|------------------------------------------
| none            | always
| requireEq       | current == captured (raw words)
| requireUintGte  | uint(current) >= uint(captured)
| requireUintLte  | uint(current) <= uint(captured)

Examples:
    >>> check_consumption_on_sale("requireUintGte", 100, 150)
    True
    >>> check_consumption_on_sale("requireUintGte", 100, 50)
    False
"""

from __future__ import annotations

from dtraits.core.grammar import (
    SaleValidation,
    coerce_word,
    sale_validation_from_value,
    uint_from_word,
    word_from_uint,
)
from dtraits.core.schema import TraitSchemaEntry

__all__ = ["check_consumption_on_sale", "entry_accepts_sale"]

WordLike = bytes | bytearray | str | int


def _as_word(value: WordLike) -> bytes:
    if isinstance(value, bool):
        raise TypeError("booleans are not words")
    if isinstance(value, int):
        return word_from_uint(value)
    return coerce_word(value)


def check_consumption_on_sale(
    policy: SaleValidation | str,
    captured: WordLike,
    current: WordLike,
) -> bool:
    """
    Decide whether a sale may settle given the captured and current trait values.

    Args:
        policy (SaleValidation | str): Consumption validation policy.
        captured (WordLike): Raw value at offer time (word, hex string or uint).
        current (WordLike): Raw value now.

    Returns:
        bool: True to accept, False to reject.
    """
    policy = sale_validation_from_value(policy) if isinstance(policy, str) else policy
    if policy is SaleValidation.NONE:
        return True
    then, now = _as_word(captured), _as_word(current)
    if policy is SaleValidation.REQUIRE_EQ:
        return now == then
    if policy is SaleValidation.REQUIRE_UINT_GTE:
        return uint_from_word(now) >= uint_from_word(then)
    if policy is SaleValidation.REQUIRE_UINT_LTE:
        return uint_from_word(now) <= uint_from_word(then)
    raise ValueError(f"unhandled sale validation policy {policy!r}")


def entry_accepts_sale(entry: TraitSchemaEntry, captured: WordLike, current: WordLike) -> bool:
    """Apply an entry's own consumption policy."""
    return check_consumption_on_sale(entry.consumption_validation_on_sale, captured, current)

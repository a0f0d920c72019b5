"""
Typed update events emitted by trait hosts.

One frozen dataclass per event kind (single token, inclusive token range, explicit
token list, metadata URI change), plus helpers that tell a reader which tokens to
refresh and flatten an event into a row for tabular export.

Examples:
    >>> ev = TraitUpdatedBulkRange(bytes(32), 1, 3)
    >>> ev.name.value, tokens_covered(ev)
    ('TraitUpdatedBulkRange', (1, 2, 3))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from dtraits.core.grammar import EventName, word_to_hex

__all__ = [
    "TraitUpdated",
    "TraitUpdatedBulkRange",
    "TraitUpdatedBulkList",
    "TraitMetadataURIUpdated",
    "TraitEvent",
    "tokens_covered",
    "event_to_row",
]

# Typed host event log ---------------------------------


@dataclass(frozen=True)
class TraitUpdated:
    """A single token's trait value changed.

    Args:
        trait_key: 32-byte trait key.
        token_id: Token whose value changed.
        value: New raw 32-byte value.

    Examples:
        >>> TraitUpdated(trait_key=bytes(32), token_id=1, value=bytes(32)).token_id
        1
    """

    trait_key: bytes
    token_id: int
    value: bytes

    name = EventName.TRAIT_UPDATED


@dataclass(frozen=True)
class TraitUpdatedBulkRange:
    """Trait values changed for every token in an inclusive, consecutive id range.

    Readers must re-read each token in ``from_token_id..to_token_id`` (both ends
    included); the event does not carry values.

    Args:
        trait_key: 32-byte trait key.
        from_token_id: First token id in the range.
        to_token_id: Last token id in the range (inclusive).

    Examples:
        >>> tokens_covered(TraitUpdatedBulkRange(bytes(32), 10, 15))
        (10, 11, 12, 13, 14, 15)
    """

    trait_key: bytes
    from_token_id: int
    to_token_id: int

    name = EventName.TRAIT_UPDATED_BULK_RANGE

    def __post_init__(self) -> None:
        if self.from_token_id > self.to_token_id:
            raise ValueError(
                f"bulk range is empty: {self.from_token_id} > {self.to_token_id}"
            )


@dataclass(frozen=True)
class TraitUpdatedBulkList:
    """Trait values changed for an explicit list of tokens, in any order.

    Args:
        trait_key: 32-byte trait key.
        token_ids: Tokens whose values changed.
    """

    trait_key: bytes
    token_ids: tuple[int, ...]

    name = EventName.TRAIT_UPDATED_BULK_LIST


@dataclass(frozen=True)
class TraitMetadataURIUpdated:
    """The trait metadata document moved; readers should reload the schema.

    Args:
        uri: New document location (data URI or offchain resource).
    """

    uri: str

    name = EventName.TRAIT_METADATA_URI_UPDATED


TraitEvent = Union[TraitUpdated, TraitUpdatedBulkRange, TraitUpdatedBulkList, TraitMetadataURIUpdated]


def tokens_covered(event: TraitEvent) -> tuple[int, ...]:
    """
    Token ids a reader must refresh for an event.

    Bulk ranges are inclusive on both ends; metadata URI updates cover no specific
    token (every token's display may change) and return an empty tuple.
    """
    if isinstance(event, TraitUpdated):
        return (event.token_id,)
    if isinstance(event, TraitUpdatedBulkRange):
        return tuple(range(event.from_token_id, event.to_token_id + 1))
    if isinstance(event, TraitUpdatedBulkList):
        return tuple(event.token_ids)
    return ()


def event_to_row(event: TraitEvent) -> dict[str, object]:
    """Flatten an event into a row mapping for tabular export."""
    row: dict[str, object] = {
        "event": event.name.value,
        "trait_key": None,
        "token_id": None,
        "from_token_id": None,
        "to_token_id": None,
        "token_ids": None,
        "value": None,
        "uri": None,
    }
    if isinstance(event, TraitMetadataURIUpdated):
        row["uri"] = event.uri
        return row
    row["trait_key"] = word_to_hex(event.trait_key)
    if isinstance(event, TraitUpdated):
        row["token_id"] = str(event.token_id)
        row["value"] = word_to_hex(event.value)
    elif isinstance(event, TraitUpdatedBulkRange):
        row["from_token_id"] = str(event.from_token_id)
        row["to_token_id"] = str(event.to_token_id)
    else:
        row["token_ids"] = [str(t) for t in event.token_ids]
    return row

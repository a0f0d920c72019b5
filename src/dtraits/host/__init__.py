"""
dtraits.host — reference host around the engine: trait storage, caller roles and the
update event log.
"""

from .events import (
    TraitEvent,
    TraitMetadataURIUpdated,
    TraitUpdated,
    TraitUpdatedBulkList,
    TraitUpdatedBulkRange,
    event_to_row,
    tokens_covered,
)
from .registry import TraitRecord, TraitRegistry

__all__ = [
    "TraitEvent",
    "TraitMetadataURIUpdated",
    "TraitUpdated",
    "TraitUpdatedBulkList",
    "TraitUpdatedBulkRange",
    "event_to_row",
    "tokens_covered",
    "TraitRecord",
    "TraitRegistry",
]

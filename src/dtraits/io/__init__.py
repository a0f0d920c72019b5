"""
dtraits.io — settings, metadata document loading and Parquet snapshots.

## Public API
- EngineSettings — configuration (env > TOML > defaults).
- read_document / load_schema_from — data:, file:// and path locations.
- records_frame / events_frame / write_snapshot — Polars/Parquet export of a registry.

## Import DAG discipline
- Depends on stdlib, polars/pyarrow and dtraits.core/engine/host.
"""

from __future__ import annotations

from .config import EngineSettings
from .documents import load_schema_from, parse_document, read_document, to_data_uri
from .export import events_frame, records_frame, write_snapshot

__all__ = [
    "EngineSettings",
    "load_schema_from",
    "parse_document",
    "read_document",
    "to_data_uri",
    "events_frame",
    "records_frame",
    "write_snapshot",
]

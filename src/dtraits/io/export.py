"""
Tabular export of trait records and update events.

Overview
- ``records_frame`` / ``events_frame`` build Polars DataFrames from a TraitRegistry.
- ``write_snapshot`` writes both as Parquet with atomic tmp → ready rename and embeds
  package version, metadata URI and schema fingerprint as key-value metadata.

Notes
- Token ids and words are stored as strings: token ids are uint256 and do not fit i64.
- display_value holds the canonical JSON of the decoded value (null when unset or when
  the stored word no longer satisfies the current schema).
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

import polars as pl
import pyarrow.parquet as pq

from dtraits import __version__
from dtraits.core.errors import InvalidConstraint, ValueValidationError
from dtraits.core.grammar import word_to_hex
from dtraits.core.serde import display_to_json, json_dumps_canonical
from dtraits.engine.values import denormalize
from dtraits.host.events import TraitEvent, event_to_row
from dtraits.host.registry import TraitRegistry

from .config import EngineSettings
from .errors import IoWriteError
from .fs import fsync_path, makedirs, remove_quietly, rename_atomic

__all__ = [
    "RECORDS_SCHEMA",
    "EVENTS_SCHEMA",
    "records_frame",
    "events_frame",
    "write_frame",
    "write_snapshot",
]

logger = logging.getLogger(__name__)

RECORDS_SCHEMA: dict[str, Any] = {
    "token_id": pl.Utf8,
    "trait_key": pl.Utf8,
    "trait_name": pl.Utf8,
    "display_name": pl.Utf8,
    "raw_value": pl.Utf8,
    "display_value": pl.Utf8,
}

EVENTS_SCHEMA: dict[str, Any] = {
    "seq": pl.Int64,
    "event": pl.Utf8,
    "trait_key": pl.Utf8,
    "token_id": pl.Utf8,
    "from_token_id": pl.Utf8,
    "to_token_id": pl.Utf8,
    "token_ids": pl.List(pl.Utf8),
    "value": pl.Utf8,
    "uri": pl.Utf8,
}


def _now_iso() -> str:
    """Return the current UTC time in ISO-8601 format."""
    return datetime.now(UTC).isoformat()


def records_frame(registry: TraitRegistry) -> pl.DataFrame:
    """
    One row per stored (token, trait) value, decoded through the registry's schema.

    Returns:
        pl.DataFrame: Columns per RECORDS_SCHEMA, ordered by token id then trait key.
    """
    schema = registry.schema
    rows: list[dict[str, Any]] = []
    for rec in registry.records():
        entry = schema.get(rec.trait_key) if schema is not None else None
        display_json: str | None = None
        if entry is not None:
            try:
                display = denormalize(entry, rec.raw_value)
            except (ValueValidationError, InvalidConstraint) as exc:
                logger.warning(
                    "stored value for token %d trait %s does not decode: %s",
                    rec.token_id,
                    entry.name,
                    exc,
                )
            else:
                display_json = json_dumps_canonical(display_to_json(display))
        rows.append(
            {
                "token_id": str(rec.token_id),
                "trait_key": word_to_hex(rec.trait_key),
                "trait_name": entry.name if entry is not None else None,
                "display_name": entry.display_name if entry is not None else None,
                "raw_value": word_to_hex(rec.raw_value),
                "display_value": display_json,
            }
        )
    return pl.DataFrame(rows, schema=RECORDS_SCHEMA)


def events_frame(events: Iterable[TraitEvent]) -> pl.DataFrame:
    """One row per emitted event, in emission order (``seq`` starts at 0)."""
    rows = [{"seq": i, **event_to_row(ev)} for i, ev in enumerate(events)]
    return pl.DataFrame(rows, schema=EVENTS_SCHEMA)


def write_frame(
    settings: EngineSettings,
    df: pl.DataFrame,
    path: str,
    metadata: dict[str, str],
) -> dict[str, Any]:
    """
    Write a DataFrame to Parquet atomically.

    Args:
        settings (EngineSettings): Compression settings.
        df (pl.DataFrame): Frame to write.
        path (str): Final destination path.
        metadata (dict[str, str]): Key-value metadata embedded in the Parquet schema.

    Returns:
        dict[str, Any]: {"path", "rows", "bytes"}.

    Raises:
        IoWriteError: Parquet write/fsync/atomic-rename failed.
    """
    makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp_path = f"{path}.{uuid.uuid4().hex}.tmp"
    try:
        arrow_table = df.to_arrow()
        meta = dict(arrow_table.schema.metadata or {})
        meta.update({k.encode("utf-8"): v.encode("utf-8") for k, v in metadata.items()})
        arrow_table = arrow_table.replace_schema_metadata(meta)
        pq.write_table(arrow_table, tmp_path, compression=settings.compression)
        fsync_path(tmp_path)
        rename_atomic(tmp_path, path)
    except Exception as exc:
        remove_quietly(tmp_path)
        raise IoWriteError(f"failed to write parquet snapshot {path}: {exc}") from exc
    return {"path": path, "rows": df.height, "bytes": os.path.getsize(path)}


def write_snapshot(
    settings: EngineSettings,
    registry: TraitRegistry,
    name: str,
) -> dict[str, Any]:
    """
    Persist the registry's records and event log as Parquet under ``settings.snapshot_dir``.

    Files: ``<snapshot_dir>/<name>/records.parquet`` and ``.../events.parquet``.

    Returns:
        dict[str, Any]: {"records": summary, "events": summary} from write_frame.

    Notes:
        Parquet metadata keys: dtraits_version, dtraits_table, dtraits_metadata_uri,
        dtraits_schema_fingerprint, dtraits_created_at.
    """
    schema = registry.schema
    base = {
        "dtraits_version": __version__,
        "dtraits_metadata_uri": registry.get_trait_metadata_uri(),
        "dtraits_schema_fingerprint": word_to_hex(schema.fingerprint) if schema is not None else "",
        "dtraits_created_at": _now_iso(),
    }
    out_dir = os.path.join(settings.snapshot_dir, name)
    summary = {
        "records": write_frame(
            settings,
            records_frame(registry),
            os.path.join(out_dir, "records.parquet"),
            {**base, "dtraits_table": "records"},
        ),
        "events": write_frame(
            settings,
            events_frame(registry.events),
            os.path.join(out_dir, "events.parquet"),
            {**base, "dtraits_table": "events"},
        ),
    }
    logger.info(
        "wrote snapshot %s (%d records, %d events)",
        out_dir,
        summary["records"]["rows"],
        summary["events"]["rows"],
    )
    return summary

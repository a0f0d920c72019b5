from __future__ import annotations

from pathlib import Path

import polars as pl
import pyarrow.parquet as pq
import pytest

from dtraits import __version__
from dtraits.core.grammar import word_to_hex
from dtraits.core.schema import TraitSchema
from dtraits.host.registry import TraitRegistry
from dtraits.io.config import EngineSettings
from dtraits.io.export import (
    EVENTS_SCHEMA,
    RECORDS_SCHEMA,
    events_frame,
    records_frame,
    write_snapshot,
)


@pytest.fixture
def registry(schema: TraitSchema) -> TraitRegistry:
    reg = TraitRegistry(owner_of={1: "alice"}.get, privileged=["admin"], schema=schema, metadata_uri="ipfs://v1")
    reg.set_trait("points", 2**70, 150, caller="admin")
    reg.set_trait("color", 1, "red", caller="admin")
    reg.set_trait_range("redeemed", 1, 3, True, caller="admin")
    return reg


def test_records_frame(registry: TraitRegistry) -> None:
    df = records_frame(registry)
    assert df.columns == list(RECORDS_SCHEMA)
    assert df.height == 5
    big = df.filter(pl.col("token_id") == str(2**70)).row(0, named=True)
    assert big["trait_name"] == "points"
    assert big["display_name"] == "Total Score"
    assert big["display_value"] == "150"
    red = df.filter((pl.col("token_id") == "1") & (pl.col("trait_name") == "color")).row(0, named=True)
    assert red["display_value"] == '"red"'


def test_records_frame_with_stale_values(registry: TraitRegistry, document) -> None:
    document["traits"]["points"]["dataType"]["bits"] = 4
    registry.set_trait_metadata_uri("ipfs://v2", document, caller="admin")
    df = records_frame(registry)
    big = df.filter(pl.col("trait_name") == "points").row(0, named=True)
    assert big["display_value"] is None
    assert big["raw_value"] == word_to_hex((150).to_bytes(32, "big"))


def test_events_frame(registry: TraitRegistry) -> None:
    df = events_frame(registry.events)
    assert df.columns == list(EVENTS_SCHEMA)
    assert df["seq"].to_list() == [0, 1, 2]
    assert df["event"].to_list() == ["TraitUpdated", "TraitUpdated", "TraitUpdatedBulkRange"]
    assert df["from_token_id"].to_list()[2] == "1"
    assert df["to_token_id"].to_list()[2] == "3"


def test_write_snapshot(tmp_path: Path, registry: TraitRegistry) -> None:
    settings = EngineSettings(snapshot_dir=str(tmp_path / "out"))
    summary = write_snapshot(settings, registry, "run1")

    records_path = tmp_path / "out" / "run1" / "records.parquet"
    events_path = tmp_path / "out" / "run1" / "events.parquet"
    assert summary["records"]["path"] == str(records_path)
    assert summary["records"]["rows"] == 5
    assert summary["events"]["rows"] == 3
    assert not list((tmp_path / "out" / "run1").glob("*.tmp"))

    assert pl.read_parquet(records_path).height == 5
    assert pl.read_parquet(events_path)["event"].to_list()[-1] == "TraitUpdatedBulkRange"

    meta = pq.read_schema(records_path).metadata
    assert meta[b"dtraits_version"] == __version__.encode()
    assert meta[b"dtraits_table"] == b"records"
    assert meta[b"dtraits_metadata_uri"] == b"ipfs://v1"
    assert meta[b"dtraits_schema_fingerprint"] == word_to_hex(registry.schema.fingerprint).encode()
    assert pq.read_schema(events_path).metadata[b"dtraits_table"] == b"events"


def test_write_snapshot_without_schema(tmp_path: Path) -> None:
    reg = TraitRegistry(owner_of=lambda _t: None, privileged=["admin"])
    reg.set_trait("0x" + "01" * 32, 1, "0x" + "02" * 32, caller="admin")
    summary = write_snapshot(EngineSettings(snapshot_dir=str(tmp_path)), reg, "bare")
    df = pl.read_parquet(summary["records"]["path"])
    assert df["trait_name"].to_list() == [None]

from __future__ import annotations

from decimal import Decimal

import pytest

from dtraits.core.schema import DecimalType, StringType, ValueMappingTable, display_key


def test_display_key_number_and_bool_classes() -> None:
    assert display_key(1) == display_key(1.0) == display_key(Decimal("1.00"))
    assert display_key(True) != display_key(1)
    assert display_key(None) != display_key(0)
    assert display_key("1") != display_key(1)
    with pytest.raises(ValueError):
        display_key([1])


def test_table_lookups() -> None:
    t = ValueMappingTable.build({"0x0": None, "0x00ff": "max", "0x" + "01" * 32: "ones"}, lambda v: True)
    assert len(t) == 3
    assert t.lookup_raw(bytes(32)) == (True, None)
    assert t.lookup_raw(bytes(31) + b"\x07") == (False, None)
    assert t.lookup_display("max") == (255).to_bytes(32, "big")
    assert t.lookup_display(None) == bytes(32)
    assert t.lookup_display("missing") is None
    assert t.lookup_display(object()) is None
    assert bytes([1]) * 32 in t


def test_table_float_values_are_stored_as_decimal() -> None:
    t = ValueMappingTable.build({"0x1": 2.5}, DecimalType.accepts_display)
    assert t.by_raw[(1).to_bytes(32, "big")] == Decimal("2.5")
    assert t.lookup_display(Decimal("2.50")) == (1).to_bytes(32, "big")


@pytest.mark.parametrize(
    "mappings",
    [
        {"0x1": "a", "0x2": "a"},
        {"0x1": "a", "0x0001": "b"},
        {"0x": "a"},
        {"0x" + "1" * 65: "a"},
        {"1": "a"},
    ],
)
def test_table_rejections(mappings: dict) -> None:
    with pytest.raises(ValueError):
        ValueMappingTable.build(mappings, StringType.accepts_display)


def test_to_document_uses_full_words() -> None:
    t = ValueMappingTable.build({"0x2": "two"}, lambda v: True)
    assert t.to_document() == {"0x" + "00" * 31 + "02": "two"}

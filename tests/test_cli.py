from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from eth_utils import keccak

from dtraits import cli


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as ei:
        cli.main(argv)
    return int(ei.value.code)


@pytest.fixture
def doc_path(tmp_path: Path, document: dict[str, Any], monkeypatch) -> str:
    monkeypatch.chdir(tmp_path)
    for key in ("DTRAITS_MAX_STRING_LENGTH", "DTRAITS_STRICT_DOCUMENTS", "DTRAITS_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    p = tmp_path / "traits.json"
    p.write_text(json.dumps(document), encoding="utf-8")
    return str(p)


def test_no_arguments_prints_help(capsys) -> None:
    cli.main([])
    assert "usage: dtraits" in capsys.readouterr().out


def test_unknown_command(capsys) -> None:
    assert _run(["frobnicate"]) == 2
    assert "Unknown command" in capsys.readouterr().err


def test_key(capsys) -> None:
    assert _run(["key", "points"]) == 0
    assert capsys.readouterr().out.strip() == "0x" + keccak(text="points").hex()


def test_validate(doc_path: str, capsys) -> None:
    assert _run(["validate", doc_path]) == 0
    out = capsys.readouterr().out
    assert "Total Score" in out
    assert "[INFO] 6 traits" in out


def test_validate_reports_errors(tmp_path: Path, capsys, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    bad = tmp_path / "bad.json"
    bad.write_text('{"traits": {"a": {"displayName": "A", "dataType": {"type": "uint"}}}}')
    assert _run(["validate", str(bad)]) == 1
    assert "UnknownDataType" in capsys.readouterr().err


def test_encode_and_decode(doc_path: str, capsys) -> None:
    assert _run(["encode", doc_path, "points", "150"]) == 0
    raw = capsys.readouterr().out.strip()
    assert raw == "0x" + (150).to_bytes(32, "big").hex()

    assert _run(["decode", doc_path, "points", raw]) == 0
    assert capsys.readouterr().out.strip() == "150"

    assert _run(["encode", doc_path, "redeemed", "true"]) == 0
    assert capsys.readouterr().out.strip().endswith("01")

    assert _run(["encode", doc_path, "birthday", "--null"]) == 0
    assert capsys.readouterr().out.strip() == "0x" + "00" * 32

    assert _run(["decode", doc_path, "color", "0x1"]) == 0
    assert capsys.readouterr().out.strip() == '"red"'


def test_encode_rejections(doc_path: str, capsys) -> None:
    assert _run(["encode", doc_path, "points", "65536"]) == 1
    assert "Overflow" in capsys.readouterr().err
    assert _run(["encode", doc_path, "nope", "1"]) == 1
    assert "not declared" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv, code, word",
    [
        (["requireUintGte", "100", "150"], 0, "accept"),
        (["requireUintGte", "100", "50"], 1, "reject"),
        (["requireEq", "0x1", "1"], 0, "accept"),
        (["none", "5", "0"], 0, "accept"),
    ],
)
def test_check_sale(argv: list[str], code: int, word: str, capsys) -> None:
    assert _run(["check-sale", *argv]) == code
    assert capsys.readouterr().out.strip() == word

"""
dtraits command line.

Usage:
    dtraits validate traits.json
    dtraits key points
    dtraits encode traits.json points 12.5
    dtraits decode traits.json points 0x...7d
    dtraits check-sale requireUintGte 100 150

Every subcommand accepts ``--config PATH`` (TOML); settings otherwise come from
dtraits.toml / pyproject.toml and DTRAITS_* environment variables.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from typing import Any

from dtraits.core.errors import TraitError
from dtraits.core.grammar import DataTypeKind, is_word_hex, word_from_short_hex, word_to_hex
from dtraits.core.keys import derive_trait_key, resolve
from dtraits.core.schema import TraitSchema, TraitSchemaEntry
from dtraits.core.serde import display_to_json, json_dumps_canonical
from dtraits.engine.sale import check_consumption_on_sale
from dtraits.engine.values import denormalize, normalize_value
from dtraits.io.config import EngineSettings
from dtraits.io.documents import load_schema_from
from dtraits.io.errors import IoError

logger = logging.getLogger(__name__)


def _settings(path: str | None) -> EngineSettings:
    s = EngineSettings.load(path)
    logging.basicConfig(level=s.log_level, format="%(levelname)s %(name)s: %(message)s")
    return s


def _add_config(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", type=str, default=None, help="Path to a TOML settings file.")


def _entry(schema: TraitSchema, trait: str) -> TraitSchemaEntry:
    entry = schema.get(resolve(schema, trait))
    if entry is None:
        raise KeyError(f"trait {trait!r} is not declared in the document")
    return entry


def _parse_value(entry: TraitSchemaEntry, text: str, null: bool) -> Any:
    """Interpret CLI text according to the trait's data type."""
    if null:
        return None
    if is_word_hex(text):
        return text
    kind = entry.kind
    if kind is DataTypeKind.BOOLEAN:
        lowered = text.strip().lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        return text
    if kind is DataTypeKind.EPOCH_SECONDS:
        try:
            return int(text)
        except ValueError:
            return datetime.fromisoformat(text)
    return text


def _cmd_validate(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="validate", description="Validate a trait metadata document.")
    p.add_argument("location", help="Path, file:// URI or data: URI of the document.")
    _add_config(p)
    args = p.parse_args(argv)

    schema = load_schema_from(args.location, _settings(args.config))
    for entry in schema:
        owner = "owner" if entry.token_owner_can_update_value else "-"
        print(
            f"{entry.key_hex}  {entry.kind.value:<12} {owner:<5} "
            f"{entry.consumption_validation_on_sale.value:<14} {entry.name} ({entry.display_name})"
        )
    print(f"[INFO] {len(schema)} traits, fingerprint {word_to_hex(schema.fingerprint)}")
    return 0


def _cmd_key(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="key", description="Derive the trait key for a name.")
    p.add_argument("name", help="Trait name or 0x-prefixed 32-byte literal key.")
    args = p.parse_args(argv)

    print(word_to_hex(derive_trait_key(args.name)))
    return 0


def _cmd_encode(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="encode", description="Validate a value and print its raw word.")
    p.add_argument("location", help="Trait metadata document.")
    p.add_argument("trait", help="Trait name or literal key.")
    p.add_argument("value", nargs="?", default="", help="Display value or raw 32-byte hex.")
    p.add_argument("--null", action="store_true", help="Encode the unset (null) marker.")
    _add_config(p)
    args = p.parse_args(argv)

    schema = load_schema_from(args.location, _settings(args.config))
    entry = _entry(schema, args.trait)
    value = normalize_value(entry, _parse_value(entry, args.value, args.null))
    print(value.raw_hex)
    return 0


def _cmd_decode(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="decode", description="Decode a raw word to its display value.")
    p.add_argument("location", help="Trait metadata document.")
    p.add_argument("trait", help="Trait name or literal key.")
    p.add_argument("raw", help="Raw value as 0x hex (may be shortened, e.g. 0x0).")
    _add_config(p)
    args = p.parse_args(argv)

    schema = load_schema_from(args.location, _settings(args.config))
    entry = _entry(schema, args.trait)
    print(json_dumps_canonical(display_to_json(denormalize(entry, args.raw))))
    return 0


def _word_arg(text: str) -> bytes:
    if text.lower().startswith("0x"):
        return word_from_short_hex(text)
    return int(text).to_bytes(32, "big")


def _cmd_check_sale(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        prog="check-sale",
        description="Decide a sale-consumption check. Exit 0 to accept, 1 to reject.",
    )
    p.add_argument("policy", help="none | requireEq | requireUintGte | requireUintLte")
    p.add_argument("captured", help="Value captured at offer time (hex or decimal uint).")
    p.add_argument("current", help="Current value (hex or decimal uint).")
    args = p.parse_args(argv)

    accepted = check_consumption_on_sale(args.policy, _word_arg(args.captured), _word_arg(args.current))
    print("accept" if accepted else "reject")
    return 0 if accepted else 1


_COMMANDS = {
    "validate": _cmd_validate,
    "key": _cmd_key,
    "encode": _cmd_encode,
    "decode": _cmd_decode,
    "check-sale": _cmd_check_sale,
}


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dtraits", description="Dynamic NFT trait metadata utilities.")
    sub = p.add_subparsers(dest="cmd", required=True)
    for name in _COMMANDS:
        sub.add_parser(name)
    return p


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        build_argparser().print_help()
        return
    cmd, rest = argv[0], argv[1:]
    handler = _COMMANDS.get(cmd)
    if handler is None:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        raise SystemExit(2)
    try:
        code = handler(rest)
    except (TraitError, IoError, KeyError, ValueError, OverflowError) as exc:
        print(f"[ERROR] {type(exc).__name__}: {exc}", file=sys.stderr)
        code = 1
    raise SystemExit(code)


if __name__ == "__main__":
    main()

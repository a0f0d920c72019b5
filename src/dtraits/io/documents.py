"""
Reading trait metadata documents.

A host's metadata URI points at the JSON trait metadata document, usually as a
``data:`` URI (document inlined onchain) or an offchain resource. This module decodes
``data:`` URIs, ``file://`` URIs and plain paths; fetching network resources is out of
scope and raises IoConfigError.

Notes
- Duplicate object keys are rejected while parsing, since ``json.loads`` would keep the
  last one silently and hide a duplicate trait name.
- Validation is delegated to dtraits.core.loader; its errors propagate unchanged.

Examples:
    >>> uri = to_data_uri({"traits": {}})
    >>> uri.startswith("data:application/json;base64,")
    True
    >>> read_document(uri)
    {'traits': {}}
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

from dtraits.core.errors import KeyCollision
from dtraits.core.loader import load_schema
from dtraits.core.schema import TraitSchema
from dtraits.core.serde import json_dumps_canonical, json_loads
from dtraits.core.typing import JsonDict

from .config import EngineSettings
from .errors import IoConfigError, IoDocumentError

__all__ = [
    "parse_document",
    "decode_data_uri",
    "read_document",
    "to_data_uri",
    "load_schema_from",
]

logger = logging.getLogger(__name__)


def _reject_duplicates(pairs: list[tuple[str, Any]]) -> JsonDict:
    out: JsonDict = {}
    for k, v in pairs:
        if k in out:
            raise KeyCollision(f"duplicate key {k!r} in trait metadata document")
        out[k] = v
    return out


def parse_document(text: str) -> JsonDict:
    """
    Parse JSON text into a document mapping.

    Raises:
        IoDocumentError: If the text is not valid JSON or not an object.
        KeyCollision: If any object repeats a key (e.g. a trait name).
    """
    try:
        doc = json_loads(text, object_pairs_hook=_reject_duplicates)
    except json.JSONDecodeError as exc:
        raise IoDocumentError(f"trait metadata document is not valid JSON: {exc}") from exc
    if not isinstance(doc, dict):
        raise IoDocumentError("trait metadata document must be a JSON object")
    return doc


def decode_data_uri(uri: str) -> str:
    """
    Return the text payload of a ``data:`` URI.

    Raises:
        IoConfigError: If the URI is malformed.
    """
    if not uri.startswith("data:") or "," not in uri:
        raise IoConfigError(f"malformed data URI: {uri[:40]!r}")
    header, payload = uri[len("data:"):].split(",", 1)
    params = [p.strip().lower() for p in header.split(";")]
    if "base64" in params:
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise IoConfigError(f"invalid base64 payload in data URI: {exc}") from exc
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise IoDocumentError(f"data URI payload is not UTF-8: {exc}") from exc
    return unquote(payload)


def _read_path(path: str | os.PathLike[str]) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise IoDocumentError(f"cannot read trait metadata document {path}: {exc}") from exc


def read_document(location: str | os.PathLike[str]) -> JsonDict:
    """
    Read and parse a trait metadata document from a data URI, file URI or path.

    Args:
        location: ``data:...``, ``file:///...`` or a filesystem path.

    Raises:
        IoConfigError: Unsupported scheme (e.g. https) or malformed URI.
        IoDocumentError: Unreadable file or invalid JSON.
        KeyCollision: Duplicate keys in the JSON.
    """
    if isinstance(location, str):
        if location.startswith("data:"):
            return parse_document(decode_data_uri(location))
        if location.startswith("file://"):
            return parse_document(_read_path(unquote(urlparse(location).path)))
        if "://" in location:
            scheme = location.split("://", 1)[0]
            raise IoConfigError(f"unsupported metadata URI scheme {scheme!r}")
    return parse_document(_read_path(location))


def to_data_uri(document: Mapping[str, Any]) -> str:
    """Inline a document as a base64 ``data:application/json`` URI (canonical JSON)."""
    payload = base64.b64encode(json_dumps_canonical(dict(document)).encode("utf-8"))
    return "data:application/json;base64," + payload.decode("ascii")


def load_schema_from(
    location: str | os.PathLike[str],
    settings: EngineSettings | None = None,
) -> TraitSchema:
    """
    Read a document and load it with the configured defaults.

    Raises:
        IoConfigError, IoDocumentError: Reading failed.
        SchemaLoadError: The document was rejected (see dtraits.core.loader).
    """
    s = settings or EngineSettings()
    document = read_document(location)
    schema = load_schema(
        document,
        default_max_length=s.max_string_length,
        strict=s.strict_documents,
    )
    logger.info("loaded %d traits from %s", len(schema), str(location)[:80])
    return schema

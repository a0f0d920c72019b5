"""
Configuration for dtraits.

Defines EngineSettings, a frozen dataclass carrying runtime configuration for document
loading, snapshot export and logging. Defaults are sourced from dtraits.core.constants
(the single source of truth).

Source of truth
- dtraits.core.constants.DEFAULT_MAX_STRING_LENGTH, COMPRESSION

Import DAG discipline
- Depends only on stdlib and dtraits.core.constants.

Notes
- Precedence: environment (DTRAITS_*) > TOML (dtraits.toml or [tool.dtraits]) > defaults.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

from dtraits.core.constants import COMPRESSION as CORE_COMPRESSION
from dtraits.core.constants import DEFAULT_MAX_STRING_LENGTH

__all__ = ["EngineSettings", "Compression"]

logger = logging.getLogger(__name__)

Compression = Literal["zstd", "lz4", "snappy"]
_COMPRESSIONS = ("zstd", "lz4", "snappy")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
    return False


@dataclass(frozen=True)
class EngineSettings:
    """
    Runtime settings for dtraits.

    Attributes:
        max_string_length (int): maxLength applied to string traits that omit it.
        strict_documents (bool): Reject unknown fields in trait metadata documents.
        snapshot_dir (str): Directory under which Parquet snapshots are written.
        compression (Literal["zstd","lz4","snappy"]): Parquet compression codec.
        log_level (str): Root log level applied by the CLI.

    Examples:
        >>> EngineSettings(max_string_length=64)  # doctest: +ELLIPSIS
        EngineSettings(max_string_length=64, ...)
    """

    max_string_length: int = DEFAULT_MAX_STRING_LENGTH
    strict_documents: bool = True
    snapshot_dir: str = "out"
    compression: Compression = CORE_COMPRESSION  # type: ignore[assignment]
    log_level: str = "WARNING"

    @classmethod
    def _apply_mapping(cls, base: EngineSettings, cfg: dict[str, Any] | None) -> EngineSettings:
        """Apply a loose config mapping onto EngineSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        if "max_string_length" in cfg:
            try:
                n = int(cfg["max_string_length"])
            except (TypeError, ValueError):
                logger.warning("ignoring invalid max_string_length %r", cfg["max_string_length"])
            else:
                if n >= 0:
                    s = replace(s, max_string_length=n)

        if "strict_documents" in cfg:
            s = replace(s, strict_documents=_bool(cfg["strict_documents"]))

        if "snapshot_dir" in cfg and isinstance(cfg["snapshot_dir"], str):
            s = replace(s, snapshot_dir=cfg["snapshot_dir"])

        if "compression" in cfg and isinstance(cfg["compression"], str):
            comp = cfg["compression"].strip().lower()
            if comp in _COMPRESSIONS:
                s = replace(s, compression=comp)  # type: ignore[arg-type]

        if "log_level" in cfg and isinstance(cfg["log_level"], str):
            level = cfg["log_level"].strip().upper()
            if level in _LOG_LEVELS:
                s = replace(s, log_level=level)

        return s

    @classmethod
    def from_env(cls, base: EngineSettings | None = None, prefix: str = "DTRAITS_") -> EngineSettings:
        """
        Build EngineSettings from environment variables. Precedence is env > base > defaults.

        Recognized variables:
            - DTRAITS_MAX_STRING_LENGTH
            - DTRAITS_STRICT_DOCUMENTS (1/0/true/false/yes/no/on/off)
            - DTRAITS_SNAPSHOT_DIR
            - DTRAITS_COMPRESSION ("zstd" | "lz4" | "snappy")
            - DTRAITS_LOG_LEVEL
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for field_name in (
            "max_string_length",
            "strict_documents",
            "snapshot_dir",
            "compression",
            "log_level",
        ):
            v = os.getenv(prefix + field_name.upper())
            if v:
                mapping[field_name] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> EngineSettings:
        """
        Build EngineSettings from a TOML file.

        Search order when `path` is None:
            1) ./dtraits.toml (with either an [engine] table or top-level keys)
            2) ./pyproject.toml under [tool.dtraits]

        Returns defaults if no file is present.
        """
        s = cls()

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "dtraits.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            try:
                with p.open("rb") as fh:
                    data = tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                logger.warning("skipping unreadable config %s: %s", p, exc)
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("dtraits") if isinstance(tool, dict) else None
            elif isinstance(data.get("engine"), dict):
                cfg = data["engine"]
            else:
                cfg = data
            if cfg:
                logger.debug("loaded settings from %s", p)
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> EngineSettings:
        """
        Load EngineSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults
                (dtraits.toml, pyproject.toml).
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s

"""
Filesystem helpers for dtraits.io (file protocol baseline).

Responsibilities
- Directory creation, fsync and atomic renames used by the snapshot writer.
- Establish the atomic write path: tmp write → fsync → atomic rename.

Notes
- Atomicity via os.replace is guaranteed only when src and dst reside on the same filesystem.
"""

from __future__ import annotations

import os


def makedirs(path: str, exist_ok: bool = True) -> None:
    """Create directories recursively."""
    os.makedirs(path, exist_ok=exist_ok)


def fsync_path(path: str) -> None:
    """
    Open a path read-only and fsync its file descriptor.

    Notes:
        Used after pyarrow wrote to a path directly, before the atomic rename.
    """
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def rename_atomic(src: str, dst: str) -> None:
    """
    Atomically rename src -> dst on the same filesystem.

    Notes:
        Uses os.replace; callers place tmp and final under the same directory.
    """
    os.replace(src, dst)


def remove_quietly(path: str) -> None:
    """Remove a file if it exists (cleanup after a failed write)."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass

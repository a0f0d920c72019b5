"""
Custom exceptions for the dtraits.io module.

Purpose
- Provide IO-layer error types, separate from dtraits.core domain errors.
- dtraits.core.errors stays the source of truth for schema/value validation errors;
  a document that reads fine but fails validation raises the core error unchanged.

Errors
- IoConfigError: unsupported location scheme or invalid configuration.
- IoDocumentError: a metadata document could not be read or decoded as JSON.
- IoWriteError: atomic snapshot write failed (tmp write/fsync/rename).
"""

from __future__ import annotations


class IoError(Exception):
    """
    Base class for IO-related errors in dtraits.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from dtraits.core errors.
    """


class IoConfigError(IoError):
    """
    Raised when a location or configuration is invalid or unsupported.

    Examples:
        - ``https://`` metadata URIs (fetching is out of scope)
        - Malformed ``data:`` URIs
    """


class IoDocumentError(IoError):
    """Raised when a metadata document cannot be read or is not valid JSON."""


class IoWriteError(IoError):
    """
    Raised when a snapshot write fails to complete atomically.

    Notes:
        The write path is tmp parquet → fsync → os.replace(tmp, final). Failures at any
        step surface as IoWriteError, with best-effort cleanup of the tmp file.
    """

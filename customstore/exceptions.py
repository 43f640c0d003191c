"""
Exception hierarchy for customstore.

Every error raised by the library derives from CustomStoreError so callers can
catch the whole family with one clause. Driver errors are never swallowed: the
executors re-raise them as ExecutionError with the driver error chained as
``__cause__``.
"""

from __future__ import annotations


class CustomStoreError(Exception):
    """Root exception for all customstore errors."""


class ValidationError(CustomStoreError, ValueError):
    """Raised when a query (or lookup argument) is malformed, before any SQL is built."""


class NotFoundError(CustomStoreError, LookupError):
    """Raised when the record targeted by a find/update/delete does not exist."""


class ExecutionError(CustomStoreError):
    """Raised when the underlying SQL engine rejects or fails a statement."""


class EncodingError(CustomStoreError, ValueError):
    """Raised when a payload or metas value cannot be (de)serialized as JSON."""


__all__ = [
    "CustomStoreError",
    "ValidationError",
    "NotFoundError",
    "ExecutionError",
    "EncodingError",
]

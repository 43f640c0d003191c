"""
Record model for customstore.

A Record is one stored document: a logical type, a unique id, a JSON payload,
a free-text memo, a JSON object of string metas, and lifecycle timestamps.
The payload and metas are kept as raw JSON text exactly as persisted; the
map accessors decode on demand and raise EncodingError when the text is not
a JSON object. Raw attribute access never fails.

Records are plain mutable values. The store owns persistence; nothing in the
library shares a Record between threads.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field

from customstore.exceptions import EncodingError
from customstore.utils.clock import MAX_DATETIME, utc_now


def _decode_object(raw: str, what: str) -> Dict[str, Any]:
    if raw == "":
        return {}
    try:
        value = json.loads(raw)
    except ValueError as exc:
        raise EncodingError(f"{what} is not valid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise EncodingError(f"{what} is not a JSON object")
    return value


def _encode_object(value: Mapping[str, Any], what: str) -> str:
    try:
        return json.dumps(dict(value))
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"{what} cannot be encoded as JSON: {exc}") from exc


class Record(BaseModel):
    """
    Representation of a single row in the record table.
    """

    id: str = Field("", description="Unique key; assigned by the store when empty.")
    record_type: str = Field(..., alias="type", description="Logical category; required on create.")
    payload: str = Field("", description="JSON-encoded document body.")
    memo: str = Field("", description="Free-text annotation.")
    metas: str = Field("", description="JSON object of string to string.")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp (UTC).")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp (UTC).")
    soft_deleted_at: datetime = Field(
        MAX_DATETIME, description="Soft-delete timestamp; MAX_DATETIME when not deleted."
    )

    model_config = {
        "populate_by_name": True,
        "validate_assignment": True,
    }

    def is_soft_deleted(self, now: Optional[datetime] = None) -> bool:
        """
        True once the soft-delete timestamp is not after *now*.

        A record deleted in the current second already counts as deleted,
        matching the store, which only lists rows whose soft_deleted_at is
        strictly after now.
        """
        return self.soft_deleted_at <= (now or utc_now())

    # -- payload ----------------------------------------------------------

    def payload_map(self) -> Dict[str, Any]:
        """Decode the payload. An empty payload reads as an empty map."""
        return _decode_object(self.payload, "payload")

    def set_payload_map(self, payload_map: Mapping[str, Any]) -> None:
        self.payload = _encode_object(payload_map, "payload")

    def payload_map_key(self, key: str) -> Any:
        """Return one top-level payload key, or None when absent."""
        return self.payload_map().get(key)

    def set_payload_map_key(self, key: str, value: Any) -> None:
        payload_map = self.payload_map()
        payload_map[key] = value
        self.set_payload_map(payload_map)

    # -- metas ------------------------------------------------------------

    def get_metas(self) -> Dict[str, str]:
        return _decode_object(self.metas, "metas")

    def meta(self, name: str) -> str:
        """Return a single meta value, or an empty string when unset."""
        return str(self.get_metas().get(name, ""))

    def set_meta(self, name: str, value: str) -> None:
        self.upsert_metas({name: value})

    def set_metas(self, metas: Mapping[str, str]) -> None:
        """Replace all metas."""
        self.metas = _encode_object(metas, "metas")

    def upsert_metas(self, metas: Mapping[str, str]) -> None:
        """Merge *metas* into the existing ones, keeping keys not mentioned."""
        merged = self.get_metas()
        merged.update(metas)
        self.set_metas(merged)


def new_record(
    record_type: str,
    *,
    id: Optional[str] = None,
    memo: Optional[str] = None,
    payload: Optional[str] = None,
    payload_map: Optional[Mapping[str, Any]] = None,
    metas: Optional[Mapping[str, str]] = None,
) -> Record:
    """
    Build a Record of *record_type* with the given options applied.

    Options apply in signature order, so ``payload_map`` replaces ``payload``
    when both are passed. Id and timestamps are left for the store to assign.
    """
    record = Record(type=record_type)
    if id is not None:
        record.id = id
    if memo is not None:
        record.memo = memo
    if payload is not None:
        record.payload = payload
    if payload_map is not None:
        record.set_payload_map(payload_map)
    if metas is not None:
        record.set_metas(metas)
    return record


__all__ = ["Record", "new_record"]

"""
RecordQuery: a fluent description of which records to list or count.

Each optional filter is stored as ``None`` while unset, so "not set", "set to
empty" and "set to a value" stay distinguishable (an id list set to ``[]`` is
not the same as no id list at all). Setters mutate the query and return it
for chaining:

    query = (
        RecordQuery()
        .set_type("analysis_report")
        .set_id_list(["rec_1", "rec_3"])
        .add_payload_search('"status": "done"')
        .set_order_by("created_at")
    )

A RecordQuery is a mutable, unsynchronized value. Build and compile it on one
thread; to reuse a base query, ``copy()`` it before adding filters.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from customstore.exceptions import ValidationError

COLUMN_ID = "id"
COLUMN_RECORD_TYPE = "type"
COLUMN_PAYLOAD = "payload"
COLUMN_MEMO = "memo"
COLUMN_METAS = "metas"
COLUMN_CREATED_AT = "created_at"
COLUMN_UPDATED_AT = "updated_at"
COLUMN_SOFT_DELETED_AT = "soft_deleted_at"

RECORD_COLUMNS = (
    COLUMN_ID,
    COLUMN_RECORD_TYPE,
    COLUMN_PAYLOAD,
    COLUMN_MEMO,
    COLUMN_METAS,
    COLUMN_CREATED_AT,
    COLUMN_UPDATED_AT,
    COLUMN_SOFT_DELETED_AT,
)

SORT_ASC = "asc"
SORT_DESC = "desc"


@dataclass
class RecordQuery:
    id: Optional[str] = None
    id_list: Optional[List[str]] = None
    record_type: Optional[str] = None
    columns: List[str] = field(default_factory=list)
    count_only: bool = False
    soft_deleted_included: bool = False
    limit: Optional[int] = None
    offset: Optional[int] = None
    order_by: Optional[str] = None
    sort_order: Optional[str] = None
    payload_search: List[str] = field(default_factory=list)
    payload_search_not: List[str] = field(default_factory=list)

    # -- presence ---------------------------------------------------------

    def is_id_set(self) -> bool:
        return self.id is not None

    def is_id_list_set(self) -> bool:
        return self.id_list is not None

    def is_type_set(self) -> bool:
        return self.record_type is not None

    def is_limit_set(self) -> bool:
        return self.limit is not None

    def is_offset_set(self) -> bool:
        return self.offset is not None

    def is_order_by_set(self) -> bool:
        return self.order_by is not None

    # -- setters ----------------------------------------------------------

    def set_id(self, record_id: str) -> "RecordQuery":
        """Filter by id. An empty id clears the filter instead of matching ''."""
        self.id = record_id or None
        return self

    def set_id_list(self, ids: Optional[Iterable[str]]) -> "RecordQuery":
        """Filter by a list of ids. ``None`` and ``[]`` both mark the filter set but empty."""
        self.id_list = list(ids) if ids is not None else []
        return self

    def set_type(self, record_type: str) -> "RecordQuery":
        self.record_type = record_type
        return self

    def set_columns(self, columns: Iterable[str]) -> "RecordQuery":
        """Project only these columns. An empty list projects all of them."""
        self.columns = list(columns)
        return self

    def set_count_only(self, count_only: bool) -> "RecordQuery":
        self.count_only = count_only
        return self

    def set_soft_deleted_included(self, included: bool) -> "RecordQuery":
        self.soft_deleted_included = included
        return self

    def set_limit(self, limit: int) -> "RecordQuery":
        self.limit = limit
        return self

    def set_offset(self, offset: int) -> "RecordQuery":
        self.offset = offset
        return self

    def set_order_by(self, order_by: str) -> "RecordQuery":
        self.order_by = order_by
        return self

    def set_sort_order(self, sort_order: str) -> "RecordQuery":
        """Sort direction for order_by, "asc" or "desc" (the default)."""
        self.sort_order = sort_order.lower()
        return self

    def add_payload_search(self, needle: str) -> "RecordQuery":
        """Require the payload to contain *needle* (OR-ed with other needles)."""
        self.payload_search.append(needle)
        return self

    def add_payload_search_not(self, needle: str) -> "RecordQuery":
        """Require the payload not to contain *needle*."""
        self.payload_search_not.append(needle)
        return self

    # -- helpers ----------------------------------------------------------

    def sanitized_id_list(self) -> List[str]:
        """Ids from the id list with blank entries dropped."""
        return [value for value in self.id_list or [] if value.strip() != ""]

    def copy(self) -> "RecordQuery":
        return copy.deepcopy(self)

    def validate(self) -> None:
        """
        Check the filter combination, raising ValidationError on the first problem.
        """
        if self.is_id_set() and self.id == "":
            raise ValidationError("id is required")

        if self.is_id_list_set():
            if len(self.sanitized_id_list()) != len(self.id_list):
                raise ValidationError("id list contains empty strings")
            if not self.id_list:
                raise ValidationError("id list is required")

        if self.is_type_set() and self.record_type == "":
            raise ValidationError("type is required")

        if self.is_limit_set() and self.limit < 0:
            raise ValidationError("limit must not be negative")

        if self.is_offset_set() and self.offset < 0:
            raise ValidationError("offset must not be negative")

        if self.is_order_by_set() and self.order_by not in RECORD_COLUMNS:
            raise ValidationError(f"order by column '{self.order_by}' is not a record column")

        if self.sort_order is not None and self.sort_order not in (SORT_ASC, SORT_DESC):
            raise ValidationError(f"sort order must be '{SORT_ASC}' or '{SORT_DESC}'")

        for name in self.columns:
            if name not in RECORD_COLUMNS:
                raise ValidationError(f"column '{name}' is not a record column")


__all__ = [
    "COLUMN_CREATED_AT",
    "COLUMN_ID",
    "COLUMN_MEMO",
    "COLUMN_METAS",
    "COLUMN_PAYLOAD",
    "COLUMN_RECORD_TYPE",
    "COLUMN_SOFT_DELETED_AT",
    "COLUMN_UPDATED_AT",
    "RECORD_COLUMNS",
    "RecordQuery",
    "SORT_ASC",
    "SORT_DESC",
]

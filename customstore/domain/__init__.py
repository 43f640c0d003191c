"""
Domain package for customstore.

Exports the Record value object and the RecordQuery builder. Keep this
package free of SQL and I/O concerns.
"""

from customstore.domain.models import Record, new_record
from customstore.domain.query import RecordQuery

__all__ = [
    "Record",
    "RecordQuery",
    "new_record",
]

"""Record identifier generation."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone

RANDOM_DIGITS = 12


def new_id() -> str:
    """
    Return a new 32-character record identifier.

    The first 20 characters are the UTC time down to microseconds, so ids sort
    by creation time; the remaining digits are random to keep ids created in
    the same microsecond apart.
    """
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
    suffix = "".join(secrets.choice("0123456789") for _ in range(RANDOM_DIGITS))
    return stamp + suffix


__all__ = ["new_id"]

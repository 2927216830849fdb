"""
Quotebook Backend — Shared Field Types
======================================

What:  Annotated field types reused by every backend record.
How:   `BeforeValidator`s run ahead of pydantic's own parsing, so each record
       model declares `created_at: Timestamp = None` instead of repeating
       per-field date handling.

Timestamp rules:
    - ISO-8601 strings with or without fractional seconds
    - `Z` or numeric UTC offsets (`+00:00`), or naive
    - Fractions of any length (PostgREST trims trailing zeros, so 1-6 digits
      are all seen in practice) are normalized to microseconds
    - Missing, empty or unparseable values become None; a bad timestamp never
      rejects the whole record
"""

import logging
import re
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator

logger = logging.getLogger(__name__)

_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Decode a backend timestamp, returning None when it cannot be read."""
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    raw = value.strip()
    if raw[-1] in "Zz":
        raw = raw[:-1] + "+00:00"
    # fromisoformat only accepts 3 or 6 fractional digits on older interpreters
    raw = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), raw, count=1)

    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        logger.debug("Ignoring unparseable timestamp: %r", value)
        return None


def coerce_id(value: Any) -> Any:
    """Backend ids arrive as UUID strings or integers; keep them as strings."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value))
    if value is not None and not isinstance(value, str):
        return str(value)
    return value


Timestamp = Annotated[Optional[datetime], BeforeValidator(parse_timestamp)]
RecordId = Annotated[str, BeforeValidator(coerce_id)]
OptionalRecordId = Annotated[Optional[str], BeforeValidator(coerce_id)]

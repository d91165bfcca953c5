from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

# Note store timestamps count seconds from 2001-01-01T00:00:00Z.
REFERENCE_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)
UNKNOWN = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_datetime(timestamp: Optional[Union[int, float]]) -> datetime:
    """Convert a reference-epoch timestamp to an aware UTC datetime.

    ``None`` and ``0`` mean "unknown" and map to the Unix epoch.
    """
    if not timestamp:
        return UNKNOWN
    return REFERENCE_EPOCH + timedelta(seconds=float(timestamp))


def to_iso(timestamp: Optional[Union[int, float]]) -> str:
    return to_datetime(timestamp).isoformat()

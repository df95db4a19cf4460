"""Shared utilities for schema validation."""

from datetime import datetime, timezone
from typing import Any


def parse_mongo_datetime(v: Any) -> Any:
    """Normalize datetimes read from MongoDB to timezone-aware UTC.

    Accepts BSON datetimes (naive, UTC by convention) and MongoDB Extended JSON
    {'$date': '2024-11-01T08:00:00Z'} as written by mongoimport.
    """
    if isinstance(v, dict) and "$date" in v:
        v = datetime.fromisoformat(v["$date"].replace("Z", "+00:00"))
    if isinstance(v, datetime) and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    # Anything else is left to Pydantic validation
    return v

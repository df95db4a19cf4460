from datetime import datetime, timezone
from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, PlainSerializer

from app.shared.api.utils import ApiSuccess

T = TypeVar("T")


def _iso_utc(dt: datetime | None) -> str | None:
    # Naive datetimes are UTC; output like 2025-12-03T10:30:00+00:00
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


UtcDatetime = Annotated[datetime, PlainSerializer(_iso_utc, return_type=str | None)]


class ApiOut(ApiSuccess, Generic[T]):
    """Standard API envelope used by public routers."""

    results: T  # type: ignore[valid-type]


class DeletedOut(BaseModel):
    deleted: bool = True

"""Dependencies that are used in the API endpoints."""

from typing import Optional

from fastapi import Query

from credibill.core.datetime_utils import utc_now_ms
from credibill.db.session import get_db

__all__ = ["get_db", "reference_time"]


def reference_time(
    now: Optional[int] = Query(
        None, ge=0, description="Reference time in epoch milliseconds, defaults to the clock"
    ),
) -> int:
    """Resolve the reference time of a request.

    Status reads take an explicit `now` so that clients can ask what a subscription
    looks like at any instant.
    """
    return now if now is not None else utc_now_ms()

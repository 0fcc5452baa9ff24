"""
Bookkeeping shared by the session stores.

Timestamps travel through session.values under reserved keys. They are
stripped before the payload is encoded and injected back after a load.
All timestamps are naive UTC datetimes.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

CREATED_ON = "created_on"
MODIFIED_ON = "modified_on"
EXPIRES_ON = "expires_on"

RESERVED_KEYS = (CREATED_ON, MODIFIED_ON, EXPIRES_ON)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc_datetime(value: Any) -> Optional[datetime]:
    """Coerce a stored timestamp to naive UTC, or None if it is not one"""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def strip_reserved(values: Dict[str, Any]) -> Dict[str, Any]:
    """Remove the reserved keys from values in place and return what was removed"""
    return {key: values.pop(key) for key in RESERVED_KEYS if key in values}


def insert_times(
    values: Dict[str, Any], max_age: int, now: Optional[datetime] = None
) -> Tuple[datetime, datetime, datetime]:
    """
    Timestamps for a session persisted for the first time.

    Explicit created_on/expires_on entries in values win; otherwise the
    session is created now and expires max_age seconds after creation.

    Returns:
        (created_on, modified_on, expires_on)
    """
    now = now or utcnow()
    created_on = as_utc_datetime(values.get(CREATED_ON)) or now
    expires_on = as_utc_datetime(values.get(EXPIRES_ON)) or (
        created_on + timedelta(seconds=max_age)
    )
    return created_on, created_on, expires_on


def update_times(
    values: Dict[str, Any], max_age: int, now: Optional[datetime] = None
) -> Tuple[datetime, datetime, datetime]:
    """
    Timestamps for a session saved again.

    Expiry is extended to now + max_age and never moves backwards.

    Returns:
        (created_on, modified_on, expires_on)
    """
    now = now or utcnow()
    created_on = as_utc_datetime(values.get(CREATED_ON)) or now
    extended = now + timedelta(seconds=max_age)
    existing = as_utc_datetime(values.get(EXPIRES_ON))
    expires_on = max(existing, extended) if existing else extended
    return created_on, now, expires_on


def inject_times(
    values: Dict[str, Any], created_on: datetime, modified_on: datetime, expires_on: datetime
) -> None:
    values[CREATED_ON] = created_on
    values[MODIFIED_ON] = modified_on
    values[EXPIRES_ON] = expires_on

"""Common utility functions following DRY and KISS principles."""
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Optional

_ID_ALPHABET = string.ascii_lowercase + string.digits


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Tag naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_session_id() -> str:
    """Time-prefixed id with a random suffix, e.g. ``session_1718000000000_k3j9x0a1b``."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"session_{millis}_{suffix}"


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()

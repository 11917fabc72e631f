import threading
import uuid
from datetime import datetime, timedelta

_clock_lock = threading.Lock()
_last_timestamp = datetime.min


def utcnow() -> datetime:
    """
    Naive UTC timestamp, strictly increasing within this process.
    Newest-first ordering relies on created_at, so two events in the same
    microsecond must not tie.
    """
    global _last_timestamp
    with _clock_lock:
        now = datetime.utcnow()
        if now <= _last_timestamp:
            now = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = now
        return now


def new_id() -> str:
    return str(uuid.uuid4())


def truncate_preview(text: str, limit: int, marker: str = "...") -> str:
    """Cut `text` to `limit` characters, appending `marker` only when something was cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker

# jagacall/envelope.py

"""
Uniform success / error wrapper returned on every HTTP response:

    {"success": true,  "timestamp": "...", "data": {...}}
    {"success": false, "timestamp": "...", "error": {"message": ..., "code": ...}}
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jagacall.errors import INTERNAL_ERROR

DEFAULT_ERROR_MESSAGE = "Unknown error occurred"

_clock_lock = threading.Lock()
_last_stamp: Optional[datetime] = None


def utc_now() -> datetime:
    """Current UTC time, never earlier than a previously returned value."""
    global _last_stamp
    now = datetime.now(timezone.utc)
    with _clock_lock:
        if _last_stamp is not None and now < _last_stamp:
            now = _last_stamp
        _last_stamp = now
    return now


def isoformat(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def timestamp() -> str:
    return isoformat(utc_now())


def success(data: Any) -> Dict[str, Any]:
    return {
        "success": True,
        "timestamp": timestamp(),
        "data": data if data is not None else {},
    }


def failure(message: Optional[str] = None, code: Optional[str] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "timestamp": timestamp(),
        "error": {
            "message": message or DEFAULT_ERROR_MESSAGE,
            "code": code or INTERNAL_ERROR,
        },
    }

"""Shared API dependencies — single import point for all routers.

Re-exports database session and booking store dependencies so that router
modules can import everything they need from one place::

    from stay_calendar.api.deps import get_booking_store, get_db
"""

from stay_calendar.database import get_db
from stay_calendar.services.booking_store import get_booking_store

__all__ = [
    "get_db",
    "get_booking_store",
]

"""Booking store — read-only queries that feed the availability projector.

The store is the collaborator that owns the no-overlap guarantee for active
bookings; these queries only read.
"""

import logging
import uuid
from collections.abc import Sequence
from datetime import date
from typing import NamedTuple

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stay_calendar.config import settings
from stay_calendar.database import get_db
from stay_calendar.models.booking import Booking
from stay_calendar.models.property import Property
from stay_calendar.services.availability import BookingRecord
from stay_calendar.services.errors import InvalidInput, UpstreamUnavailable

logger = logging.getLogger(__name__)


class DateWindow(NamedTuple):
    """Inclusive ``[start, end]`` date window."""

    start: date
    end: date


def parse_property_id(value: uuid.UUID | str) -> uuid.UUID:
    """Parse a property identifier, raising ``InvalidInput`` when it is not a UUID."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise InvalidInput(f"propertyId {value!r} is not a valid identifier") from exc


def _to_record(booking: Booking, property_name: str | None) -> BookingRecord:
    return BookingRecord(
        id=str(booking.id),
        property_id=str(booking.property_id),
        check_in=booking.check_in,
        check_out=booking.check_out,
        status=booking.status,
        guest_name=booking.guest_name,
        amount=booking.amount,
        property_name=property_name,
    )


class BookingStore:
    """Fetches booking rows for availability projections."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def fetch_bookings_for_property(
        self,
        property_id: uuid.UUID | str,
        window: DateWindow,
        statuses: Sequence[str],
    ) -> list[BookingRecord]:
        """Return bookings of one property with the given statuses touching ``window``.

        Rows are ordered by creation time so that, should two active bookings
        overlap, the most recently created one owns the shared dates.

        Raises:
            InvalidInput: if ``property_id`` is not a UUID.
            UpstreamUnavailable: if the database cannot be queried.
        """
        pid = parse_property_id(property_id)
        query = (
            select(Booking, Property.name)
            .join(Property, Booking.property_id == Property.id)
            .where(
                Booking.property_id == pid,
                Booking.status.in_(list(statuses)),
                Booking.check_out >= window.start,
                Booking.check_in <= window.end,
            )
            .order_by(Booking.created_at, Booking.id)
        )
        try:
            result = await self.db.execute(query)
            rows = result.all()
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("Failed to fetch bookings for property %s", pid)
            raise UpstreamUnavailable("Failed to fetch availability data") from exc

        logger.debug("Fetched %d bookings for property %s in %s..%s", len(rows), pid, window.start, window.end)
        return [_to_record(booking, name) for booking, name in rows]

    async def fetch_all_active_bookings(self, as_of: date) -> list[BookingRecord]:
        """Return every active booking that has not checked out before ``as_of``.

        Raises:
            UpstreamUnavailable: if the database cannot be queried.
        """
        query = (
            select(Booking, Property.name)
            .join(Property, Booking.property_id == Property.id)
            .where(
                Booking.status.in_(settings.active_statuses),
                Booking.check_out >= as_of,
            )
            .order_by(Booking.property_id, Booking.check_in)
        )
        try:
            result = await self.db.execute(query)
            rows = result.all()
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("Failed to fetch active bookings as of %s", as_of)
            raise UpstreamUnavailable("Failed to fetch availability data") from exc

        return [_to_record(booking, name) for booking, name in rows]

    async def fetch_all_bookings(self, statuses: Sequence[str]) -> list[BookingRecord]:
        """Return every booking with the given statuses, for offline consistency checks."""
        query = (
            select(Booking, Property.name)
            .join(Property, Booking.property_id == Property.id)
            .where(Booking.status.in_(list(statuses)))
            .order_by(Booking.property_id, Booking.check_in)
        )
        try:
            result = await self.db.execute(query)
            rows = result.all()
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("Failed to fetch bookings with statuses %s", list(statuses))
            raise UpstreamUnavailable("Failed to fetch booking data") from exc

        return [_to_record(booking, name) for booking, name in rows]


async def get_booking_store(db: AsyncSession = Depends(get_db)) -> BookingStore:
    """FastAPI dependency that wraps the request session in a ``BookingStore``."""
    return BookingStore(db)

"""Availability projector — per-date availability, monthly occupancy and next-available summaries.

Every function here is pure: it takes an already-fetched list of booking rows
and returns freshly built structures. Nothing is cached and nothing is read
from the clock; callers pass ``as_of`` explicitly.

Dates are treated as half-open intervals ``[check_in, check_out)``: the
check-out day is free for the next guest.

Precondition: the booking store guarantees that active bookings of one
property never overlap. The projector does not enforce it. When it is broken
the later booking (in caller order) owns the date; when both bookings are
active the displaced booking id is recorded on the entry's ``conflicts``
list. A ``completed`` stay overwritten in the calendar view is not a conflict.
"""

from __future__ import annotations

import calendar
import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from stay_calendar.services.errors import InvalidInput, MalformedBookingRecord

logger = logging.getLogger(__name__)

BOOKING_STATUSES = frozenset({"pending", "confirmed", "cancelled", "completed"})
ACTIVE_STATUSES = frozenset({"pending", "confirmed"})

ONE_DAY = timedelta(days=1)
_CENTS = Decimal("0.01")

# Wire names accepted in addition to the attribute names.
_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "property_id": ("property_id", "propertyId"),
    "check_in": ("check_in", "checkIn"),
    "check_out": ("check_out", "checkOut"),
    "status": ("status",),
    "guest_name": ("guest_name", "guestName"),
    "amount": ("amount",),
    "property_name": ("property_name", "propertyName"),
}


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BookingRecord:
    """A validated, read-only booking row."""

    id: str
    property_id: str
    check_in: date
    check_out: date
    status: str
    guest_name: str | None = None
    amount: Decimal | None = None
    property_name: str | None = None

    @property
    def occupies_dates(self) -> bool:
        return self.status != "cancelled"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def nights_between(self, start: date, end: date) -> tuple[date, date] | None:
        """Return the first and last occupied night inside the inclusive window, if any."""
        first = max(self.check_in, start)
        last = min(self.check_out - ONE_DAY, end)
        if first > last:
            return None
        return first, last

    @classmethod
    def coerce(cls, raw: Any) -> BookingRecord:
        """Build a record from an ORM row, a mapping or another record.

        Raises:
            MalformedBookingRecord: if the row has no id or property, an
                unparsable date, ``check_in >= check_out`` or an unknown status.
        """
        if isinstance(raw, BookingRecord):
            if raw.check_in >= raw.check_out:
                raise MalformedBookingRecord("check_in must be before check_out", raw.id)
            if not isinstance(raw.status, str) or raw.status not in BOOKING_STATUSES:
                raise MalformedBookingRecord(f"unknown status {raw.status!r}", raw.id)
            return raw

        booking_id = _field(raw, "id")
        if booking_id is None or str(booking_id) == "":
            raise MalformedBookingRecord("booking has no id")
        booking_id = str(booking_id)

        property_id = _field(raw, "property_id")
        if property_id is None or str(property_id) == "":
            raise MalformedBookingRecord("booking has no property_id", booking_id)

        check_in = _parse_date(_field(raw, "check_in"), "check_in", booking_id)
        check_out = _parse_date(_field(raw, "check_out"), "check_out", booking_id)
        if check_in >= check_out:
            raise MalformedBookingRecord(
                f"check_in {check_in.isoformat()} is not before check_out {check_out.isoformat()}",
                booking_id,
            )

        status = _field(raw, "status")
        if not isinstance(status, str) or status.strip().lower() not in BOOKING_STATUSES:
            raise MalformedBookingRecord(f"unknown status {status!r}", booking_id)
        status = status.strip().lower()

        guest_name = _field(raw, "guest_name")
        property_name = _field(raw, "property_name")
        return cls(
            id=booking_id,
            property_id=str(property_id),
            check_in=check_in,
            check_out=check_out,
            status=status,
            guest_name=str(guest_name) if guest_name is not None else None,
            amount=_parse_amount(_field(raw, "amount"), booking_id),
            property_name=str(property_name) if property_name is not None else None,
        )


@dataclass
class DateAvailability:
    """Availability of a single calendar date."""

    date: date
    available: bool = True
    occupying_booking_id: str | None = None
    occupying_status: str | None = None
    revenue: Decimal | None = None
    guest_name: str | None = None
    conflicts: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class OccupancyStats:
    """Occupancy statistics over one projected window."""

    total_days: int
    booked_days: int
    available_days: int
    occupancy_rate: float  # percentage 0.00–100.00
    total_revenue: Decimal = Decimal("0.00")
    average_daily_rate: Decimal = Decimal("0.00")


@dataclass
class PropertyAvailabilitySummary:
    """Next-available view of one property with active bookings."""

    property_id: str
    display_name: str
    active_bookings: list[BookingRecord]
    next_available_date: date


@dataclass(frozen=True)
class BookingConflict:
    """Two active bookings of one property claiming the same nights."""

    property_id: str
    first_booking_id: str
    second_booking_id: str
    overlap_start: date
    overlap_end: date  # exclusive


class Projection(Mapping[date, DateAvailability]):
    """Per-date availability for a window, in calendar order.

    Behaves as a read-only mapping of ``date -> DateAvailability`` and also
    carries the bookings that were projected and the ids that were skipped.
    """

    def __init__(
        self,
        days: dict[date, DateAvailability],
        bookings: list[BookingRecord],
        skipped: list[str],
    ) -> None:
        self._days = days
        self.bookings = bookings
        self.skipped = skipped

    def __getitem__(self, key: date) -> DateAvailability:
        return self._days[key]

    def __iter__(self) -> Iterator[date]:
        return iter(self._days)

    def __len__(self) -> int:
        return len(self._days)

    @property
    def conflicts(self) -> dict[date, list[str]]:
        """Dates claimed by more than one booking, with the displaced booking ids."""
        return {day: list(entry.conflicts) for day, entry in self._days.items() if entry.conflicts}

    def __repr__(self) -> str:
        return f"<Projection(days={len(self._days)}, bookings={len(self.bookings)}, skipped={len(self.skipped)})>"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _field(raw: Any, name: str) -> Any:
    """Read a booking field from a mapping or an object, trying every alias."""
    for alias in _ALIASES[name]:
        if isinstance(raw, Mapping):
            if alias in raw:
                return raw[alias]
        elif hasattr(raw, alias):
            return getattr(raw, alias)
    return None


def _parse_date(value: Any, name: str, booking_id: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise MalformedBookingRecord(f"unparsable {name} {value!r}", booking_id)


def _parse_amount(value: Any, booking_id: str) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        logger.warning("Ignoring unparsable amount %r on booking %s", value, booking_id)
        return None
    if not amount.is_finite():
        logger.warning("Ignoring non-finite amount %r on booking %s", value, booking_id)
        return None
    return amount


def _collect(bookings: Iterable[Any]) -> tuple[list[BookingRecord], list[str]]:
    """Coerce rows into records, skipping malformed ones with a warning."""
    records: list[BookingRecord] = []
    skipped: list[str] = []
    for raw in bookings:
        try:
            records.append(BookingRecord.coerce(raw))
        except MalformedBookingRecord as exc:
            logger.warning("Skipping malformed booking %s: %s", exc.booking_id or "<no id>", exc)
            skipped.append(exc.booking_id or "")
    return records, skipped


def _mark(
    days: dict[date, DateAvailability],
    records: list[BookingRecord],
    start: date,
    end: date,
    *,
    with_details: bool,
) -> list[BookingRecord]:
    """Mark occupied dates in caller order and return the bookings that touched the window."""
    projected: list[BookingRecord] = []
    for record in records:
        if not record.occupies_dates:
            continue
        nights = record.nights_between(start, end)
        if nights is None:
            continue
        projected.append(record)

        first, last = nights
        for offset in range((last - first).days + 1):
            day = first + timedelta(days=offset)
            entry = days[day]
            if (
                not entry.available
                and entry.occupying_booking_id != record.id
                and entry.occupying_status in ACTIVE_STATUSES
                and record.is_active
            ):
                logger.warning(
                    "Bookings %s and %s both occupy %s on property %s",
                    entry.occupying_booking_id,
                    record.id,
                    day.isoformat(),
                    record.property_id,
                )
                entry.conflicts.append(entry.occupying_booking_id)
            entry.available = False
            entry.occupying_booking_id = record.id
            entry.occupying_status = record.status
            if with_details:
                entry.revenue = record.amount
                entry.guest_name = record.guest_name
    return projected


def _empty_days(start: date, end: date) -> dict[date, DateAvailability]:
    days: dict[date, DateAvailability] = {}
    for offset in range((end - start).days + 1):
        day = start + timedelta(days=offset)
        days[day] = DateAvailability(date=day)
    return days


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Return the first and last day of a month.

    Raises:
        InvalidInput: if the month is outside 1–12 or the year outside 1–9999.
    """
    if not 1 <= month <= 12:
        raise InvalidInput(f"month must be between 1 and 12, got {month}")
    if not 1 <= year <= 9999:
        raise InvalidInput(f"year must be between 1 and 9999, got {year}")
    _, days_in_month = calendar.monthrange(year, month)
    return date(year, month, 1), date(year, month, days_in_month)


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------


def project(start_date: date, end_date: date, bookings: Iterable[Any]) -> Projection:
    """Project bookings onto every date of ``[start_date, end_date]`` (inclusive).

    Cancelled bookings never occupy a date. Malformed rows are skipped and
    their ids listed in ``Projection.skipped``.

    Raises:
        InvalidInput: if ``start_date`` is after ``end_date``.
    """
    if start_date > end_date:
        raise InvalidInput(
            f"start date {start_date.isoformat()} is after end date {end_date.isoformat()}"
        )

    records, skipped = _collect(bookings)
    days = _empty_days(start_date, end_date)
    projected = _mark(days, records, start_date, end_date, with_details=False)
    return Projection(days, projected, skipped)


def project_month(year: int, month: int, bookings: Iterable[Any]) -> Projection:
    """Project bookings onto every day of a calendar month.

    Same marking rule as :func:`project`; occupied entries also carry the
    booking's ``amount`` as ``revenue`` and its guest name.
    """
    first, last = month_bounds(year, month)
    records, skipped = _collect(bookings)
    days = _empty_days(first, last)
    projected = _mark(days, records, first, last, with_details=True)
    return Projection(days, projected, skipped)


def compute_occupancy(days: Mapping[date, DateAvailability]) -> OccupancyStats:
    """Summarize a projection into booked/available counts, rate and revenue."""
    total_days = len(days)
    booked = [entry for entry in days.values() if not entry.available]
    booked_days = len(booked)

    if total_days > 0:
        rate = (Decimal(booked_days * 100) / Decimal(total_days)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    else:
        rate = Decimal("0.00")

    # Revenue is per booking, not per night
    revenue_by_booking: dict[str, Decimal] = {}
    for entry in booked:
        if entry.revenue is not None and entry.occupying_booking_id is not None:
            revenue_by_booking[entry.occupying_booking_id] = entry.revenue
    total_revenue = sum(revenue_by_booking.values(), Decimal("0")).quantize(_CENTS, rounding=ROUND_HALF_UP)

    if booked_days > 0:
        adr = (total_revenue / Decimal(booked_days)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    else:
        adr = Decimal("0.00")

    return OccupancyStats(
        total_days=total_days,
        booked_days=booked_days,
        available_days=total_days - booked_days,
        occupancy_rate=float(rate),
        total_revenue=total_revenue,
        average_daily_rate=adr,
    )


def is_range_available(days: Mapping[date, DateAvailability]) -> bool:
    """True when every date of the projection is free."""
    return all(entry.available for entry in days.values())


def unavailable_dates(days: Mapping[date, DateAvailability]) -> list[date]:
    """Occupied dates of the projection, in calendar order."""
    return sorted(day for day, entry in days.items() if not entry.available)


# ---------------------------------------------------------------------------
# Cross-property views
# ---------------------------------------------------------------------------


def summarize(
    active_bookings: Iterable[Any],
    as_of: date | None = None,
) -> dict[str, PropertyAvailabilitySummary]:
    """Group active bookings by property and compute each property's next free date.

    ``next_available_date`` is the day after the latest check-out of the
    property's active bookings. Properties without active bookings are not
    in the result; callers treat them as available from ``as_of``.

    Args:
        active_bookings: Rows with ``pending`` or ``confirmed`` status. Other
            statuses are ignored.
        as_of: When given, bookings that checked out before this date are
            ignored.
    """
    records, _ = _collect(active_bookings)

    grouped: dict[str, list[BookingRecord]] = defaultdict(list)
    for record in records:
        if not record.is_active:
            continue
        if as_of is not None and record.check_out < as_of:
            continue
        grouped[record.property_id].append(record)

    summaries: dict[str, PropertyAvailabilitySummary] = {}
    for property_id, group in grouped.items():
        group.sort(key=lambda r: (r.check_in, r.check_out))
        display_name = next(
            (r.property_name for r in group if r.property_name),
            f"Property {property_id}",
        )
        last_check_out = max(r.check_out for r in group)
        summaries[property_id] = PropertyAvailabilitySummary(
            property_id=property_id,
            display_name=display_name,
            active_bookings=group,
            # date.max has no following day
            next_available_date=last_check_out + ONE_DAY if last_check_out < date.max else date.max,
        )
    return summaries


def find_overlaps(bookings: Iterable[Any]) -> list[BookingConflict]:
    """Return every pair of active bookings of one property whose nights overlap.

    Used as an offline consistency check against the booking store; the
    projections themselves never reject overlapping data.
    """
    records, _ = _collect(bookings)

    grouped: dict[str, list[BookingRecord]] = defaultdict(list)
    for record in records:
        if record.is_active:
            grouped[record.property_id].append(record)

    conflicts: list[BookingConflict] = []
    for property_id, group in grouped.items():
        group.sort(key=lambda r: (r.check_in, r.check_out, r.id))
        still_open: list[BookingRecord] = []
        for record in group:
            still_open = [b for b in still_open if b.check_out > record.check_in]
            for earlier in still_open:
                conflicts.append(
                    BookingConflict(
                        property_id=property_id,
                        first_booking_id=earlier.id,
                        second_booking_id=record.id,
                        overlap_start=record.check_in,
                        overlap_end=min(earlier.check_out, record.check_out),
                    )
                )
            still_open.append(record)
    return conflicts

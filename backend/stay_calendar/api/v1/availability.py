"""Availability API router — date-range availability, monthly calendars and next-available summaries.

One read-only endpoint with three mutually exclusive modes selected by the
query parameters:

- ``propertyId`` + ``startDate`` + ``endDate``: per-date availability.
- ``propertyId`` + ``month`` + ``year``: calendar month with occupancy stats.
- no parameters: next available date of every property with active bookings.

Invalid or incomplete parameters are rejected with a 400 envelope; they are
never defaulted.
"""

from __future__ import annotations

import logging
import re
from datetime import date

from fastapi import APIRouter, Depends, Query

from stay_calendar.api.deps import get_booking_store
from stay_calendar.config import settings
from stay_calendar.schemas.availability import (
    AvailabilityResponse,
    AvailabilitySummaryData,
    BookingOut,
    DateAvailabilityOut,
    MonthlyAvailabilityData,
    OccupancyStatsOut,
    PropertyAvailabilityOut,
    RangeAvailabilityData,
)
from stay_calendar.services.availability import (
    Projection,
    compute_occupancy,
    is_range_available,
    month_bounds,
    project,
    project_month,
    summarize,
    unavailable_dates,
)
from stay_calendar.services.booking_store import BookingStore, DateWindow, parse_property_id
from stay_calendar.services.errors import InvalidInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/availability", tags=["availability"])

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH = re.compile(r"^\d{1,2}$")
_YEAR = re.compile(r"^\d{4}$")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_iso_date(value: str, name: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` query parameter."""
    if not _ISO_DATE.match(value):
        raise InvalidInput(f"{name} must be a date in YYYY-MM-DD format")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidInput(f"{name} is not a valid calendar date: {value}") from exc


def _require(params: dict[str, str | None]) -> None:
    missing = [name for name, value in params.items() if value is None or value == ""]
    if missing:
        raise InvalidInput(f"Missing required parameter(s): {', '.join(missing)}")


def _availability_out(projection: Projection) -> dict[date, DateAvailabilityOut]:
    return {day: DateAvailabilityOut.model_validate(entry) for day, entry in projection.items()}


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


async def _range_mode(
    store: BookingStore,
    property_id: str,
    start_raw: str,
    end_raw: str,
) -> RangeAvailabilityData:
    start_date = _parse_iso_date(start_raw, "startDate")
    end_date = _parse_iso_date(end_raw, "endDate")
    if start_date > end_date:
        raise InvalidInput("startDate must be on or before endDate")
    span = (end_date - start_date).days + 1
    if span > settings.max_range_days:
        raise InvalidInput(f"Date range of {span} days exceeds the maximum of {settings.max_range_days} days")
    pid = parse_property_id(property_id)

    logger.info("Range availability for property %s: %s..%s", pid, start_date, end_date)
    bookings = await store.fetch_bookings_for_property(
        pid,
        DateWindow(start_date, end_date),
        settings.range_statuses,
    )
    projection = project(start_date, end_date, bookings)

    return RangeAvailabilityData(
        property_id=str(pid),
        start_date=start_date,
        end_date=end_date,
        availability=_availability_out(projection),
        total_bookings=len(projection.bookings),
        all_available=is_range_available(projection),
        unavailable_dates=unavailable_dates(projection),
        skipped_bookings=projection.skipped,
        conflicts=projection.conflicts,
    )


async def _month_mode(
    store: BookingStore,
    property_id: str,
    month_raw: str,
    year_raw: str,
) -> MonthlyAvailabilityData:
    if not _MONTH.match(month_raw):
        raise InvalidInput("month must be given as MM")
    if not _YEAR.match(year_raw):
        raise InvalidInput("year must be given as YYYY")
    year, month = int(year_raw), int(month_raw)
    first, last = month_bounds(year, month)
    pid = parse_property_id(property_id)

    logger.info("Monthly availability for property %s: %04d-%02d", pid, year, month)
    bookings = await store.fetch_bookings_for_property(
        pid,
        DateWindow(first, last),
        settings.calendar_statuses,
    )
    projection = project_month(year, month, bookings)
    skipped = set(projection.skipped)

    return MonthlyAvailabilityData(
        property_id=str(pid),
        month=f"{month:02d}",
        year=f"{year:04d}",
        availability=_availability_out(projection),
        bookings=[BookingOut.model_validate(b) for b in bookings if b.id not in skipped],
        occupancy=OccupancyStatsOut.model_validate(compute_occupancy(projection)),
        skipped_bookings=projection.skipped,
        conflicts=projection.conflicts,
    )


async def _summary_mode(store: BookingStore, as_of: date) -> AvailabilitySummaryData:
    logger.info("Availability summary as of %s", as_of)
    bookings = await store.fetch_all_active_bookings(as_of)
    summaries = summarize(bookings, as_of=as_of)

    return AvailabilitySummaryData(
        as_of=as_of,
        properties={
            property_id: PropertyAvailabilityOut.model_validate(summary)
            for property_id, summary in summaries.items()
        },
        total_active_bookings=sum(len(s.active_bookings) for s in summaries.values()),
    )


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=AvailabilityResponse,
    response_model_exclude_none=True,
    summary="Property availability by date range, by month, or across all properties",
)
async def get_availability(
    property_id: str | None = Query(None, alias="propertyId", description="Property to inspect"),
    start_date: str | None = Query(None, alias="startDate", description="Range start (YYYY-MM-DD, inclusive)"),
    end_date: str | None = Query(None, alias="endDate", description="Range end (YYYY-MM-DD, inclusive)"),
    month: str | None = Query(None, description="Calendar month (MM)"),
    year: str | None = Query(None, description="Calendar year (YYYY)"),
    as_of: str | None = Query(None, alias="asOf", description="Summary reference date, defaults to today"),
    store: BookingStore = Depends(get_booking_store),
) -> AvailabilityResponse:
    """Return availability in the mode selected by the query parameters."""
    wants_range = start_date is not None or end_date is not None
    wants_month = month is not None or year is not None

    if wants_range and wants_month:
        raise InvalidInput("Use either startDate/endDate or month/year, not both")

    if wants_range:
        _require({"propertyId": property_id, "startDate": start_date, "endDate": end_date})
        data = await _range_mode(store, property_id, start_date, end_date)
    elif wants_month:
        _require({"propertyId": property_id, "month": month, "year": year})
        data = await _month_mode(store, property_id, month, year)
    elif property_id is not None:
        raise InvalidInput("propertyId requires either startDate/endDate or month/year")
    else:
        reference = _parse_iso_date(as_of, "asOf") if as_of is not None else date.today()
        data = await _summary_mode(store, reference)

    return AvailabilityResponse(success=True, data=data)

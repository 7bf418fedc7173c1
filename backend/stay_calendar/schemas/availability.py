"""Pydantic v2 response schemas for the availability endpoint.

Responses use the camelCase keys calendar clients already consume
(``occupyingBookingId``, ``nextAvailableDate``...).
"""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing with camelCase aliases and reading from dataclasses."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


class BookingOut(CamelModel):
    """A booking row as used by the projection."""

    id: str
    property_id: str
    check_in: date
    check_out: date
    status: str
    guest_name: str | None = None
    amount: Decimal | None = None


class DateAvailabilityOut(CamelModel):
    """Availability of one calendar date."""

    available: bool
    occupying_booking_id: str | None = None
    occupying_status: str | None = None
    revenue: Decimal | None = None
    guest_name: str | None = None
    conflicts: list[str] = []


class OccupancyStatsOut(CamelModel):
    """Occupancy statistics for a projected window."""

    total_days: int
    booked_days: int
    available_days: int
    occupancy_rate: float  # percentage 0.00–100.00
    total_revenue: Decimal
    average_daily_rate: Decimal


class PropertyAvailabilityOut(CamelModel):
    """Next-available summary of one property."""

    property_id: str
    display_name: str
    active_bookings: list[BookingOut]
    next_available_date: date


# ---------------------------------------------------------------------------
# Mode payloads
# ---------------------------------------------------------------------------


class RangeAvailabilityData(CamelModel):
    """Payload of the date-range mode."""

    property_id: str
    start_date: date
    end_date: date
    availability: dict[date, DateAvailabilityOut]
    total_bookings: int
    all_available: bool
    unavailable_dates: list[date]
    skipped_bookings: list[str]
    conflicts: dict[date, list[str]]


class MonthlyAvailabilityData(CamelModel):
    """Payload of the calendar-month mode."""

    property_id: str
    month: str  # MM
    year: str  # YYYY
    availability: dict[date, DateAvailabilityOut]
    bookings: list[BookingOut]  # every fetched row, including ones with no night in the month
    occupancy: OccupancyStatsOut
    skipped_bookings: list[str]
    conflicts: dict[date, list[str]]


class AvailabilitySummaryData(CamelModel):
    """Payload of the cross-property summary mode."""

    as_of: date
    properties: dict[str, PropertyAvailabilityOut]
    total_active_bookings: int


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class AvailabilityResponse(BaseModel):
    """Response envelope shared by every availability mode and by error responses."""

    success: bool
    data: RangeAvailabilityData | MonthlyAvailabilityData | AvailabilitySummaryData | None = None
    error: str | None = None

    @classmethod
    def failure(cls, message: str) -> dict[str, Any]:
        """Serialized error envelope for exception handlers."""
        return cls(success=False, error=message).model_dump(mode="json", by_alias=True, exclude_none=True)

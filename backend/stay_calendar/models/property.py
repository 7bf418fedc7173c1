"""Property model — villas, hotels, and guesthouses that can be booked."""

from datetime import datetime

from sqlalchemy import String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stay_calendar.database import Base, UUIDPrimaryKeyMixin


class Property(UUIDPrimaryKeyMixin, Base):
    """A bookable property. Only the fields the availability views read."""

    __tablename__ = "properties"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), default=None)
    status: Mapped[str] = mapped_column(String(50), server_default="active")  # active, maintenance, inactive
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    # Relationships
    bookings: Mapped[list["Booking"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        back_populates="property", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, name={self.name!r})>"

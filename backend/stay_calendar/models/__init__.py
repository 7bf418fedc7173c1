"""SQLAlchemy models for Stay Calendar.

All models are imported here so that ``Base.metadata`` knows every table. If
you add a new model, import it in this file.
"""

from stay_calendar.models.booking import Booking
from stay_calendar.models.property import Property

__all__ = [
    "Booking",
    "Property",
]

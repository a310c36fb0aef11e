"""
Bookings API Domain

Lab availability, extensions, calendar and slot grid.
"""

from lab_scheduling.api.availability_api import (
    # Labs
    get_active_labs,
    get_lab_slots,
    # Availability
    check_lab_availability,
    check_extension_availability,
    # Calendar
    get_calendar_view,
)

__all__ = [
    "get_active_labs",
    "get_lab_slots",
    "check_lab_availability",
    "check_extension_availability",
    "get_calendar_view",
]

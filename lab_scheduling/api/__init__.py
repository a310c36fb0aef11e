"""
Lab Scheduling API

Structure:
    api/
    ├── __init__.py              # This file
    ├── bookings/                # Bookings domain
    │   └── __init__.py          # Re-exports from availability_api
    ├── shared/                  # Shared utilities
    │   ├── __init__.py
    │   └── validators.py        # Input validators
    ├── availability_api.py      # Whitelisted endpoints
    └── security.py              # Rate limiting

Usage:
    frappe.call("lab_scheduling.api.bookings.check_lab_availability", ...)
    frappe.call("lab_scheduling.api.availability_api.check_lab_availability", ...)
"""

from . import bookings
from . import shared

__all__ = [
    "bookings",
    "shared",
]

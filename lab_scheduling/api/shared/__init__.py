"""
Shared utilities for Lab Scheduling API.
"""

from lab_scheduling.api.security import check_rate_limit, get_client_ip

from .validators import (
    validate_date_string,
    validate_datetime_string,
    validate_docname,
)

__all__ = [
    "check_rate_limit",
    "get_client_ip",
    "validate_date_string",
    "validate_datetime_string",
    "validate_docname",
]

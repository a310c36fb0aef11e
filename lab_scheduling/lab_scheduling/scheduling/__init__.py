"""
Scheduling Services Module

This module provides the lab-slot scheduling core:
- Operating hours / timezone normalization (time_window.py)
- Conflict detection against committed bookings (overlap.py)
- Availability evaluation (availability.py)
- Alternative slot search (alternatives.py)
- Extension re-checks (extension.py)
- Calendar read view (calendar.py)
- Day slot grid for UI (slots.py)
- Booking store adapter (store.py)
"""

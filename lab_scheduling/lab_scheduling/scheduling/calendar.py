"""
Calendar View Service

Plain read of committed bookings for calendar/list UIs. No operating
hours gate and no alternative search.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional, Union

import frappe
from frappe import _
from frappe.utils import getdate, now_datetime

from .constants import COMMITTED_STATUSES, DEFAULT_CALENDAR_DAYS
from .exceptions import SchedulingValidationError
from .store import BookingStore, get_store
from .time_window import to_aware


def get_calendar_view(
	lab: Optional[str] = None,
	site: Optional[str] = None,
	start_date: Optional[Union[date, datetime, str]] = None,
	end_date: Optional[Union[date, datetime, str]] = None,
	store: Optional[BookingStore] = None,
	default_days: int = DEFAULT_CALENDAR_DAYS
) -> List[frappe._dict]:
	"""
	Obtiene las reservas comprometidas que intersectan [start_date, end_date].

	Args:
		lab: filtrar por Lab (opcional)
		site: filtrar por Lab Site (opcional)
		start_date: inicio (date = desde las 00:00; default: ahora)
		end_date: fin inclusivo (date = todo el día; default: inicio + default_days)
		store: BookingStore (default: Frappe)

	Returns:
		list: filas de reserva ordenadas por inicio
	"""
	store = store or get_store()

	start = _range_start(start_date) if start_date else to_aware(now_datetime())
	if end_date:
		end = _range_end(end_date)
	else:
		end = start + timedelta(days=default_days)

	if end < start:
		raise SchedulingValidationError(_("end_date debe ser mayor o igual que start_date"))

	rows = store.query_bookings(
		start,
		end,
		lab=lab,
		site=site,
		statuses=COMMITTED_STATUSES,
		inclusive=True
	)

	bookings = []
	for row in rows:
		if lab and row.lab != lab:
			continue
		if site and row.site != site:
			continue
		if row.status not in COMMITTED_STATUSES:
			continue
		# Rango cerrado: una reserva que solo toca un extremo se incluye
		if row.start > end or row.end < start:
			continue
		bookings.append(row)

	bookings.sort(key=lambda row: (row.start, row.booking_request))
	return bookings


def _is_date_only(value: Union[date, datetime, str]) -> bool:
	if isinstance(value, datetime):
		return False
	if isinstance(value, date):
		return True
	return len(str(value).strip()) == 10


def _range_start(value: Union[date, datetime, str]) -> datetime:
	if _is_date_only(value):
		return to_aware(datetime.combine(getdate(value), time.min))
	return to_aware(value)


def _range_end(value: Union[date, datetime, str]) -> datetime:
	# Una fecha sola incluye todo el día (hasta 23:59:59.999999)
	if _is_date_only(value):
		return to_aware(datetime.combine(getdate(value), time.max))
	return to_aware(value)

"""
Lab Availability API Endpoints

Whitelisted functions for frontend/external use. Read-only: nothing here
creates or modifies bookings. Endpoints are rate limited by IP address
and validate their inputs before calling the scheduling services.
"""

import frappe
from frappe import _
from frappe.utils import cint, flt
from typing import Dict, List, Any, Optional

# Import scheduling services
from lab_scheduling.lab_scheduling.scheduling.availability import check_availability
from lab_scheduling.lab_scheduling.scheduling.calendar import get_calendar_view as build_calendar_view
from lab_scheduling.lab_scheduling.scheduling.constants import DEFAULT_CALENDAR_DAYS, DEFAULT_MAX_ALTERNATIVES
from lab_scheduling.lab_scheduling.scheduling.exceptions import SchedulingValidationError
from lab_scheduling.lab_scheduling.scheduling.extension import check_extension, is_extension_approvable
from lab_scheduling.lab_scheduling.scheduling.formatting import (
	serialize_booking,
	serialize_result,
	serialize_results,
	format_datetime
)
from lab_scheduling.lab_scheduling.scheduling.slots import generate_day_slots
from lab_scheduling.lab_scheduling.scheduling.store import get_store
from lab_scheduling.lab_scheduling.scheduling.time_window import get_site_timezone, to_aware

# Import security utilities
from lab_scheduling.api.security import check_rate_limit
from lab_scheduling.api.shared.validators import (
	validate_date_string,
	validate_datetime_string,
	validate_docname
)


def get_max_alternatives() -> int:
	"""Máximo de alternativas sugeridas (site_config: lab_scheduling_max_alternatives)."""
	return cint(frappe.conf.get("lab_scheduling_max_alternatives")) or DEFAULT_MAX_ALTERNATIVES


def get_calendar_days() -> int:
	"""Ventana por defecto del calendario (site_config: lab_scheduling_calendar_days)."""
	return cint(frappe.conf.get("lab_scheduling_calendar_days")) or DEFAULT_CALENDAR_DAYS


@frappe.whitelist(allow_guest=True, methods=['GET'])
def get_active_labs(site: Optional[str] = None) -> List[Dict[str, Any]]:
	"""
	Obtiene los Labs activos, opcionalmente filtrados por Lab Site.

	Rate limited: 30 requests per minute per IP.

	Example Response:
		```json
		[
			{
				"name": "Thermal Vacuum Chamber",
				"lab_name": "Thermal Vacuum Chamber",
				"site": "Bengaluru Test Center",
				"rate_per_hour": 12000.0,
				"slot_granularity_minutes": "60",
				"capacity": 1
			}
		]
		```
	"""
	check_rate_limit("get_active_labs", limit=30, seconds=60)

	filters = {"is_active": 1}
	if site:
		filters["site"] = validate_docname(site, "site")

	try:
		return frappe.get_all(
			"Lab",
			filters=filters,
			fields=[
				"name",
				"lab_name",
				"site",
				"rate_per_hour",
				"slot_granularity_minutes",
				"capacity"
			],
			order_by="lab_name asc"
		)

	except Exception as e:
		frappe.log_error(f"Error getting labs: {str(e)}", "API Error")
		frappe.throw(_("Error al obtener laboratorios"))


@frappe.whitelist(allow_guest=True, methods=['GET', 'POST'])
def check_lab_availability(
	lab: str,
	site: str,
	start: str,
	end: str,
	exclude_booking: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Verifica si un Lab está libre en [start, end) y sugiere alternativas.

	Datetimes sin offset se interpretan en la zona horaria del Lab Site.

	Rate limited: 20 requests per minute per IP.

	Returns:
		dict: {
			"is_available": bool,
			"conflicts": [{"booking_request", "item", "lab", "site", "status", "start", "end"}],
			"alternatives": [{"start", "end", "confidence"}],
			"capacity": int,
			"capacity_used": int,
			"capacity_available": int,
			"warnings": [str]
		}

	Example:
		```javascript
		frappe.call({
			method: "lab_scheduling.api.bookings.check_lab_availability",
			args: {
				lab: "Thermal Vacuum Chamber",
				site: "Bengaluru Test Center",
				start: "2024-07-01 10:00:00",
				end: "2024-07-01 12:00:00"
			},
			callback: function(r) {
				console.log(r.message.is_available);
			}
		});
		```
	"""
	check_rate_limit("check_lab_availability", limit=20, seconds=60)

	lab = validate_docname(lab, "lab")
	site = validate_docname(site, "site")
	start = validate_datetime_string(start, "start")
	end = validate_datetime_string(end, "end")
	if exclude_booking:
		exclude_booking = validate_docname(exclude_booking, "exclude_booking")

	store = get_store()
	tz = get_site_timezone(store.get_site(site))

	try:
		result = check_availability(
			lab,
			site,
			to_aware(start, tz),
			to_aware(end, tz),
			exclude_booking=exclude_booking,
			store=store,
			max_results=get_max_alternatives()
		)
	except SchedulingValidationError as e:
		frappe.throw(str(e), SchedulingValidationError)

	return serialize_result(result)


@frappe.whitelist(methods=['GET', 'POST'])
def check_extension_availability(booking_request: str, additional_hours: float) -> Dict[str, Any]:
	"""
	Verifica si una reserva programada puede extenderse.

	Requiere sesión: la reserva pertenece a un usuario.

	Returns:
		dict: {
			"approvable": bool,   # todos los items disponibles
			"results": [resultado por item, con "new_end" y "reason"]
		}
	"""
	check_rate_limit("check_extension_availability", limit=20, seconds=60)

	booking_request = validate_docname(booking_request, "booking_request")
	frappe.has_permission("Lab Booking Request", "read", booking_request, throw=True)

	try:
		results = check_extension(
			booking_request,
			flt(additional_hours),
			max_results=get_max_alternatives()
		)
	except SchedulingValidationError as e:
		frappe.throw(str(e), SchedulingValidationError)

	return {
		"approvable": is_extension_approvable(results),
		"results": serialize_results(results)
	}


@frappe.whitelist(allow_guest=True, methods=['GET'])
def get_calendar_view(
	lab: Optional[str] = None,
	site: Optional[str] = None,
	start_date: Optional[str] = None,
	end_date: Optional[str] = None
) -> List[Dict[str, Any]]:
	"""
	Lista las reservas comprometidas que intersectan el rango.

	Sin fechas se usa [ahora, ahora + lab_scheduling_calendar_days].

	Rate limited: 30 requests per minute per IP.
	"""
	check_rate_limit("get_calendar_view", limit=30, seconds=60)

	if lab:
		lab = validate_docname(lab, "lab")
	if site:
		site = validate_docname(site, "site")
	if start_date:
		start_date = _validate_date_or_datetime(start_date, "start_date")
	if end_date:
		end_date = _validate_date_or_datetime(end_date, "end_date")

	try:
		bookings = build_calendar_view(
			lab=lab,
			site=site,
			start_date=start_date,
			end_date=end_date,
			default_days=get_calendar_days()
		)
	except SchedulingValidationError as e:
		frappe.throw(str(e), SchedulingValidationError)

	return [serialize_booking(row) for row in bookings]


@frappe.whitelist(allow_guest=True, methods=['GET'])
def get_lab_slots(lab: str, date: str) -> List[Dict[str, Any]]:
	"""
	Obtiene la grilla de slots de un día local del Lab.

	Rate limited: 30 requests per minute per IP.

	Returns:
		list[dict]: [
			{
				"start": "2024-07-01T09:00:00+05:30",
				"end": "2024-07-01T10:00:00+05:30",
				"capacity_remaining": 1,
				"is_available": True
			},
			...
		]
	"""
	check_rate_limit("get_lab_slots", limit=30, seconds=60)

	lab = validate_docname(lab, "lab")
	date = validate_date_string(date, "date")

	try:
		slots = generate_day_slots(lab, date)
	except SchedulingValidationError as e:
		frappe.throw(str(e), SchedulingValidationError)

	return [
		{
			"start": format_datetime(slot["start"]),
			"end": format_datetime(slot["end"]),
			"capacity_remaining": slot["capacity_remaining"],
			"is_available": slot["is_available"]
		}
		for slot in slots
	]


def _validate_date_or_datetime(value: str, field_name: str) -> str:
	if len(str(value).strip()) == 10:
		return validate_date_string(value, field_name)
	return validate_datetime_string(value, field_name)

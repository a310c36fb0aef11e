"""
Slot Generation Service

Generates discrete time slots of one local day for UI display, considering:
- Site operating hours and timezone
- Lab slot granularity
- Committed bookings and capacity remaining
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Union

from .overlap import find_conflicts, peak_concurrency
from .store import BookingStore, get_store, load_lab_and_site
from .time_window import get_site_timezone, operating_window_for_day


def generate_day_slots(
	lab: str,
	target_date: Union[date, str],
	store: Optional[BookingStore] = None
) -> List[Dict[str, Any]]:
	"""
	Genera los slots de un día local del site del Lab.

	Args:
		lab: nombre del Lab
		target_date: fecha local (date o YYYY-MM-DD)
		store: BookingStore (default: Frappe)

	Returns:
		list[dict]: [
			{
				"start": datetime,
				"end": datetime,
				"capacity_remaining": 1,
				"is_available": True
			},
			...
		]

	Algoritmo:
		1. Obtener Lab, su Lab Site y slot_granularity_minutes
		2. Obtener horario de operación del día en la zona del site
		3. Consultar una sola vez las reservas comprometidas del día
		4. Partir el horario en slots y calcular capacidad restante de cada uno
	"""
	store = store or get_store()

	lab_doc = store.get_lab(lab)
	lab_doc, site_doc = load_lab_and_site(lab, lab_doc.site, store)

	granularity = int(lab_doc.slot_granularity_minutes or 60)
	capacity = lab_doc.capacity or 1
	tz = get_site_timezone(site_doc)

	window = operating_window_for_day(site_doc, target_date)
	conflicts = find_conflicts(lab, lab_doc.site, window["start"], window["end"], store=store)

	slots = []
	current_slot_start = window["start"]

	while current_slot_start < window["end"]:
		current_slot_end = current_slot_start + timedelta(minutes=granularity)

		# Slot incompleto al final del horario: se descarta
		if current_slot_end > window["end"]:
			break

		capacity_remaining = max(0, capacity - peak_concurrency(conflicts, current_slot_start, current_slot_end))

		slots.append({
			"start": current_slot_start.astimezone(tz),
			"end": current_slot_end.astimezone(tz),
			"capacity_remaining": capacity_remaining,
			"is_available": capacity_remaining > 0
		})

		current_slot_start = current_slot_end

	return slots

"""
Overlap Detection Service

Detects scheduling conflicts between a candidate interval and the
committed bookings of a Lab at a Lab Site, considering:
- Lab capacity (concurrent bookings tolerated)
- Booking Request status (only committed statuses block)
- Half-open intervals [start, end)
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import frappe

from .constants import COMMITTED_STATUSES
from .store import BookingStore, get_store


def intervals_overlap(
	a_start: datetime,
	a_end: datetime,
	b_start: datetime,
	b_end: datetime
) -> bool:
	"""
	Test de solapamiento de intervalos semiabiertos.

	Reservas consecutivas (una termina cuando la otra empieza) no se solapan.
	"""
	return a_start < b_end and a_end > b_start


def find_conflicts(
	lab: str,
	site: str,
	start: datetime,
	end: datetime,
	exclude_booking: Optional[str] = None,
	store: Optional[BookingStore] = None
) -> List[frappe._dict]:
	"""
	Obtiene las reservas comprometidas que se solapan con [start, end).

	Args:
		lab: nombre del Lab
		site: nombre del Lab Site
		start: inicio del intervalo candidato
		end: fin del intervalo candidato
		exclude_booking: Lab Booking Request a excluir (p.ej. en extensiones
			la reserva no debe chocar consigo misma)
		store: BookingStore (default: Frappe)

	Returns:
		list: filas de reserva (booking_request, item, lab, site, status, start, end)

	Algoritmo:
		1. Consultar el store con:
			- lab = X, site = Y
			- status in COMMITTED_STATUSES
			- (start < end_candidato AND end > start_candidato)
			- booking_request != exclude_booking
		2. Re-aplicar los mismos predicados sobre cada fila
	"""
	store = store or get_store()

	rows = store.query_bookings(
		start,
		end,
		lab=lab,
		site=site,
		statuses=COMMITTED_STATUSES,
		exclude_booking=exclude_booking
	)

	conflicts = []
	for row in rows:
		if row.lab != lab or row.site != site:
			continue
		if row.status not in COMMITTED_STATUSES:
			continue
		if exclude_booking and row.booking_request == exclude_booking:
			continue
		if not intervals_overlap(row.start, row.end, start, end):
			continue
		conflicts.append(row)

	return conflicts


def peak_concurrency(rows: List[Any], start: datetime, end: datetime) -> int:
	"""
	Máximo número de reservas simultáneas dentro de [start, end).

	Barrido de eventos sobre los intervalos recortados a la ventana. En
	el mismo instante se procesan primero los fines (intervalo semiabierto).
	"""
	events = []
	for row in rows:
		clipped_start = max(row.start, start)
		clipped_end = min(row.end, end)
		if clipped_start < clipped_end:
			events.append((clipped_start, 1))
			events.append((clipped_end, -1))

	events.sort(key=lambda event: (event[0], event[1]))

	current = 0
	peak = 0
	for _instant, delta in events:
		current += delta
		peak = max(peak, current)

	return peak


def check_overlap(
	lab: str,
	site: str,
	start: datetime,
	end: datetime,
	capacity: int = 1,
	exclude_booking: Optional[str] = None,
	store: Optional[BookingStore] = None
) -> Dict[str, Any]:
	"""
	Detecta overlaps y los compara con la capacidad del Lab.

	Returns:
		dict: {
			"has_overlap": bool,
			"conflicts": [filas de reserva],
			"capacity": int,
			"capacity_used": int (pico de reservas simultáneas),
			"capacity_exceeded": bool,
			"capacity_available": int
		}
	"""
	capacity = capacity or 1
	conflicts = find_conflicts(lab, site, start, end, exclude_booking=exclude_booking, store=store)
	capacity_used = peak_concurrency(conflicts, start, end)

	return {
		"has_overlap": bool(conflicts),
		"conflicts": conflicts,
		"capacity": capacity,
		"capacity_used": capacity_used,
		"capacity_exceeded": capacity_used >= capacity,
		"capacity_available": max(0, capacity - capacity_used)
	}

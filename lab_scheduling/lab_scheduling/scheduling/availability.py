"""
Availability Service

Decides whether a Lab is available for a requested interval, combining:
- Operating hours / timezone gate (time_window.py)
- Conflict detection and capacity (overlap.py)
- Alternative slot suggestions when unavailable (alternatives.py)
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

import frappe
from frappe import _

from .alternatives import find_alternatives
from .constants import DEFAULT_MAX_ALTERNATIVES
from .exceptions import SchedulingValidationError
from .overlap import check_overlap
from .store import BookingStore, get_store, load_lab_and_site
from .time_window import get_site_timezone, is_within_operating_hours, to_aware


def check_availability(
	lab: str,
	site: str,
	start: Union[datetime, str],
	end: Union[datetime, str],
	exclude_booking: Optional[str] = None,
	store: Optional[BookingStore] = None,
	search_alternatives: bool = True,
	max_results: int = DEFAULT_MAX_ALTERNATIVES
) -> Dict[str, Any]:
	"""
	Evalúa la disponibilidad de un Lab para [start, end).

	Args:
		lab: nombre del Lab
		site: nombre del Lab Site
		start: inicio solicitado (naive = zona horaria del sistema)
		end: fin solicitado
		exclude_booking: Lab Booking Request a excluir de los conflictos
		store: BookingStore (default: Frappe)
		search_alternatives: si False no se buscan alternativas
		max_results: máximo de alternativas

	Returns:
		dict: {
			"is_available": bool,
			"conflicts": [filas de reserva],
			"alternatives": [{"start", "end", "confidence"}],
			"capacity": int,
			"capacity_used": int,
			"capacity_available": int,
			"warnings": [str]
		}

	Raises:
		frappe.DoesNotExistError: Lab o Lab Site no existe o está inactivo
		SchedulingValidationError: end <= start, fuera de horario o multi-día

	Algoritmo:
		1. Cargar Lab y Lab Site (deben estar activos)
		2. Validar intervalo y horario de operación (sin alternativas si falla)
		3. Detectar conflictos con reservas comprometidas
		4. Disponible si el pico de ocupación < capacity
		5. Si no está disponible, buscar alternativas
	"""
	store = store or get_store()
	lab_doc, site_doc = load_lab_and_site(lab, site, store)

	start = to_aware(start)
	end = to_aware(end)

	result = _evaluate(lab_doc, site_doc, lab, site, start, end, exclude_booking, store)

	if not result["is_available"] and search_alternatives:
		result["alternatives"] = find_alternatives(
			lab,
			site,
			start,
			end,
			site_doc.timezone,
			max_results=max_results,
			exclude_booking=exclude_booking,
			store=store
		)

	frappe.logger("lab_scheduling").debug(
		f"check_availability {lab}@{site} {start.isoformat()}-{end.isoformat()}: "
		f"available={result['is_available']} conflicts={len(result['conflicts'])} "
		f"alternatives={len(result['alternatives'])}"
	)

	return result


def validate_interval(site_doc: Any, start: datetime, end: datetime) -> None:
	"""
	Validaciones duras del intervalo (no dependen de otras reservas).

	Raises:
		SchedulingValidationError
	"""
	if end <= start:
		raise SchedulingValidationError(_("La hora de fin debe ser mayor que la de inicio"))

	if not is_within_operating_hours(site_doc, start, end):
		tz = get_site_timezone(site_doc)
		raise SchedulingValidationError(
			_("El horario {0}-{1} está fuera del horario de operación {2}-{3} ({4}) o abarca más de un día").format(
				start.astimezone(tz).strftime("%Y-%m-%d %H:%M"),
				end.astimezone(tz).strftime("%Y-%m-%d %H:%M"),
				site_doc.operating_start,
				site_doc.operating_end,
				site_doc.timezone
			)
		)


def _evaluate(
	lab_doc: Any,
	site_doc: Any,
	lab: str,
	site: str,
	start: datetime,
	end: datetime,
	exclude_booking: Optional[str],
	store: BookingStore
) -> Dict[str, Any]:
	"""Evaluación sin búsqueda de alternativas (usada también por alternatives.py)."""
	validate_interval(site_doc, start, end)

	overlap_result = check_overlap(
		lab,
		site,
		start,
		end,
		capacity=lab_doc.capacity,
		exclude_booking=exclude_booking,
		store=store
	)

	warnings = []
	granularity = lab_doc.slot_granularity_minutes
	duration_minutes = (end - start).total_seconds() / 60
	if granularity and duration_minutes % int(granularity) != 0:
		warnings.append(
			_("La duración ({0} min) no es múltiplo de la granularidad del Lab ({1} min)").format(
				int(duration_minutes), granularity
			)
		)

	return {
		"is_available": not overlap_result["capacity_exceeded"],
		"conflicts": overlap_result["conflicts"],
		"alternatives": [],
		"capacity": overlap_result["capacity"],
		"capacity_used": overlap_result["capacity_used"],
		"capacity_available": overlap_result["capacity_available"],
		"warnings": warnings
	}

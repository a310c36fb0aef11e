"""
Extension Service

Re-checks availability for every lab item of an already scheduled
Lab Booking Request when the customer asks for more hours.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional

import frappe
from frappe import _

from .availability import check_availability
from .constants import DEFAULT_MAX_ALTERNATIVES, EXTENDABLE_STATUSES
from .exceptions import SchedulingValidationError
from .store import BookingStore, get_store
from .time_window import to_aware


def check_extension(
	booking_request: str,
	additional_hours: float,
	store: Optional[BookingStore] = None,
	max_results: int = DEFAULT_MAX_ALTERNATIVES
) -> List[Dict[str, Any]]:
	"""
	Evalúa si los lab items de una reserva pueden extenderse.

	Args:
		booking_request: nombre del Lab Booking Request
		additional_hours: horas adicionales solicitadas
		store: BookingStore (default: Frappe)
		max_results: máximo de alternativas por item

	Returns:
		list[dict]: un resultado por lab item con scheduled_end:
			{
				"item", "lab", "site", "new_end",
				"is_available", "conflicts", "alternatives", "reason", ...
			}

	Raises:
		frappe.DoesNotExistError: si la reserva no existe
		SchedulingValidationError: horas <= 0, estado no extensible,
			ningún item programado o horas que no son múltiplo de la
			granularidad de algún Lab

	Un item cuyo nuevo horario falla la validación (p.ej. pasa del cierre)
	se reporta como no disponible con "reason", sin alternativas.
	"""
	store = store or get_store()

	if not additional_hours or float(additional_hours) <= 0:
		raise SchedulingValidationError(_("Las horas adicionales deben ser mayores que 0"))

	request = store.get_booking_request(booking_request)

	if request.status not in EXTENDABLE_STATUSES:
		raise SchedulingValidationError(
			_("Solo se pueden extender reservas en estado {0} (estado actual: {1})").format(
				", ".join(EXTENDABLE_STATUSES), request.status
			)
		)

	scheduled_items = [item for item in request.lab_items if item.scheduled_end]
	if not scheduled_items:
		raise SchedulingValidationError(
			_("La reserva {0} no tiene horario programado; no se puede extender").format(booking_request)
		)

	_validate_extension_granularity(additional_hours, scheduled_items, store)

	extra = timedelta(hours=float(additional_hours))
	results = []

	for item in scheduled_items:
		scheduled_start = to_aware(item.scheduled_start or item.requested_start)
		new_end = to_aware(item.scheduled_end) + extra

		try:
			result = check_availability(
				item.lab,
				item.site,
				scheduled_start,
				new_end,
				exclude_booking=request.name,
				store=store,
				max_results=max_results
			)
			result["reason"] = None
		except frappe.DoesNotExistError:
			raise
		except SchedulingValidationError as e:
			# Equivalente a "no disponible": el nuevo horario no es válido
			result = {
				"is_available": False,
				"conflicts": [],
				"alternatives": [],
				"warnings": [],
				"reason": str(e)
			}

		result.update({
			"item": item.name,
			"lab": item.lab,
			"site": item.site,
			"new_end": new_end
		})
		results.append(result)

	frappe.logger("lab_scheduling").info(
		f"check_extension {booking_request} +{additional_hours}h: "
		f"{sum(1 for r in results if r['is_available'])}/{len(results)} items disponibles"
	)

	return results


def is_extension_approvable(results: List[Dict[str, Any]]) -> bool:
	"""
	Política de aprobación de extensiones: todo o nada.

	Una extensión solo es aprobable si todos los lab items programados
	quedan disponibles; no hay aprobación parcial.
	"""
	return bool(results) and all(result["is_available"] for result in results)


def _validate_extension_granularity(
	additional_hours: float,
	scheduled_items: List[Any],
	store: BookingStore
) -> None:
	"""La extensión debe ser múltiplo de slot_granularity_minutes de cada Lab."""
	minutes = float(additional_hours) * 60
	whole_minutes = round(minutes)

	for lab in sorted({item.lab for item in scheduled_items}):
		granularity = int(store.get_lab(lab).slot_granularity_minutes or 60)
		if abs(minutes - whole_minutes) > 1e-6 or whole_minutes % granularity:
			raise SchedulingValidationError(
				_("Las horas adicionales ({0}) deben ser múltiplo de {1} minutos (granularidad del Lab {2})").format(
					additional_hours, granularity, lab
				)
			)

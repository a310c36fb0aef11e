"""
Alternative Slot Service

Proposes nearby intervals of identical duration when a requested
interval is not available. Bounded, deterministic heuristic:
- Phase A: same day, -3h..+3h
- Phase B: next 1-3 days at the same local clock time
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import frappe
import pytz

from .constants import DEFAULT_MAX_ALTERNATIVES, NEXT_DAY_OFFSETS, SAME_DAY_HOUR_OFFSETS
from .store import BookingStore, get_store, load_lab_and_site
from .time_window import get_timezone, shift_local_days, to_aware


def find_alternatives(
	lab: str,
	site: str,
	requested_start: Union[datetime, str],
	requested_end: Union[datetime, str],
	timezone: Optional[str],
	max_results: int = DEFAULT_MAX_ALTERNATIVES,
	exclude_booking: Optional[str] = None,
	store: Optional[BookingStore] = None
) -> List[Dict[str, Any]]:
	"""
	Busca intervalos alternativos disponibles cerca del solicitado.

	Args:
		lab: nombre del Lab
		site: nombre del Lab Site
		requested_start: inicio solicitado
		requested_end: fin solicitado
		timezone: zona horaria del site (para mantener la hora local en Fase B)
		max_results: máximo de alternativas a retornar
		exclude_booking: Lab Booking Request a excluir de los conflictos
		store: BookingStore (default: Frappe)

	Returns:
		list[dict]: [
			{"start": datetime, "end": datetime, "confidence": "high" | "medium" | "low"},
			...
		]
		Puede ser vacía: no se encontró alternativa cercana.

	Algoritmo:
		1. duration = requested_end - requested_start
		2. Fase A: desplazar el inicio -3, -2, -1, +1, +2, +3 horas
		3. Fase B: +1, +2, +3 días a la misma hora local
		4. Cada candidato se evalúa sin buscar más alternativas
		5. Parar al juntar max_results o al agotar candidatos (máx. 9 evaluaciones)
	"""
	if max_results <= 0:
		return []

	store = store or get_store()
	tz = get_timezone(timezone)

	requested_start = to_aware(requested_start)
	requested_end = to_aware(requested_end)
	duration = requested_end - requested_start

	# Import local: availability importa este módulo
	from .availability import _evaluate

	logger = frappe.logger("lab_scheduling")
	alternatives = []

	for candidate_start, confidence in _candidate_starts(requested_start, tz):
		if len(alternatives) >= max_results:
			break

		candidate_end = candidate_start + duration

		try:
			lab_doc, site_doc = load_lab_and_site(lab, site, store)
			result = _evaluate(
				lab_doc,
				site_doc,
				lab,
				site,
				candidate_start,
				candidate_end,
				exclude_booking,
				store
			)
		except (frappe.DoesNotExistError, frappe.ValidationError) as e:
			# Candidato inválido (fuera de horario, multi-día, lab inactivo): se descarta
			logger.debug(
				f"find_alternatives {lab}@{site}: candidato {candidate_start.isoformat()} descartado: {e}"
			)
			continue

		if result["is_available"]:
			alternatives.append({
				"start": candidate_start.astimezone(tz),
				"end": candidate_end.astimezone(tz),
				"confidence": confidence
			})

	return alternatives


def _candidate_starts(
	requested_start: datetime,
	tz: pytz.BaseTzInfo
) -> Iterator[Tuple[datetime, str]]:
	"""Genera los inicios candidatos en orden fijo (determinista)."""
	# Fase A: mismo día
	for hours in SAME_DAY_HOUR_OFFSETS:
		yield requested_start + timedelta(hours=hours), "high"

	# Fase B: días siguientes, misma hora local
	for days in NEXT_DAY_OFFSETS:
		yield shift_local_days(requested_start, days, tz), "medium" if days <= 2 else "low"

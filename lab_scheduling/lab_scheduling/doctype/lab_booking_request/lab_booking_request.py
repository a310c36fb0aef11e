# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Lab Booking Request DocType

Aggregate of lab line items with a one-directional lifecycle.
Availability is checked on submit, and re-checked under lock whenever a
committed request starts occupying or moves calendar time (approval,
direct status or schedule edits, extension approval).
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import flt, get_datetime, now_datetime

from lab_scheduling.lab_scheduling.scheduling.availability import check_availability
from lab_scheduling.lab_scheduling.scheduling.constants import (
	APPROVED,
	CANCELLED,
	COMMITTED_STATUSES,
	COMPLETED,
	DRAFT,
	EXTENSION_APPROVED,
	EXTENSION_PENDING,
	EXTENSION_REJECTED,
	IN_PROGRESS,
	REJECTED,
	SCHEDULED,
	SUBMITTED,
	UNDER_REVIEW,
	can_transition,
)
from lab_scheduling.lab_scheduling.scheduling.exceptions import (
	BookingConflictError,
	SchedulingValidationError,
)
from lab_scheduling.lab_scheduling.scheduling.extension import check_extension, is_extension_approvable
from lab_scheduling.lab_scheduling.scheduling.formatting import serialize_results
from lab_scheduling.lab_scheduling.scheduling.overlap import intervals_overlap
from lab_scheduling.lab_scheduling.scheduling.store import BookingStore, get_store
from lab_scheduling.lab_scheduling.scheduling.time_window import to_aware, to_system_naive

MIN_EXTENSION_REASON_LENGTH = 10


class LabBookingRequest(Document):
	"""
	Lab Booking Request with lifecycle and scheduling validation.

	Flujo:
	1. Se crea en Draft con uno o más lab items
	2. submit_request: todos los items deben pasar check_availability
	3. approve: fija el horario programado; validate bloquea los Labs y
	   vuelve a verificar; de dos aprobaciones concurrentes solo una gana
	4. Scheduled / In Progress / Completed los mueven procesos operativos
	5. Rejected solo puede reenviarse como un Draft nuevo
	"""

	def validate(self) -> None:
		"""
		Validación antes de guardar.

		Ejecuta:
		1. Validar que haya lab items
		2. Completar site desde el Lab
		3. Validar intervalos (start < end)
		4. Snapshot de tarifa y totales
		5. Evitar items solapados del mismo Lab dentro del request
		6. Validar transición de estado
		7. Re-verificar disponibilidad si el request ocupa o mueve tiempo
		   de calendario
		"""
		self._validate_lab_items()
		self._set_item_sites()
		self._validate_item_intervals()
		self._snapshot_rates_and_totals()
		self._validate_no_internal_overlap()
		self._validate_status_transition()
		self._validate_committed_availability()

	# ===== VALIDATION METHODS =====

	def _validate_lab_items(self) -> None:
		"""Valida que exista al menos un lab item."""
		if not self.lab_items:
			frappe.throw(_("Debe agregar al menos un Lab"))

	def _set_item_sites(self) -> None:
		"""Completa el site de cada item con el site del Lab."""
		for item in self.lab_items:
			if not item.site:
				item.site = frappe.db.get_value("Lab", item.lab, "site")
			if not item.site:
				frappe.throw(_("Fila {0}: Site es requerido").format(item.idx))

	def _validate_item_intervals(self) -> None:
		"""Valida start < end en horarios solicitados y programados."""
		for item in self.lab_items:
			if get_datetime(item.requested_start) >= get_datetime(item.requested_end):
				frappe.throw(_("Fila {0}: Requested Start debe ser menor que Requested End").format(item.idx))

			if bool(item.scheduled_start) != bool(item.scheduled_end):
				frappe.throw(_("Fila {0}: Scheduled Start y Scheduled End van juntos").format(item.idx))

			if item.scheduled_start and get_datetime(item.scheduled_start) >= get_datetime(item.scheduled_end):
				frappe.throw(_("Fila {0}: Scheduled Start debe ser menor que Scheduled End").format(item.idx))

	def _snapshot_rates_and_totals(self) -> None:
		"""
		Copia rate_per_hour del Lab al crear el item y calcula subtotales.

		La tarifa no se vuelve a leer después: cambios de tarifa del Lab
		no alteran precios históricos.
		"""
		machinery_subtotal = 0
		for item in self.lab_items:
			if item.is_new() or item.rate_snapshot is None:
				item.rate_snapshot = flt(frappe.db.get_value("Lab", item.lab, "rate_per_hour"))

			start, end = _effective_interval(item)
			item.duration_hours = flt((get_datetime(end) - get_datetime(start)).total_seconds() / 3600, 2)
			item.subtotal = flt(item.duration_hours * flt(item.rate_snapshot), 2)
			machinery_subtotal += item.subtotal

		self.machinery_subtotal = machinery_subtotal

	def _validate_no_internal_overlap(self) -> None:
		"""Dos items del mismo Lab/Site en el mismo request no pueden solaparse."""
		items = list(self.lab_items)
		for i, first in enumerate(items):
			for second in items[i + 1:]:
				if first.lab != second.lab or first.site != second.site:
					continue
				first_start, first_end = (get_datetime(v) for v in _effective_interval(first))
				second_start, second_end = (get_datetime(v) for v in _effective_interval(second))
				if intervals_overlap(first_start, first_end, second_start, second_end):
					frappe.throw(
						_("Filas {0} y {1}: el Lab {2} está solicitado dos veces en horarios solapados").format(
							first.idx, second.idx, first.lab
						)
					)

	def _validate_status_transition(self) -> None:
		"""
		Valida que el cambio de estado respete el ciclo de vida.

		Un request nuevo siempre empieza en Draft.
		"""
		if self.is_new():
			if self.status and self.status != DRAFT:
				frappe.throw(_("Un Lab Booking Request nuevo debe crearse en estado Draft"))
			self.status = DRAFT
			return

		previous = frappe.db.get_value(self.doctype, self.name, "status")
		if previous and previous != self.status and not can_transition(previous, self.status):
			frappe.throw(_("No se puede pasar de {0} a {1}").format(previous, self.status))

	def _validate_committed_availability(self) -> None:
		"""
		Re-verifica disponibilidad de los items que empiezan a ocupar o mueven
		tiempo de calendario en un request comprometido.

		Cubre approve, extensiones aprobadas y también cambios directos de
		status o de horario (REST, desk). Los Labs se bloquean y las reservas
		se leen con lock para ver aprobaciones ya confirmadas por otras
		transacciones.

		Raises:
			BookingConflictError: si algún item choca con otra reserva
		"""
		if self.is_new() or self.status not in COMMITTED_STATUSES:
			return

		items = self._items_to_recheck()
		if not items:
			return

		store = get_store(for_update=True)
		store.lock_labs(item.lab for item in items)

		failures = self._check_items(_effective_interval, items=items, store=store)
		if failures:
			frappe.throw(self._format_unavailable(failures), BookingConflictError)

	def _items_to_recheck(self) -> List[Any]:
		"""
		Items a re-verificar.

		Todos si el request pasa a un estado comprometido; si ya lo estaba,
		solo los items nuevos o con Lab / intervalo efectivo distinto.
		"""
		previous = self.get_doc_before_save()
		if not previous or previous.status not in COMMITTED_STATUSES:
			return list(self.lab_items)

		previous_items = {item.name: item for item in previous.lab_items}
		changed = []
		for item in self.lab_items:
			before = previous_items.get(item.name)
			if (
				not before
				or before.lab != item.lab
				or before.site != item.site
				or _interval_key(before) != _interval_key(item)
			):
				changed.append(item)

		return changed

	def _assert_transition(self, target: str) -> None:
		if not can_transition(self.status, target):
			frappe.throw(_("No se puede pasar de {0} a {1}").format(self.status, target))

	# ===== LIFECYCLE METHODS =====

	@frappe.whitelist()
	def submit_request(self) -> None:
		"""Draft -> Submitted. Todos los lab items deben estar disponibles."""
		self._assert_transition(SUBMITTED)

		failures = self._check_items(lambda item: (item.requested_start, item.requested_end))
		if failures:
			frappe.throw(self._format_unavailable(failures), BookingConflictError)

		self.status = SUBMITTED
		self.save()

	@frappe.whitelist()
	def start_review(self) -> None:
		"""Submitted -> Under Review."""
		self._assert_transition(UNDER_REVIEW)
		self.status = UNDER_REVIEW
		self.save()

	@frappe.whitelist()
	def approve(self, review_notes: Optional[str] = None) -> None:
		"""
		Submitted / Under Review -> Approved.

		Ejecuta:
		1. Horario programado = solicitado si el admin no lo cambió
		2. Guardar: validate bloquea cada Lab (hasta el commit) y vuelve a
		   verificar con lecturas con lock, excluyendo este request
		3. Si otro request se aprobó antes, BookingConflictError
		"""
		self._assert_transition(APPROVED)

		for item in self.lab_items:
			if not item.scheduled_start:
				item.scheduled_start = item.requested_start
			if not item.scheduled_end:
				item.scheduled_end = item.requested_end

		self.status = APPROVED
		self._set_review(review_notes)
		self.save()

		frappe.logger("lab_scheduling").info(
			f"Lab Booking Request {self.name} aprobado ({len(self.lab_items)} lab items)"
		)

	@frappe.whitelist()
	def reject(self, reason: Optional[str] = None) -> None:
		"""Submitted / Under Review -> Rejected."""
		self._assert_transition(REJECTED)
		if not reason:
			frappe.throw(_("Debe indicar el motivo del rechazo"))

		self.status = REJECTED
		self._set_review(reason)
		self.save()

	@frappe.whitelist()
	def mark_scheduled(self) -> None:
		self._assert_transition(SCHEDULED)
		self.status = SCHEDULED
		self.save()

	@frappe.whitelist()
	def mark_in_progress(self) -> None:
		self._assert_transition(IN_PROGRESS)
		self.status = IN_PROGRESS
		self.save()

	@frappe.whitelist()
	def mark_completed(self) -> None:
		self._assert_transition(COMPLETED)
		self.status = COMPLETED
		self.save()

	@frappe.whitelist()
	def cancel_request(self, reason: Optional[str] = None) -> None:
		"""Cancela el request (no aplica a Completed, Rejected ni Cancelled)."""
		self._assert_transition(CANCELLED)
		self.status = CANCELLED
		if reason:
			self.review_notes = reason
		self.save()

	@frappe.whitelist()
	def resubmit_as_new_draft(self) -> str:
		"""
		Crea un Draft nuevo a partir de un request Rejected.

		El request rechazado no se reactiva; el nuevo toma las tarifas
		vigentes del Lab.

		Returns:
			str: nombre del nuevo Lab Booking Request
		"""
		if self.status != REJECTED:
			frappe.throw(_("Solo un request Rejected puede reenviarse como Draft nuevo"))

		new_request = frappe.copy_doc(self)
		new_request.status = DRAFT
		new_request.resubmitted_from = self.name
		new_request.reviewed_by = None
		new_request.reviewed_at = None
		new_request.review_notes = None
		new_request.extension_requests = []

		for item in new_request.lab_items:
			item.scheduled_start = None
			item.scheduled_end = None
			item.rate_snapshot = None

		new_request.insert()
		return new_request.name

	# ===== EXTENSION METHODS =====

	@frappe.whitelist()
	def request_extension(self, additional_hours: float, reason: str) -> Dict[str, Any]:
		"""
		Registra una solicitud de extensión si todos los items pueden extenderse.

		Args:
			additional_hours: horas adicionales (> 0, múltiplo de la granularidad
				de cada Lab; 0.5 = 30 minutos)
			reason: motivo (mínimo 10 caracteres)

		Returns:
			dict: {
				"available": bool,
				"results": [resultado por item],
				"extension": nombre de la fila creada (si available),
				"price_delta": float
			}
		"""
		additional_hours = flt(additional_hours)
		if additional_hours <= 0:
			frappe.throw(_("Las horas adicionales deben ser mayores que 0"))

		if not reason or len(reason.strip()) < MIN_EXTENSION_REASON_LENGTH:
			frappe.throw(_("El motivo debe tener al menos {0} caracteres").format(MIN_EXTENSION_REASON_LENGTH))

		if any(row.status == EXTENSION_PENDING for row in self.extension_requests):
			frappe.throw(_("Ya existe una extensión pendiente de revisión"))

		results = self._run_extension_check(additional_hours)
		if not is_extension_approvable(results):
			return {
				"available": False,
				"results": serialize_results(results),
				"extension": None,
				"price_delta": 0
			}

		scheduled_items = [item for item in self.lab_items if item.scheduled_end]
		price_delta = sum(additional_hours * flt(item.rate_snapshot) for item in scheduled_items)
		requested_end = max(_extended_end(item.scheduled_end, additional_hours) for item in scheduled_items)

		row = self.append("extension_requests", {
			"additional_hours": additional_hours,
			"reason": reason.strip(),
			"status": EXTENSION_PENDING,
			"requested_end": requested_end,
			"price_delta": price_delta,
			"requested_at": now_datetime(),
			"requested_by": frappe.session.user
		})
		self.save()

		frappe.logger("lab_scheduling").info(
			f"Extensión solicitada para {self.name}: +{additional_hours}h"
		)

		return {
			"available": True,
			"results": serialize_results(results),
			"extension": row.name,
			"price_delta": price_delta
		}

	@frappe.whitelist()
	def review_extension(self, extension: str, action: str, reason: Optional[str] = None) -> None:
		"""
		Aprueba o rechaza una extensión pendiente.

		Al aprobar se vuelve a verificar la disponibilidad con los Labs
		bloqueados (lecturas con lock) y se mueve el scheduled_end de cada
		item programado.
		"""
		rows = [row for row in self.extension_requests if row.name == extension]
		if not rows:
			frappe.throw(_("Extensión {0} no encontrada").format(extension), frappe.DoesNotExistError)

		row = rows[0]
		if row.status != EXTENSION_PENDING:
			frappe.throw(_("La extensión ya fue revisada ({0})").format(row.status))

		if action == "Reject":
			row.status = EXTENSION_REJECTED
			row.rejection_reason = reason
		elif action == "Approve":
			store = get_store(for_update=True)
			store.lock_labs(item.lab for item in self.lab_items)

			results = self._run_extension_check(row.additional_hours, store=store)
			if not is_extension_approvable(results):
				frappe.throw(
					_("La extensión ya no está disponible: otro request ocupa el horario"),
					BookingConflictError
				)

			for item in self.lab_items:
				if item.scheduled_end:
					item.scheduled_end = _extended_end(item.scheduled_end, row.additional_hours)
			row.status = EXTENSION_APPROVED
		else:
			frappe.throw(_("Acción inválida: {0}. Use Approve o Reject").format(action))

		row.reviewed_by = frappe.session.user
		row.reviewed_at = now_datetime()
		self.save()

	# ===== HELPERS =====

	def _check_items(
		self,
		interval_of: Callable[[Any], Tuple[Any, Any]],
		items: Optional[List[Any]] = None,
		store: Optional[BookingStore] = None
	) -> List[Tuple[Any, Dict[str, Any]]]:
		"""Ejecuta check_availability por item (default: todos) y retorna los no disponibles."""
		failures = []
		for item in self.lab_items if items is None else items:
			start, end = interval_of(item)
			try:
				result = check_availability(
					item.lab,
					item.site,
					start,
					end,
					exclude_booking=None if self.is_new() else self.name,
					store=store
				)
			except SchedulingValidationError as e:
				frappe.throw(_("Fila {0}: {1}").format(item.idx, str(e)), SchedulingValidationError)
			except frappe.DoesNotExistError as e:
				frappe.throw(_("Fila {0}: {1}").format(item.idx, str(e)), frappe.DoesNotExistError)

			if not result["is_available"]:
				failures.append((item, result))

		return failures

	def _run_extension_check(
		self,
		additional_hours: float,
		store: Optional[BookingStore] = None
	) -> List[Dict[str, Any]]:
		try:
			return check_extension(self.name, additional_hours, store=store)
		except SchedulingValidationError as e:
			frappe.throw(str(e), SchedulingValidationError)

	def _format_unavailable(self, failures: List[Tuple[Any, Dict[str, Any]]]) -> str:
		lines = []
		for item, result in failures:
			conflicting = ", ".join(sorted({row.booking_request for row in result["conflicts"]}))
			line = _("Fila {0}: el Lab {1} no está disponible (conflicto con: {2})").format(
				item.idx, item.lab, conflicting
			)
			if result["alternatives"]:
				alternative = result["alternatives"][0]
				line += _(". Alternativa sugerida: {0} - {1}").format(
					alternative["start"].strftime("%Y-%m-%d %H:%M"),
					alternative["end"].strftime("%H:%M")
				)
			lines.append(line)
		return "<br>".join(lines)

	def _set_review(self, notes: Optional[str]) -> None:
		self.reviewed_by = frappe.session.user
		self.reviewed_at = now_datetime()
		if notes:
			self.review_notes = notes


def _effective_interval(item: Any) -> Tuple[Any, Any]:
	"""Intervalo que ocupa el item: el programado si existe, si no el solicitado."""
	if item.scheduled_start and item.scheduled_end:
		return item.scheduled_start, item.scheduled_end
	return item.requested_start, item.requested_end


def _interval_key(item: Any) -> Tuple[datetime, datetime]:
	start, end = _effective_interval(item)
	return get_datetime(start), get_datetime(end)


def _extended_end(scheduled_end: Any, additional_hours: float) -> datetime:
	"""
	Nuevo scheduled_end en formato de BD (naive, zona del sistema).

	Suma duración absoluta sobre el instante, igual que check_extension,
	para que un cambio de horario de verano no desplace el fin guardado.
	"""
	return to_system_naive(to_aware(scheduled_end) + timedelta(hours=flt(additional_hours)))

"""
Booking Store

Defines the read interface the scheduling core consumes (labs, sites,
booking requests and committed booking rows) and its Frappe-backed
implementation.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterable, List, Optional

import frappe
from frappe import _

from .constants import COMMITTED_STATUSES
from .exceptions import SchedulingValidationError
from .time_window import to_aware, to_system_naive


class BookingStore(ABC):
	"""
	Interfaz de lectura del core de agendamiento.

	Todas las implementaciones deben lanzar frappe.DoesNotExistError
	cuando el registro no existe.

	Con for_update=True el store se usa en un commit: query_bookings hace
	lecturas con lock, que ven las últimas filas confirmadas.
	"""

	def __init__(self, for_update: bool = False):
		self.for_update = for_update

	@abstractmethod
	def get_lab(self, lab: str) -> Any:
		"""
		Retorna el Lab (site, rate_per_hour, slot_granularity_minutes,
		capacity, is_active).
		"""
		pass

	@abstractmethod
	def get_site(self, site: str) -> Any:
		"""Retorna el Lab Site (timezone, operating_start, operating_end, is_active)."""
		pass

	@abstractmethod
	def get_booking_request(self, booking_request: str) -> Any:
		"""Retorna el Lab Booking Request con sus lab_items."""
		pass

	@abstractmethod
	def query_bookings(
		self,
		start: datetime,
		end: datetime,
		lab: Optional[str] = None,
		site: Optional[str] = None,
		statuses: Iterable[str] = COMMITTED_STATUSES,
		exclude_booking: Optional[str] = None,
		inclusive: bool = False,
		for_update: Optional[bool] = None
	) -> List[frappe._dict]:
		"""
		Retorna las líneas de reserva que se solapan con [start, end).

		Args:
			inclusive: rango cerrado [start, end]; incluye reservas que
				solo tocan un extremo (vista de calendario)
			for_update: lectura con lock (default: self.for_update)

		Cada fila: {
			"booking_request", "item", "lab", "site", "status",
			"start" (aware datetime), "end" (aware datetime)
		}

		Puede retornar filas de más; el core vuelve a filtrar.
		"""
		pass

	def lock_labs(self, labs: Iterable[str]) -> None:
		"""Bloquea los labs para el commit (no-op por defecto)."""
		pass


class FrappeBookingStore(BookingStore):
	"""BookingStore sobre la base de datos de Frappe."""

	def get_lab(self, lab: str) -> Any:
		return frappe.get_cached_doc("Lab", lab)

	def get_site(self, site: str) -> Any:
		return frappe.get_cached_doc("Lab Site", site)

	def get_booking_request(self, booking_request: str) -> Any:
		return frappe.get_doc("Lab Booking Request", booking_request)

	def query_bookings(
		self,
		start: datetime,
		end: datetime,
		lab: Optional[str] = None,
		site: Optional[str] = None,
		statuses: Iterable[str] = COMMITTED_STATUSES,
		exclude_booking: Optional[str] = None,
		inclusive: bool = False,
		for_update: Optional[bool] = None
	) -> List[frappe._dict]:
		statuses = tuple(statuses)
		if not statuses:
			return []

		if for_update is None:
			for_update = self.for_update

		before, after = ("<=", ">=") if inclusive else ("<", ">")

		# Intervalo efectivo: el programado si existe, si no el solicitado
		conditions = [
			"item.parenttype = 'Lab Booking Request'",
			"req.status IN %(statuses)s",
			f"COALESCE(item.scheduled_start, item.requested_start) {before} %(end)s",
			f"COALESCE(item.scheduled_end, item.requested_end) {after} %(start)s",
		]
		values = {
			"statuses": statuses,
			# La BD guarda datetimes naive en la zona horaria del sistema
			"start": to_system_naive(start),
			"end": to_system_naive(end),
		}

		if lab:
			conditions.append("item.lab = %(lab)s")
			values["lab"] = lab
		if site:
			conditions.append("item.site = %(site)s")
			values["site"] = site
		if exclude_booking:
			conditions.append("req.name != %(exclude_booking)s")
			values["exclude_booking"] = exclude_booking

		# Una lectura con lock no usa el snapshot de la transacción (REPEATABLE READ):
		# ve las aprobaciones confirmadas mientras se esperaba lock_labs
		lock_clause = "FOR UPDATE" if for_update else ""

		rows = frappe.db.sql(f"""
			SELECT
				item.parent AS booking_request,
				item.name AS item,
				item.lab,
				item.site,
				req.status,
				COALESCE(item.scheduled_start, item.requested_start) AS `start`,
				COALESCE(item.scheduled_end, item.requested_end) AS `end`
			FROM `tabLab Booking Item` item
			INNER JOIN `tabLab Booking Request` req ON req.name = item.parent
			WHERE {" AND ".join(conditions)}
			ORDER BY `start` ASC, item.parent ASC, item.idx ASC
			{lock_clause}
		""", values, as_dict=True)

		for row in rows:
			row.start = to_aware(row.start)
			row.end = to_aware(row.end)

		return rows

	def lock_labs(self, labs: Iterable[str]) -> None:
		"""
		Toma un lock de fila (SELECT ... FOR UPDATE) sobre cada Lab.

		Se ordenan por nombre para que dos commits concurrentes tomen los
		locks en el mismo orden. El lock dura hasta el commit de la
		transacción del request.
		"""
		names = sorted(set(labs))
		if not names:
			return

		frappe.db.sql("""
			SELECT name FROM `tabLab`
			WHERE name IN %(names)s
			ORDER BY name
			FOR UPDATE
		""", {"names": tuple(names)})


def get_store(for_update: bool = False) -> BookingStore:
	"""
	Store por defecto del core.

	for_update=True para el commit (aprobación, extensión): lecturas con lock.
	"""
	return FrappeBookingStore(for_update=for_update)


def load_lab_and_site(lab: str, site: str, store: BookingStore) -> tuple:
	"""
	Carga Lab y Lab Site verificando que estén activos y relacionados.

	Raises:
		frappe.DoesNotExistError: si no existen o están inactivos
		SchedulingValidationError: si el Lab no pertenece al Lab Site
	"""
	lab_doc = store.get_lab(lab)
	if not lab_doc.is_active:
		raise frappe.DoesNotExistError(_("Lab {0} no está activo").format(lab))

	if lab_doc.site != site:
		raise SchedulingValidationError(
			_("El Lab {0} pertenece al Lab Site {1}, no a {2}").format(lab, lab_doc.site, site)
		)

	site_doc = store.get_site(site)
	if not site_doc.is_active:
		raise frappe.DoesNotExistError(_("Lab Site {0} no está activo").format(site))

	return lab_doc, site_doc

# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Lab Site DocType

Instalación física que aloja uno o más Labs, con su propia zona horaria
y horario de operación diario.
"""

import frappe
import pytz
from frappe import _
from frappe.model.document import Document

from lab_scheduling.lab_scheduling.scheduling.exceptions import SchedulingValidationError
from lab_scheduling.lab_scheduling.scheduling.time_window import parse_hhmm


class LabSite(Document):
	"""
	Lab Site with validations.

	Validations:
	- timezone must be a valid IANA identifier
	- operating_start / operating_end in HH:MM format
	- operating_start < operating_end (no overnight windows)
	"""

	def validate(self) -> None:
		"""
		Validación antes de guardar.
		"""
		self._validate_timezone()
		self._validate_operating_hours()

	def _validate_timezone(self) -> None:
		"""Valida que timezone sea un identificador IANA conocido."""
		if not self.timezone:
			frappe.throw(_("Timezone es requerido"))

		self.timezone = self.timezone.strip()
		if self.timezone not in pytz.all_timezones_set:
			frappe.throw(_("Timezone inválido: {0}").format(self.timezone))

	def _validate_operating_hours(self) -> None:
		"""Valida formato HH:MM y que la apertura sea antes del cierre el mismo día."""
		try:
			start = parse_hhmm(self.operating_start)
			end = parse_hhmm(self.operating_end)
		except SchedulingValidationError as e:
			frappe.throw(str(e))

		if start >= end:
			frappe.throw(
				_("Operating Start ({0}) debe ser menor que Operating End ({1}); no se soportan horarios nocturnos").format(
					self.operating_start, self.operating_end
				)
			)

# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Lab DocType

Recurso físico reservable (cámara, mesa vibratoria, cleanroom) con
tarifa por hora, granularidad de slot y capacidad.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import cint, flt

from lab_scheduling.lab_scheduling.scheduling.constants import SLOT_GRANULARITIES


class Lab(Document):
	"""
	Lab with validations.

	Validations:
	- site required
	- slot_granularity_minutes in 15 / 30 / 60
	- capacity >= 1
	- rate_per_hour >= 0
	"""

	def validate(self) -> None:
		"""
		Validación antes de guardar.
		"""
		if not self.site:
			frappe.throw(_("Site es requerido"))

		if cint(self.slot_granularity_minutes) not in SLOT_GRANULARITIES:
			frappe.throw(
				_("Slot Granularity debe ser uno de: {0}").format(", ".join(str(g) for g in SLOT_GRANULARITIES))
			)

		if cint(self.capacity) < 1:
			frappe.throw(_("Capacity Units debe ser al menos 1"))

		if flt(self.rate_per_hour) < 0:
			frappe.throw(_("Rate per Hour no puede ser negativo"))

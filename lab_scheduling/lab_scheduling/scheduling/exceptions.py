"""
Scheduling Exceptions

Excepciones del core de agendamiento. Heredan de las excepciones de Frappe
para que el HTTP layer las traduzca al status code correcto.
"""

import frappe


class SchedulingValidationError(frappe.ValidationError):
	"""Intervalo inválido: fuera de horario, multi-día, end <= start, etc."""
	pass


class BookingConflictError(frappe.ValidationError):
	"""El laboratorio ya está ocupado al momento de confirmar (commit)."""
	http_status_code = 409

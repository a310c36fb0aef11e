"""
Booking lifecycle constants shared by the scheduling core and the
Lab Booking Request controller.
"""

DRAFT = "Draft"
SUBMITTED = "Submitted"
UNDER_REVIEW = "Under Review"
APPROVED = "Approved"
REJECTED = "Rejected"
SCHEDULED = "Scheduled"
IN_PROGRESS = "In Progress"
COMPLETED = "Completed"
CANCELLED = "Cancelled"

# Solo estos estados ocupan tiempo real de calendario
COMMITTED_STATUSES = (APPROVED, SCHEDULED, IN_PROGRESS, COMPLETED)

# Estados desde los que se puede pedir una extensión
EXTENDABLE_STATUSES = (APPROVED, SCHEDULED, IN_PROGRESS)

TERMINAL_STATUSES = (REJECTED, COMPLETED, CANCELLED)

ALLOWED_TRANSITIONS = {
	DRAFT: (SUBMITTED, CANCELLED),
	SUBMITTED: (UNDER_REVIEW, APPROVED, REJECTED, CANCELLED),
	UNDER_REVIEW: (APPROVED, REJECTED, CANCELLED),
	APPROVED: (SCHEDULED, IN_PROGRESS, CANCELLED),
	SCHEDULED: (IN_PROGRESS, CANCELLED),
	IN_PROGRESS: (COMPLETED, CANCELLED),
	REJECTED: (),
	COMPLETED: (),
	CANCELLED: (),
}

EXTENSION_PENDING = "Pending"
EXTENSION_APPROVED = "Approved"
EXTENSION_REJECTED = "Rejected"

SLOT_GRANULARITIES = (15, 30, 60)

DEFAULT_MAX_ALTERNATIVES = 5
DEFAULT_CALENDAR_DAYS = 30

# Búsqueda de alternativas: desplazamientos en horas (mismo día) y días
SAME_DAY_HOUR_OFFSETS = (-3, -2, -1, 1, 2, 3)
NEXT_DAY_OFFSETS = (1, 2, 3)


def can_transition(current: str, target: str) -> bool:
	"""Retorna True si el ciclo de vida permite pasar de current a target."""
	return target in ALLOWED_TRANSITIONS.get(current, ())

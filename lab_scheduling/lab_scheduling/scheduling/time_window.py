"""
Time Window Service

Normalizes instants to a Lab Site's local civil time and checks them
against the site's operating hours, considering:
- Site timezone (IANA identifier, via pytz)
- Operating window expressed as local "HH:MM" strings
- Single local calendar day per booking
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional, Union

import pytz
from frappe import _
from frappe.utils import get_datetime, get_system_timezone

from .exceptions import SchedulingValidationError

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: Union[str, time, timedelta]) -> int:
	"""
	Convierte una hora de operación a minutos desde medianoche local.

	Args:
		value: "HH:MM", datetime.time o timedelta (desde medianoche)

	Returns:
		int: minutos desde medianoche

	Raises:
		SchedulingValidationError: si el formato no es válido
	"""
	if isinstance(value, time):
		return value.hour * 60 + value.minute
	if isinstance(value, timedelta):
		return int(value.total_seconds() // 60)

	match = HHMM_PATTERN.match(str(value or "").strip())
	if not match:
		raise SchedulingValidationError(_("Hora inválida '{0}'. Use HH:MM").format(value))

	return int(match.group(1)) * 60 + int(match.group(2))


def get_timezone(tz_name: Optional[str]) -> pytz.BaseTzInfo:
	"""
	Resuelve un identificador IANA a un objeto pytz.

	"system timezone" (o vacío) usa la zona horaria del sistema Frappe.
	"""
	if not tz_name or tz_name == "system timezone":
		tz_name = get_system_timezone()

	try:
		return pytz.timezone(tz_name)
	except pytz.UnknownTimeZoneError:
		raise SchedulingValidationError(_("Zona horaria inválida: {0}").format(tz_name))


def get_site_timezone(site: Any) -> pytz.BaseTzInfo:
	"""Zona horaria de un Lab Site."""
	return get_timezone(site.timezone)


def to_aware(value: Union[str, datetime], tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
	"""
	Retorna un datetime con timezone.

	Los datetimes naive se interpretan en `tz`, o en la zona horaria del
	sistema si no se indica (así guarda Frappe los campos Datetime).
	"""
	dt = get_datetime(value)
	if dt.tzinfo is not None:
		return dt

	tz = tz or get_timezone(None)
	return tz.localize(dt)


def to_system_naive(dt: datetime) -> datetime:
	"""Convierte un instante a datetime naive en la zona horaria del sistema (formato de BD)."""
	if dt.tzinfo is None:
		return dt
	return dt.astimezone(get_timezone(None)).replace(tzinfo=None)


def minutes_since_midnight(local_dt: datetime) -> float:
	# Incluye segundos: 18:00:30 ya está fuera de un cierre a las 18:00
	return local_dt.hour * 60 + local_dt.minute + local_dt.second / 60


def is_within_operating_hours(site: Any, start: datetime, end: datetime) -> bool:
	"""
	Verifica que [start, end) cae dentro del horario de operación del site.

	Args:
		site: Lab Site (doc o dict) con timezone, operating_start, operating_end
		start: inicio del intervalo
		end: fin del intervalo

	Returns:
		bool: False si algún extremo cae fuera de [op_start, op_end]
		o si el intervalo abarca dos días locales distintos.

	Los extremos son inclusivos: una reserva puede empezar exactamente
	a la hora de apertura y terminar exactamente a la de cierre.
	"""
	tz = get_site_timezone(site)
	local_start = to_aware(start, tz).astimezone(tz)
	local_end = to_aware(end, tz).astimezone(tz)

	# Multi-día se rechaza, no se trunca
	if local_start.date() != local_end.date():
		return False

	op_start = parse_hhmm(site.operating_start)
	op_end = parse_hhmm(site.operating_end)

	start_minutes = minutes_since_midnight(local_start)
	end_minutes = minutes_since_midnight(local_end)

	if start_minutes < op_start or start_minutes > op_end:
		return False
	if end_minutes < op_start or end_minutes > op_end:
		return False

	return True


def operating_window_for_day(site: Any, target_date: Union[date, str]) -> Dict[str, datetime]:
	"""
	Obtiene el horario de operación de un día local como instantes.

	Args:
		site: Lab Site
		target_date: fecha local del site

	Returns:
		dict: {"start": datetime, "end": datetime} localizados en la zona del site
	"""
	if isinstance(target_date, str):
		target_date = get_datetime(target_date).date()

	tz = get_site_timezone(site)
	op_start = parse_hhmm(site.operating_start)
	op_end = parse_hhmm(site.operating_end)

	midnight = datetime.combine(target_date, time.min)

	return {
		"start": tz.localize(midnight + timedelta(minutes=op_start)),
		"end": tz.localize(midnight + timedelta(minutes=op_end)),
	}


def shift_local_days(dt: datetime, days: int, tz: pytz.BaseTzInfo) -> datetime:
	"""
	Mueve un instante N días manteniendo la misma hora local.

	Se hace sobre la hora civil (no sumando 24h) para que un cambio de
	horario de verano no desplace la hora de reloj.
	"""
	local = dt.astimezone(tz)
	wall_clock = local.replace(tzinfo=None) + timedelta(days=days)
	return tz.localize(wall_clock)

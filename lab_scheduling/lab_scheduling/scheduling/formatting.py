"""
Result formatting helpers.

Convierte resultados del core (datetimes con timezone, filas de reserva)
a dicts serializables para el HTTP layer y los mensajes de usuario.
"""

from datetime import datetime
from typing import Any, Dict, List


def format_datetime(value: Any) -> Any:
	if isinstance(value, datetime):
		return value.isoformat()
	return value


def serialize_booking(row: Dict[str, Any]) -> Dict[str, Any]:
	return {
		"booking_request": row.get("booking_request"),
		"item": row.get("item"),
		"lab": row.get("lab"),
		"site": row.get("site"),
		"status": row.get("status"),
		"start": format_datetime(row.get("start")),
		"end": format_datetime(row.get("end")),
	}


def serialize_interval(interval: Dict[str, Any]) -> Dict[str, Any]:
	return {
		"start": format_datetime(interval["start"]),
		"end": format_datetime(interval["end"]),
		"confidence": interval.get("confidence"),
	}


def serialize_result(result: Dict[str, Any]) -> Dict[str, Any]:
	"""Serializa un resultado de check_availability / check_extension."""
	data = {}
	for key, value in result.items():
		if key == "conflicts":
			data[key] = [serialize_booking(row) for row in value]
		elif key == "alternatives":
			data[key] = [serialize_interval(interval) for interval in value]
		else:
			data[key] = format_datetime(value)
	return data


def serialize_results(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
	return [serialize_result(result) for result in results]

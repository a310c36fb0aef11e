"""
Tests for scheduling/availability.py

Tests the operating-hours gate, conflict detection, self-exclusion and
the not-found paths of check_availability.
"""

import unittest
from datetime import datetime

import frappe
import pytz

from lab_scheduling.lab_scheduling.scheduling.availability import check_availability
from lab_scheduling.lab_scheduling.scheduling.constants import CANCELLED, REJECTED, SUBMITTED
from lab_scheduling.lab_scheduling.scheduling.exceptions import SchedulingValidationError
from lab_scheduling.lab_scheduling.tests.utils import KOLKATA, InMemoryBookingStore, local


class TestAvailability(unittest.TestCase):
	"""Tests for check_availability."""

	def setUp(self):
		"""Lab con horario 09:00-18:00 Asia/Kolkata y una reserva 10:00-12:00."""
		self.store = InMemoryBookingStore()
		self.store.add_site(name="Bengaluru", timezone="Asia/Kolkata")
		self.store.add_lab(name="TVAC", site="Bengaluru", capacity=1)
		self.store.add_booking(
			"LBR-0001", "TVAC", "Bengaluru",
			local(KOLKATA, 2024, 3, 1, 10), local(KOLKATA, 2024, 3, 1, 12)
		)

	def check(self, start, end, **kwargs):
		return check_availability("TVAC", "Bengaluru", start, end, store=self.store, **kwargs)

	def test_conflict_returns_booking_and_alternatives(self):
		"""11:00-13:00 choca con 10:00-12:00; la primera alternativa es 12:00-14:00."""
		result = self.check(local(KOLKATA, 2024, 3, 1, 11), local(KOLKATA, 2024, 3, 1, 13))

		self.assertFalse(result["is_available"])
		self.assertEqual([row.booking_request for row in result["conflicts"]], ["LBR-0001"])
		self.assertTrue(result["alternatives"])

		first = result["alternatives"][0]
		self.assertEqual(first["start"], local(KOLKATA, 2024, 3, 1, 12))
		self.assertEqual(first["end"], local(KOLKATA, 2024, 3, 1, 14))
		self.assertEqual(first["confidence"], "high")

	def test_free_interval_is_available(self):
		result = self.check(local(KOLKATA, 2024, 3, 1, 14), local(KOLKATA, 2024, 3, 1, 16))

		self.assertTrue(result["is_available"])
		self.assertEqual(result["conflicts"], [])
		self.assertEqual(result["alternatives"], [])
		self.assertEqual(result["capacity_available"], 1)

	def test_back_to_back_is_available(self):
		"""Intervalos semiabiertos: 12:00-14:00 no choca con 10:00-12:00."""
		result = self.check(local(KOLKATA, 2024, 3, 1, 12), local(KOLKATA, 2024, 3, 1, 14))
		self.assertTrue(result["is_available"])

	def test_outside_operating_hours_raises(self):
		"""19:00-20:00 está fuera de 09:00-18:00."""
		with self.assertRaises(SchedulingValidationError):
			self.check(local(KOLKATA, 2024, 3, 1, 19), local(KOLKATA, 2024, 3, 1, 20))

	def test_exact_operating_bounds_are_accepted(self):
		self.store.requests.clear()
		result = self.check(local(KOLKATA, 2024, 3, 1, 9), local(KOLKATA, 2024, 3, 1, 18))
		self.assertTrue(result["is_available"])

	def test_end_before_start_raises(self):
		with self.assertRaises(SchedulingValidationError):
			self.check(local(KOLKATA, 2024, 3, 1, 14), local(KOLKATA, 2024, 3, 1, 13))

		with self.assertRaises(SchedulingValidationError):
			self.check(local(KOLKATA, 2024, 3, 1, 14), local(KOLKATA, 2024, 3, 1, 14))

	def test_multi_day_interval_raises(self):
		with self.assertRaises(SchedulingValidationError):
			self.check(local(KOLKATA, 2024, 3, 1, 16), local(KOLKATA, 2024, 3, 2, 10))

	def test_other_timezone_input_is_converted(self):
		"""09:30 UTC = 15:00 Asia/Kolkata: dentro de horario y libre."""
		start = pytz.utc.localize(datetime(2024, 3, 1, 9, 30))
		end = pytz.utc.localize(datetime(2024, 3, 1, 10, 30))

		result = self.check(start, end)
		self.assertTrue(result["is_available"])

	def test_exclude_booking_ignores_itself(self):
		result = self.check(
			local(KOLKATA, 2024, 3, 1, 10),
			local(KOLKATA, 2024, 3, 1, 12),
			exclude_booking="LBR-0001"
		)
		self.assertTrue(result["is_available"])
		self.assertEqual(result["conflicts"], [])

	def test_uncommitted_statuses_do_not_block(self):
		for name, status in (("LBR-0002", SUBMITTED), ("LBR-0003", REJECTED), ("LBR-0004", CANCELLED)):
			self.store.add_booking(
				name, "TVAC", "Bengaluru",
				local(KOLKATA, 2024, 3, 1, 14), local(KOLKATA, 2024, 3, 1, 16),
				status=status
			)

		result = self.check(local(KOLKATA, 2024, 3, 1, 14), local(KOLKATA, 2024, 3, 1, 16))
		self.assertTrue(result["is_available"])

	def test_other_lab_does_not_block(self):
		self.store.add_lab(name="Shaker", site="Bengaluru")
		result = check_availability(
			"Shaker", "Bengaluru",
			local(KOLKATA, 2024, 3, 1, 10), local(KOLKATA, 2024, 3, 1, 12),
			store=self.store
		)
		self.assertTrue(result["is_available"])

	def test_idempotent(self):
		start, end = local(KOLKATA, 2024, 3, 1, 11), local(KOLKATA, 2024, 3, 1, 13)
		first = self.check(start, end)
		second = self.check(start, end)

		self.assertEqual(first["is_available"], second["is_available"])
		self.assertEqual(first["conflicts"], second["conflicts"])
		self.assertEqual(first["alternatives"], second["alternatives"])

	def test_unknown_or_inactive_lab_raises_not_found(self):
		with self.assertRaises(frappe.DoesNotExistError):
			check_availability(
				"Missing", "Bengaluru",
				local(KOLKATA, 2024, 3, 1, 14), local(KOLKATA, 2024, 3, 1, 16),
				store=self.store
			)

		self.store.labs["TVAC"].is_active = 0
		with self.assertRaises(frappe.DoesNotExistError):
			self.check(local(KOLKATA, 2024, 3, 1, 14), local(KOLKATA, 2024, 3, 1, 16))

	def test_inactive_site_raises_not_found(self):
		self.store.sites["Bengaluru"].is_active = 0
		with self.assertRaises(frappe.DoesNotExistError):
			self.check(local(KOLKATA, 2024, 3, 1, 14), local(KOLKATA, 2024, 3, 1, 16))

	def test_granularity_mismatch_is_warning(self):
		result = self.check(local(KOLKATA, 2024, 3, 1, 14), local(KOLKATA, 2024, 3, 1, 15, 30))

		self.assertTrue(result["is_available"])
		self.assertEqual(len(result["warnings"]), 1)

	def test_search_alternatives_disabled(self):
		result = self.check(
			local(KOLKATA, 2024, 3, 1, 11),
			local(KOLKATA, 2024, 3, 1, 13),
			search_alternatives=False
		)
		self.assertFalse(result["is_available"])
		self.assertEqual(result["alternatives"], [])

	def test_lab_from_another_site_raises(self):
		"""Un Lab no se evalúa con el horario ni la zona horaria de otro site."""
		self.store.add_site(name="Houston", timezone="America/Chicago")

		with self.assertRaises(SchedulingValidationError):
			check_availability(
				"TVAC", "Houston",
				local(KOLKATA, 2024, 3, 1, 14), local(KOLKATA, 2024, 3, 1, 16),
				store=self.store
			)

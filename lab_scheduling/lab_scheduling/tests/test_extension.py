"""
Tests for scheduling/extension.py
"""

import unittest

import frappe

from lab_scheduling.lab_scheduling.scheduling.constants import SUBMITTED
from lab_scheduling.lab_scheduling.scheduling.exceptions import SchedulingValidationError
from lab_scheduling.lab_scheduling.scheduling.extension import check_extension, is_extension_approvable
from lab_scheduling.lab_scheduling.tests.utils import KOLKATA, InMemoryBookingStore, local


def at(hour, minute=0):
	return local(KOLKATA, 2024, 3, 1, hour, minute)


class TestExtension(unittest.TestCase):
	"""Tests for check_extension."""

	def setUp(self):
		self.store = InMemoryBookingStore()
		self.store.add_site(name="Bengaluru")
		self.store.add_lab(name="TVAC", site="Bengaluru")
		self.store.add_lab(name="Shaker", site="Bengaluru")
		self.store.add_booking("LBR-0001", "TVAC", "Bengaluru", at(14), at(16))

	def test_extension_past_closing_is_not_available(self):
		"""14:00-16:00 + 3h termina a las 19:00, después del cierre de las 18:00."""
		results = check_extension("LBR-0001", 3, store=self.store)

		self.assertEqual(len(results), 1)
		self.assertFalse(results[0]["is_available"])
		self.assertEqual(results[0]["alternatives"], [])
		self.assertEqual(results[0]["conflicts"], [])
		self.assertTrue(results[0]["reason"])
		self.assertEqual(results[0]["new_end"], at(19))
		self.assertFalse(is_extension_approvable(results))

	def test_extension_does_not_conflict_with_itself(self):
		results = check_extension("LBR-0001", 1, store=self.store)

		self.assertTrue(results[0]["is_available"])
		self.assertIsNone(results[0]["reason"])
		self.assertEqual(results[0]["new_end"], at(17))
		self.assertTrue(is_extension_approvable(results))

	def test_extension_blocked_by_following_booking(self):
		self.store.add_booking("LBR-0002", "TVAC", "Bengaluru", at(16), at(17))

		results = check_extension("LBR-0001", 1, store=self.store)

		self.assertFalse(results[0]["is_available"])
		self.assertEqual([row.booking_request for row in results[0]["conflicts"]], ["LBR-0002"])

	def test_all_items_must_be_extendable(self):
		self.store.add_booking("LBR-0001", "Shaker", "Bengaluru", at(14), at(16))
		self.store.add_booking("LBR-0002", "Shaker", "Bengaluru", at(16), at(17))

		results = check_extension("LBR-0001", 1, store=self.store)

		self.assertEqual([r["lab"] for r in results], ["TVAC", "Shaker"])
		self.assertEqual([r["is_available"] for r in results], [True, False])
		self.assertFalse(is_extension_approvable(results))

	def test_invalid_hours_raise(self):
		with self.assertRaises(SchedulingValidationError):
			check_extension("LBR-0001", 0, store=self.store)

		with self.assertRaises(SchedulingValidationError):
			check_extension("LBR-0001", -2, store=self.store)

	def test_non_extendable_status_raises(self):
		self.store.requests["LBR-0001"].status = SUBMITTED

		with self.assertRaises(SchedulingValidationError):
			check_extension("LBR-0001", 1, store=self.store)

	def test_unscheduled_request_raises(self):
		self.store.add_booking("LBR-0003", "Shaker", "Bengaluru", at(10), at(11), scheduled=False)

		with self.assertRaises(SchedulingValidationError):
			check_extension("LBR-0003", 1, store=self.store)

	def test_unknown_request_raises_not_found(self):
		with self.assertRaises(frappe.DoesNotExistError):
			check_extension("LBR-9999", 1, store=self.store)

	def test_empty_results_are_not_approvable(self):
		self.assertFalse(is_extension_approvable([]))

	def test_half_hour_extension_on_half_hour_lab(self):
		"""Lab con granularidad de 30 minutos: +0.5h es válido y no se redondea."""
		self.store.labs["TVAC"].slot_granularity_minutes = "30"

		results = check_extension("LBR-0001", 0.5, store=self.store)

		self.assertTrue(results[0]["is_available"])
		self.assertEqual(results[0]["new_end"], at(16, 30))

	def test_extension_must_match_lab_granularity(self):
		for hours in (0.5, 1.5, 0.25):
			with self.assertRaises(SchedulingValidationError):
				check_extension("LBR-0001", hours, store=self.store)

	def test_locking_store_uses_locking_reads(self):
		locking_store = InMemoryBookingStore(for_update=True)
		locking_store.sites = self.store.sites
		locking_store.labs = self.store.labs
		locking_store.requests = self.store.requests

		check_extension("LBR-0001", 1, store=locking_store)

		self.assertGreater(locking_store.locking_reads, 0)

"""
Tests for scheduling/overlap.py

Tests overlap detection, capacity management and status filtering.
"""

import unittest

from lab_scheduling.lab_scheduling.scheduling.availability import check_availability
from lab_scheduling.lab_scheduling.scheduling.constants import COMPLETED, DRAFT, IN_PROGRESS, SCHEDULED
from lab_scheduling.lab_scheduling.scheduling.overlap import (
	check_overlap,
	find_conflicts,
	intervals_overlap,
	peak_concurrency
)
from lab_scheduling.lab_scheduling.tests.utils import KOLKATA, InMemoryBookingStore, local


def at(hour, minute=0):
	return local(KOLKATA, 2024, 3, 1, hour, minute)


class TestOverlap(unittest.TestCase):
	"""Tests for overlap detection functions."""

	def setUp(self):
		self.store = InMemoryBookingStore()
		self.store.add_site(name="Bengaluru")
		self.store.add_lab(name="EMI", site="Bengaluru", capacity=2)

	def test_intervals_overlap(self):
		self.assertTrue(intervals_overlap(at(10), at(12), at(11), at(13)))
		self.assertTrue(intervals_overlap(at(10), at(12), at(10, 30), at(11)))
		self.assertFalse(intervals_overlap(at(10), at(12), at(12), at(13)))
		self.assertFalse(intervals_overlap(at(12), at(13), at(10), at(12)))

	def test_no_overlap(self):
		result = check_overlap("EMI", "Bengaluru", at(10), at(11), capacity=2, store=self.store)

		self.assertFalse(result["has_overlap"])
		self.assertFalse(result["capacity_exceeded"])
		self.assertEqual(result["capacity_used"], 0)
		self.assertEqual(result["capacity_available"], 2)

	def test_committed_statuses_conflict(self):
		for name, status in (("LBR-1", SCHEDULED), ("LBR-2", IN_PROGRESS), ("LBR-3", COMPLETED)):
			self.store.add_booking(name, "EMI", "Bengaluru", at(10), at(11), status=status)
		self.store.add_booking("LBR-4", "EMI", "Bengaluru", at(10), at(11), status=DRAFT)

		conflicts = find_conflicts("EMI", "Bengaluru", at(10), at(11), store=self.store)
		self.assertEqual(sorted(row.booking_request for row in conflicts), ["LBR-1", "LBR-2", "LBR-3"])

	def test_requested_interval_used_when_not_scheduled(self):
		self.store.add_booking("LBR-1", "EMI", "Bengaluru", at(10), at(11), scheduled=False)

		conflicts = find_conflicts("EMI", "Bengaluru", at(10, 30), at(12), store=self.store)
		self.assertEqual(len(conflicts), 1)

	def test_peak_concurrency_counts_simultaneous_only(self):
		"""10-11 y 11-12 no coinciden: el pico es 1 aunque haya 2 conflictos."""
		self.store.add_booking("LBR-1", "EMI", "Bengaluru", at(10), at(11))
		self.store.add_booking("LBR-2", "EMI", "Bengaluru", at(11), at(12))

		conflicts = find_conflicts("EMI", "Bengaluru", at(10), at(12), store=self.store)
		self.assertEqual(len(conflicts), 2)
		self.assertEqual(peak_concurrency(conflicts, at(10), at(12)), 1)

	def test_capacity_two_allows_two_and_rejects_third(self):
		"""Capacity 2: dos reservas simultáneas caben, la tercera no."""
		start, end = at(10), at(12)

		self.assertTrue(check_availability("EMI", "Bengaluru", start, end, store=self.store)["is_available"])
		self.store.add_booking("LBR-1", "EMI", "Bengaluru", start, end)

		result = check_availability("EMI", "Bengaluru", start, end, store=self.store)
		self.assertTrue(result["is_available"])
		self.assertEqual(result["capacity_used"], 1)
		self.assertEqual(len(result["conflicts"]), 1)
		self.store.add_booking("LBR-2", "EMI", "Bengaluru", start, end)

		result = check_availability("EMI", "Bengaluru", start, end, store=self.store, search_alternatives=False)
		self.assertFalse(result["is_available"])
		self.assertEqual(result["capacity_used"], 2)
		self.assertEqual(result["capacity_available"], 0)
		self.assertEqual(len(result["conflicts"]), 2)

"""
Test helpers for the scheduling core.

InMemoryBookingStore lets the core services run against plain records
instead of the database.
"""

from datetime import datetime

import frappe
import pytz

from lab_scheduling.lab_scheduling.scheduling.constants import APPROVED, COMMITTED_STATUSES
from lab_scheduling.lab_scheduling.scheduling.overlap import intervals_overlap
from lab_scheduling.lab_scheduling.scheduling.store import BookingStore

KOLKATA = pytz.timezone("Asia/Kolkata")


def local(tz, year, month, day, hour, minute=0):
	"""Instante aware a partir de la hora civil en `tz`."""
	return tz.localize(datetime(year, month, day, hour, minute))


def make_site(name="Test Site", timezone="Asia/Kolkata", operating_start="09:00", operating_end="18:00", is_active=1):
	return frappe._dict({
		"name": name,
		"site_name": name,
		"timezone": timezone,
		"operating_start": operating_start,
		"operating_end": operating_end,
		"is_active": is_active
	})


def make_lab(name="Test Lab", site="Test Site", capacity=1, slot_granularity_minutes="60", rate_per_hour=1000, is_active=1):
	return frappe._dict({
		"name": name,
		"lab_name": name,
		"site": site,
		"capacity": capacity,
		"slot_granularity_minutes": slot_granularity_minutes,
		"rate_per_hour": rate_per_hour,
		"is_active": is_active
	})


class InMemoryBookingStore(BookingStore):
	"""BookingStore en memoria para los tests del core."""

	def __init__(self, for_update=False):
		super().__init__(for_update=for_update)
		self.labs = {}
		self.sites = {}
		self.requests = {}
		self.locked = []
		self.locking_reads = 0

	def add_site(self, **kwargs):
		site = make_site(**kwargs)
		self.sites[site.name] = site
		return site

	def add_lab(self, **kwargs):
		lab = make_lab(**kwargs)
		self.labs[lab.name] = lab
		return lab

	def add_booking(self, name, lab, site, start, end, status=APPROVED, scheduled=True):
		"""
		Agrega un Lab Booking Request con un único lab item.

		Si ya existe el request, agrega otro item.
		"""
		request = self.requests.get(name)
		if not request:
			request = frappe._dict({"name": name, "status": status, "lab_items": []})
			self.requests[name] = request

		item = frappe._dict({
			"name": f"{name}-{len(request.lab_items) + 1}",
			"lab": lab,
			"site": site,
			"requested_start": start,
			"requested_end": end,
			"scheduled_start": start if scheduled else None,
			"scheduled_end": end if scheduled else None
		})
		request.lab_items.append(item)
		return request

	def get_lab(self, lab):
		if lab not in self.labs:
			raise frappe.DoesNotExistError(f"Lab {lab} not found")
		return self.labs[lab]

	def get_site(self, site):
		if site not in self.sites:
			raise frappe.DoesNotExistError(f"Lab Site {site} not found")
		return self.sites[site]

	def get_booking_request(self, booking_request):
		if booking_request not in self.requests:
			raise frappe.DoesNotExistError(f"Lab Booking Request {booking_request} not found")
		return self.requests[booking_request]

	def query_bookings(
		self, start, end, lab=None, site=None, statuses=COMMITTED_STATUSES,
		exclude_booking=None, inclusive=False, for_update=None
	):
		if for_update is None:
			for_update = self.for_update
		if for_update:
			self.locking_reads += 1

		rows = []
		for request in self.requests.values():
			if request.status not in statuses or request.name == exclude_booking:
				continue
			for item in request.lab_items:
				item_start = item.scheduled_start or item.requested_start
				item_end = item.scheduled_end or item.requested_end
				if lab and item.lab != lab:
					continue
				if site and item.site != site:
					continue
				if inclusive:
					if item_start > end or item_end < start:
						continue
				elif not intervals_overlap(item_start, item_end, start, end):
					continue
				rows.append(frappe._dict({
					"booking_request": request.name,
					"item": item.name,
					"lab": item.lab,
					"site": item.site,
					"status": request.status,
					"start": item_start,
					"end": item_end
				}))

		rows.sort(key=lambda row: (row.start, row.booking_request))
		return rows

	def lock_labs(self, labs):
		self.locked.extend(sorted(set(labs)))

# Copyright (c) 2026, PoP Tracker and contributors
# For license information, please see license.txt

"""
PoP Player Flag DocType

One row per (user, guild, flag). completed_at is kept in step with
completed: set when a row becomes completed, cleared when it is not.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import now_datetime

from pop_tracker.services.progression.catalog import get_catalog


class PoPPlayerFlag(Document):
	def validate(self):
		self.validate_flag_key()
		self.sync_completed_at()

	def validate_flag_key(self):
		if self.flag_key not in get_catalog():
			frappe.throw(_("Unknown flag: {0}").format(self.flag_key))

	def sync_completed_at(self):
		if self.completed and not self.completed_at:
			self.completed_at = now_datetime()
		elif not self.completed:
			self.completed_at = None

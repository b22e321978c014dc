# Copyright (c) 2026, PoP Tracker and contributors
# For license information, please see license.txt

import frappe
from frappe import _
from frappe.model.document import Document


class PoPPlayerData(Document):
    def validate(self):
        if not self.user_id or not self.guild_id:
            frappe.throw(_("User ID and Guild ID are required"))

        if not self.display_name:
            self.display_name = self.user_id

"""
Migration runner for PoP Tracker DocType schema creation.

Called via the after_migrate hook. Creates the player DocTypes if missing;
any failure is logged and re-raised so the migration stops.
"""

import frappe

from pop_tracker.services.schema.doctype_definitions import DOCTYPE_DEFINITIONS
from pop_tracker.services.schema.doctype_utils import create_doctype, log_operation


def run_migration():
	"""
	Run the PoP Tracker schema migration.

	Returns:
		list: Names of DocTypes created by this run
	"""
	frappe.logger().info("Starting PoP Tracker DocType schema migration...")
	created = []

	for doctype_dict in DOCTYPE_DEFINITIONS:
		doctype_name = doctype_dict.get("name")
		try:
			_, was_created = create_doctype(doctype_dict)
		except Exception as e:
			log_operation("create", doctype_name, "failed", str(e))
			frappe.db.rollback()
			raise

		log_operation("create", doctype_name, "success" if was_created else "skipped")
		if was_created:
			created.append(doctype_name)

	frappe.db.commit()
	frappe.logger().info(f"PoP Tracker schema migration completed, created: {created or 'nothing'}")
	return created

"""
Utility functions for DocType creation
"""

import copy

import frappe


def create_doctype(doctype_dict):
	"""
	Create a DocType programmatically unless it already exists.

	Args:
		doctype_dict (dict): DocType configuration with fields, properties, etc.

	Returns:
		tuple: (DocType document, True if created by this call)
	"""
	name = doctype_dict.get("name")
	if frappe.db.exists("DocType", name):
		frappe.logger().info(f"DocType {name} already exists, skipping creation")
		return frappe.get_doc("DocType", name), False

	# get_doc mutates nested field dicts, keep the module-level definition intact
	doc = frappe.get_doc(copy.deepcopy(doctype_dict))
	doc.insert(ignore_permissions=True)
	frappe.logger().info(f"Created DocType: {doc.name}")
	return doc, True


def log_operation(operation, doctype_name, status, message=""):
	"""
	Log schema operations for debugging and audit trails.

	Args:
		operation (str): Operation type (e.g., 'create')
		doctype_name (str): Name of the DocType
		status (str): Status of the operation ('success', 'failed', 'skipped')
		message (str): Additional message
	"""
	log_msg = f"[{operation.upper()}] {doctype_name}: {status}"
	if message:
		log_msg += f" - {message}"
	frappe.logger().info(log_msg)

"""
Health API - readiness endpoint and gateway heartbeat.

The chat gateway calls report_gateway_status when it connects, disconnects
or pings; the scheduler probes the database every few minutes; container
health checks poll health() and get HTTP 503 while either signal is down.
"""

import frappe
from frappe.utils import cint

import redis

from pop_tracker.config import get_redis_client
from pop_tracker.services.health_status import HealthStatus
from pop_tracker.services.player_store import PLAYER_DOCTYPE


@frappe.whitelist(allow_guest=True)
def health():
	"""
	Report process health.

	Returns:
		dict: status, uptime, gateway_connected, last_ping, database_connected
	"""
	try:
		status = HealthStatus.load(get_redis_client())
	except redis.exceptions.RedisError as e:
		frappe.logger().error(f"Health status unavailable: {str(e)}")
		status = HealthStatus()

	if not status.is_healthy:
		frappe.local.response["http_status_code"] = 503

	return status.to_report()


@frappe.whitelist()
def report_gateway_status(ready=1):
	"""
	Record the gateway's connection state.

	Parameters:
		ready (int): 1 when connected (also counts as a ping), 0 on disconnect
	"""
	redis_client = get_redis_client()
	status = HealthStatus.load(redis_client)
	fields = list(HealthStatus.GATEWAY_FIELDS)

	if cint(ready):
		if not status.ready:
			status = HealthStatus(ready=True, database_connected=status.database_connected)
			fields.append("started_at")
		status.mark_ready()
	else:
		status.mark_not_ready()

	status.save(redis_client, fields=fields)
	frappe.logger().info(f"Gateway status reported: ready={status.ready}")
	return status.to_report()


def check_store_connection():
	"""
	Scheduler probe of the player store.

	Behavior:
	1. Run a trivial count against the player metadata table
	2. Record success or failure on the shared health status
	"""
	status = HealthStatus()

	try:
		frappe.db.count(PLAYER_DOCTYPE)
		status.record_store_success()
	except Exception as e:
		frappe.log_error(
			message=f"Player store probe failed: {str(e)}",
			title="PoP Tracker Health"
		)
		status.record_store_failure(e)

	status.save(get_redis_client(), fields=HealthStatus.STORE_FIELDS)
	return status.to_report()

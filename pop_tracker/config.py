"""
Site configuration for PoP Tracker.

Values come from the site's site_config.json (frappe.conf). Frappe is
imported lazily so the progression services stay importable without a site.
"""

DEFAULT_REDIS_URL = "redis://localhost:13000"

DEFAULTS = {
	"pop_tracker_lock_timeout": 10,
	"pop_tracker_lock_wait": 5,
	"pop_tracker_leaderboard_size": 10,
}


def get_setting(key, default=None):
	"""Read a site_config value, falling back to DEFAULTS and then default."""
	import frappe

	value = frappe.conf.get(key)
	if value is None:
		value = DEFAULTS.get(key, default)
	return value


def get_int_setting(key):
	return int(get_setting(key))


def get_redis_url():
	"""
	Redis URL for locks and shared health status.
	Priority:
	1. 'pop_tracker_redis_url' key in site_config
	2. 'redis_cache' key in site_config (Standard Frappe Cache)
	3. Fallback to localhost
	"""
	import frappe

	return (
		frappe.conf.get("pop_tracker_redis_url")
		or frappe.conf.get("redis_cache")
		or DEFAULT_REDIS_URL
	)


def get_redis_client():
	import redis

	return redis.from_url(get_redis_url(), decode_responses=True)

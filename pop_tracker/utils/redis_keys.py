"""
Redis key pattern constants for PoP Tracker

All keys are namespaced under the `pop_tracker:` prefix to avoid collisions
with other apps or Frappe internals.
"""

PLAYER_LOCK_KEY = "pop_tracker:lock:{guild_id}:{user_id}"
HEALTH_STATUS_KEY = "pop_tracker:health"


def get_player_lock_key(user_id, guild_id):
	"""Get Redis key for the per-player write lock"""
	return PLAYER_LOCK_KEY.format(user_id=user_id, guild_id=guild_id)


def get_health_status_key():
	"""Get Redis key for the shared health status (hash of JSON-encoded fields)"""
	return HEALTH_STATUS_KEY

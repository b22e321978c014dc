"""
Per-player write lock backed by Redis.

Completion and reset are read-modify-write sequences: read the player's
flags, check dependencies, write. Two concurrent requests for the same
(user, guild) must not interleave, so each sequence runs under a Redis lock
keyed by the pair. Different players never contend.

Acquisition waits at most `wait_seconds`; the lock itself expires after
`timeout_seconds` so a crashed worker cannot hold it forever. Failing to
acquire, or any Redis error, surfaces as StoreUnavailableError.
"""

import logging
from contextlib import contextmanager

import redis

from pop_tracker.services.progression.errors import StoreUnavailableError
from pop_tracker.utils.redis_keys import get_player_lock_key

logger = logging.getLogger(__name__)


class PlayerLockManager:

	DEFAULT_TIMEOUT = 10  # seconds
	DEFAULT_WAIT = 5  # seconds

	def __init__(self, redis_client=None, timeout_seconds=None, wait_seconds=None):
		self.redis = redis_client if redis_client is not None else self._get_redis_connection()
		self.timeout_seconds = timeout_seconds or self.DEFAULT_TIMEOUT
		self.wait_seconds = wait_seconds or self.DEFAULT_WAIT

	def _get_redis_connection(self):
		"""Connect to the Redis configured for the site."""
		from pop_tracker.config import get_redis_client

		return get_redis_client()

	@contextmanager
	def hold(self, user_id, guild_id):
		"""
		Hold the write lock for one player while the block runs.

		Raises:
			StoreUnavailableError: If the lock cannot be acquired in time or Redis fails
		"""
		key = get_player_lock_key(user_id, guild_id)

		try:
			lock = self.redis.lock(key, timeout=self.timeout_seconds, blocking_timeout=self.wait_seconds)
			acquired = lock.acquire()
		except redis.exceptions.RedisError as e:
			raise StoreUnavailableError("acquire player lock", str(e)) from e

		if not acquired:
			logger.warning(f"Timed out waiting {self.wait_seconds}s for lock {key}")
			raise StoreUnavailableError("acquire player lock", "timed out")

		try:
			yield
		finally:
			try:
				lock.release()
			except redis.exceptions.LockError:
				# Expired while held; the next writer may already own it
				logger.warning(f"Lock {key} expired before release")
			except redis.exceptions.RedisError as e:
				logger.warning(f"Failed to release lock {key}: {e}")

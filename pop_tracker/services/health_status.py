"""
Health status for PoP Tracker.

A HealthStatus is an explicitly owned object: the store records whether the
database answered, the chat gateway reports readiness and pings, and the
health endpoint reads the result. Worker processes share it through a single
Redis hash.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from pop_tracker.utils.redis_keys import get_health_status_key

logger = logging.getLogger(__name__)


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
	if not value:
		return None
	return datetime.fromisoformat(value)


class HealthStatus:

	# Fields each writer owns in the shared hash
	GATEWAY_FIELDS = ("ready", "last_ping")
	STORE_FIELDS = ("database_connected", "last_error")

	def __init__(
		self,
		ready: bool = False,
		database_connected: bool = False,
		last_ping: Optional[datetime] = None,
		started_at: Optional[datetime] = None,
	):
		self.ready = ready
		self.database_connected = database_connected
		self.last_ping = last_ping
		self.started_at = started_at or _now()
		self.last_error: Optional[str] = None

	@property
	def is_healthy(self) -> bool:
		return self.ready and self.database_connected

	def mark_ready(self, now: Optional[datetime] = None) -> None:
		self.ready = True
		self.last_ping = now or _now()

	def mark_not_ready(self) -> None:
		self.ready = False

	def record_ping(self, now: Optional[datetime] = None) -> None:
		self.last_ping = now or _now()

	def record_store_success(self) -> None:
		if not self.database_connected:
			logger.info("Player store reachable again")
		self.database_connected = True
		self.last_error = None

	def record_store_failure(self, error: Exception) -> None:
		if self.database_connected:
			logger.warning(f"Player store unreachable: {error}")
		self.database_connected = False
		self.last_error = type(error).__name__

	def to_report(self, now: Optional[datetime] = None) -> Dict[str, Any]:
		"""Body served by the health endpoint."""
		now = now or _now()
		return {
			"status": "healthy" if self.is_healthy else "unhealthy",
			"uptime": round((now - self.started_at).total_seconds(), 3),
			"gateway_connected": self.ready,
			"last_ping": self.last_ping.isoformat() if self.last_ping else None,
			"database_connected": self.database_connected,
		}

	def to_dict(self) -> Dict[str, Any]:
		return {
			"ready": self.ready,
			"database_connected": self.database_connected,
			"last_ping": self.last_ping.isoformat() if self.last_ping else None,
			"started_at": self.started_at.isoformat(),
			"last_error": self.last_error,
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "HealthStatus":
		status = cls(
			ready=bool(data.get("ready")),
			database_connected=bool(data.get("database_connected")),
			last_ping=_parse_timestamp(data.get("last_ping")),
			started_at=_parse_timestamp(data.get("started_at")),
		)
		status.last_error = data.get("last_error")
		return status

	def save(self, redis_client, fields: Optional[Iterable[str]] = None) -> None:
		"""Write the status, or only `fields` of it, to the shared Redis hash.

		Each writer owns different fields (the gateway writes ready/last_ping,
		the store writes database_connected), so partial saves keep concurrent
		writers from overwriting each other.
		"""
		data = self.to_dict()
		if fields is not None:
			data = {name: data[name] for name in fields}
		redis_client.hset(get_health_status_key(), mapping={name: json.dumps(value) for name, value in data.items()})

	@classmethod
	def load(cls, redis_client) -> "HealthStatus":
		"""Read the shared status; a missing or unreadable hash yields a fresh, not-ready status."""
		raw = redis_client.hgetall(get_health_status_key())
		if not raw:
			return cls()

		try:
			data = {_decode(name): json.loads(_decode(value)) for name, value in raw.items()}
			return cls.from_dict(data)
		except (json.JSONDecodeError, TypeError, ValueError) as e:
			logger.warning(f"Discarding unreadable health status: {e}")
			return cls()


def _decode(value):
	return value.decode("utf-8") if isinstance(value, bytes) else value

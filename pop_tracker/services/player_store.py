# Copyright (c) 2026, PoP Tracker and contributors
# For license information, please see license.txt

"""
Frappe Player Store

Persists player flag state in two DocTypes:
- PoP Player Flag: one row per (user, guild, flag) with completed / completed_at
- PoP Player Data: one row per (user, guild) with display_name / last_updated

Document names are derived from the identity columns, so inserting a row
that already exists is detected with a cheap exists() check instead of a
unique index race.

Every operation turns a backend failure into StoreUnavailableError and
records the outcome on the HealthStatus it was given. Writes commit on
success and roll back on failure, so a failed write leaves no partial rows.
"""

from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional, Tuple

import frappe
from frappe.utils import convert_utc_to_system_timezone, now_datetime

from pop_tracker.services.health_status import HealthStatus
from pop_tracker.services.player_lock import PlayerLockManager
from pop_tracker.services.progression.errors import StoreUnavailableError
from pop_tracker.services.progression.models import FlagStatus
from pop_tracker.services.progression.store import PlayerStore

FLAG_DOCTYPE = "PoP Player Flag"
PLAYER_DOCTYPE = "PoP Player Data"


def get_flag_doc_name(user_id, guild_id, flag_key):
	return f"PFLAG-{guild_id}-{user_id}-{flag_key}"


def get_player_doc_name(user_id, guild_id):
	return f"PDATA-{guild_id}-{user_id}"


def _to_system_datetime(value):
	"""Frappe stores naive datetimes in the system timezone."""
	if value is not None and value.tzinfo is not None:
		return convert_utc_to_system_timezone(value).replace(tzinfo=None)
	return value


class FrappePlayerStore(PlayerStore):

	def __init__(self, health: Optional[HealthStatus] = None, lock_manager: Optional[PlayerLockManager] = None):
		self.health = health
		self._lock_manager = lock_manager

	@property
	def lock_manager(self) -> PlayerLockManager:
		if self._lock_manager is None:
			from pop_tracker.config import get_int_setting

			self._lock_manager = PlayerLockManager(
				timeout_seconds=get_int_setting("pop_tracker_lock_timeout"),
				wait_seconds=get_int_setting("pop_tracker_lock_wait"),
			)
		return self._lock_manager

	@contextmanager
	def _operation(self, name, write=False):
		try:
			yield
			if write:
				frappe.db.commit()
		except StoreUnavailableError:
			raise
		except Exception as e:
			if write:
				frappe.db.rollback()
			frappe.log_error(
				message=f"{name} failed: {str(e)}",
				title="PoP Tracker Store Error"
			)
			if self.health is not None:
				self.health.record_store_failure(e)
			raise StoreUnavailableError(name) from e

		if self.health is not None:
			self.health.record_store_success()

	def player_lock(self, user_id, guild_id):
		return self.lock_manager.hold(user_id, guild_id)

	def get_flags(self, user_id, guild_id) -> Dict[str, FlagStatus]:
		with self._operation("get_flags"):
			rows = frappe.get_all(
				FLAG_DOCTYPE,
				filters={"user_id": user_id, "guild_id": guild_id},
				fields=["flag_key", "completed", "completed_at"],
			)

		return {
			row.flag_key: FlagStatus(completed=bool(row.completed), completed_at=row.completed_at)
			for row in rows
		}

	def set_flag(self, user_id, guild_id, flag_key, completed, completed_at=None) -> bool:
		timestamp = now_datetime()
		if completed:
			completed_at = _to_system_datetime(completed_at) or timestamp
		else:
			completed_at = None

		name = get_flag_doc_name(user_id, guild_id, flag_key)

		with self._operation("set_flag", write=True):
			if frappe.db.exists(FLAG_DOCTYPE, name):
				frappe.db.set_value(FLAG_DOCTYPE, name, {
					"completed": 1 if completed else 0,
					"completed_at": completed_at,
				})
			else:
				frappe.get_doc({
					"doctype": FLAG_DOCTYPE,
					"user_id": user_id,
					"guild_id": guild_id,
					"flag_key": flag_key,
					"completed": 1 if completed else 0,
					"completed_at": completed_at,
				}).insert(ignore_permissions=True, set_name=name)

			self._touch_player(user_id, guild_id, timestamp)

		frappe.logger().info(f"Flag {flag_key} set to {completed} for {user_id} in {guild_id}")
		return True

	def delete_flags_except(self, user_id, guild_id, keep_keys: Iterable[str]) -> bool:
		keep_keys = list(keep_keys)
		filters = {"user_id": user_id, "guild_id": guild_id}
		if keep_keys:
			filters["flag_key"] = ("not in", keep_keys)

		with self._operation("delete_flags_except", write=True):
			frappe.db.delete(FLAG_DOCTYPE, filters)
			self._touch_player(user_id, guild_id, now_datetime())

		frappe.logger().info(f"Flags reset for {user_id} in {guild_id}, kept {keep_keys}")
		return True

	def upsert_player(self, user_id, guild_id, display_name) -> bool:
		name = get_player_doc_name(user_id, guild_id)

		with self._operation("upsert_player", write=True):
			if not frappe.db.exists(PLAYER_DOCTYPE, name):
				try:
					frappe.get_doc({
						"doctype": PLAYER_DOCTYPE,
						"user_id": user_id,
						"guild_id": guild_id,
						"display_name": display_name,
						"last_updated": now_datetime(),
					}).insert(ignore_permissions=True, set_name=name)
					created = True
				except frappe.DuplicateEntryError:
					# Created by a concurrent request for the same player
					frappe.db.rollback()
					created = False
			else:
				current_name = frappe.db.get_value(PLAYER_DOCTYPE, name, "display_name")
				if display_name and current_name != display_name:
					frappe.db.set_value(PLAYER_DOCTYPE, name, {
						"display_name": display_name,
						"last_updated": now_datetime(),
					})
				created = False

		return created

	def list_players(self, guild_id) -> List[Dict]:
		with self._operation("list_players"):
			return frappe.get_all(
				PLAYER_DOCTYPE,
				filters={"guild_id": guild_id},
				fields=["user_id", "display_name", "last_updated"],
				order_by="creation asc",
			)

	def get_flags_for_guild(self, guild_id, only_completed=True) -> List[Tuple[str, str]]:
		filters = {"guild_id": guild_id}
		if only_completed:
			filters["completed"] = 1

		with self._operation("get_flags_for_guild"):
			rows = frappe.get_all(
				FLAG_DOCTYPE,
				filters=filters,
				fields=["user_id", "flag_key"],
				order_by="creation asc",
			)

		return [(row.user_id, row.flag_key) for row in rows]

	def get_last_updated(self, user_id, guild_id):
		with self._operation("get_last_updated"):
			return frappe.db.get_value(PLAYER_DOCTYPE, get_player_doc_name(user_id, guild_id), "last_updated")

	def _touch_player(self, user_id, guild_id, timestamp):
		name = get_player_doc_name(user_id, guild_id)
		if frappe.db.exists(PLAYER_DOCTYPE, name):
			frappe.db.set_value(PLAYER_DOCTYPE, name, "last_updated", timestamp)

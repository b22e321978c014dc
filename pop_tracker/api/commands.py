"""
Command API - Whitelisted endpoints called by the chat gateway.

Each endpoint mirrors one chat command. The gateway forwards who invoked the
command, the guild it came from, and the optional target player; the reply
is a dict the gateway renders (content, embeds, followup, deferred).

Store failures are answered with a generic retry message by the dispatcher;
only malformed requests raise frappe.ValidationError.
"""

import frappe
from frappe import _
from typing import Any, Dict, Optional

import redis

from pop_tracker.config import get_int_setting
from pop_tracker.services.dispatcher import (
	CMD_GUILD_PROGRESS,
	CMD_HELP,
	CMD_NEXT_STEPS,
	CMD_PROGRESS,
	CMD_RESET_FLAGS,
	CMD_TRACK_FLAG,
	CommandContext,
	CommandDispatcher,
)
from pop_tracker.services.health_status import HealthStatus
from pop_tracker.services.player_lock import PlayerLockManager
from pop_tracker.services.player_store import FrappePlayerStore
from pop_tracker.services.progression.errors import UnknownCommandError


@frappe.whitelist()
def run_command(
	command: str,
	invoker_id: str,
	guild_id: Optional[str] = None,
	player_id: Optional[str] = None,
	display_name: Optional[str] = None,
	guild_name: Optional[str] = None,
	flag: Optional[str] = None,
) -> Dict[str, Any]:
	"""Run any chat command by name.

	Args:
		command: Command name, e.g. 'pop-trackflag'
		invoker_id: Chat user ID of whoever ran the command
		guild_id: Guild (server) ID; empty for direct messages
		player_id: Target player ID (defaults to the invoker)
		display_name: Last seen display name of the target player
		guild_name: Guild name used in the leaderboard title
		flag: Flag key for pop-trackflag

	Returns:
		Reply dict with content, embeds, followup, deferred and degraded keys

	Raises:
		frappe.ValidationError: If the command or invoker is missing or unknown
	"""
	if not command:
		frappe.throw(_("Command is required"), exc=frappe.ValidationError)

	if not invoker_id or not isinstance(invoker_id, str):
		frappe.throw(_("Invoker ID is required"), exc=frappe.ValidationError)

	context = CommandContext(
		invoker_id=invoker_id,
		guild_id=guild_id,
		target_id=player_id,
		display_name=display_name,
		guild_name=guild_name,
	)
	options = {"flag": flag} if flag else {}

	lock_manager = PlayerLockManager(
		timeout_seconds=get_int_setting("pop_tracker_lock_timeout"),
		wait_seconds=get_int_setting("pop_tracker_lock_wait"),
	)
	health = _load_health(lock_manager.redis)
	store = FrappePlayerStore(health=health, lock_manager=lock_manager)
	dispatcher = CommandDispatcher(
		store,
		health=health,
		leaderboard_size=get_int_setting("pop_tracker_leaderboard_size"),
	)

	try:
		reply = dispatcher.dispatch(command, context, options)
	except UnknownCommandError:
		frappe.throw(_("Unknown command: {0}").format(command), exc=frappe.ValidationError)

	_save_health(health, lock_manager.redis)
	return reply.to_dict()


@frappe.whitelist()
def track_flag(flag: str, invoker_id: str, guild_id=None, player_id=None, display_name=None) -> Dict[str, Any]:
	"""Mark a flag as completed for the invoker or another player."""
	return run_command(CMD_TRACK_FLAG, invoker_id, guild_id, player_id, display_name, flag=flag)


@frappe.whitelist()
def reset_flags(invoker_id: str, guild_id=None, display_name=None) -> Dict[str, Any]:
	"""Reset the invoker's own flags back to the root flag."""
	return run_command(CMD_RESET_FLAGS, invoker_id, guild_id, display_name=display_name)


@frappe.whitelist()
def get_progress(invoker_id: str, guild_id=None, player_id=None, display_name=None) -> Dict[str, Any]:
	"""Per-category progress of a player."""
	return run_command(CMD_PROGRESS, invoker_id, guild_id, player_id, display_name)


@frappe.whitelist()
def get_next_steps(invoker_id: str, guild_id=None, player_id=None, display_name=None) -> Dict[str, Any]:
	"""Flags the player can complete next."""
	return run_command(CMD_NEXT_STEPS, invoker_id, guild_id, player_id, display_name)


@frappe.whitelist()
def get_guild_progress(invoker_id: str, guild_id=None, guild_name=None) -> Dict[str, Any]:
	"""Leaderboard of every tracked player in the guild."""
	return run_command(CMD_GUILD_PROGRESS, invoker_id, guild_id, guild_name=guild_name)


@frappe.whitelist(allow_guest=True)
def get_help() -> Dict[str, Any]:
	"""Command reference text."""
	return CommandDispatcher(store=None).help().to_dict()


@frappe.whitelist()
def get_command_definitions():
	"""Slash command registration payload, flag choices included."""
	return CommandDispatcher(store=None).command_definitions()


def _load_health(redis_client) -> HealthStatus:
	try:
		return HealthStatus.load(redis_client)
	except redis.exceptions.RedisError as e:
		frappe.log_error(
			message=f"Failed to load health status: {str(e)}",
			title="PoP Tracker Health"
		)
		return HealthStatus()


def _save_health(health: HealthStatus, redis_client) -> None:
	try:
		health.save(redis_client, fields=HealthStatus.STORE_FIELDS)
	except redis.exceptions.RedisError as e:
		frappe.log_error(
			message=f"Failed to save health status: {str(e)}",
			title="PoP Tracker Health"
		)

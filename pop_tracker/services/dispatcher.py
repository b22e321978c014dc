"""
Command Dispatcher

Maps the chat commands onto progression engine calls and formats the
results. The dispatcher holds no Frappe references: it talks to persistence
only through a PlayerStore, so the whitelisted API passes a FrappePlayerStore
and tests pass an in-memory one.

Commands:
    - pop-trackflag: complete a flag for the invoker or another player
    - pop-resetflags: reset the invoker's own flags
    - pop-progress: per-category progress of a player
    - pop-nextsteps: flags a player can complete next
    - pop-guildprogress: guild leaderboard
    - pop-help: command reference
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from pop_tracker.services import formatters
from pop_tracker.services.formatters import CommandReply
from pop_tracker.services.health_status import HealthStatus
from pop_tracker.services.progression import engine
from pop_tracker.services.progression.aggregation import DEFAULT_LEADERBOARD_SIZE, summarize_guild
from pop_tracker.services.progression.catalog import POP_CATEGORIES, FlagCatalog, get_catalog
from pop_tracker.services.progression.errors import (
	MissingDependenciesError,
	StoreUnavailableError,
	UnknownCommandError,
	UnknownFlagError,
)
from pop_tracker.services.progression.store import PlayerStore

logger = logging.getLogger(__name__)

CMD_TRACK_FLAG = "pop-trackflag"
CMD_RESET_FLAGS = "pop-resetflags"
CMD_PROGRESS = "pop-progress"
CMD_NEXT_STEPS = "pop-nextsteps"
CMD_GUILD_PROGRESS = "pop-guildprogress"
CMD_HELP = "pop-help"

# Replies the gateway should defer before answering
DEFERRED_COMMANDS = {CMD_PROGRESS, CMD_NEXT_STEPS, CMD_GUILD_PROGRESS}
# Commands whose player bootstrap failure aborts the command
WRITE_COMMANDS = {CMD_TRACK_FLAG, CMD_RESET_FLAGS}

DM_GUILD_ID = "dm"

# Discord application command option types
OPTION_STRING = 3
OPTION_USER = 6


@dataclass
class CommandContext:
	"""Who asked, about whom, and where."""

	invoker_id: str
	guild_id: Optional[str] = None
	target_id: Optional[str] = None
	display_name: Optional[str] = None
	guild_name: Optional[str] = None

	def __post_init__(self):
		if not self.guild_id:
			self.guild_id = DM_GUILD_ID

	@property
	def user_id(self) -> str:
		return self.target_id or self.invoker_id

	@property
	def in_guild(self) -> bool:
		return self.guild_id != DM_GUILD_ID

	@property
	def is_self(self) -> bool:
		return self.user_id == self.invoker_id

	@property
	def name(self) -> str:
		return self.display_name or self.user_id


class CommandDispatcher:

	def __init__(
		self,
		store: PlayerStore,
		catalog: Optional[FlagCatalog] = None,
		categories: Optional[Mapping[str, List[str]]] = None,
		health: Optional[HealthStatus] = None,
		leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE,
	):
		self.store = store
		self.catalog = catalog if catalog is not None else get_catalog()
		self.categories = categories if categories is not None else POP_CATEGORIES
		self.health = health
		self.leaderboard_size = leaderboard_size

		self._handlers: Dict[str, Callable[[CommandContext, Mapping[str, Any]], CommandReply]] = {
			CMD_TRACK_FLAG: lambda context, options: self.track_flag(context, options.get("flag")),
			CMD_RESET_FLAGS: lambda context, options: self.reset_flags(context),
			CMD_PROGRESS: lambda context, options: self.progress(context),
			CMD_NEXT_STEPS: lambda context, options: self.next_steps(context),
			CMD_GUILD_PROGRESS: lambda context, options: self.guild_progress(context),
			CMD_HELP: lambda context, options: self.help(context),
		}

	@property
	def command_names(self) -> List[str]:
		return list(self._handlers)

	def dispatch(self, command_name: str, context: CommandContext, options: Optional[Mapping[str, Any]] = None) -> CommandReply:
		"""Run one command and return the reply to send.

		Store failures never escape: they are recorded on the health status and
		answered with a generic try-again message.

		Raises:
			UnknownCommandError: If command_name is not a known command
		"""
		handler = self._handlers.get(command_name)
		if handler is None:
			raise UnknownCommandError(command_name)

		logger.debug(f"Dispatching {command_name} for user={context.user_id}, guild={context.guild_id}")

		try:
			if context.in_guild and command_name != CMD_HELP:
				self._ensure_player(context, required=command_name in WRITE_COMMANDS)
			reply = handler(context, options or {})
		except StoreUnavailableError as e:
			self._record_store_failure(e)
			logger.error(f"{command_name} failed for user={context.user_id}: {e}")
			reply = CommandReply(content=formatters.store_unavailable_message())

		reply.deferred = command_name in DEFERRED_COMMANDS
		return reply

	def track_flag(self, context: CommandContext, flag_key: Optional[str]) -> CommandReply:
		flag = self.catalog.get(flag_key) if flag_key else None
		if flag is None:
			return CommandReply(content=formatters.invalid_flag_message())

		try:
			with self.store.player_lock(context.user_id, context.guild_id):
				flags = self._read_flags(context)
				result = engine.complete_flag(flag.key, flags, self.catalog)
				if result.newly_completed:
					self.store.set_flag(context.user_id, context.guild_id, flag.key, True, result.completed_at)
		except UnknownFlagError:
			return CommandReply(content=formatters.invalid_flag_message())
		except MissingDependenciesError as e:
			missing = [self.catalog.get(key) for key in e.missing]
			return CommandReply(content=formatters.missing_requirements_message(missing))

		if result.newly_completed:
			logger.info(f"{context.user_id} completed {flag.key} in {context.guild_id}")

		reply = CommandReply(content=formatters.flag_completed_message(context.name, flag))
		if result.newly_completed and flag.key == self.catalog.terminal_key:
			reply.followup = formatters.terminal_congratulation(context.name)
		return reply

	def reset_flags(self, context: CommandContext) -> CommandReply:
		if not context.is_self:
			return CommandReply(content=formatters.reset_denied_message())

		with self.store.player_lock(context.user_id, context.guild_id):
			target = engine.reset_flags(catalog=self.catalog)
			self.store.delete_flags_except(context.user_id, context.guild_id, list(target))
			stored = self.store.get_flags(context.user_id, context.guild_id)
			for key in target:
				status = stored.get(key)
				if status is None or not status.completed:
					self.store.set_flag(context.user_id, context.guild_id, key, True)

		logger.info(f"{context.user_id} reset flags in {context.guild_id}")
		return CommandReply(content=formatters.reset_done_message(self.catalog.root))

	def progress(self, context: CommandContext) -> CommandReply:
		flags, degraded = self._read_flags_or_default(context)
		last_updated = None if degraded else self.store.get_last_updated(context.user_id, context.guild_id)

		embed = formatters.progress_embed(context.name, flags, self.catalog, self.categories, last_updated)
		return CommandReply(
			content=formatters.degraded_notice() if degraded else None,
			embed=embed,
			degraded=degraded,
		)

	def next_steps(self, context: CommandContext) -> CommandReply:
		flags, degraded = self._read_flags_or_default(context)
		available = engine.next_available(flags, self.catalog)

		if not available:
			if engine.is_terminal_complete(flags, self.catalog):
				return CommandReply(content=formatters.all_complete_message(), degraded=degraded)
			return CommandReply(content=formatters.none_available_message(), degraded=degraded)

		return CommandReply(
			content=formatters.degraded_notice() if degraded else None,
			embed=formatters.next_steps_embed(context.name, available, _now()),
			degraded=degraded,
		)

	def guild_progress(self, context: CommandContext) -> CommandReply:
		if not context.in_guild:
			return CommandReply(content=formatters.guild_only_message())

		progress = summarize_guild(self.store.load_guild_records(context.guild_id), self.catalog)
		if not progress.players:
			return CommandReply(content=formatters.empty_guild_message())

		embed = formatters.guild_progress_embed(
			context.guild_name or context.guild_id,
			progress,
			self.leaderboard_size,
			_now(),
		)
		return CommandReply(embed=embed)

	def help(self, context: Optional[CommandContext] = None) -> CommandReply:
		return CommandReply(content=formatters.HELP_TEXT)

	def command_definitions(self) -> List[Dict[str, Any]]:
		"""Registration payload for the gateway's slash commands."""
		player_option = {
			"type": OPTION_USER,
			"name": "player",
			"required": False,
		}
		flag_choices = [{"name": flag.name, "value": flag.key} for flag in self.catalog]

		return [
			{
				"name": CMD_TRACK_FLAG,
				"description": "Mark a PoP flag as completed",
				"options": [
					{
						"type": OPTION_STRING,
						"name": "flag",
						"description": "The flag to mark as completed",
						"required": True,
						"choices": flag_choices,
					},
					dict(player_option, description="The player to update (defaults to you)"),
				],
			},
			{"name": CMD_RESET_FLAGS, "description": "Reset all your PoP flags", "options": []},
			{
				"name": CMD_PROGRESS,
				"description": "View your PoP flag progress",
				"options": [dict(player_option, description="The player to check (defaults to you)")],
			},
			{
				"name": CMD_NEXT_STEPS,
				"description": "See what flags you need to work on next",
				"options": [dict(player_option, description="The player to check (defaults to you)")],
			},
			{"name": CMD_GUILD_PROGRESS, "description": "View server-wide progression through PoP content", "options": []},
			{"name": CMD_HELP, "description": "View commands for this bot.", "options": []},
		]

	def _ensure_player(self, context: CommandContext, required: bool) -> None:
		"""Create the player record on first interaction and make sure it holds the root flag.

		The root is re-seeded whenever it is missing, so a seed write that failed
		on an earlier command is repaired by the next one.
		"""
		try:
			created = self.store.upsert_player(context.user_id, context.guild_id, context.name)
			if created or not self._has_stored_root(context):
				self.store.set_flag(context.user_id, context.guild_id, self.catalog.root_key, True)
				if created:
					logger.info(f"Tracking new player {context.user_id} in {context.guild_id}")
				else:
					logger.warning(f"Restored missing root flag for {context.user_id} in {context.guild_id}")
		except StoreUnavailableError as e:
			if required:
				raise
			self._record_store_failure(e)
			logger.warning(f"Could not refresh player {context.user_id}: {e}")

	def _has_stored_root(self, context: CommandContext) -> bool:
		status = self.store.get_flags(context.user_id, context.guild_id).get(self.catalog.root_key)
		return status is not None and status.completed

	def _read_flags(self, context: CommandContext) -> Dict[str, bool]:
		stored = self.store.get_flags(context.user_id, context.guild_id)
		flags = {key: status.completed for key, status in stored.items()}
		return engine.with_root(flags, self.catalog)

	def _read_flags_or_default(self, context: CommandContext):
		"""Player flags, or the root-only map when the store cannot be read."""
		try:
			return self._read_flags(context), False
		except StoreUnavailableError as e:
			self._record_store_failure(e)
			logger.warning(f"Showing default progress for {context.user_id}: {e}")
			return engine.reset_flags(catalog=self.catalog), True

	def _record_store_failure(self, error: Exception) -> None:
		if self.health is not None:
			self.health.record_store_failure(error)


def _now() -> datetime:
	return datetime.now(timezone.utc)

"""
Reply formatting for the command dispatcher.

Replies are plain dicts shaped like chat embeds (title, description, color,
fields, footer, timestamp) so the external gateway can render them without
knowing anything about flags.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pop_tracker.services.progression import engine
from pop_tracker.services.progression.aggregation import GuildProgress
from pop_tracker.services.progression.catalog import FlagCatalog, FlagDefinition

PROGRESS_COLOR = 0x0099FF
NEXT_STEPS_COLOR = 0x00FF00
GUILD_PROGRESS_COLOR = 0x7289DA

COMPLETED_MARK = "✅"
INCOMPLETE_MARK = "❌"
SLAYER_MARK = " 👑"

HELP_TEXT = """
* /pop-help - Shows the following commands
* /pop-trackflag flag:[flag name] player:[optional] - Mark a flag as completed for you or another player.
* /pop-resetflags - Reset all your PoP flags (only works on yourself).
* /pop-progress player:[optional] - View your or another player's progress through PoP.
* /pop-nextsteps player:[optional] - See what flags are available to complete next.
* /pop-guildprogress - See the progess percentage of each guild player.
"""


@dataclass
class CommandReply:
	content: Optional[str] = None
	embed: Optional[Dict[str, Any]] = None
	followup: Optional[str] = None
	deferred: bool = False
	degraded: bool = False

	def to_dict(self) -> Dict[str, Any]:
		return {
			"content": self.content,
			"embeds": [self.embed] if self.embed else [],
			"followup": self.followup,
			"deferred": self.deferred,
			"degraded": self.degraded,
		}


@dataclass
class Embed:
	title: str
	description: str = ""
	color: int = PROGRESS_COLOR
	fields: List[Dict[str, Any]] = field(default_factory=list)
	footer: Optional[str] = None
	timestamp: Optional[datetime] = None

	def add_field(self, name: str, value: str, inline: bool = False) -> "Embed":
		self.fields.append({"name": name, "value": value, "inline": inline})
		return self

	def to_dict(self) -> Dict[str, Any]:
		data = {
			"title": self.title,
			"description": self.description,
			"color": self.color,
			"fields": self.fields,
		}
		if self.footer:
			data["footer"] = {"text": self.footer}
		if self.timestamp:
			data["timestamp"] = self.timestamp.isoformat()
		return data


def flag_completed_message(display_name: str, flag: FlagDefinition) -> str:
	return f"{COMPLETED_MARK} {display_name} has completed the flag: {flag.name}"


def terminal_congratulation(display_name: str) -> str:
	return (
		f"🎉 **CONGRATULATIONS!** {display_name} has completed the full Planes of Power "
		f"progression and defeated Quarm!"
	)


def invalid_flag_message() -> str:
	return "Invalid flag specified."


def missing_requirements_message(missing: List[FlagDefinition]) -> str:
	names = ", ".join(flag.name for flag in missing)
	return f"Cannot complete this flag yet. Missing requirements: {names}"


def reset_denied_message() -> str:
	return "You can only reset your own flags."


def reset_done_message(root: FlagDefinition) -> str:
	return f"Your PoP flags have been reset. You now only have access to the {root.name}."


def store_unavailable_message() -> str:
	return "Progress data is unavailable right now. Please try again in a few minutes."


def degraded_notice() -> str:
	return "⚠️ Stored progress could not be loaded; showing starting progress only."


def all_complete_message() -> str:
	return "🎉 You have completed all Planes of Power content including Quarm!"


def none_available_message() -> str:
	return (
		"No flags are currently available. Check your progress to see what "
		"requirements you need to meet first."
	)


def guild_only_message() -> str:
	return "This command can only be used in a server."


def empty_guild_message() -> str:
	return "No players in this server have tracked any PoP flags yet."


def progress_footer(player_flags: Mapping[str, bool], catalog: FlagCatalog) -> str:
	completed = engine.completed_count(player_flags, catalog)
	percentage = engine.completion_percentage(player_flags, catalog)
	return f"Overall Progress: {percentage}% ({completed}/{len(catalog)})"


def progress_embed(
	display_name: str,
	player_flags: Mapping[str, bool],
	catalog: FlagCatalog,
	categories: Mapping[str, List[str]],
	last_updated: Optional[datetime] = None,
) -> Dict[str, Any]:
	embed = Embed(
		title=f"{display_name}'s Planes of Power Progress",
		description="Flag progression towards Plane of Time",
		color=PROGRESS_COLOR,
		footer=progress_footer(player_flags, catalog),
		timestamp=last_updated,
	)

	for category, keys in categories.items():
		lines = []
		for key in keys:
			mark = COMPLETED_MARK if player_flags.get(key) else INCOMPLETE_MARK
			lines.append(f"{mark} {catalog.get(key).name}")
		embed.add_field(category, "\n".join(lines))

	return embed.to_dict()


def next_steps_embed(display_name: str, available: List[FlagDefinition], now: Optional[datetime] = None) -> Dict[str, Any]:
	lines = [f"- **{flag.name}**: {flag.description}" for flag in available]
	return Embed(
		title=f"{display_name}'s Next Available Flags",
		description="\n".join(lines),
		color=NEXT_STEPS_COLOR,
		timestamp=now,
	).to_dict()


def leaderboard_lines(progress: GuildProgress, limit: int) -> List[str]:
	lines = []
	for index, player in enumerate(progress.top(limit), start=1):
		percentage = player.percentage(progress.total_flags)
		crown = SLAYER_MARK if player.quarm_defeated else ""
		lines.append(
			f"{index}. **{player.display_name}**{crown}: "
			f"{percentage}% ({player.flags_completed}/{progress.total_flags})"
		)
	return lines


def guild_progress_embed(
	guild_name: str,
	progress: GuildProgress,
	limit: int,
	now: Optional[datetime] = None,
) -> Dict[str, Any]:
	embed = Embed(
		title=f"{guild_name} - Planes of Power Progress",
		description=(
			f"Total Players Tracking: {progress.player_count} | "
			f"Quarm Slayers: {progress.quarm_slayer_count}"
		),
		color=GUILD_PROGRESS_COLOR,
		timestamp=now,
	)
	embed.add_field("Top Players", "\n".join(leaderboard_lines(progress, limit)) or "No data available")
	return embed.to_dict()

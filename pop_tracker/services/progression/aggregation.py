"""Guild-wide progress aggregation.

Combines per-player engine results into a ranking sorted by completed flag
count. Python's sort is stable, so players with the same count keep the
order in which the store returned them.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from pop_tracker.services.progression import engine
from pop_tracker.services.progression.catalog import FlagCatalog, get_catalog
from pop_tracker.services.progression.models import PlayerFlagRecord

logger = logging.getLogger(__name__)

DEFAULT_LEADERBOARD_SIZE = 10


@dataclass(frozen=True)
class PlayerProgressSummary:
	user_id: str
	display_name: str
	flags_completed: int
	quarm_defeated: bool
	last_updated: Optional[datetime] = None

	def percentage(self, total_flags: int) -> int:
		return self.flags_completed * 100 // total_flags if total_flags else 0


@dataclass
class GuildProgress:
	players: List[PlayerProgressSummary] = field(default_factory=list)
	quarm_slayer_count: int = 0
	total_flags: int = 0

	@property
	def player_count(self) -> int:
		return len(self.players)

	def top(self, limit: int = DEFAULT_LEADERBOARD_SIZE) -> List[PlayerProgressSummary]:
		return self.players[:limit]


def summarize_player(record: PlayerFlagRecord, catalog: Optional[FlagCatalog] = None) -> PlayerProgressSummary:
	"""Project one player record onto its leaderboard summary.

	A player without any stored flags still holds the root flag.
	"""
	catalog = catalog if catalog is not None else get_catalog()
	flags = engine.with_root(record.flag_map(), catalog)

	return PlayerProgressSummary(
		user_id=record.user_id,
		display_name=record.display_name or record.user_id,
		flags_completed=engine.completed_count(flags, catalog),
		quarm_defeated=engine.is_terminal_complete(flags, catalog),
		last_updated=record.last_updated,
	)


def summarize_guild(records: Iterable[PlayerFlagRecord], catalog: Optional[FlagCatalog] = None) -> GuildProgress:
	"""Rank every tracked player of a guild by completed flags, descending.

	Args:
		records: Player records of a single guild, in store order
		catalog: Flag catalog (defaults to the app catalog)

	Returns:
		GuildProgress; empty players list when nobody is tracked
	"""
	catalog = catalog if catalog is not None else get_catalog()
	summaries = [summarize_player(record, catalog) for record in records]
	summaries.sort(key=lambda summary: summary.flags_completed, reverse=True)

	slayers = sum(1 for summary in summaries if summary.quarm_defeated)
	logger.debug(f"Summarized {len(summaries)} players, {slayers} with the terminal flag")

	return GuildProgress(players=summaries, quarm_slayer_count=slayers, total_flags=len(catalog))

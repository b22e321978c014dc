"""Player store interface.

The progression engine is pure; everything it needs from persistence goes
through this interface. Concrete stores raise StoreUnavailableError for any
backend failure and serialize read-modify-write sequences per player through
player_lock().
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime
from typing import ContextManager, Dict, Iterable, List, Optional, Tuple

from pop_tracker.services.progression.models import FlagStatus, PlayerFlagRecord


class PlayerStore(ABC):

	@abstractmethod
	def get_flags(self, user_id: str, guild_id: str) -> Dict[str, FlagStatus]:
		"""All stored flag rows of a player, keyed by flag key."""

	@abstractmethod
	def set_flag(
		self,
		user_id: str,
		guild_id: str,
		flag_key: str,
		completed: bool,
		completed_at: Optional[datetime] = None,
	) -> bool:
		"""Insert or update one flag row and touch the player's last_updated."""

	@abstractmethod
	def delete_flags_except(self, user_id: str, guild_id: str, keep_keys: Iterable[str]) -> bool:
		"""Delete every flag row of a player except keep_keys."""

	@abstractmethod
	def upsert_player(self, user_id: str, guild_id: str, display_name: str) -> bool:
		"""Create the player metadata row or refresh its display name.

		Returns:
			True if the player was created by this call
		"""

	@abstractmethod
	def list_players(self, guild_id: str) -> List[Dict]:
		"""Player metadata rows of a guild: user_id, display_name, last_updated."""

	@abstractmethod
	def get_flags_for_guild(self, guild_id: str, only_completed: bool = True) -> List[Tuple[str, str]]:
		"""(user_id, flag_key) pairs for every flag row in the guild."""

	@abstractmethod
	def get_last_updated(self, user_id: str, guild_id: str) -> Optional[datetime]:
		"""Timestamp of the player's most recent mutation."""

	@abstractmethod
	def player_lock(self, user_id: str, guild_id: str) -> ContextManager:
		"""Context manager holding the per-player write lock."""

	def load_player_record(self, user_id: str, guild_id: str, display_name: str = "") -> PlayerFlagRecord:
		return PlayerFlagRecord(
			user_id=user_id,
			guild_id=guild_id,
			display_name=display_name,
			flags=self.get_flags(user_id, guild_id),
			last_updated=self.get_last_updated(user_id, guild_id),
		)

	def load_guild_records(self, guild_id: str) -> List[PlayerFlagRecord]:
		"""Every tracked player of a guild with their completed flags, in store order."""
		players = self.list_players(guild_id)
		flags_by_user: Dict[str, Dict[str, FlagStatus]] = defaultdict(dict)

		for user_id, flag_key in self.get_flags_for_guild(guild_id, only_completed=True):
			flags_by_user[user_id][flag_key] = FlagStatus(completed=True)

		return [
			PlayerFlagRecord(
				user_id=player["user_id"],
				guild_id=guild_id,
				display_name=player.get("display_name") or "",
				flags=flags_by_user.get(player["user_id"], {}),
				last_updated=player.get("last_updated"),
			)
			for player in players
		]

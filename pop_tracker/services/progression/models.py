"""Player flag state records shared by the engine, the store and the dispatcher."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


@dataclass
class FlagStatus:
	completed: bool
	completed_at: Optional[datetime] = None


@dataclass
class PlayerFlagRecord:
	"""Progress of one player inside one guild."""

	user_id: str
	guild_id: str
	display_name: str = ""
	flags: Dict[str, FlagStatus] = field(default_factory=dict)
	last_updated: Optional[datetime] = None

	def flag_map(self) -> Dict[str, bool]:
		"""Flatten to the key -> completed mapping the engine works on."""
		return {key: status.completed for key, status in self.flags.items()}

	def completed_keys(self) -> List[str]:
		return [key for key, status in self.flags.items() if status.completed]

"""
Central registry of all PoP Tracker DocType definitions, in creation order.
"""

from pop_tracker.services.schema.definitions.player_doctypes import PLAYER_DOCTYPE_DEFINITIONS

DOCTYPE_DEFINITIONS = [
	*PLAYER_DOCTYPE_DEFINITIONS,
]

__all__ = ["DOCTYPE_DEFINITIONS"]

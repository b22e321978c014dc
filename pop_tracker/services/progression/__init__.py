"""
Progression Service Module

Flag catalog, progression engine and guild aggregation. Nothing in this
package imports Frappe; persistence is reached through the PlayerStore
interface.

Services:
    - catalog: validated flag definitions and dependency graph
    - engine: eligibility, completion, reset and percentage rules
    - aggregation: guild-wide ranking
    - store: player store interface
"""

from pop_tracker.services.progression.catalog import (
	FlagCatalog,
	FlagDefinition,
	POP_CATALOG,
	POP_CATEGORIES,
	get_catalog,
)
from pop_tracker.services.progression.engine import (
	CompletionResult,
	FlagState,
	complete_flag,
	completed_count,
	completion_percentage,
	flag_state,
	is_eligible,
	is_terminal_complete,
	missing_dependencies,
	next_available,
	reset_flags,
	with_root,
)
from pop_tracker.services.progression.aggregation import (
	GuildProgress,
	PlayerProgressSummary,
	summarize_guild,
)
from pop_tracker.services.progression.errors import (
	InvalidCatalogError,
	MissingDependenciesError,
	ProgressionError,
	StoreUnavailableError,
	UnknownCommandError,
	UnknownFlagError,
)
from pop_tracker.services.progression.models import FlagStatus, PlayerFlagRecord
from pop_tracker.services.progression.store import PlayerStore

__all__ = [
	"FlagCatalog",
	"FlagDefinition",
	"POP_CATALOG",
	"POP_CATEGORIES",
	"get_catalog",
	"CompletionResult",
	"FlagState",
	"complete_flag",
	"completed_count",
	"completion_percentage",
	"flag_state",
	"is_eligible",
	"is_terminal_complete",
	"missing_dependencies",
	"next_available",
	"reset_flags",
	"with_root",
	"GuildProgress",
	"PlayerProgressSummary",
	"summarize_guild",
	"InvalidCatalogError",
	"MissingDependenciesError",
	"ProgressionError",
	"StoreUnavailableError",
	"UnknownCommandError",
	"UnknownFlagError",
	"FlagStatus",
	"PlayerFlagRecord",
	"PlayerStore",
]

"""Progression engine.

Pure functions over a catalog and a single player's flag map
(flag key -> completed). Keys absent from the map count as not completed.
Nothing here touches the store; callers read the flags, call the engine and
write back what the engine returns.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Mapping, Optional

from pop_tracker.services.progression.catalog import FlagCatalog, FlagDefinition, get_catalog
from pop_tracker.services.progression.errors import MissingDependenciesError, UnknownFlagError

logger = logging.getLogger(__name__)


class FlagState(Enum):
	NOT_ELIGIBLE = "not_eligible"
	ELIGIBLE = "eligible"
	COMPLETED = "completed"


@dataclass(frozen=True)
class CompletionResult:
	"""Outcome of a successful complete_flag call.

	newly_completed is True only for the call that moved the flag from
	incomplete to complete; completed_at is set only in that case.
	"""

	flag_key: str
	flags: Dict[str, bool]
	completed_at: Optional[datetime]
	newly_completed: bool


def _catalog(catalog: Optional[FlagCatalog]) -> FlagCatalog:
	return catalog if catalog is not None else get_catalog()


def _is_completed(player_flags: Mapping[str, bool], key: str) -> bool:
	return bool(player_flags.get(key, False))


def missing_dependencies(
	flag_key: str,
	player_flags: Mapping[str, bool],
	catalog: Optional[FlagCatalog] = None,
) -> List[str]:
	"""Direct dependencies of flag_key that are not completed, in definition order.

	Raises:
		UnknownFlagError: If flag_key is not in the catalog
	"""
	dependencies = _catalog(catalog).dependencies_of(flag_key)
	return [dep for dep in dependencies if not _is_completed(player_flags, dep)]


def is_eligible(
	flag_key: str,
	player_flags: Mapping[str, bool],
	catalog: Optional[FlagCatalog] = None,
) -> bool:
	catalog = _catalog(catalog)
	if flag_key not in catalog:
		return False
	if _is_completed(player_flags, flag_key):
		return False
	return not missing_dependencies(flag_key, player_flags, catalog)


def flag_state(
	flag_key: str,
	player_flags: Mapping[str, bool],
	catalog: Optional[FlagCatalog] = None,
) -> FlagState:
	catalog = _catalog(catalog)
	if flag_key not in catalog:
		raise UnknownFlagError(flag_key)
	if _is_completed(player_flags, flag_key):
		return FlagState.COMPLETED
	if missing_dependencies(flag_key, player_flags, catalog):
		return FlagState.NOT_ELIGIBLE
	return FlagState.ELIGIBLE


def complete_flag(
	flag_key: str,
	player_flags: Mapping[str, bool],
	catalog: Optional[FlagCatalog] = None,
	now: Optional[datetime] = None,
) -> CompletionResult:
	"""Mark flag_key as completed if every direct dependency is completed.

	The input mapping is never modified; the updated map is returned on the
	result. Completing a flag that is already completed succeeds with
	newly_completed=False.

	Raises:
		UnknownFlagError: If flag_key is not in the catalog
		MissingDependenciesError: With every unmet direct dependency
	"""
	catalog = _catalog(catalog)
	if flag_key not in catalog:
		raise UnknownFlagError(flag_key)

	flags = dict(player_flags)

	if _is_completed(player_flags, flag_key):
		logger.debug(f"Flag {flag_key} already completed, nothing to do")
		return CompletionResult(flag_key=flag_key, flags=flags, completed_at=None, newly_completed=False)

	missing = missing_dependencies(flag_key, player_flags, catalog)
	if missing:
		raise MissingDependenciesError(flag_key, missing)

	flags[flag_key] = True
	completed_at = now or datetime.now(timezone.utc)
	logger.debug(f"Flag {flag_key} completed at {completed_at.isoformat()}")

	return CompletionResult(flag_key=flag_key, flags=flags, completed_at=completed_at, newly_completed=True)


def reset_flags(
	player_flags: Optional[Mapping[str, bool]] = None,
	catalog: Optional[FlagCatalog] = None,
) -> Dict[str, bool]:
	"""Return a flag map holding only the completed root flag."""
	return {_catalog(catalog).root_key: True}


def with_root(
	player_flags: Mapping[str, bool],
	catalog: Optional[FlagCatalog] = None,
) -> Dict[str, bool]:
	"""Copy of player_flags with the root flag marked completed."""
	flags = dict(player_flags)
	flags[_catalog(catalog).root_key] = True
	return flags


def next_available(
	player_flags: Mapping[str, bool],
	catalog: Optional[FlagCatalog] = None,
) -> List[FlagDefinition]:
	catalog = _catalog(catalog)
	return [flag for flag in catalog if is_eligible(flag.key, player_flags, catalog)]


def completed_count(
	player_flags: Mapping[str, bool],
	catalog: Optional[FlagCatalog] = None,
) -> int:
	"""Number of catalog flags completed; stale keys outside the catalog are ignored."""
	catalog = _catalog(catalog)
	return sum(1 for key, done in player_flags.items() if done and key in catalog)


def completion_percentage(
	player_flags: Mapping[str, bool],
	catalog: Optional[FlagCatalog] = None,
) -> int:
	"""Completed share of the whole catalog, rounded down to a whole percent."""
	catalog = _catalog(catalog)
	return completed_count(player_flags, catalog) * 100 // len(catalog)


def is_terminal_complete(
	player_flags: Mapping[str, bool],
	catalog: Optional[FlagCatalog] = None,
) -> bool:
	return _is_completed(player_flags, _catalog(catalog).terminal_key)

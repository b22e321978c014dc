"""Flag catalog for the progression engine.

This module holds the static definition of every progression flag and its
prerequisites. The catalog is validated once when it is built: unknown
dependency keys, cycles and an ambiguous root or terminal flag raise
InvalidCatalogError. POP_CATALOG is built at import time, so a broken
definition keeps the app from loading at all.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from pop_tracker.services.progression.errors import InvalidCatalogError, UnknownFlagError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlagDefinition:
	key: str
	name: str
	description: str = ""
	depends_on: Tuple[str, ...] = field(default_factory=tuple)

	@property
	def is_root(self) -> bool:
		return not self.depends_on


class FlagCatalog:
	"""Validated, read-only set of flag definitions and their dependency edges.

	Iteration order is the order of the definitions mapping and is the order
	used by every derived view (next available flags, command choices).
	"""

	def __init__(
		self,
		definitions: Mapping[str, Mapping[str, Any]],
		root_key: Optional[str] = None,
		terminal_key: Optional[str] = None,
	):
		if not definitions:
			raise InvalidCatalogError("Catalog must define at least one flag")

		self._flags: Dict[str, FlagDefinition] = {}
		for key, definition in definitions.items():
			self._flags[key] = _build_definition(key, definition)

		self._dependents: Dict[str, Tuple[str, ...]] = {}
		self._validate_edges()
		self._order = self._topological_sort()
		self._root_key = self._resolve_root(root_key)
		self._terminal_key = self._resolve_terminal(terminal_key)

		logger.debug(
			f"Catalog built with {len(self._flags)} flags, "
			f"root={self._root_key}, terminal={self._terminal_key}"
		)

	def _validate_edges(self) -> None:
		dependents: Dict[str, List[str]] = {key: [] for key in self._flags}

		for key, flag in self._flags.items():
			if len(set(flag.depends_on)) != len(flag.depends_on):
				raise InvalidCatalogError(f"Flag {key} lists a dependency more than once")

			for dep in flag.depends_on:
				if dep == key:
					raise InvalidCatalogError(f"Flag {key} depends on itself")
				if dep not in self._flags:
					raise InvalidCatalogError(f"Flag {key} depends on unknown flag {dep}")
				dependents[dep].append(key)

		self._dependents = {key: tuple(children) for key, children in dependents.items()}

	def _topological_sort(self) -> List[str]:
		remaining = {key: len(flag.depends_on) for key, flag in self._flags.items()}
		ready = deque(key for key, count in remaining.items() if count == 0)
		order = []

		while ready:
			key = ready.popleft()
			order.append(key)
			for child in self._dependents[key]:
				remaining[child] -= 1
				if remaining[child] == 0:
					ready.append(child)

		if len(order) != len(self._flags):
			cyclic = [key for key, count in remaining.items() if count > 0]
			raise InvalidCatalogError(f"Dependency cycle among flags: {', '.join(cyclic)}")

		return order

	def _resolve_root(self, root_key: Optional[str]) -> str:
		roots = [key for key, flag in self._flags.items() if flag.is_root]
		if len(roots) != 1:
			raise InvalidCatalogError(f"Catalog must have exactly one root flag, found: {roots}")

		if root_key is not None and root_key != roots[0]:
			raise InvalidCatalogError(f"Flag {root_key} is not the root flag (root is {roots[0]})")

		return roots[0]

	def _resolve_terminal(self, terminal_key: Optional[str]) -> str:
		sinks = [key for key, children in self._dependents.items() if not children]

		if terminal_key is not None:
			if terminal_key not in self._flags:
				raise InvalidCatalogError(f"Terminal flag {terminal_key} is not in the catalog")
			if terminal_key not in sinks:
				raise InvalidCatalogError(f"Terminal flag {terminal_key} has dependents")

		if len(sinks) != 1:
			raise InvalidCatalogError(f"Catalog must have exactly one terminal flag, found: {sinks}")

		return sinks[0]

	@property
	def root_key(self) -> str:
		return self._root_key

	@property
	def terminal_key(self) -> str:
		return self._terminal_key

	@property
	def root(self) -> FlagDefinition:
		return self._flags[self._root_key]

	@property
	def terminal(self) -> FlagDefinition:
		return self._flags[self._terminal_key]

	def get(self, key: str) -> Optional[FlagDefinition]:
		return self._flags.get(key)

	def all(self) -> List[FlagDefinition]:
		return list(self._flags.values())

	def keys(self) -> List[str]:
		return list(self._flags)

	def dependencies_of(self, key: str) -> Tuple[str, ...]:
		"""Direct dependencies of a flag, in definition order.

		Raises:
			UnknownFlagError: If key is not in the catalog
		"""
		flag = self._flags.get(key)
		if flag is None:
			raise UnknownFlagError(key)
		return flag.depends_on

	def dependents_of(self, key: str) -> Tuple[str, ...]:
		"""Flags that list key as a direct dependency."""
		if key not in self._flags:
			raise UnknownFlagError(key)
		return self._dependents[key]

	def topological_order(self) -> List[str]:
		"""Flag keys ordered so every flag comes after all of its dependencies."""
		return list(self._order)

	def __contains__(self, key: object) -> bool:
		return key in self._flags

	def __iter__(self) -> Iterator[FlagDefinition]:
		return iter(self._flags.values())

	def __len__(self) -> int:
		return len(self._flags)


def _build_definition(key: str, definition: Mapping[str, Any]) -> FlagDefinition:
	if "name" not in definition:
		raise InvalidCatalogError(f"Flag {key} is missing a name")

	depends_on = definition.get("depends_on") or ()
	if isinstance(depends_on, str):
		raise InvalidCatalogError(f"Flag {key} depends_on must be a list of keys")

	return FlagDefinition(
		key=key,
		name=definition["name"],
		description=definition.get("description", ""),
		depends_on=tuple(depends_on),
	)


def validate_categories(catalog: FlagCatalog, categories: Mapping[str, List[str]]) -> None:
	"""Ensure every key listed in a display category exists in the catalog."""
	for category, keys in categories.items():
		for key in keys:
			if key not in catalog:
				raise InvalidCatalogError(f"Category {category} lists unknown flag {key}")


# Planes of Power progression
SEVEN_TRIALS = ["hanging", "torture", "efficiency", "refreshment", "speed", "focus", "projection"]

POP_FLAGS = {
	"knowledge": {"name": "Plane of Knowledge", "description": "Initial access to PoP content", "depends_on": []},
	# Elemental Trials
	"smoke": {"name": "Trial of Smoke", "description": "Fire Elemental Trial", "depends_on": ["knowledge"]},
	"water": {"name": "Trial of Water", "description": "Water Elemental Trial", "depends_on": ["knowledge"]},
	"air": {"name": "Trial of Air", "description": "Air Elemental Trial", "depends_on": ["knowledge"]},
	"earth": {"name": "Trial of Earth", "description": "Earth Elemental Trial", "depends_on": ["knowledge"]},
	# Mid-tier Planes
	"innovation": {"name": "Plane of Innovation", "description": "Access to mechanical plane", "depends_on": ["knowledge"]},
	"tactics": {"name": "Plane of Tactics", "description": "Access to tactical combat plane", "depends_on": ["knowledge"]},
	"disease": {"name": "Plane of Disease", "description": "Access to plague-ridden plane", "depends_on": ["knowledge"]},
	"valor": {"name": "Plane of Valor", "description": "Access to warrior's plane", "depends_on": ["knowledge"]},
	# Seven Trials
	"hanging": {"name": "Trial of Hanging", "description": "Justice Trial", "depends_on": ["knowledge"]},
	"torture": {"name": "Trial of Torture", "description": "Justice Trial", "depends_on": ["knowledge"]},
	"efficiency": {"name": "Trial of Efficiency", "description": "Tranquility Trial", "depends_on": ["knowledge"]},
	"refreshment": {"name": "Trial of Refreshment", "description": "Tranquility Trial", "depends_on": ["knowledge"]},
	"speed": {"name": "Trial of Speed", "description": "Tranquility Trial", "depends_on": ["knowledge"]},
	"focus": {"name": "Trial of Focus", "description": "Solusek Ro Trial", "depends_on": ["knowledge"]},
	"projection": {"name": "Trial of Projection", "description": "Solusek Ro Trial", "depends_on": ["knowledge"]},
	# Upper Planes
	"storms": {"name": "Plane of Storms", "description": "Access to storm plane", "depends_on": SEVEN_TRIALS},
	"timeA": {
		"name": "Plane of Time A",
		"description": "Access to Time phase 1",
		"depends_on": ["storms", "smoke", "water", "air", "earth", "innovation", "tactics", "disease", "valor"],
	},
	"quarm": {
		"name": "Plane of Time B (Quarm)",
		"description": "Defeated the Gods in Time A to access Quarm",
		"depends_on": ["timeA"],
	},
}

# Grouping used by the progress view; the root flag is implied and not listed
POP_CATEGORIES = {
	"Elemental Trials": ["smoke", "water", "air", "earth"],
	"Mid-tier Planes": ["innovation", "tactics", "disease", "valor"],
	"Seven Trials": SEVEN_TRIALS,
	"Upper Planes": ["storms", "timeA", "quarm"],
}

POP_CATALOG = FlagCatalog(POP_FLAGS, root_key="knowledge", terminal_key="quarm")
validate_categories(POP_CATALOG, POP_CATEGORIES)


def get_catalog() -> FlagCatalog:
	"""Return the catalog served by the app."""
	return POP_CATALOG

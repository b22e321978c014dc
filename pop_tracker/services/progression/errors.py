"""Error kinds raised by the progression services.

UnknownFlagError and MissingDependenciesError are normal negative results
reported back to the player. StoreUnavailableError wraps any failure of the
persistence backend. InvalidCatalogError is raised only while the catalog is
being built and stops the app from loading.
"""

from typing import Iterable, List


class ProgressionError(Exception):
	"""Base class for all progression errors"""
	pass


class UnknownFlagError(ProgressionError):
	"""Requested flag key is not part of the catalog."""

	def __init__(self, flag_key: str):
		self.flag_key = flag_key
		super().__init__(f"Unknown flag: {flag_key}")


class MissingDependenciesError(ProgressionError):
	"""One or more direct dependencies of a flag are not completed yet."""

	def __init__(self, flag_key: str, missing: Iterable[str]):
		self.flag_key = flag_key
		self.missing: List[str] = list(missing)
		super().__init__(
			f"Flag {flag_key} is missing dependencies: {', '.join(self.missing)}"
		)


class StoreUnavailableError(ProgressionError):
	"""The player store could not complete an operation."""

	def __init__(self, operation: str, detail: str = ""):
		self.operation = operation
		self.detail = detail
		message = f"Player store unavailable during {operation}"
		if detail:
			message += f": {detail}"
		super().__init__(message)


class InvalidCatalogError(ProgressionError):
	"""Flag definitions are inconsistent (unknown keys, cycles, bad root/terminal)."""
	pass


class UnknownCommandError(ProgressionError):
	"""Dispatcher received a command name it does not handle."""

	def __init__(self, command_name: str):
		self.command_name = command_name
		super().__init__(f"Unknown command: {command_name}")

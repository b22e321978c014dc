"""
PoP Tracker API Package

Whitelisted endpoints for the chat gateway and for health checks.

Modules:
- commands: one endpoint per chat command plus run_command
- health: health report, gateway heartbeat, store probe
"""

from .commands import (
	run_command,
	track_flag,
	reset_flags,
	get_progress,
	get_next_steps,
	get_guild_progress,
	get_help,
	get_command_definitions,
)
from .health import health, report_gateway_status

__all__ = [
	'run_command',
	'track_flag',
	'reset_flags',
	'get_progress',
	'get_next_steps',
	'get_guild_progress',
	'get_help',
	'get_command_definitions',
	'health',
	'report_gateway_status',
]

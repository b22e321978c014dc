"""
Player flag DocType definitions for PoP Tracker.

Two tables back the player store: per-flag completion rows and per-player
metadata rows, both scoped by guild.
"""

SYSTEM_MANAGER_PERMISSIONS = [
	{
		"role": "System Manager",
		"permlevel": 0,
		"read": 1,
		"write": 1,
		"create": 1,
		"delete": 1,
		"submit": 0,
		"cancel": 0,
	},
]

IDENTITY_FIELDS = [
	{
		"fieldname": "user_id",
		"fieldtype": "Data",
		"label": "User ID",
		"reqd": 1,
		"search_index": 1,
	},
	{
		"fieldname": "guild_id",
		"fieldtype": "Data",
		"label": "Guild ID",
		"reqd": 1,
		"search_index": 1,
	},
]


def get_pop_player_flag():
	"""Completion state of one flag for one player in one guild."""
	return {
		"doctype": "DocType",
		"name": "PoP Player Flag",
		"module": "PoP Tracker",
		"custom": 0,
		"autoname": "Prompt",
		"fields": [
			*IDENTITY_FIELDS,
			{
				"fieldname": "flag_key",
				"fieldtype": "Data",
				"label": "Flag Key",
				"reqd": 1,
				"search_index": 1,
			},
			{
				"fieldname": "completed",
				"fieldtype": "Check",
				"label": "Completed",
				"default": 0,
			},
			{
				"fieldname": "completed_at",
				"fieldtype": "Datetime",
				"label": "Completed At",
			},
		],
		"permissions": SYSTEM_MANAGER_PERMISSIONS,
	}


def get_pop_player_data():
	"""Display name and last mutation time of a tracked player."""
	return {
		"doctype": "DocType",
		"name": "PoP Player Data",
		"module": "PoP Tracker",
		"custom": 0,
		"autoname": "Prompt",
		"fields": [
			*IDENTITY_FIELDS,
			{
				"fieldname": "display_name",
				"fieldtype": "Data",
				"label": "Display Name",
			},
			{
				"fieldname": "last_updated",
				"fieldtype": "Datetime",
				"label": "Last Updated",
			},
		],
		"permissions": SYSTEM_MANAGER_PERMISSIONS,
	}


# Export all player DocType definitions
PLAYER_DOCTYPE_DEFINITIONS = [
	get_pop_player_flag(),
	get_pop_player_data(),
]

app_name = "pop_tracker"
app_title = "PoP Tracker"
app_publisher = "PoP Tracker"
app_description = "Planes of Power flag progression tracking for guilds"
app_email = "dev@poptracker.dev"
app_license = "mit"

# Apps
# ------------------

# required_apps = []

# Installation
# ------------

after_migrate = [
	"pop_tracker.services.schema.migration_runner.run_migration",
]

# Document Events
# ---------------
# Flag rows are written by the player store only; validation lives in the
# DocType controllers.

# Scheduled Tasks
# ---------------

scheduler_events = {
	"cron": {
		"*/5 * * * *": [
			"pop_tracker.api.health.check_store_connection"
		]
	}
}

# Testing
# -------

# before_tests = "pop_tracker.install.before_tests"

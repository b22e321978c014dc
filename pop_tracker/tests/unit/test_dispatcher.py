"""Unit tests for the command dispatcher against an in-memory store."""

import pytest

from pop_tracker.services import formatters
from pop_tracker.services.dispatcher import (
    CMD_GUILD_PROGRESS,
    CMD_HELP,
    CMD_NEXT_STEPS,
    CMD_PROGRESS,
    CMD_RESET_FLAGS,
    CMD_TRACK_FLAG,
    DM_GUILD_ID,
    CommandContext,
    CommandDispatcher,
)
from pop_tracker.services.health_status import HealthStatus
from pop_tracker.services.progression.catalog import POP_CATALOG, POP_CATEGORIES, SEVEN_TRIALS
from pop_tracker.services.progression.errors import UnknownCommandError
from pop_tracker.tests.fixtures.progression import InMemoryPlayerStore, chain_catalog

GUILD = "guild-1"


@pytest.fixture
def store():
    return InMemoryPlayerStore()


@pytest.fixture
def health():
    return HealthStatus(ready=True, database_connected=True)


@pytest.fixture
def dispatcher(store, health):
    return CommandDispatcher(store, health=health)


def alice(**kwargs):
    kwargs.setdefault("guild_id", GUILD)
    kwargs.setdefault("display_name", "Alice")
    return CommandContext(invoker_id="alice", **kwargs)


class TestTrackFlag:

    def test_first_command_creates_player_with_root(self, dispatcher, store):
        reply = dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {"flag": "smoke"})

        assert reply.content == "✅ Alice has completed the flag: Trial of Smoke"
        assert store.completed("alice", GUILD) == ["knowledge", "smoke"]
        assert store.players[("alice", GUILD)]["display_name"] == "Alice"
        assert not reply.deferred

    def test_missing_requirements_lists_names(self, dispatcher, store):
        store.seed("alice", GUILD, ["knowledge", "hanging"])

        reply = dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {"flag": "storms"})

        expected = ", ".join(POP_CATALOG.get(key).name for key in SEVEN_TRIALS if key != "hanging")
        assert reply.content == f"Cannot complete this flag yet. Missing requirements: {expected}"
        assert "storms" not in store.completed("alice", GUILD)

    def test_invalid_flag(self, dispatcher, store):
        store.seed("alice", GUILD, ["knowledge"])

        reply = dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {"flag": "bogus"})

        assert reply.content == "Invalid flag specified."
        assert "set_flag" not in store.calls

    def test_missing_flag_option(self, dispatcher):
        reply = dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {})

        assert reply.content == "Invalid flag specified."

    def test_quarm_congratulates_once(self, dispatcher, store):
        store.seed("alice", GUILD, [key for key in POP_CATALOG.keys() if key != "quarm"])

        first = dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {"flag": "quarm"})
        second = dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {"flag": "quarm"})

        assert first.followup == formatters.terminal_congratulation("Alice")
        assert second.followup is None
        assert second.content == first.content

    def test_recompleting_keeps_original_timestamp(self, dispatcher, store):
        dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {"flag": "smoke"})
        original = store.flags[("alice", GUILD)]["smoke"].completed_at

        dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {"flag": "smoke"})

        assert store.flags[("alice", GUILD)]["smoke"].completed_at == original

    def test_track_for_another_player(self, dispatcher, store):
        context = alice(target_id="bob", display_name="Bob")

        reply = dispatcher.dispatch(CMD_TRACK_FLAG, context, {"flag": "water"})

        assert reply.content == "✅ Bob has completed the flag: Trial of Water"
        assert store.completed("bob", GUILD) == ["knowledge", "water"]
        assert store.completed("alice", GUILD) == []

    def test_store_failure_reports_generic_message(self, dispatcher, store, health):
        store.seed("alice", GUILD, ["knowledge"])
        store.failing.add("set_flag")

        reply = dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {"flag": "smoke"})

        assert reply.content == formatters.store_unavailable_message()
        assert not health.database_connected
        assert health.last_error == "StoreUnavailableError"
        assert store.completed("alice", GUILD) == ["knowledge"]

    def test_player_bootstrap_failure_aborts_write(self, dispatcher, store):
        store.failing.add("upsert_player")

        reply = dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {"flag": "smoke"})

        assert reply.content == formatters.store_unavailable_message()
        assert "get_flags" not in store.calls

    def test_failed_root_seed_is_repaired_by_next_command(self, dispatcher, store, health):
        """A read command that could not seed the root leaves it for the next command to write."""
        store.failing.add("set_flag")
        dispatcher.dispatch(CMD_PROGRESS, alice())
        assert ("alice", GUILD) in store.players
        assert store.completed("alice", GUILD) == []
        assert not health.database_connected

        store.failing.clear()
        reply = dispatcher.dispatch(CMD_TRACK_FLAG, alice(), {"flag": "smoke"})

        assert reply.content == "✅ Alice has completed the flag: Trial of Smoke"
        assert store.completed("alice", GUILD) == ["knowledge", "smoke"]

    def test_existing_player_with_root_is_not_rewritten(self, dispatcher, store):
        store.seed("alice", GUILD, ["knowledge"])

        dispatcher.dispatch(CMD_PROGRESS, alice())

        assert "set_flag" not in store.calls

    def test_direct_message_skips_player_bootstrap(self, dispatcher, store):
        context = CommandContext(invoker_id="alice", display_name="Alice")

        reply = dispatcher.dispatch(CMD_TRACK_FLAG, context, {"flag": "smoke"})

        assert context.guild_id == DM_GUILD_ID
        assert "upsert_player" not in store.calls
        assert reply.content == "✅ Alice has completed the flag: Trial of Smoke"
        assert store.completed("alice", DM_GUILD_ID) == ["smoke"]


class TestResetFlags:

    def test_reset_own_flags(self, dispatcher, store):
        store.seed("alice", GUILD, ["knowledge", "smoke", "water", "hanging"])

        reply = dispatcher.dispatch(CMD_RESET_FLAGS, alice())

        assert reply.content == formatters.reset_done_message(POP_CATALOG.root)
        assert store.completed("alice", GUILD) == ["knowledge"]

    def test_reset_restores_missing_root(self, dispatcher, store):
        store.seed("alice", GUILD, ["smoke"])

        dispatcher.dispatch(CMD_RESET_FLAGS, alice())

        assert store.completed("alice", GUILD) == ["knowledge"]

    def test_reset_other_player_denied(self, dispatcher, store):
        store.seed("bob", GUILD, ["knowledge", "smoke"])

        reply = dispatcher.dispatch(CMD_RESET_FLAGS, alice(target_id="bob"))

        assert reply.content == "You can only reset your own flags."
        assert store.completed("bob", GUILD) == ["knowledge", "smoke"]

    def test_reset_only_touches_one_guild(self, dispatcher, store):
        store.seed("alice", GUILD, ["knowledge", "smoke"])
        store.seed("alice", "guild-2", ["knowledge", "smoke"])

        dispatcher.dispatch(CMD_RESET_FLAGS, alice())

        assert store.completed("alice", "guild-2") == ["knowledge", "smoke"]


class TestProgress:

    def test_progress_embed(self, dispatcher, store):
        store.seed("alice", GUILD, ["knowledge", "smoke"])

        reply = dispatcher.dispatch(CMD_PROGRESS, alice())
        embed = reply.embed

        assert reply.deferred
        assert not reply.degraded
        assert embed["title"] == "Alice's Planes of Power Progress"
        assert embed["footer"]["text"] == "Overall Progress: 10% (2/19)"
        assert [field["name"] for field in embed["fields"]] == list(POP_CATEGORIES)
        assert embed["fields"][0]["value"].startswith("✅ Trial of Smoke\n❌ Trial of Water")

    def test_progress_falls_back_when_store_unreadable(self, dispatcher, store, health):
        store.failing.add("get_flags")

        reply = dispatcher.dispatch(CMD_PROGRESS, alice())

        assert reply.degraded
        assert reply.content == formatters.degraded_notice()
        assert reply.embed["footer"]["text"] == "Overall Progress: 5% (1/19)"
        assert not health.database_connected

    def test_bootstrap_failure_does_not_block_reads(self, dispatcher, store):
        store.seed("alice", GUILD, ["knowledge", "smoke"])
        store.failing.add("upsert_player")

        reply = dispatcher.dispatch(CMD_PROGRESS, alice())

        assert not reply.degraded
        assert reply.embed["footer"]["text"] == "Overall Progress: 10% (2/19)"

    def test_progress_for_other_player(self, dispatcher, store):
        store.seed("bob", GUILD, ["knowledge"])

        reply = dispatcher.dispatch(CMD_PROGRESS, alice(target_id="bob", display_name="Bob"))

        assert reply.embed["title"] == "Bob's Planes of Power Progress"


class TestNextSteps:

    def test_fresh_player_sees_fifteen_flags(self, dispatcher):
        reply = dispatcher.dispatch(CMD_NEXT_STEPS, alice())

        lines = reply.embed["description"].split("\n")
        assert reply.deferred
        assert len(lines) == 15
        assert lines[0] == "- **Trial of Smoke**: Fire Elemental Trial"

    def test_all_complete(self, dispatcher, store):
        store.seed("alice", GUILD, POP_CATALOG.keys())

        reply = dispatcher.dispatch(CMD_NEXT_STEPS, alice())

        assert reply.content == formatters.all_complete_message()
        assert reply.embed is None

    def test_custom_catalog(self, store):
        dispatcher = CommandDispatcher(store, catalog=chain_catalog(), categories={"Chain": ["B", "C"]})
        store.seed("alice", GUILD, ["A"])

        reply = dispatcher.dispatch(CMD_NEXT_STEPS, alice())

        assert reply.embed["description"] == "- **Flag B**: Needs A"

    def test_degraded_next_steps(self, dispatcher, store):
        store.failing.add("get_flags")

        reply = dispatcher.dispatch(CMD_NEXT_STEPS, alice())

        assert reply.degraded
        assert len(reply.embed["description"].split("\n")) == 15


class TestGuildProgress:

    def test_leaderboard_order_and_slayers(self, store):
        dispatcher = CommandDispatcher(store, catalog=chain_catalog(), categories={"Chain": ["B", "C"]})
        store.seed("p1", GUILD, ["A"], display_name="P1")
        store.seed("p2", GUILD, ["A", "B", "C"], display_name="P2")
        store.seed("p3", GUILD, ["A", "B", "C"], display_name="P3")

        reply = dispatcher.dispatch(CMD_GUILD_PROGRESS, alice(guild_name="Tunare's Finest"))
        embed = reply.embed

        assert reply.deferred
        assert embed["title"] == "Tunare's Finest - Planes of Power Progress"
        # alice is tracked by the command itself
        assert embed["description"] == "Total Players Tracking: 4 | Quarm Slayers: 2"
        lines = embed["fields"][0]["value"].split("\n")
        assert lines[0] == "1. **P2** 👑: 100% (3/3)"
        assert lines[1] == "2. **P3** 👑: 100% (3/3)"
        assert lines[2] == "3. **P1**: 33% (1/3)"

    def test_leaderboard_size(self, store):
        dispatcher = CommandDispatcher(store, leaderboard_size=2)
        for index in range(5):
            store.seed(f"p{index}", GUILD, ["knowledge"])

        reply = dispatcher.dispatch(CMD_GUILD_PROGRESS, alice())

        assert len(reply.embed["fields"][0]["value"].split("\n")) == 2

    def test_direct_message_rejected(self, dispatcher):
        reply = dispatcher.dispatch(CMD_GUILD_PROGRESS, CommandContext(invoker_id="alice"))

        assert reply.content == "This command can only be used in a server."

    def test_empty_guild(self, dispatcher, store):
        store.failing.add("upsert_player")

        reply = dispatcher.dispatch(CMD_GUILD_PROGRESS, alice())

        assert reply.content == formatters.empty_guild_message()

    def test_store_failure(self, dispatcher, store, health):
        store.failing.add("list_players")

        reply = dispatcher.dispatch(CMD_GUILD_PROGRESS, alice())

        assert reply.content == formatters.store_unavailable_message()
        assert not health.database_connected


class TestHelpAndDefinitions:

    def test_help_does_not_touch_store(self, dispatcher, store):
        reply = dispatcher.dispatch(CMD_HELP, alice())

        assert reply.content == formatters.HELP_TEXT
        assert store.calls == []

    def test_unknown_command(self, dispatcher):
        with pytest.raises(UnknownCommandError):
            dispatcher.dispatch("pop-unknown", alice())

    def test_command_definitions(self, dispatcher):
        definitions = dispatcher.command_definitions()

        assert [definition["name"] for definition in definitions] == dispatcher.command_names
        track = definitions[0]
        choices = track["options"][0]["choices"]
        assert len(choices) == 19
        assert choices[-1] == {"name": "Plane of Time B (Quarm)", "value": "quarm"}

    def test_reply_to_dict(self, dispatcher):
        data = dispatcher.dispatch(CMD_HELP, alice()).to_dict()

        assert data["embeds"] == []
        assert data["deferred"] is False
        assert data["followup"] is None

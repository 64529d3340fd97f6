"""
Unit tests for reconciler.py
Tests one full status run against fake Spotify / Slack backends
"""
import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from config_schema import RuntimeConfig
from player import PlayerError, PlayerState
from reconciler import Reconciler, RunOutcome, decide
from slack_client import SlackApiError, SlackClient, SlackTransportError
from status_cache import CACHE_FILENAME, CacheStore
from status_classifier import StatusSnapshot
from text_filter import TextFilter

NOW = 1700000000
TRACK = "Daft Punk - One More Time"


class FakePlayer:
    def __init__(self, running=True, state=PlayerState.PLAYING, track=TRACK):
        self.running = running
        self.state = state
        self.track = track
        self.calls = []

    async def is_running(self):
        self.calls.append("is_running")
        return self.running

    async def get_state(self):
        self.calls.append("get_state")
        return self.state

    async def get_current_track_label(self):
        self.calls.append("get_current_track_label")
        if isinstance(self.track, Exception):
            raise self.track
        return self.track


def fake_slack(snapshot=None, read_error=None, set_error=None):
    slack = AsyncMock()
    if read_error is not None:
        slack.get_profile_status.side_effect = read_error
    else:
        slack.get_profile_status.return_value = snapshot or StatusSnapshot()
    if set_error is not None:
        slack.set_profile_status.side_effect = set_error
    return slack


@pytest.fixture
def config():
    return RuntimeConfig(slack_token="xoxp-test")


@pytest.fixture
def store(tmp_path):
    return CacheStore(tmp_path / CACHE_FILENAME, clock=lambda: NOW)


def make_reconciler(config, store, slack, player, text_filter=None):
    return Reconciler(
        config=config,
        cache_store=store,
        slack=slack,
        player=player,
        text_filter=text_filter or TextFilter(),
        clock=lambda: NOW,
    )


def read_cache(store):
    return json.loads(store.path.read_text(encoding="utf-8"))


class TestScenarios:
    """End-to-end runs with one snapshot each"""

    def test_player_not_running(self, config, store):
        """Not running: no Slack read, no cache write"""
        slack = fake_slack()
        player = FakePlayer(running=False)
        outcome = asyncio.run(make_reconciler(config, store, slack, player).run())
        assert outcome == RunOutcome.PLAYER_NOT_RUNNING
        slack.get_profile_status.assert_not_called()
        slack.set_profile_status.assert_not_called()
        assert not store.path.exists()

    def test_paused_with_empty_status(self, config, store):
        """Paused + empty status: cache saved, nothing remembered, no set"""
        slack = fake_slack(StatusSnapshot("", "", 0))
        outcome = asyncio.run(make_reconciler(config, store, slack, FakePlayer(state=PlayerState.PAUSED)).run())
        assert outcome == RunOutcome.NOT_PLAYING
        slack.set_profile_status.assert_not_called()
        data = read_cache(store)
        assert "lastNonEmptyNonOwned" not in data
        assert data["updatedAt"] == NOW

    def test_foreign_status_is_protected(self, config, store):
        """Playing + full foreign status: blocked, but remembered"""
        slack = fake_slack(StatusSnapshot("Lunch", ":pizza:", 0))
        player = FakePlayer()
        outcome = asyncio.run(make_reconciler(config, store, slack, player).run())
        assert outcome == RunOutcome.FOREIGN_STATUS_PROTECTED
        slack.set_profile_status.assert_not_called()
        assert "get_current_track_label" not in player.calls
        assert read_cache(store)["lastNonEmptyNonOwned"] == {
            "text": "Lunch", "emoji": ":pizza:", "expiration": 0, "observedAt": NOW,
        }

    def test_half_set_status_is_replaced(self, config, store):
        """Playing + emoji-only status: track is set with our emoji and TTL"""
        slack = fake_slack(StatusSnapshot("", ":pizza:", 0))
        outcome = asyncio.run(make_reconciler(config, store, slack, FakePlayer()).run())
        assert outcome == RunOutcome.UPDATED
        slack.set_profile_status.assert_awaited_once_with(TRACK, ":headphones:", NOW + 120)
        data = read_cache(store)
        assert data["lastSetByScript"] == {
            "text": TRACK, "emoji": ":headphones:", "expiration": NOW + 120, "setAt": NOW,
        }
        assert "lastNonEmptyNonOwned" not in data

    def test_same_snapshot_twice_sets_twice(self, config, store):
        """Two runs on an identical snapshot both write the status"""
        slack = fake_slack(StatusSnapshot("", ":pizza:", 0))
        reconciler = make_reconciler(config, store, slack, FakePlayer())
        assert asyncio.run(reconciler.run()) == RunOutcome.UPDATED
        assert asyncio.run(reconciler.run()) == RunOutcome.UPDATED
        assert slack.set_profile_status.await_count == 2
        assert slack.set_profile_status.await_args_list[0] == slack.set_profile_status.await_args_list[1]

    def test_unreadable_slack_response(self, config, store):
        """Non-JSON three times: exactly three attempts, no set"""

        class Response:
            async def text(self):
                return "<html>502</html>"

        class Post:
            async def __aenter__(self):
                return Response()

            async def __aexit__(self, *exc):
                return False

        class Session:
            posts = 0

            def post(self, url, headers=None, data=None):
                Session.posts += 1
                return Post()

        delays = []

        async def sleep(delay):
            delays.append(delay)

        slack = SlackClient("xoxp-test", Session(), sleep=sleep)
        slack.set_profile_status = AsyncMock()
        outcome = asyncio.run(make_reconciler(config, store, slack, FakePlayer()).run())
        assert outcome == RunOutcome.READ_FAILED
        assert Session.posts == 3
        assert delays == [0.25, 0.5, 0.75]
        slack.set_profile_status.assert_not_called()


class TestEdgeCases:
    """Other ways a run can end"""

    def test_owned_status_is_refreshed(self, config, store):
        slack = fake_slack(StatusSnapshot("Old - Song", ":headphones:", NOW + 10))
        outcome = asyncio.run(make_reconciler(config, store, slack, FakePlayer()).run())
        assert outcome == RunOutcome.UPDATED
        assert "lastNonEmptyNonOwned" not in read_cache(store)

    def test_always_override(self, store):
        config = RuntimeConfig(slack_token="x", always_override=True)
        slack = fake_slack(StatusSnapshot("Lunch", ":pizza:", 0))
        outcome = asyncio.run(make_reconciler(config, store, slack, FakePlayer()).run())
        assert outcome == RunOutcome.UPDATED
        # still remembered before being overwritten
        assert read_cache(store)["lastNonEmptyNonOwned"]["text"] == "Lunch"

    def test_ok_false_read(self, config, store):
        slack = fake_slack(read_error=SlackApiError("users.profile.get", "invalid_auth"))
        outcome = asyncio.run(make_reconciler(config, store, slack, FakePlayer()).run())
        assert outcome == RunOutcome.READ_REJECTED
        slack.set_profile_status.assert_not_called()
        assert not store.path.exists()

    def test_malformed_profile_ends_run_safely(self, config, store):
        class Response:
            async def text(self):
                return '{"ok": true, "profile": "oops"}'

        class Post:
            async def __aenter__(self):
                return Response()

            async def __aexit__(self, *exc):
                return False

        class Session:
            def post(self, url, headers=None, data=None):
                return Post()

        async def sleep(delay):
            return None

        slack = SlackClient("xoxp-test", Session(), sleep=sleep)
        slack.set_profile_status = AsyncMock()
        assert asyncio.run(make_reconciler(config, store, slack, FakePlayer()).run()) == RunOutcome.READ_FAILED
        slack.set_profile_status.assert_not_called()

    def test_transport_failure_read(self, config, store):
        slack = fake_slack(read_error=SlackTransportError("users.profile.get", "request failed"))
        assert asyncio.run(make_reconciler(config, store, slack, FakePlayer()).run()) == RunOutcome.READ_FAILED

    def test_set_failure_keeps_last_set_untouched(self, config, store):
        slack = fake_slack(StatusSnapshot(), set_error=SlackApiError("users.profile.set", "ratelimited"))
        outcome = asyncio.run(make_reconciler(config, store, slack, FakePlayer()).run())
        assert outcome == RunOutcome.SET_FAILED
        data = read_cache(store)
        assert "lastSetByScript" not in data

    def test_track_unavailable(self, config, store):
        slack = fake_slack(StatusSnapshot())
        player = FakePlayer(track=PlayerError("osascript exited with 1"))
        outcome = asyncio.run(make_reconciler(config, store, slack, player).run())
        assert outcome == RunOutcome.TRACK_UNAVAILABLE
        slack.set_profile_status.assert_not_called()

    def test_track_label_is_censored(self, config, store):
        slack = fake_slack(StatusSnapshot())
        player = FakePlayer(track="Band - Darn Song")
        asyncio.run(make_reconciler(config, store, slack, player, TextFilter(words=["darn"])).run())
        assert slack.set_profile_status.await_args[0][0] == "Band - *** Song"

    def test_read_happens_once(self, config, store):
        slack = fake_slack(StatusSnapshot())
        asyncio.run(make_reconciler(config, store, slack, FakePlayer()).run())
        assert slack.get_profile_status.await_count == 1

    def test_corrupt_cache_does_not_stop_run(self, config, store):
        store.path.write_text("garbage", encoding="utf-8")
        slack = fake_slack(StatusSnapshot())
        assert asyncio.run(make_reconciler(config, store, slack, FakePlayer()).run()) == RunOutcome.UPDATED


class TestDecide:
    """Tests for decide()"""

    def test_same_inputs_same_decision(self, config):
        snapshot = StatusSnapshot("Lunch", ":pizza:", 0)
        assert decide(snapshot, PlayerState.PLAYING, config) == decide(snapshot, PlayerState.PLAYING, config)

    def test_half_set_status_not_remembered(self, config):
        assert decide(StatusSnapshot("Lunch", "", 0), PlayerState.PLAYING, config).remember_foreign is False

    def test_blank_text_not_remembered(self, config):
        assert decide(StatusSnapshot("  ", ":pizza:", 0), PlayerState.PLAYING, config).remember_foreign is False

    def test_not_playing_never_sets(self, config):
        d = decide(StatusSnapshot(), PlayerState.UNKNOWN, config)
        assert d.override_allowed is True
        assert d.should_set is False

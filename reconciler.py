"""
======================================================================
               Spotify Status on Slack - Reconciler
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0
  Description: One status run: read Slack, classify, remember, and
               only then (maybe) write the current track.

----------------------------------------------------------------------
 Run order (every step can end the run):
 ---------------------------------------------------------------------
  1. Spotify not running          -> nothing to report, no cache write
  2. Read Slack status ONCE       -> ok=false ends the run, network/
                                     JSON errors retried 3x first
  3. Classify (owned/empty/safe)
  4. Remember foreign status      -> cache saved here, always
  5. Spotify not "playing"        -> stop, the TTL clears our status
  6. Foreign status, no override  -> stop, leave it alone
  7. Set "<artist> - <track>" with our emoji and now + TTL
  8. Remember what we set         -> cache saved again on success

 Nothing runs in parallel; the decision is always made on the one
 snapshot read in step 2.

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from config_schema import RuntimeConfig
from player import PlayerError, PlayerState, SpotifyPlayer
from slack_client import SlackApiError, SlackClient, SlackError, SlackTransportError
from status_cache import CacheStore, now_sec
from status_classifier import StatusClassification, StatusSnapshot, classify, normalize
from status_log import log
from text_filter import TextFilter


class RunOutcome(str, Enum):
    PLAYER_NOT_RUNNING = "player_not_running"
    READ_FAILED = "read_failed"
    READ_REJECTED = "read_rejected"
    NOT_PLAYING = "not_playing"
    FOREIGN_STATUS_PROTECTED = "foreign_status_protected"
    TRACK_UNAVAILABLE = "track_unavailable"
    SET_FAILED = "set_failed"
    UPDATED = "updated"


@dataclass(frozen=True)
class Decision:
    """Gate results for one snapshot. Same inputs, same Decision."""

    classification: StatusClassification
    remember_foreign: bool
    playing: bool
    override_allowed: bool

    @property
    def should_set(self) -> bool:
        return self.playing and self.override_allowed


def decide(snapshot: StatusSnapshot, state: PlayerState, config: RuntimeConfig) -> Decision:
    c = classify(snapshot, config)
    return Decision(
        classification=c,
        # only fully set statuses that are clearly not ours are worth keeping
        remember_foreign=not c.owned and normalize(snapshot.text) != "" and normalize(snapshot.emoji) != "",
        playing=state == PlayerState.PLAYING,
        override_allowed=c.safe or config.always_override,
    )


class Reconciler:
    def __init__(
        self,
        config: RuntimeConfig,
        cache_store: CacheStore,
        slack: SlackClient,
        player: SpotifyPlayer,
        text_filter: TextFilter,
        clock: Callable[[], int] = now_sec,
    ):
        self.config = config
        self.cache_store = cache_store
        self.slack = slack
        self.player = player
        self.text_filter = text_filter
        self.clock = clock

    async def run(self) -> RunOutcome:
        cache = await self.cache_store.load()

        running = await self.player.is_running()
        log("DEBUG", "Spotify running check", {"running": running})
        if not running:
            log("INFO", "Spotify is not running; exiting (no status change).")
            return RunOutcome.PLAYER_NOT_RUNNING

        state = await self.player.get_state()
        log("INFO", "Spotify player state", {"state": state.value})

        try:
            snapshot = await self.slack.get_profile_status()
        except SlackApiError as e:
            log("WARN", "Slack users.profile.get returned ok=false; skipping to avoid overrides", {"error": e.error})
            return RunOutcome.READ_REJECTED
        except SlackTransportError as e:
            log("ERROR", "Slack users.profile.get failed after retries; no status change", {"error": str(e)})
            return RunOutcome.READ_FAILED

        decision = decide(snapshot, state, self.config)
        c = decision.classification
        log("INFO", "Slack current status snapshot", {
            "statusText": snapshot.text,
            "statusEmoji": snapshot.emoji,
            "statusExpiration": snapshot.expiration,
            "ownedByScript": c.owned,
            "empty": c.empty,
            "safeToOverrideWhenPlaying": c.safe,
        })

        if decision.remember_foreign:
            cache.remember_foreign(snapshot, self.clock())
        await self.cache_store.save(cache)

        if not decision.playing:
            log("INFO", "Spotify not playing; exiting (status will expire if previously set).")
            return RunOutcome.NOT_PLAYING

        if not decision.override_allowed:
            log("WARN", "Skipping update because Slack status appears set by another app/user "
                        "(both text and emoji are non-empty).")
            return RunOutcome.FOREIGN_STATUS_PROTECTED

        try:
            track = await self.player.get_current_track_label()
        except PlayerError as e:
            log("ERROR", "Could not read the current track; no status change", {"error": str(e)})
            return RunOutcome.TRACK_UNAVAILABLE

        text = self.text_filter.censor(track)
        emoji = self.config.status_emoji
        expiration = int(self.clock() + self.config.status_ttl_seconds)
        log("INFO", "Updating Slack status to current track", {"track": text, "expirationEpoch": expiration})

        try:
            await self.slack.set_profile_status(text, emoji, expiration)
        except SlackError as e:
            log("ERROR", "Slack users.profile.set failed", {"error": str(e)})
            return RunOutcome.SET_FAILED

        cache.remember_set(text, emoji, expiration, self.clock())
        await self.cache_store.save(cache)
        log("INFO", "Done")
        return RunOutcome.UPDATED

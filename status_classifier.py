"""
======================================================================
            Spotify Status on Slack - Status Classifier
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0

----------------------------------------------------------------------
 Features:
 ---------------------------------------------------------------------
  • Decides if a Slack status is empty, ours, or somebody else's.
  • Pure functions only, no I/O.

 Known limitation:
  "Ours" is a fingerprint, not a signature: sentinel emoji plus either
  no text or a text containing " - " (the artist/track separator we
  write). A status set by hand with the same emoji and a " - " in the
  text is treated as ours and may be overwritten.

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

from dataclasses import dataclass
from typing import Optional

from config_schema import RuntimeConfig

TRACK_SEPARATOR = " - "


@dataclass(frozen=True)
class StatusSnapshot:
    """Slack status as read once from users.profile.get."""
    text: str = ""
    emoji: str = ""
    expiration: int = 0


@dataclass(frozen=True)
class StatusClassification:
    owned: bool
    empty: bool
    safe: bool


def normalize(value: Optional[str]) -> str:
    return (value or "").strip()


def is_empty(text: Optional[str], emoji: Optional[str]) -> bool:
    return normalize(text) == "" and normalize(emoji) == ""


def is_owned_by_script(text: Optional[str], emoji: Optional[str], config: RuntimeConfig) -> bool:
    e = normalize(emoji)
    if e not in (config.status_emoji, config.status_emoji_unicode):
        return False
    t = normalize(text)
    return t == "" or TRACK_SEPARATOR in t


def is_safe_to_override_when_playing(text: Optional[str], emoji: Optional[str]) -> bool:
    # A half-set status (only text or only emoji) is fair game, ours or not.
    return normalize(text) == "" or normalize(emoji) == ""


def classify(snapshot: StatusSnapshot, config: RuntimeConfig) -> StatusClassification:
    owned = is_owned_by_script(snapshot.text, snapshot.emoji, config)
    return StatusClassification(
        owned=owned,
        empty=is_empty(snapshot.text, snapshot.emoji),
        safe=is_safe_to_override_when_playing(snapshot.text, snapshot.emoji) or owned,
    )

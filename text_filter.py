"""
======================================================================
              Spotify Status on Slack - Track Label Filter
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0

----------------------------------------------------------------------
 Features:
 ---------------------------------------------------------------------
  • Masks rude words in the track label before it hits Slack.
  • Whole words only, case-insensitive.
  • Word list and on/off switch come from the config.

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

import re
from typing import Iterable, Optional, Pattern

from config_schema import RuntimeConfig

DEFAULT_WORDS = [
    "fuck", "fucking", "shit", "bitch", "asshole", "bastard",
    "motherfucker", "dick", "cunt", "pussy", "nigga", "nigger",
]
DEFAULT_REPLACEMENT = "***"


class TextFilter:
    def __init__(self, words: Iterable[str] = DEFAULT_WORDS, replacement: str = DEFAULT_REPLACEMENT, enabled: bool = True):
        self.replacement = replacement
        self.enabled = enabled
        self._pattern = self._compile(words)

    @staticmethod
    def _compile(words: Iterable[str]) -> Optional[Pattern[str]]:
        cleaned = sorted({w.strip() for w in words if w and w.strip()}, key=len, reverse=True)
        if not cleaned:
            return None
        return re.compile(r"(?i)\b(" + "|".join(re.escape(w) for w in cleaned) + r")\b")

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> "TextFilter":
        words = config.censor_words if config.censor_words is not None else DEFAULT_WORDS
        return cls(words=words, enabled=config.censor_track_labels)

    def censor(self, text: str) -> str:
        if not text or not self.enabled or self._pattern is None:
            return text
        return self._pattern.sub(self.replacement, text)

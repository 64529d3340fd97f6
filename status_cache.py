"""
======================================================================
              Spotify Status on Slack - Status Cache
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0

----------------------------------------------------------------------
 Features:
 ---------------------------------------------------------------------
  • One JSON record (.slack_status_cache.json) shared between runs.
  • Remembers the last foreign status we saw and the last status we set.
  • Corrupt or missing cache files fall back to a fresh record.
  • Async file access through aiofiles.

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

import json
import time
from pathlib import Path
from typing import Callable, Optional, Union

import aiofiles
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from status_classifier import StatusSnapshot
from status_log import log

CACHE_FILENAME = ".slack_status_cache.json"


def now_sec() -> int:
    return int(time.time())


class _CacheModel(BaseModel):
    # newer/older writers may add fields, reading must not break on them
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ForeignStatus(_CacheModel):
    text: str
    emoji: str
    expiration: int = 0
    observed_at: int


class EmptyRead(_CacheModel):
    last_seen_at: int
    consecutive_count: int = 0


class ScriptStatus(_CacheModel):
    text: str
    emoji: str
    expiration: int = 0
    set_at: int


class CacheRecord(_CacheModel):
    """
    Single mutable record. Each field holds at most one entry, the latest.
    """

    updated_at: int = 0
    last_non_empty_non_owned: Optional[ForeignStatus] = None
    empty_read: Optional[EmptyRead] = None
    last_set_by_script: Optional[ScriptStatus] = None

    def remember_foreign(self, snapshot: StatusSnapshot, now: int) -> None:
        self.last_non_empty_non_owned = ForeignStatus(
            text=snapshot.text,
            emoji=snapshot.emoji,
            expiration=snapshot.expiration,
            observed_at=now,
        )

    def remember_set(self, text: str, emoji: str, expiration: int, now: int) -> None:
        self.last_set_by_script = ScriptStatus(text=text, emoji=emoji, expiration=expiration, set_at=now)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True, exclude_none=True), ensure_ascii=False, indent=2)


class CacheStore:
    """Loads and saves the CacheRecord at ``path``."""

    def __init__(self, path: Union[str, Path], clock: Callable[[], int] = now_sec):
        self.path = Path(path)
        self.clock = clock

    def fresh(self) -> CacheRecord:
        return CacheRecord(updated_at=self.clock())

    async def load(self) -> CacheRecord:
        if not self.path.exists():
            return self.fresh()
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("cache is not a JSON object")
            return CacheRecord.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            log("WARN", "Cache unreadable, starting fresh", {"path": str(self.path), "error": str(e)})
            return self.fresh()

    async def save(self, record: CacheRecord) -> None:
        record.updated_at = self.clock()
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(record.to_json())

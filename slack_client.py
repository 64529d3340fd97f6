"""
======================================================================
              Spotify Status on Slack - Slack Web API
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0

----------------------------------------------------------------------
 Features:
 ---------------------------------------------------------------------
  • users.profile.get / users.profile.set over aiohttp.
  • Read retries on network errors and non-JSON bodies only
    (3 attempts, 250ms × attempt backoff).
  • ok=false answers are never retried and surface as SlackApiError.
  • Writes are never retried (a stale track name must not land twice).

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from status_classifier import StatusSnapshot, normalize
from status_log import log

SLACK_API_BASE = "https://slack.com/api"
PROFILE_GET = "users.profile.get"
PROFILE_SET = "users.profile.set"

READ_ATTEMPTS = 3
READ_BACKOFF_S = 0.25
BODY_PREVIEW_CHARS = 500


class SlackError(Exception):
    """Base class for everything the Slack client raises."""

    def __init__(self, method: str, message: str):
        super().__init__(f"Slack API {method} {message}")
        self.method = method


class SlackTransportError(SlackError):
    """Network failure or a body that is not JSON. Safe to retry reads."""


class SlackApiError(SlackError):
    """Slack answered ok=false. Never retried."""

    def __init__(self, method: str, error: Optional[str]):
        super().__init__(method, f"returned ok=false: {error}")
        self.error = error


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_text(value: Any) -> str:
    return normalize(value if isinstance(value, str) else ("" if value is None else str(value)))


class SlackClient:
    def __init__(
        self,
        token: str,
        session: aiohttp.ClientSession,
        base_url: str = SLACK_API_BASE,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.token = token
        self.session = session
        self.base_url = base_url.rstrip("/")
        self._sleep = sleep

    async def call(self, method: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        POST one Web API method and decode the JSON answer.

        Raises:
            SlackTransportError: on network errors, timeouts or non-JSON bodies
        """
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json; charset=UTF-8",
        }
        data = json.dumps(body) if body is not None else None
        try:
            async with self.session.post(f"{self.base_url}/{method}", headers=headers, data=data) as r:
                text = await r.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SlackTransportError(method, f"request failed: {e}") from e

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise SlackTransportError(method, f"returned non-JSON: {e} body={text[:BODY_PREVIEW_CHARS]}") from e
        if not isinstance(payload, dict):
            raise SlackTransportError(method, f"returned non-object JSON body={text[:BODY_PREVIEW_CHARS]}")
        return payload

    async def get_profile_status(self, attempts: int = READ_ATTEMPTS, backoff: float = READ_BACKOFF_S) -> StatusSnapshot:
        """
        Read the current status once, retrying transport failures only.

        Returns:
            Normalized StatusSnapshot (missing fields read as "" / 0)

        Raises:
            SlackTransportError: the last transport error once all attempts failed
            SlackApiError: Slack answered ok=false (first time, no retry)
        """
        payload: Optional[Dict[str, Any]] = None
        last_error: Optional[SlackTransportError] = None
        for attempt in range(1, attempts + 1):
            try:
                payload = await self.call(PROFILE_GET)
                break
            except SlackTransportError as e:
                last_error = e
                log("WARN", "Slack profile.get failed, retrying", {"attempt": attempt, "error": str(e)})
                await self._sleep(backoff * attempt)

        if payload is None:
            raise last_error or SlackTransportError(PROFILE_GET, "was never attempted")
        if not payload.get("ok"):
            raise SlackApiError(PROFILE_GET, payload.get("error"))

        profile = payload.get("profile") or {}
        if not isinstance(profile, dict):
            raise SlackTransportError(PROFILE_GET, f"returned a non-object profile: {str(profile)[:BODY_PREVIEW_CHARS]}")
        return StatusSnapshot(
            text=_as_text(profile.get("status_text")),
            emoji=_as_text(profile.get("status_emoji")),
            expiration=_as_int(profile.get("status_expiration")),
        )

    async def set_profile_status(self, text: str, emoji: str, expiration_epoch: int) -> None:
        payload = await self.call(
            PROFILE_SET,
            {
                "profile": {
                    "status_text": text,
                    "status_emoji": emoji,
                    "status_expiration": expiration_epoch,
                }
            },
        )
        if not payload.get("ok"):
            raise SlackApiError(PROFILE_SET, payload.get("error"))

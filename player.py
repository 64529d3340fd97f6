"""
======================================================================
             Spotify Status on Slack - Spotify Desktop Player
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0

----------------------------------------------------------------------
 Features:
 ---------------------------------------------------------------------
  • Is Spotify running? (pgrep)
  • Player state and "<artist> - <track>" label (osascript, macOS).
  • Every query has a hard timeout; a hung osascript gets killed.
  • Failures collapse into "not running" / UNKNOWN so the run
    ends on the harmless path.

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

import asyncio
from enum import Enum
from typing import List, Tuple

from status_log import log

PGREP = "/usr/bin/pgrep"
OSASCRIPT = "/usr/bin/osascript"
RUNNING_TIMEOUT_S = 3.0
SCRIPT_TIMEOUT_S = 10.0


class PlayerState(str, Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


class PlayerError(RuntimeError):
    """A player query failed (process error, non-zero exit, timeout)."""


async def run_command(cmd: List[str], timeout: float) -> Tuple[int, str]:
    """
    Run ``cmd`` and return (exit code, stripped stdout).

    Raises:
        PlayerError: when the binary is missing or the timeout expires
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        raise PlayerError(f"{cmd[0]} could not be started: {e}") from e

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        proc.kill()
        await proc.wait()
        raise PlayerError(f"{cmd[0]} timed out after {timeout}s") from e

    return proc.returncode or 0, stdout.decode("utf-8", errors="replace").strip()


class SpotifyPlayer:
    def __init__(self, app_name: str = "Spotify"):
        self.app_name = app_name

    async def osascript(self, script: str) -> str:
        code, out = await run_command([OSASCRIPT, "-e", script], SCRIPT_TIMEOUT_S)
        if code != 0:
            raise PlayerError(f"osascript exited with {code}")
        return out

    async def is_running(self) -> bool:
        try:
            code, _ = await run_command([PGREP, self.app_name], RUNNING_TIMEOUT_S)
        except PlayerError as e:
            log("DEBUG", "pgrep failed, treating player as not running", {"error": str(e)})
            return False
        return code == 0

    async def get_state(self) -> PlayerState:
        try:
            state = await self.osascript(f'tell application "{self.app_name}" to player state')
        except PlayerError as e:
            log("WARN", "Player state query failed", {"error": str(e)})
            return PlayerState.UNKNOWN
        try:
            return PlayerState(state)
        except ValueError:
            return PlayerState.UNKNOWN

    async def get_current_track_label(self) -> str:
        """"<artist> - <name>" of the current track. Raises PlayerError."""
        return await self.osascript(
            f'tell application "{self.app_name}" to '
            'artist of current track & " - " & name of current track'
        )

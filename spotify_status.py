#!/usr/bin/env python3
"""
======================================================================
                Spotify Status on Slack - Status Runner
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0
  Description: Entry point for one status run. Meant to be started by
               launchd/cron every ~30 seconds, never two at once.

----------------------------------------------------------------------
 Usage:
 ---------------------------------------------------------------------
  spotify-status [--config PATH] [--workdir DIR] [--debug]

  Exit codes:
    0  run finished (including "nothing to do" and Slack errors)
    1  config missing/invalid, or an unexpected crash

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import List, Optional

import aiohttp
from dotenv import load_dotenv

from config_schema import ConfigError, RuntimeConfig, apply_defaults
from config_store import load_config
from log_files import resolve_log_path, trim_log_file
from player import SpotifyPlayer
from reconciler import Reconciler, RunOutcome
from slack_client import SlackClient
from status_cache import CACHE_FILENAME, CacheStore
from status_log import log, logger, setup_logging
from text_filter import TextFilter

SCRIPT_VERSION = "py-asyncio-v1"
HTTP_TIMEOUT_S = 30


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Mirror the current Spotify track into your Slack status.")
    ap.add_argument("--config", default=None, help="Config file (default: CONFIG_PATH or the search paths)")
    ap.add_argument("--workdir", default=None, help="Directory for the cache and relative log paths (default: cwd)")
    ap.add_argument("--debug", action="store_true", help="Log DEBUG lines too")
    return ap.parse_args(argv)


def trim_logs(config: RuntimeConfig, workdir: Path) -> None:
    for configured in (config.stdout_log_path, config.stderr_log_path):
        trim_log_file(resolve_log_path(workdir, configured), int(config.log_max_lines), int(config.log_keep_lines))


async def run_once(config: RuntimeConfig, workdir: Path) -> RunOutcome:
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=HTTP_TIMEOUT_S)) as session:
        reconciler = Reconciler(
            config=config,
            cache_store=CacheStore(workdir / CACHE_FILENAME),
            slack=SlackClient(config.slack_token, session),
            player=SpotifyPlayer(),
            text_filter=TextFilter.from_config(config),
        )
        return await reconciler.run()


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    setup_logging(debug=args.debug or os.getenv("SPOTIFY_STATUS_DEBUG", "").lower() == "true")

    workdir = Path(args.workdir or os.getcwd()).resolve()
    try:
        app_config, config_path = load_config(workdir, args.config or os.getenv("CONFIG_PATH"))
    except ConfigError as e:
        log("ERROR", "Fatal error", {"error": str(e)})
        return 1

    config = apply_defaults(app_config)
    trim_logs(config, workdir)

    log("INFO", "spotify-status-on-slack", {
        "version": SCRIPT_VERSION,
        "pid": os.getpid(),
        "cwd": str(workdir),
        "configPath": str(config_path),
    })

    try:
        outcome = asyncio.run(run_once(config, workdir))
    except Exception as e:
        logger.error("Fatal error", exc_info=True, extra={"meta": {"error": str(e)}})
        return 1

    log("DEBUG", "Run finished", {"outcome": outcome.value})
    return 0


if __name__ == "__main__":
    sys.exit(main())

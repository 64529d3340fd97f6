"""
======================================================================
              Spotify Status on Slack - Config Store
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0

----------------------------------------------------------------------
 Features:
 ---------------------------------------------------------------------
  • Config lookup: <workdir>/config.local.json first, then
    ~/.config/spotify-status-on-slack/config.json.
  • CONFIG_PATH / --config override.
  • Read + validate, write pretty JSON (directories created on demand).

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

import json
from pathlib import Path
from typing import List, Optional, Tuple, Union

from config_schema import AppConfig, ConfigError, parse_config

PathLike = Union[str, Path]

LOCAL_CONFIG_NAME = "config.local.json"
APP_DIR_NAME = "spotify-status-on-slack"


def get_config_search_paths(workdir: PathLike) -> List[Path]:
    return [
        Path(workdir) / LOCAL_CONFIG_NAME,
        Path.home() / ".config" / APP_DIR_NAME / "config.json",
    ]


def resolve_config_path(workdir: PathLike, override_path: Optional[str] = None) -> Path:
    """
    Pick the config file to use.

    An explicit override always wins, even if the file is not there yet
    (the UI creates it on first save). Otherwise the first existing search
    path, falling back to the local one.
    """
    if override_path:
        return Path(override_path)
    candidates = get_config_search_paths(workdir)
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def read_config_file(path: PathLike) -> AppConfig:
    """Read and validate a config file. Raises ConfigError on any problem."""
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not read config at {p}: {e}") from e
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config at {p} is not valid JSON: {e}") from e
    return parse_config(payload)


def write_config_file(path: PathLike, config: AppConfig) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(config.to_json_dict(), ensure_ascii=False, indent=2), encoding="utf-8")


def load_config(workdir: PathLike, override_path: Optional[str] = None) -> Tuple[AppConfig, Path]:
    """
    Load the config for a status run.

    Unlike the UI, a run refuses to start without a config file.

    Returns:
        Tuple of (validated config, path it was read from)

    Raises:
        ConfigError: when no config exists or it is invalid
    """
    if override_path:
        p = Path(override_path)
        if not p.exists():
            raise ConfigError(f"No config found at {p}.")
        return read_config_file(p), p

    paths = get_config_search_paths(workdir)
    for p in paths:
        if p.exists():
            return read_config_file(p), p
    raise ConfigError(
        f"No config found. Create {paths[0]} (recommended) or {paths[1]}. See README."
    )

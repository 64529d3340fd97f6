"""
======================================================================
             Spotify Status on Slack - Config Schema
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0

----------------------------------------------------------------------
 Features:
 ---------------------------------------------------------------------
  • Strict pydantic schema for config.local.json (unknown keys rejected).
  • Trimmed strings, blank optional strings treated as "not set".
  • Defaults in one place (DEFAULT_CONFIG) and a frozen RuntimeConfig.
  • The small UI subset the config page is allowed to edit.

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_CONFIG: Dict[str, Any] = {
    "status_emoji": ":headphones:",
    "status_emoji_unicode": "\U0001F3A7",
    "status_ttl_seconds": 120,
    "always_override": False,
    "require_two_empty_reads_before_override": True,
    "empty_read_confirm_window_seconds": 600,
    "cache_max_age_seconds": 600,
    "log_max_lines": 5000,
    "log_keep_lines": 3000,
    "stdout_log_path": "./spotify-status.log",
    "stderr_log_path": "./spotify-status.error.log",
    "censor_track_labels": True,
}

NUMBER_FIELDS = (
    "poll_interval_seconds",
    "status_ttl_seconds",
    "empty_read_confirm_window_seconds",
    "cache_max_age_seconds",
    "log_max_lines",
    "log_keep_lines",
)
OPTIONAL_STRING_FIELDS = ("status_emoji", "status_emoji_unicode", "stdout_log_path", "stderr_log_path")

Number = Union[int, float]


class ConfigError(ValueError):
    """Config file missing, unreadable or invalid."""


def _check_number(value: Any) -> Any:
    if value is None:
        return value
    # bool is an int subclass, JSON true/false is not a number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("Must be a non-negative number.")
    if value != value or value in (float("inf"), float("-inf")) or value < 0:
        raise ValueError("Must be a non-negative number.")
    return value


def _blank_to_none(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    trimmed = value.strip()
    return trimmed or None


class _CamelModel(BaseModel):
    # camelCase keys only, the snake_case field names are not accepted as input
    model_config = ConfigDict(
        alias_generator=to_camel,
        extra="forbid",
    )


class AppConfig(_CamelModel):
    """config.local.json as written by the user (or the config UI)."""

    slack_token: str
    poll_interval_seconds: Optional[Number] = None  # informational, launchd owns the interval
    status_emoji: Optional[str] = None
    status_emoji_unicode: Optional[str] = None
    status_ttl_seconds: Optional[Number] = None
    always_override: Optional[StrictBool] = None
    require_two_empty_reads_before_override: Optional[StrictBool] = None
    empty_read_confirm_window_seconds: Optional[Number] = None
    cache_max_age_seconds: Optional[Number] = None
    log_max_lines: Optional[Number] = None
    log_keep_lines: Optional[Number] = None
    stdout_log_path: Optional[str] = None
    stderr_log_path: Optional[str] = None
    censor_track_labels: Optional[StrictBool] = None
    censor_words: Optional[List[str]] = None

    @field_validator("slack_token", mode="before")
    @classmethod
    def _token_not_blank(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Must be a non-empty string.")
        return trimmed

    @field_validator(*OPTIONAL_STRING_FIELDS, mode="before")
    @classmethod
    def _optional_strings(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator(*NUMBER_FIELDS, mode="before")
    @classmethod
    def _numbers(cls, value: Any) -> Any:
        return _check_number(value)

    @field_validator("censor_words", mode="before")
    @classmethod
    def _words(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [w.strip() if isinstance(w, str) else w for w in value]
        return value

    def to_json_dict(self) -> Dict[str, Any]:
        """camelCase dict without the unset optional keys (what goes to disk)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RuntimeConfig(_CamelModel):
    """AppConfig with every default applied. Immutable for the whole run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    slack_token: str = ""
    poll_interval_seconds: Optional[Number] = None
    status_emoji: str = DEFAULT_CONFIG["status_emoji"]
    status_emoji_unicode: str = DEFAULT_CONFIG["status_emoji_unicode"]
    status_ttl_seconds: Number = DEFAULT_CONFIG["status_ttl_seconds"]
    always_override: bool = DEFAULT_CONFIG["always_override"]
    require_two_empty_reads_before_override: bool = DEFAULT_CONFIG["require_two_empty_reads_before_override"]
    empty_read_confirm_window_seconds: Number = DEFAULT_CONFIG["empty_read_confirm_window_seconds"]
    cache_max_age_seconds: Number = DEFAULT_CONFIG["cache_max_age_seconds"]
    log_max_lines: Number = DEFAULT_CONFIG["log_max_lines"]
    log_keep_lines: Number = DEFAULT_CONFIG["log_keep_lines"]
    stdout_log_path: str = DEFAULT_CONFIG["stdout_log_path"]
    stderr_log_path: str = DEFAULT_CONFIG["stderr_log_path"]
    censor_track_labels: bool = DEFAULT_CONFIG["censor_track_labels"]
    censor_words: Optional[List[str]] = None


class UiConfig(_CamelModel):
    """The fields the config page edits. All required, nothing else allowed."""

    status_ttl_seconds: Number
    always_override: StrictBool
    cache_max_age_seconds: Number
    empty_read_confirm_window_seconds: Number

    @field_validator("status_ttl_seconds", "cache_max_age_seconds", "empty_read_confirm_window_seconds", mode="before")
    @classmethod
    def _numbers(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Must be a non-negative number.")
        return _check_number(value)


def format_validation_error(error: ValidationError, root: str = "config") -> str:
    """Flatten pydantic errors into "path: message; path: message"."""
    parts = []
    for issue in error.errors():
        loc = ".".join(str(p) for p in issue.get("loc", ())) or root
        msg = str(issue.get("msg", "invalid"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{loc}: {msg}")
    return "; ".join(parts)


def parse_config(payload: Any) -> AppConfig:
    """Validate a decoded JSON payload. Raises ConfigError with a readable message."""
    if not isinstance(payload, dict):
        raise ConfigError("config: Expected an object.")
    try:
        return AppConfig.model_validate(payload)
    except ValidationError as e:
        raise ConfigError(format_validation_error(e)) from e


def parse_ui_config(payload: Any) -> UiConfig:
    if not isinstance(payload, dict):
        raise ConfigError("payload: Expected an object.")
    try:
        return UiConfig.model_validate(payload)
    except ValidationError as e:
        raise ConfigError(format_validation_error(e, root="payload")) from e


def apply_defaults(config: Optional[AppConfig] = None) -> RuntimeConfig:
    """Fill every unset field from DEFAULT_CONFIG."""
    if config is None:
        return RuntimeConfig()
    values = {k: v for k, v in config.model_dump().items() if v is not None}
    return RuntimeConfig(**values)


def select_ui_config(config: RuntimeConfig) -> UiConfig:
    return UiConfig.model_validate({
        "statusTtlSeconds": config.status_ttl_seconds,
        "alwaysOverride": config.always_override,
        "cacheMaxAgeSeconds": config.cache_max_age_seconds,
        "emptyReadConfirmWindowSeconds": config.empty_read_confirm_window_seconds,
    })

"""
======================================================================
               Spotify Status on Slack - Log File Helpers
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0

----------------------------------------------------------------------
 Features:
 ---------------------------------------------------------------------
  • Tail of a log file for the config UI (with truncation info).
  • Clearing a log file without deleting it.
  • Tail-truncate trimming before every run so launchd logs stay small.

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union

from status_log import log

PathLike = Union[str, Path]


@dataclass
class LogTail:
    """Last lines of a log file plus what was left out."""
    lines: List[str] = field(default_factory=list)
    total_lines: int = 0
    truncated: bool = False
    missing: bool = False


def resolve_log_path(base_dir: PathLike, log_path: PathLike) -> Path:
    """Absolute paths stay, relative ones are anchored at ``base_dir``."""
    p = Path(log_path)
    if p.is_absolute():
        return p
    return (Path(base_dir) / p).resolve()


def _split_lines(raw: str) -> List[str]:
    lines = raw.replace("\r\n", "\n").split("\n")
    # a trailing newline leaves one empty element behind
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def read_log_tail(path: PathLike, line_limit: int) -> LogTail:
    """
    Read the last ``line_limit`` lines of a log file.

    Args:
        path: Log file to read
        line_limit: Maximum number of lines to return

    Returns:
        LogTail with ``missing=True`` when the file does not exist
    """
    p = Path(path)
    if not p.exists():
        return LogTail(missing=True)

    all_lines = _split_lines(p.read_text(encoding="utf-8", errors="replace"))
    total = len(all_lines)
    lines = all_lines[total - line_limit:] if total > line_limit else all_lines
    return LogTail(lines=lines, total_lines=total, truncated=total > len(lines), missing=False)


def clear_log_file(path: PathLike) -> bool:
    """Truncate the log file. Returns False when it does not exist."""
    p = Path(path)
    if not p.exists():
        return False
    p.write_text("", encoding="utf-8")
    return True


def trim_log_file(path: PathLike, max_lines: int, keep_lines: int) -> bool:
    """
    Keep only the newest ``keep_lines`` lines once the file exceeds ``max_lines``.

    Failures are logged and swallowed; a broken log file must never stop
    a status run.

    Returns:
        True if the file was rewritten
    """
    p = Path(path)
    try:
        if not p.exists():
            return False
        lines = _split_lines(p.read_text(encoding="utf-8", errors="replace"))
        if len(lines) <= max_lines:
            return False
        keep = max(0, int(keep_lines))
        tail = lines[max(0, len(lines) - keep):] if keep else []
        p.write_text("\n".join(tail) + "\n", encoding="utf-8")
        return True
    except (OSError, ValueError) as e:
        log("WARN", "Log trimming failed (non-fatal)", {"filePath": str(p), "error": str(e)})
        return False

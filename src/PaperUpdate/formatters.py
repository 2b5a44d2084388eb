"""Formatting helpers for the update summary printed before a download.

Each retained build renders as ``#NNN [abcdef0] first line of the comment``.
Only the newest build can expand: in verbose mode every line of every one of
its commits is listed (continuation lines aligned under the comment text) and
its first line carries the build timestamp. Older builds always collapse to
the first line of their first commit.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Sequence

from .builds import BuildRecord

__all__ = [
    "COMMENT_INDENT",
    "COMMIT_INDENT",
    "format_timestamp",
    "format_build_info",
    "format_build_summary",
    "format_download_banner",
]

#: Width of ``#NNN [abcdef0] `` so continuation lines align with comment text.
COMMENT_INDENT = " " * 15
#: Indentation of additional commits under the build number.
COMMIT_INDENT = " " * 5


def format_timestamp(timestamp_millis: int) -> str:
    """Render a millisecond epoch timestamp as local ``YYYY-MM-DD HH:MM``."""

    return datetime.fromtimestamp(timestamp_millis / 1000).strftime("%Y-%m-%d %H:%M")


def _comment_lines(comment: str) -> List[str]:
    return [line for line in comment.split("\n") if line.strip()]


def format_build_info(build: BuildRecord, *, verbose: bool = False, newest: bool = False) -> str:
    """Render one build; returns an empty string for builds without commits."""

    expand = verbose and newest
    commits = build.commits if expand else build.commits[:1]
    lines: List[str] = []
    for index, commit in enumerate(commits):
        comment_lines = _comment_lines(commit.comment)
        if not expand:
            comment_lines = comment_lines[:1]
        if verbose and index == 0:
            stamp = format_timestamp(build.timestamp_millis)
            if comment_lines:
                comment_lines[0] = f"{comment_lines[0]} - {stamp}"
            else:
                comment_lines = [stamp]
        text = ("\n" + COMMENT_INDENT).join(comment_lines)
        prefix = f"#{build.number:03d} " if index == 0 else COMMIT_INDENT
        lines.append(f"{prefix}[{commit.commit_id[:7]}] {text}\n")
    return "\n".join(lines)


def format_build_summary(version: str, builds: Sequence[BuildRecord], *, verbose: bool = False) -> str:
    """Render the header and every retained build, newest first."""

    parts = [f"\n{COMMIT_INDENT}Paper {version}\n\n"]
    for index, build in enumerate(builds):
        formatted = format_build_info(build, verbose=verbose, newest=index == 0)
        if formatted.strip():
            parts.append(formatted + "\n")
    return "".join(parts)


def format_download_banner(version: str, build_number: int) -> str:
    return f"Downloading {version} #{build_number:03d}..."

"""Tests for the build summary shown before a download."""

from __future__ import annotations

from PaperUpdate.builds import BuildRecord
from PaperUpdate.formatters import (
    COMMENT_INDENT,
    COMMIT_INDENT,
    format_build_info,
    format_build_summary,
    format_download_banner,
    format_timestamp,
)


def _build(number, *commits, timestamp=1640995200000):
    return BuildRecord(
        number=number,
        timestamp_millis=timestamp,
        commits=tuple({"commit_id": commit_id, "comment": comment} for commit_id, comment in commits),
    )


NEWEST = _build(
    105,
    ("abcdef0123456", "Fix chunk loading\nMore detail\n"),
    ("9876543210fed", "Second commit\n"),
)
OLDER = _build(7, ("1234567890abc", "Older fix\nwith body\n"))


def test_collapsed_build_shows_first_line_of_first_commit():
    assert format_build_info(NEWEST) == "#105 [abcdef0] Fix chunk loading\n"


def test_build_number_is_zero_padded():
    assert format_build_info(OLDER).startswith("#007 [1234567] Older fix")


def test_verbose_newest_build_expands_every_commit_line():
    stamp = format_timestamp(NEWEST.timestamp_millis)

    rendered = format_build_info(NEWEST, verbose=True, newest=True)

    assert rendered == (
        f"#105 [abcdef0] Fix chunk loading - {stamp}\n"
        f"{COMMENT_INDENT}More detail\n"
        "\n"
        f"{COMMIT_INDENT}[9876543] Second commit\n"
    )


def test_verbose_older_build_stays_collapsed_with_timestamp():
    stamp = format_timestamp(OLDER.timestamp_millis)

    assert format_build_info(OLDER, verbose=True) == f"#007 [1234567] Older fix - {stamp}\n"


def test_build_without_commits_renders_nothing():
    assert format_build_info(_build(3)) == ""


def test_summary_lists_builds_newest_first_under_header():
    summary = format_build_summary("1.18.1", [NEWEST, _build(6), OLDER])

    assert summary == (
        f"\n{COMMIT_INDENT}Paper 1.18.1\n\n"
        "#105 [abcdef0] Fix chunk loading\n\n"
        "#007 [1234567] Older fix\n\n"
    )


def test_timestamp_format():
    assert len(format_timestamp(1640995200000)) == len("2022-01-01 00:00")


def test_download_banner():
    assert format_download_banner("1.18.1", 42) == "Downloading 1.18.1 #042..."

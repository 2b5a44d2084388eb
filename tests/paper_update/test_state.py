"""Tests for reading the persisted server version."""

from __future__ import annotations

import json
import logging

import pytest

from PaperUpdate.state import PersistedState, load_state, parse_version_string


@pytest.mark.parametrize(
    ("version_info", "expected"),
    [
        ("git-Paper-123 (MC: 1.18.1)", PersistedState("1.18.1", 123)),
        ("git-Paper-77 (MC: 1.17)", PersistedState("1.17", 77)),
        ("git-Paper-77", PersistedState(None, 77)),
        ("custom build (MC: 1.16.5)", PersistedState("1.16.5", None)),
        ("something else entirely", PersistedState()),
    ],
)
def test_parse_version_string(version_info, expected):
    assert parse_version_string(version_info) == expected


def test_load_state_reads_current_version(tmp_path, history_writer):
    history_writer(tmp_path, "git-Paper-102 (MC: 1.18.1)")

    state = load_state(tmp_path / "version_history.json")

    assert state == PersistedState(api_version="1.18.1", build_number=102)
    assert not state.is_empty


def test_missing_file_behaves_like_first_run(tmp_path, caplog):
    caplog.set_level(logging.INFO, logger="PaperUpdate.state")

    state = load_state(tmp_path / "version_history.json")

    assert state.is_empty
    assert "Couldn't read version history file." in caplog.messages


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps({"oldVersion": "git-Paper-1 (MC: 1.18)"}),
        json.dumps({"currentVersion": 42}),
        json.dumps(["git-Paper-1 (MC: 1.18)"]),
    ],
)
def test_unreadable_file_behaves_like_first_run(tmp_path, content):
    path = tmp_path / "version_history.json"
    path.write_text(content, encoding="utf-8")

    assert load_state(path) == PersistedState()

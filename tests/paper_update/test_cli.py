"""Tests for the paper-update command line.

Tests verify:
- Version and help output
- Dry-run listing and verbose expansion
- Exit codes for install, no catalog match, no newer build, and failures
"""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from PaperUpdate import __version__
from PaperUpdate.cli import EXIT_FAILURE, EXIT_NO_NEW_VERSION, EXIT_OK, app
from PaperUpdate.testing import use_mock_http_client

runner = CliRunner()


@pytest.fixture
def server_dir(tmp_path, history_writer):
    history_writer(tmp_path, "git-Paper-102 (MC: 1.18.1)")
    return tmp_path


@pytest.fixture
def invoke(paper_server):
    def _invoke(*args: str):
        with use_mock_http_client(paper_server.transport):
            return runner.invoke(app, list(args))

    return _invoke


class TestCliBasics:
    def test_version_option_shows_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == EXIT_OK
        assert f"paper-update {__version__}" in result.output

    def test_help_lists_flags(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for flag in ("--replace", "--keep", "--dry", "--build", "--verbose"):
            assert flag in result.output

    def test_missing_config_file_fails(self, tmp_path):
        result = runner.invoke(app, ["-c", str(tmp_path / "absent.yaml")])

        assert result.exit_code == EXIT_FAILURE
        assert "Error: Configuration file not found" in result.output


class TestCliFlows:
    def test_dry_run_prints_summary(self, invoke, server_dir, paper_server):
        result = invoke("-d", "-C", str(server_dir))

        assert result.exit_code == EXIT_OK
        assert "Paper 1.18.1" in result.output
        assert "#105 [1050abc] Fix chunk loading" in result.output
        assert "#103 [1030abc] Older fix" in result.output
        assert "#104" not in result.output
        assert "More detail" not in result.output
        assert paper_server.paths("HEAD") == []

    def test_verbose_dry_run_expands_newest_build(self, invoke, server_dir):
        result = invoke("-d", "-v", "-C", str(server_dir))

        assert result.exit_code == EXIT_OK
        assert "More detail" in result.output
        assert "Second commit" in result.output

    def test_no_newer_build_exits_with_dedicated_code(
        self, invoke, server_dir, history_writer, paper_server
    ):
        history_writer(server_dir, "git-Paper-105 (MC: 1.18.1)")

        result = invoke("-C", str(server_dir))

        assert result.exit_code == EXIT_NO_NEW_VERSION
        assert "No matching new version available." in result.output
        assert "/ci/job/Paper-1.18/api/json" in paper_server.paths()

    def test_no_catalog_match_exits_cleanly(self, invoke, server_dir, history_writer, paper_server):
        history_writer(server_dir, "git-Paper-10 (MC: 1.20.1)")

        result = invoke("-C", str(server_dir))

        assert result.exit_code == EXIT_OK, result.output
        assert "No matching new version available." in result.output
        assert paper_server.paths() == ["/js/downloads.js"]

    def test_install_with_replace(self, invoke, server_dir, paper_server):
        result = invoke("-r", "-C", str(server_dir))

        assert result.exit_code == EXIT_OK, result.output
        assert "Downloading 1.18.1 #105..." in result.output
        assert "Download complete." in result.output
        assert "Installed paper.jar." in result.output
        assert (server_dir / "paper.jar").read_bytes() == paper_server.artifact

    def test_install_forced_build(self, invoke, server_dir):
        result = invoke("--build", "103", "-C", str(server_dir))

        assert result.exit_code == EXIT_OK, result.output
        assert "Installed paper-103.jar." in result.output

    def test_network_failure_exits_with_error(self, invoke, server_dir, paper_server):
        paper_server.status_overrides["/ci/"] = 502

        result = invoke("-C", str(server_dir))

        assert result.exit_code == EXIT_FAILURE
        assert "Error: Build list request" in result.output
        assert "HTTP 502" in result.output

# === NAVMAP v1 ===
# {
#   "module": "tests.paper_update.conftest",
#   "purpose": "Shared fixtures emulating the catalog, CI, and download endpoints",
#   "sections": [
#     {"id": "payloads", "name": "Payload Builders", "anchor": "PAY", "kind": "helpers"},
#     {"id": "server", "name": "FakePaperServer", "anchor": "SRV", "kind": "helpers"},
#     {"id": "fixtures", "name": "Fixtures", "anchor": "FIX", "kind": "fixtures"}
#   ]
# }
# === /NAVMAP ===

"""Shared fixtures emulating the catalog, CI, and download endpoints."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import httpx
import pytest

from PaperUpdate.logging_config import LOGGER_NAME
from PaperUpdate.net import reset_http_client

CATALOG_SCRIPT = """\
// Download page bootstrap
const listenerOptions = { passive: true };
window.addEventListener("scroll", onScroll, listenerOptions);

/* catalog of downloadable projects; "{" in comments is ignored */
var versions = {
    "paper-1.19": { api_endpoint: "paper", api_version: "1.19", title: 'Paper 1.19', },
    "paper-1.18": {
        api_endpoint: "paper",
        api_version: "1.18.1", // current line
        docs: "https://paper.readthedocs.io/{lang}/",
    },
    waterfall: { api_endpoint: 'waterfall', api_version: "1.18", },
};
"""

ARTIFACT_BYTES = b"PK\x03\x04" + b"\x00" * 4092

# 2022-01-01T00:00:00Z
BASE_TIMESTAMP = 1640995200000


def make_build(number: int, *comments: str, timestamp: int = BASE_TIMESTAMP) -> Dict[str, Any]:
    """Return one CI build entry in the upstream JSON shape."""

    items = [
        {"commitId": f"{number:03d}{index}abcdef0123456789", "comment": comment, "msg": comment}
        for index, comment in enumerate(comments)
    ]
    return {"number": number, "timestamp": timestamp, "changeSet": {"items": items}}


def default_builds() -> List[Dict[str, Any]]:
    return [
        make_build(105, "Fix chunk loading\nMore detail\n", "Second commit\n"),
        make_build(104, "[CI-SKIP] Update readme\n"),
        make_build(103, "Older fix\n"),
        make_build(102, "Installed build\n"),
    ]


@dataclass
class FakePaperServer:
    """Routes requests for the three upstream resources to canned payloads."""

    script: str = CATALOG_SCRIPT
    builds: List[Dict[str, Any]] = field(default_factory=default_builds)
    artifact: bytes = ARTIFACT_BYTES
    status_overrides: Dict[str, int] = field(default_factory=dict)
    requests: List[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for prefix, status in self.status_overrides.items():
            if path.startswith(prefix):
                return httpx.Response(status)
        if path == "/js/downloads.js":
            return httpx.Response(200, text=self.script)
        if path.startswith("/ci/job/Paper-") and path.endswith("/api/json"):
            return httpx.Response(200, text=json.dumps({"builds": self.builds}))
        if path.startswith("/api/v1/paper/") and path.endswith("/download"):
            if request.method == "HEAD":
                return httpx.Response(200, headers={"Content-Length": str(len(self.artifact))})
            return httpx.Response(200, content=self.artifact)
        return httpx.Response(404)

    def paths(self, method: str = "GET") -> List[str]:
        return [request.url.path for request in self.requests if request.method == method]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def write_history(directory: Path, current_version: str) -> None:
    (directory / "version_history.json").write_text(
        json.dumps({"currentVersion": current_version}), encoding="utf-8"
    )


@pytest.fixture
def paper_server() -> FakePaperServer:
    return FakePaperServer()


@pytest.fixture
def mock_client(paper_server: FakePaperServer):
    with httpx.Client(transport=paper_server.transport) as client:
        yield client


@pytest.fixture(autouse=True)
def _isolate_updater_globals(monkeypatch):
    """Reset the shared client, the package logger, and ``PAPERUPDATE_*`` variables."""

    for key in list(os.environ):
        if key.upper().startswith("PAPERUPDATE_"):
            monkeypatch.delenv(key, raising=False)
    yield
    reset_http_client()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_paperupdate_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def build_factory():
    return make_build


@pytest.fixture
def history_writer():
    return write_history

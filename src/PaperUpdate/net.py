# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate.net",
#   "purpose": "Provide the shared HTTPX client used for catalog, build list, and artifact requests",
#   "sections": [
#     {"id": "constants", "name": "Constants & globals", "anchor": "CONST", "kind": "constants"},
#     {"id": "helpers", "name": "Client construction helpers", "anchor": "HELP", "kind": "helpers"},
#     {"id": "api", "name": "Public API", "anchor": "API", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Shared HTTPX client used across the updater."""

from __future__ import annotations

import contextlib
import logging
import ssl
import threading
import time
from typing import Optional

import certifi
import httpx

from .settings import HttpConfiguration

LOGGER = logging.getLogger("PaperUpdate.net")

# --- Constants & globals -------------------------------------------------------

_CLIENT_LOCK = threading.RLock()
_HTTP_CLIENT: Optional[httpx.Client] = None
_DEFAULT_CONFIG = HttpConfiguration()

# --- Client construction helpers ----------------------------------------------


def _build_ssl_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.load_verify_locations(certifi.where())
    return context


def _request_hook(request: httpx.Request) -> None:
    request.headers.setdefault("User-Agent", _DEFAULT_CONFIG.user_agent)
    request.extensions["paperupdate_start"] = time.perf_counter()
    LOGGER.debug(
        "http-request",
        extra={"stage": "http", "method": request.method, "url": str(request.url)},
    )


def _response_hook(response: httpx.Response) -> None:
    response.raise_for_status()

    start = response.request.extensions.get("paperupdate_start")
    elapsed = time.perf_counter() - start if isinstance(start, float) else None
    LOGGER.debug(
        "http-response",
        extra={
            "stage": "http",
            "url": str(response.request.url),
            "status": response.status_code,
            "elapsed_sec": round(elapsed, 3) if elapsed is not None else None,
        },
    )


def timeout_for(config: HttpConfiguration, *, streaming: bool = False) -> httpx.Timeout:
    """Return the request timeout; streaming reads use the download budget."""

    read = config.download_timeout_sec if streaming else config.timeout_sec
    return httpx.Timeout(
        connect=config.connect_timeout_sec,
        read=read,
        write=config.timeout_sec,
        pool=config.connect_timeout_sec,
    )


def _build_http_client(config: HttpConfiguration) -> httpx.Client:
    return httpx.Client(
        http2=config.http2_enabled,
        headers={"User-Agent": config.user_agent},
        timeout=timeout_for(config),
        verify=_build_ssl_context(),
        trust_env=True,
        follow_redirects=True,
        event_hooks={"request": [_request_hook], "response": [_response_hook]},
    )


def _close_client_unlocked() -> None:
    global _HTTP_CLIENT
    if _HTTP_CLIENT is not None:
        with contextlib.suppress(Exception):
            _HTTP_CLIENT.close()
    _HTTP_CLIENT = None


# --- Public API ----------------------------------------------------------------


def configure_http_client(
    client: Optional[httpx.Client] = None,
    *,
    default_config: Optional[HttpConfiguration] = None,
) -> None:
    """Override the shared HTTPX client (used by tests and embedding callers)."""

    global _HTTP_CLIENT, _DEFAULT_CONFIG
    with _CLIENT_LOCK:
        if default_config is not None:
            _DEFAULT_CONFIG = default_config
        if client is None:
            _close_client_unlocked()
        else:
            if _HTTP_CLIENT is not client:
                _close_client_unlocked()
            _HTTP_CLIENT = client


def reset_http_client() -> None:
    """Drop the shared HTTPX client so the next call builds a fresh one."""

    global _DEFAULT_CONFIG
    with _CLIENT_LOCK:
        _DEFAULT_CONFIG = HttpConfiguration()
        _close_client_unlocked()


def get_http_client(config: Optional[HttpConfiguration] = None) -> httpx.Client:
    """Return the shared HTTPX client, creating it if necessary."""

    global _HTTP_CLIENT, _DEFAULT_CONFIG
    with _CLIENT_LOCK:
        if _HTTP_CLIENT is not None:
            return _HTTP_CLIENT
        if config is not None:
            _DEFAULT_CONFIG = config
        _HTTP_CLIENT = _build_http_client(_DEFAULT_CONFIG)
        return _HTTP_CLIENT


__all__ = [
    "configure_http_client",
    "reset_http_client",
    "get_http_client",
    "timeout_for",
]

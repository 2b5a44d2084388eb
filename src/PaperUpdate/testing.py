"""Test helpers for exercising the updater without network access."""

from __future__ import annotations

import contextlib
from typing import Any, Iterator

import httpx

from .net import configure_http_client, reset_http_client

__all__ = ["use_mock_http_client"]


@contextlib.contextmanager
def use_mock_http_client(transport: httpx.BaseTransport, **client_kwargs: Any) -> Iterator[httpx.Client]:
    """Temporarily install an HTTPX client backed by ``transport``."""

    default_config = client_kwargs.pop("default_config", None)
    client = httpx.Client(transport=transport, **client_kwargs)
    configure_http_client(client=client, default_config=default_config)
    try:
        yield client
    finally:
        reset_http_client()

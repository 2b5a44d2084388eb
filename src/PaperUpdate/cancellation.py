"""Cooperative cancellation primitive shared by the download worker and the CLI.

The download runs on a worker thread while the main thread waits and owns the
SIGINT handler. The handler never raises into the worker; it flips a
:class:`CancellationToken` that the worker checks between chunks and closes
the open response, so cleanup of the partial file always happens on the
thread that owns the file handle.
"""

from __future__ import annotations

import threading

__all__ = ["CancellationToken"]


class CancellationToken:
    """Thread-safe cancellation token for cooperative task cancellation.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()

    def cancel(self) -> None:
        """Signal that cancellation has been requested."""
        self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._is_cancelled.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; return ``True`` once cancelled."""
        return self._is_cancelled.wait(timeout)


# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate.cancellation",
#   "purpose": "Provide the cooperative cancellation token used by download sessions",
#   "sections": [
#     {"id": "token", "name": "CancellationToken", "anchor": "TOK", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate.download",
#   "purpose": "Stream artifacts to a temporary file with progress reporting and cancellation",
#   "sections": [
#     {"id": "models", "name": "Download Models", "anchor": "MOD", "kind": "api"},
#     {"id": "content-length", "name": "Content Length Lookup", "anchor": "HEAD", "kind": "api"},
#     {"id": "session", "name": "DownloadSession", "anchor": "SES", "kind": "api"},
#     {"id": "signals", "name": "Interrupt Handling", "anchor": "SIG", "kind": "helpers"}
#   ]
# }
# === /NAVMAP ===

"""Streaming artifact download with cooperative cancellation.

A :class:`DownloadSession` streams the response body on a worker thread into
``<artifact>-<build>.jar.temp`` while the caller waits. Its lifecycle is an
explicit three-state machine:

``idle``
    Not started, or terminated by cancellation.
``downloading``
    Bytes are flowing; an interrupt cancels the session.
``finishing``
    The body is complete and control has passed to the install step; an
    interrupt no longer has any effect.

All state changes go through :meth:`DownloadSession._transition` under a
single lock, so the outcome never depends on whether the interrupt handler
or the worker's completion path runs first.
"""

from __future__ import annotations

import contextlib
import enum
import logging
import signal
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

import httpx

from .cancellation import CancellationToken
from .errors import DownloadCancelled, NetworkFailure, PaperUpdateError
from .net import timeout_for
from .settings import HttpConfiguration

__all__ = [
    "DownloadState",
    "DownloadTarget",
    "DownloadResult",
    "DownloadSession",
    "progress_fraction",
    "head_content_length",
    "discard_file",
    "cancel_on_interrupt",
]

LOGGER = logging.getLogger("PaperUpdate.download")

ProgressCallback = Callable[[int, Optional[int]], None]


class DownloadState(str, enum.Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    FINISHING = "finishing"


@dataclass(frozen=True, slots=True)
class DownloadTarget:
    """Where a selected build is written.

    Attributes:
        final_path: Numbered artifact path (``paper-123.jar``).
        temp_path: Temporary path receiving the bytes (``paper-123.jar.temp``).
        expected_size: ``Content-Length`` reported by the HEAD request, if any.
    """

    final_path: Path
    temp_path: Path
    expected_size: Optional[int] = None

    @classmethod
    def for_build(
        cls,
        directory: Path,
        artifact_name: str,
        build_number: int,
        expected_size: Optional[int] = None,
    ) -> "DownloadTarget":
        final_path = directory / f"{artifact_name}-{build_number}.jar"
        return cls(
            final_path=final_path,
            temp_path=final_path.with_name(final_path.name + ".temp"),
            expected_size=expected_size,
        )

    @property
    def final_name(self) -> str:
        return self.final_path.name

    @property
    def temp_name(self) -> str:
        return self.temp_path.name


@dataclass(frozen=True, slots=True)
class DownloadResult:
    path: Path
    bytes_written: int
    expected_size: Optional[int]


def progress_fraction(bytes_written: int, expected_size: Optional[int]) -> float:
    """Return download progress clamped to ``[0, 1]``.

    Examples:
        >>> progress_fraction(50, 200)
        0.25
        >>> progress_fraction(50, None)
        0.0
        >>> progress_fraction(300, 200)
        1.0
    """

    if not expected_size or expected_size <= 0:
        return 0.0
    return max(0.0, min(1.0, bytes_written / expected_size))


def discard_file(path: Path) -> bool:
    """Delete ``path`` if present; return ``False`` when it was already missing."""

    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def head_content_length(
    client: httpx.Client, url: str, config: Optional[HttpConfiguration] = None
) -> Optional[int]:
    """Issue a HEAD request and return the advertised ``Content-Length``.

    Raises:
        NetworkFailure: If the HEAD request fails.
    """

    cfg = config or HttpConfiguration()
    try:
        response = client.head(url, timeout=timeout_for(cfg))
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise NetworkFailure(
            f"Error downloading from {url}: HTTP {exc.response.status_code}",
            url=url,
            status_code=exc.response.status_code,
        ) from exc
    except httpx.HTTPError as exc:
        raise NetworkFailure(f"Error downloading from {url}: {exc}", url=url) from exc

    header = response.headers.get("Content-Length")
    if not header:
        return None
    try:
        return int(header)
    except ValueError:
        LOGGER.debug(
            "ignoring unparsable Content-Length",
            extra={"stage": "download", "url": url, "content_length": header},
        )
        return None


class DownloadSession:
    """Handle for one artifact download.

    Attributes:
        url: Artifact URL.
        target: Paths and expected size for the download.

    Examples:
        >>> session = DownloadSession(client, url, target).start()  # doctest: +SKIP
        >>> result = session.wait()  # doctest: +SKIP
    """

    def __init__(
        self,
        client: httpx.Client,
        url: str,
        target: DownloadTarget,
        *,
        config: Optional[HttpConfiguration] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[Callable[[DownloadResult], None]] = None,
        token: Optional[CancellationToken] = None,
    ) -> None:
        self.url = url
        self.target = target
        self._client = client
        self._config = config or HttpConfiguration()
        self._on_progress = on_progress
        self._on_complete = on_complete
        self._token = token or CancellationToken()
        self._lock = threading.Lock()
        self._state = DownloadState.IDLE
        self._bytes_written = 0
        self._thread: Optional[threading.Thread] = None
        self._result: Optional[DownloadResult] = None
        self._error: Optional[BaseException] = None
        self._cancelled = False
        self._completed_signalled = False
        self._response: Optional[httpx.Response] = None

    # -- state ----------------------------------------------------------------

    @property
    def state(self) -> DownloadState:
        with self._lock:
            return self._state

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    @property
    def fraction(self) -> float:
        return progress_fraction(self._bytes_written, self.target.expected_size)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def token(self) -> CancellationToken:
        return self._token

    def _transition(self, expected: DownloadState, new: DownloadState) -> bool:
        """Move from ``expected`` to ``new``; return ``False`` if not in ``expected``."""

        with self._lock:
            if self._state is not expected:
                return False
            self._state = new
            return True

    # -- control ----------------------------------------------------------------

    def start(self) -> "DownloadSession":
        """Begin streaming on a worker thread and return ``self``."""

        if not self._transition(DownloadState.IDLE, DownloadState.DOWNLOADING):
            raise PaperUpdateError(f"Download of {self.url} was already started")
        self.target.temp_path.parent.mkdir(parents=True, exist_ok=True)
        LOGGER.debug(
            f"Writing to {self.target.temp_name}...",
            extra={"stage": "download", "url": self.url, "path": str(self.target.temp_path)},
        )
        self._thread = threading.Thread(
            target=self._worker, name="paperupdate-download", daemon=True
        )
        self._thread.start()
        return self

    def cancel(self) -> bool:
        """Request cancellation; return ``False`` when not currently downloading.

        The open response is closed as well, so a stalled body read fails
        immediately instead of waiting for the next chunk or the read timeout.
        """

        with self._lock:
            if self._state is not DownloadState.DOWNLOADING:
                return False
            self._token.cancel()
            response = self._response
        if response is not None:
            try:
                response.close()
            except (httpx.HTTPError, httpx.StreamError, OSError) as exc:
                LOGGER.debug(
                    "error closing cancelled response",
                    extra={"stage": "download", "url": self.url, "error": str(exc)},
                )
        return True

    def wait(self, poll_interval: float = 0.1) -> DownloadResult:
        """Block until the worker finishes and return the result.

        The join is sliced into ``poll_interval`` steps so signal handlers on
        the main thread keep running while the download is in flight.

        Raises:
            DownloadCancelled: If the session was cancelled.
            NetworkFailure: If the request or stream failed.
            PaperUpdateError: If the temporary file could not be written.
        """

        if self._thread is None:
            raise PaperUpdateError(f"Download of {self.url} was never started")
        while self._thread.is_alive():
            self._thread.join(poll_interval)
        if self._cancelled:
            raise DownloadCancelled(f"Download of {self.url} was cancelled")
        if self._error is not None:
            raise self._error
        if self._result is None:
            raise PaperUpdateError(f"Download of {self.url} finished without a result")
        return self._result

    def run(self) -> DownloadResult:
        """Start the session and wait for it."""

        return self.start().wait()

    # -- worker -----------------------------------------------------------------

    def _worker(self) -> None:
        try:
            self._stream()
        except httpx.HTTPStatusError as exc:
            self._fail(
                NetworkFailure(
                    f"Error downloading from {self.url}: HTTP {exc.response.status_code}",
                    url=self.url,
                    status_code=exc.response.status_code,
                )
            )
            return
        except (httpx.HTTPError, httpx.StreamError) as exc:
            self._fail(NetworkFailure(f"Error downloading from {self.url}: {exc}", url=self.url))
            return
        except OSError as exc:
            self._fail(
                PaperUpdateError(f"Failed to write {self.target.temp_path}: {exc}")
            )
            return
        except Exception as exc:  # re-raised on the waiting thread
            self._fail(exc)
            return
        self._finish()

    def _stream(self) -> None:
        timeout = timeout_for(self._config, streaming=True)
        with self._client.stream("GET", self.url, timeout=timeout) as response:
            with self._lock:
                self._response = response
            try:
                if self._token.is_cancelled():
                    return
                response.raise_for_status()
                with self.target.temp_path.open("wb") as handle:
                    for chunk in response.iter_bytes(self._config.chunk_size):
                        if self._token.is_cancelled():
                            return
                        if not chunk:
                            continue
                        handle.write(chunk)
                        self._bytes_written += len(chunk)
                        if self._on_progress is not None:
                            self._on_progress(self._bytes_written, self.target.expected_size)
            finally:
                with self._lock:
                    self._response = None

    def _finish(self) -> None:
        with self._lock:
            if self._token.is_cancelled():
                self._state = DownloadState.IDLE
                self._cancelled = True
            else:
                self._state = DownloadState.FINISHING
        if self._cancelled:
            self._discard_partial()
            return

        self._result = DownloadResult(
            path=self.target.temp_path,
            bytes_written=self._bytes_written,
            expected_size=self.target.expected_size,
        )
        if self._on_complete is not None and not self._completed_signalled:
            self._completed_signalled = True
            self._on_complete(self._result)

    def _fail(self, error: BaseException) -> None:
        with self._lock:
            self._cancelled = self._token.is_cancelled()
            self._state = DownloadState.IDLE
        self._error = error
        self._discard_partial()

    def _discard_partial(self) -> None:
        try:
            removed = discard_file(self.target.temp_path)
        except OSError as exc:
            LOGGER.error(
                f"Failed to delete {self.target.temp_name}.",
                extra={"stage": "download", "path": str(self.target.temp_path), "error": str(exc)},
            )
            return
        if removed:
            LOGGER.debug(
                f"Deleted {self.target.temp_name}.",
                extra={"stage": "download", "path": str(self.target.temp_path)},
            )
        else:
            LOGGER.debug(
                f"No partial file {self.target.temp_name} to delete.",
                extra={"stage": "download", "path": str(self.target.temp_path)},
            )


@contextlib.contextmanager
def cancel_on_interrupt(session: DownloadSession) -> Iterator[None]:
    """Route SIGINT to :meth:`DownloadSession.cancel` for the duration of the block.

    Only effective on the main thread; elsewhere the block runs unchanged.
    """

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: object) -> None:
        if session.cancel():
            LOGGER.debug("Interrupt received; cancelling download.", extra={"stage": "download"})
        else:
            LOGGER.debug(
                "Interrupt ignored; download is not in progress.",
                extra={"stage": "download", "state": session.state.value},
            )

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)

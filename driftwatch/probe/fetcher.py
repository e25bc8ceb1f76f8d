"""
HTTP probing for driftwatch.
Fetches either the leading bytes of a resource (ranged GET) or only its headers (HEAD).
Every probe is bounded by the run timeout as a whole (connect, headers and body together);
failures surface as ProbeError subclasses.
"""

import logging
import threading
import time
from concurrent.futures import Future, TimeoutError as FutureTimeoutError

import requests

from driftwatch.probe.models import ProbeError, ProbeHTTPError, ProbeTimeoutError, ProbeResponse

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024


class RemoteProbe:
    """
    FLOW: Builds cache-busting request -> Runs ranged GET or HEAD on a watchdog thread ->
    Streams body until max_bytes -> Returns ProbeResponse, or ProbeTimeoutError once the deadline passes.

    Each call issues its own requests.get / requests.head, so concurrent targets never share
    a connection pool.
    """

    def __init__(self, timeout_ms: int, max_bytes: int, user_agent: str):
        self._timeout = timeout_ms / 1000.0
        self._max_bytes = max_bytes
        self._user_agent = user_agent

    def _headers(self, extra=None):
        headers = {
            "User-Agent": self._user_agent,
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        if extra:
            headers.update(extra)
        return headers

    def probe(self, locator: str, mode: str) -> ProbeResponse:
        if mode == "head":
            return self.fetch_headers(locator)
        if mode == "range":
            return self.fetch_leading_bytes(locator)
        raise ValueError(f"Unknown probe mode: {mode}")

    def fetch_leading_bytes(self, locator: str) -> ProbeResponse:
        """
        Ask for bytes=0-(max_bytes-1) only.
        Some servers ignore Range and answer 200 with the whole body; the stream is cut at max_bytes anyway.
        """
        return self._within_deadline(self._get_leading_bytes, locator)

    def fetch_headers(self, locator: str) -> ProbeResponse:
        """Metadata-only probe: HEAD, the body is never transferred."""
        return self._within_deadline(self._head, locator)

    def _within_deadline(self, fetch, locator: str) -> ProbeResponse:
        """
        Runs fetch on a daemon thread and waits at most the probe timeout for it.
        requests only bounds single socket operations, so a server trickling bytes
        would otherwise hold the target indefinitely.
        """
        future = Future()
        cancelled = threading.Event()

        def runner():
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fetch(locator, cancelled))
            except BaseException as e:
                future.set_exception(e)

        worker = threading.Thread(target=runner, name=f"probe-{locator}", daemon=True)
        worker.start()
        try:
            return future.result(timeout=self._timeout)
        except FutureTimeoutError:
            # The worker notices at its next chunk and drops the connection
            cancelled.set()
            logger.debug(f"[PROBE] {locator} abandoned after {self._timeout:.1f}s")
            raise ProbeTimeoutError(f"timed out after {self._timeout:.1f}s", locator) from None

    def _get_leading_bytes(self, locator: str, cancelled: threading.Event) -> ProbeResponse:
        start = time.monotonic()
        headers = self._headers({"Range": f"bytes=0-{self._max_bytes - 1}"})

        try:
            with requests.get(
                locator,
                headers=headers,
                timeout=(self._timeout, self._timeout),
                stream=True,
                allow_redirects=True,
            ) as r:
                self._raise_for_status(r, locator)

                body = bytearray()
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if cancelled.is_set():
                        raise ProbeTimeoutError(f"timed out after {self._timeout:.1f}s reading body", locator)
                    if chunk:
                        body.extend(chunk)
                    if len(body) >= self._max_bytes:
                        break

                return ProbeResponse(
                    locator=locator,
                    http_status=r.status_code,
                    body=bytes(body[:self._max_bytes]),
                    headers=dict(r.headers),
                    fetch_duration_ms=int((time.monotonic() - start) * 1000),
                )
        except requests.exceptions.Timeout as e:
            raise ProbeTimeoutError(f"timed out after {self._timeout:.1f}s: {e}", locator) from e
        except requests.exceptions.RequestException as e:
            raise ProbeError(str(e), locator) from e

    def _head(self, locator: str, cancelled: threading.Event) -> ProbeResponse:
        start = time.monotonic()
        try:
            with requests.head(
                locator,
                headers=self._headers(),
                timeout=(self._timeout, self._timeout),
                allow_redirects=True,
            ) as r:
                self._raise_for_status(r, locator)
                return ProbeResponse(
                    locator=locator,
                    http_status=r.status_code,
                    headers=dict(r.headers),
                    fetch_duration_ms=int((time.monotonic() - start) * 1000),
                )
        except requests.exceptions.Timeout as e:
            raise ProbeTimeoutError(f"timed out after {self._timeout:.1f}s: {e}", locator) from e
        except requests.exceptions.RequestException as e:
            raise ProbeError(str(e), locator) from e

    @staticmethod
    def _raise_for_status(response, locator):
        if not (200 <= response.status_code < 300):
            logger.debug(f"[PROBE] {locator} answered {response.status_code}")
            raise ProbeHTTPError(response.status_code, locator)

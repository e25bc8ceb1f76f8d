"""
Verification Scenarios for the HTTP probe.
Unit cases mock requests.get / requests.head; deadline cases run against a local socket server.
"""

import os
import socketserver
import threading
import time
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import requests

from driftwatch.probe import ProbeError, ProbeHTTPError, ProbeTimeoutError, RemoteProbe

URL = "https://cdn.example.com/adzone.js"
ASSET = b"// v 100\n// 2026-Jan-02 10:00:00\n" + b"/" * 4000


def fake_response(status=200, chunks=(), headers=None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.iter_content.side_effect = lambda chunk_size: iter(chunks)
    resp.__enter__.return_value = resp
    return resp


class TestRemoteProbe(unittest.TestCase):
    def setUp(self):
        self.probe = RemoteProbe(timeout_ms=12000, max_bytes=16, user_agent="driftwatch/test")

        get_patcher = patch("driftwatch.probe.fetcher.requests.get")
        head_patcher = patch("driftwatch.probe.fetcher.requests.head")
        self.get = get_patcher.start()
        self.head = head_patcher.start()
        self.addCleanup(get_patcher.stop)
        self.addCleanup(head_patcher.stop)

    def test_ranged_get_sends_cache_busting_range_request(self):
        self.get.return_value = fake_response(206, [b"// v 100\n"])

        result = self.probe.probe(URL, "range")

        self.assertEqual(result.body, b"// v 100\n")
        self.assertEqual(result.http_status, 206)
        args, kwargs = self.get.call_args
        self.assertEqual(args[0], URL)
        self.assertEqual(kwargs["headers"]["Range"], "bytes=0-15")
        self.assertEqual(kwargs["headers"]["Cache-Control"], "no-cache")
        self.assertEqual(kwargs["headers"]["Pragma"], "no-cache")
        self.assertEqual(kwargs["timeout"], (12.0, 12.0))
        self.assertTrue(kwargs["stream"])

    def test_server_ignoring_range_is_truncated(self):
        """Scenario: Server answers 200 with the full body despite Range."""
        self.get.return_value = fake_response(200, [b"0123456789", b"abcdefghij", b"never read"])

        result = self.probe.fetch_leading_bytes(URL)

        self.assertEqual(result.body, b"0123456789abcdef")
        self.assertEqual(len(result.body), 16)

    def test_non_success_status(self):
        self.get.return_value = fake_response(404)

        with self.assertRaises(ProbeHTTPError) as cm:
            self.probe.fetch_leading_bytes(URL)

        self.assertEqual(cm.exception.status, 404)
        self.assertEqual(str(cm.exception), "HTTP 404")
        self.assertEqual(cm.exception.locator, URL)

    def test_transport_timeout(self):
        self.get.side_effect = requests.exceptions.ReadTimeout("read timed out")
        with self.assertRaises(ProbeTimeoutError):
            self.probe.fetch_leading_bytes(URL)

    def test_transport_error(self):
        self.get.side_effect = requests.exceptions.ConnectionError("connection refused")
        with self.assertRaises(ProbeError) as cm:
            self.probe.fetch_leading_bytes(URL)
        self.assertNotIsInstance(cm.exception, ProbeTimeoutError)
        self.assertIn("connection refused", str(cm.exception))

    def test_head_returns_headers_only(self):
        self.head.return_value = fake_response(200, headers={"x-goog-hash": "md5=abc=="})

        result = self.probe.probe(URL, "head")

        self.assertEqual(result.headers, {"x-goog-hash": "md5=abc=="})
        self.assertEqual(result.body, b"")
        self.get.assert_not_called()
        kwargs = self.head.call_args[1]
        self.assertNotIn("Range", kwargs["headers"])

    def test_head_non_success_status(self):
        self.head.return_value = fake_response(403)
        with self.assertRaises(ProbeHTTPError):
            self.probe.fetch_headers(URL)

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            self.probe.probe(URL, "options")

    def test_concurrent_fetches_issue_independent_requests(self):
        """Scenario: Several worker threads fetch at once; each fetch makes its own request."""
        self.get.side_effect = lambda locator, **kwargs: fake_response(200, [locator.encode("ascii")])
        locators = [f"https://cdn.example.com/{n}.js" for n in range(6)]

        with ThreadPoolExecutor(max_workers=3) as executor:
            bodies = list(executor.map(lambda loc: self.probe.fetch_leading_bytes(loc).body, locators))

        self.assertEqual(self.get.call_count, 6)
        self.assertEqual(bodies, [loc.encode("ascii")[:16] for loc in locators])


class _AssetHandler(socketserver.BaseRequestHandler):
    """Serves ASSET over HTTP/1.1, optionally one byte per interval, or never finishes the headers."""

    def handle(self):
        server = self.server
        try:
            self.request.recv(65536)
            if server.stall_headers:
                self.request.sendall(b"HTTP/1.1 200 OK\r\nx-goog-hash: md5=")
                while not server.stopping.is_set():
                    self.request.sendall(b"A")
                    time.sleep(server.interval)
                return

            self.request.sendall(
                b"HTTP/1.1 200 OK\r\nContent-Length: %d\r\nConnection: close\r\n\r\n" % len(ASSET)
            )
            if not server.interval:
                self.request.sendall(ASSET)
                return
            for i in range(len(ASSET)):
                if server.stopping.is_set():
                    return
                self.request.sendall(ASSET[i:i + 1])
                time.sleep(server.interval)
        except OSError:
            # Client gave up and closed the connection
            return


class TestProbeDeadline(unittest.TestCase):
    """
    Scenario: Real sockets. A server that keeps every single read under the read timeout
    must still be cut off once the whole probe exceeds timeout_ms.
    """

    def start_server(self, interval=0.0, stall_headers=False):
        server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), _AssetHandler)
        server.daemon_threads = True
        server.interval = interval
        server.stall_headers = stall_headers
        server.stopping = threading.Event()
        threading.Thread(target=server.serve_forever, daemon=True).start()

        def stop():
            server.stopping.set()
            server.shutdown()
            server.server_close()

        self.addCleanup(stop)
        host, port = server.server_address
        return f"http://{host}:{port}/adzone.js"

    def setUp(self):
        env = patch.dict(os.environ, {"NO_PROXY": "127.0.0.1,localhost", "no_proxy": "127.0.0.1,localhost"})
        env.start()
        self.addCleanup(env.stop)

    def test_fast_server_returns_leading_bytes(self):
        url = self.start_server()
        probe = RemoteProbe(timeout_ms=5000, max_bytes=2048, user_agent="driftwatch/test")

        result = probe.fetch_leading_bytes(url)

        self.assertEqual(result.http_status, 200)
        self.assertEqual(result.body, ASSET[:2048])

    def test_trickling_body_stops_at_overall_timeout(self):
        url = self.start_server(interval=0.05)
        probe = RemoteProbe(timeout_ms=500, max_bytes=2048, user_agent="driftwatch/test")

        start = time.monotonic()
        with self.assertRaises(ProbeTimeoutError) as cm:
            probe.fetch_leading_bytes(url)
        elapsed = time.monotonic() - start

        self.assertLess(elapsed, 2.0)
        self.assertEqual(cm.exception.locator, url)

    def test_trickling_headers_stop_head_at_overall_timeout(self):
        url = self.start_server(interval=0.05, stall_headers=True)
        probe = RemoteProbe(timeout_ms=500, max_bytes=2048, user_agent="driftwatch/test")

        start = time.monotonic()
        with self.assertRaises(ProbeTimeoutError):
            probe.fetch_headers(url)

        self.assertLess(time.monotonic() - start, 2.0)

    def test_concurrent_fetches_against_live_server(self):
        url = self.start_server()
        probe = RemoteProbe(timeout_ms=5000, max_bytes=64, user_agent="driftwatch/test")

        with ThreadPoolExecutor(max_workers=4) as executor:
            bodies = list(executor.map(lambda _: probe.fetch_leading_bytes(url).body, range(8)))

        self.assertEqual(bodies, [ASSET[:64]] * 8)


if __name__ == "__main__":
    unittest.main()

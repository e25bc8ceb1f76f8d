"""
Verification Scenarios for the run-once command line entry point
"""

import io
import json
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import ANY, patch

from driftwatch import cli
from driftwatch.probe import ProbeResponse, ProbeTimeoutError


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.config_path = self.tmp / "sites.json"
        self.state_dir = self.tmp / "state"
        self.config_path.write_text(
            json.dumps({"siteA": "https://x/y", "siteB": "https://z/w"}), encoding="utf-8"
        )

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def argv(self, *extra):
        return ["--config", str(self.config_path), "--state-dir", str(self.state_dir), "--kind", "header"] + list(extra)

    def test_unreadable_config_exits_non_zero(self):
        code = cli.main(["--config", str(self.tmp / "missing.json"), "--state-dir", str(self.state_dir)])
        self.assertEqual(code, 1)
        self.assertFalse(self.state_dir.exists())

    def test_invalid_setting_exits_non_zero(self):
        self.assertEqual(cli.main(self.argv("--timeout-ms", "0")), 1)

    @patch("driftwatch.cli.RemoteProbe")
    def test_target_failure_still_exits_zero(self, probe_cls):
        def fake_probe(locator, mode):
            if locator == "https://z/w":
                raise ProbeTimeoutError("timed out", locator)
            return ProbeResponse(locator=locator, http_status=200, body=b"// v 3\n// 2026-Jan-02 10:00:00\n")

        probe_cls.return_value.probe.side_effect = fake_probe

        out = io.StringIO()
        with redirect_stdout(out):
            code = cli.main(self.argv("--max-bytes", "4096", "--timeout-ms", "500"))

        self.assertEqual(code, 0)
        probe_cls.assert_called_once_with(timeout_ms=500, max_bytes=4096, user_agent=ANY)
        self.assertTrue((self.state_dir / "siteA.header.json").exists())
        self.assertFalse((self.state_dir / "siteB.header.json").exists())
        self.assertIn("DRIFT RUN SUMMARY", out.getvalue())
        self.assertIn("FETCH_FAILED", out.getvalue())

    def test_show_state_lists_records(self):
        self.state_dir.mkdir()
        (self.state_dir / "siteA.header.json").write_text(json.dumps({
            "site": "siteA", "url": "https://x/y", "checkedAt": "2026-01-01T00:00:00+00:00",
            "version": "100", "date": None,
        }), encoding="utf-8")

        out = io.StringIO()
        with redirect_stdout(out):
            code = cli.main(self.argv("--show-state"))

        self.assertEqual(code, 0)
        self.assertIn("siteA", out.getvalue())
        self.assertIn("100", out.getvalue())
        self.assertIn("null", out.getvalue())


if __name__ == "__main__":
    unittest.main()

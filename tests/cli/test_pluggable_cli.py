import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from pluggable.cli.main import main as pluggable_main


class TestPluggableCli(unittest.TestCase):
    def run_cli(self, argv):
        buf = io.StringIO()
        with redirect_stdout(buf):
            rc = pluggable_main(argv)
        return rc, buf.getvalue()

    def test_check_contracts(self) -> None:
        rc, out = self.run_cli(["check-contracts"])
        self.assertEqual(rc, 0)
        self.assertIn("Contracts OK", out)

    def test_show_trace_outputs_events(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "t.jsonl"
            p.write_text(
                "\n".join(
                    [
                        json.dumps({"ts": "2026-10-19T00:00:00Z", "run_id": "r1", "event_type": "run_started"}),
                        json.dumps({"ts": "2026-10-19T00:00:01Z", "run_id": "r1", "event_type": "invocation_finished"}),
                    ]
                )
                + "\n",
                encoding="utf-8",
            )
            rc, out = self.run_cli(["show-trace", "--trace", str(p), "--tail", "1"])
        self.assertEqual(rc, 0)
        lines = [l for l in out.splitlines() if l.strip()]
        self.assertEqual(len(lines), 1)
        self.assertEqual(json.loads(lines[0])["event_type"], "invocation_finished")

    def test_interpolate_filename_with_trace(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            bundle = Path(td) / "bundle.json"
            bundle.write_text(
                json.dumps({"destination_pattern": "a/[setHash]-[bundleHash].js", "set_identifier": "s1", "bundle_content_hash": "b1"}),
                encoding="utf-8",
            )
            trace = Path(td) / "trace.jsonl"
            rc, out = self.run_cli(["interpolate-filename", "--bundle", str(bundle), "--trace", str(trace), "--run-id", "cli_run"])
            self.assertEqual(rc, 0)
            self.assertEqual(json.loads(out)["destination_pattern"], "a/s1-b1.js")

            events = [json.loads(l) for l in trace.read_text(encoding="utf-8").splitlines() if l.strip()]
            self.assertEqual(events[0]["event_type"], "run_started")
            self.assertTrue(all(e["run_id"] == "cli_run" for e in events))

    def test_interpolate_filename_with_config(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            bundle = Path(td) / "bundle.json"
            bundle.write_text(
                json.dumps({"destination_pattern": "[bundleHash].js", "set_identifier": "s", "bundle_content_hash": "b"}),
                encoding="utf-8",
            )
            trace = Path(td) / "from_config.jsonl"
            config = Path(td) / "runtime.yaml"
            config.write_text("run_id: configured\ntrace_path: {}\n".format(json.dumps(str(trace))), encoding="utf-8")
            rc, out = self.run_cli(["interpolate-filename", "--bundle", str(bundle), "--config", str(config)])
            self.assertEqual(rc, 0)
            self.assertEqual(json.loads(out)["destination_pattern"], "b.js")
            first = json.loads(trace.read_text(encoding="utf-8").splitlines()[0])
            self.assertEqual(first["run_id"], "configured")

    def test_invalid_bundle_reports_error(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            bundle = Path(td) / "bundle.json"
            bundle.write_text(json.dumps({"destination_pattern": "x"}), encoding="utf-8")
            rc, out = self.run_cli(["interpolate-filename", "--bundle", str(bundle)])
        self.assertEqual(rc, 1)
        self.assertIn("bundle.invalid", out)

    def test_extract_requires(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            source = Path(td) / "mod.py"
            source.write_text('import os\nx = require("x")\ny = require(name)\n', encoding="utf-8")
            rc, out = self.run_cli(["extract-requires", "--source", str(source)])
        self.assertEqual(rc, 0)
        data = json.loads(out)
        self.assertEqual(data["synchronous_requires"], ["os", "x", "name"])
        self.assertIn("os = require('os')", data["code"])

    def test_extract_requires_usage_error(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            source = Path(td) / "mod.py"
            source.write_text("x = require()\n", encoding="utf-8")
            rc, out = self.run_cli(["extract-requires", "--source", str(source)])
        self.assertEqual(rc, 1)
        self.assertIn("require.missing_target", out)


if __name__ == "__main__":
    unittest.main()

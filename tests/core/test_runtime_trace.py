import json
import tempfile
import unittest
from pathlib import Path
from typing import Any

from pluggable import CONTINUE, Context, ExtensionTable, Runtime, RuntimeConfig, ValidationError, sync
from pluggable.contract_store import core_contracts
from pluggable.trace.replay import Replay


class TestRuntimeConfig(unittest.TestCase):
    def test_from_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "runtime.yaml"
            p.write_text("run_id: r1\ntrace_path: t.jsonl\nprops:\n  out: dist\n", encoding="utf-8")
            config = RuntimeConfig.from_yaml(p)
        self.assertEqual(config.run_id, "r1")
        self.assertEqual(config.trace_path, Path("t.jsonl"))
        self.assertEqual(config.props, {"out": "dist"})
        self.assertEqual(config.meta, {})

    def test_from_yaml_rejects_invalid_config(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "runtime.yaml"
            p.write_text("trace_path: t.jsonl\nunknown: 1\n", encoding="utf-8")
            with self.assertRaises(ValidationError) as caught:
                RuntimeConfig.from_yaml(p)
        self.assertEqual(caught.exception.code, "config.invalid")
        self.assertTrue(caught.exception.data["errors"])

    def test_from_yaml_rejects_empty_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "runtime.yaml"
            p.write_text("", encoding="utf-8")
            with self.assertRaises(ValidationError):
                RuntimeConfig.from_yaml(p)


class TestRuntime(unittest.TestCase):
    def test_root_context_carries_props_and_extensions(self) -> None:
        table = ExtensionTable.build(override={"fun": [lambda ctx: CONTINUE]})
        runtime = Runtime(table)
        ctx = runtime.root_context(RuntimeConfig(run_id="r", props={"a": 1}), {"b": 2})
        self.assertEqual(dict(ctx), {"a": 1, "b": 2})
        self.assertIsNone(ctx.trace)

    def test_run_invokes_root_unit_with_overrides(self) -> None:
        table = ExtensionTable.build(override={"greet": [lambda ctx, who: f"hi {who}" if who == "bob" else CONTINUE]})
        greet = sync(lambda ctx, who: f"hello {who}", name="greet")
        runtime = Runtime(table)
        config = RuntimeConfig(run_id="r")
        self.assertEqual(runtime.run(greet, config, "bob"), "hi bob")
        self.assertEqual(runtime.run(greet, config, "ann"), "hello ann")

    def test_trace_records_chain(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            trace_path = Path(td) / "trace.jsonl"
            table = ExtensionTable.build(override={"fun": [lambda ctx: CONTINUE]})
            fun = sync(lambda ctx: "done", name="fun")

            out = Runtime(table).run(fun, RuntimeConfig(run_id="run_trace", trace_path=trace_path))
            self.assertEqual(out, "done")

            events = list(Replay(trace_path).iter_events())
            event_types = [e["event_type"] for e in events]
            self.assertEqual(
                event_types,
                [
                    "run_started",
                    "invocation_started",
                    "candidate_started",
                    "candidate_continued",
                    "candidate_started",
                    "invocation_finished",
                ],
            )
            self.assertTrue(all(e["run_id"] == "run_trace" for e in events))
            self.assertEqual(events[-1]["step"], 1)
            self.assertEqual(core_contracts().validate_jsonl_file("trace_event.schema.json", trace_path), [])

    def test_trace_records_failure(self) -> None:
        def fun(ctx: Context) -> Any:
            raise RuntimeError("bad")

        with tempfile.TemporaryDirectory() as td:
            trace_path = Path(td) / "trace.jsonl"
            with self.assertRaises(RuntimeError):
                Runtime().run(sync(fun), RuntimeConfig(run_id="r", trace_path=trace_path))
            errors = list(Replay(trace_path).iter_events(event_type="error"))
            self.assertEqual(len(errors), 1)
            self.assertEqual(errors[0]["unit"], "fun")
            self.assertIn("bad", errors[0]["data"]["error"])

    def test_replay_of_missing_file_is_empty(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            self.assertEqual(list(Replay(Path(td) / "none.jsonl").iter_events()), [])

    def test_trace_lines_are_json(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            trace_path = Path(td) / "nested" / "trace.jsonl"
            Runtime().run(sync(lambda ctx: None, name="noop"), RuntimeConfig(run_id="r", trace_path=trace_path))
            for line in trace_path.read_text(encoding="utf-8").splitlines():
                self.assertIn("ts", json.loads(line))


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import argparse
import ast
import json
from dataclasses import replace
from pathlib import Path
from typing import Any

from pluggable.contract_store import ContractStore
from pluggable.core.errors import PluggableError
from pluggable.core.runtime import Runtime, RuntimeConfig
from pluggable.resources import core_contracts_examples_dir, core_contracts_schemas_dir
from pluggable.trace.replay import Replay
from stages.bundles.interpolate_filename import interpolate_filename
from stages.modules.coerce_to_common_js import coerce_to_common_js


def _load_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def _format_cli_error(e: Exception) -> str:
    """
    Print-friendly error formatting for CLI commands.
    - Always includes code/message (via __str__) when it's a PluggableError
    - Includes structured `data` payload when present
    """
    if isinstance(e, PluggableError) and isinstance(e.data, dict) and e.data:
        return str(e) + "\n" + json.dumps(e.data, ensure_ascii=False, indent=2, default=repr)
    return str(e)


def _runtime_config(args: argparse.Namespace) -> RuntimeConfig:
    if args.config:
        config = RuntimeConfig.from_yaml(Path(args.config))
    else:
        config = RuntimeConfig(run_id=args.run_id or "run_cli")
    if args.run_id or args.trace:
        config = replace(
            config,
            run_id=args.run_id or config.run_id,
            trace_path=Path(args.trace) if args.trace else config.trace_path,
        )
    return config


def _render_specifier(value: Any) -> Any:
    if isinstance(value, ast.AST):
        return ast.unparse(value)
    return value


def cmd_check_contracts(_args: argparse.Namespace) -> int:
    schemas_dir = core_contracts_schemas_dir()
    examples_dir = core_contracts_examples_dir()

    store = ContractStore(schemas_dir)
    store.load()

    schema_errors = store.check_schemas()
    if schema_errors:
        print("Schema validation failed:")
        for name, err in schema_errors:
            print("- {}: {}".format(name, err))
        return 1

    failures = [
        ("bundle.example.json", store.validate_json_file("bundle.schema.json", examples_dir / "bundle.example.json")),
        (
            "runtime_config.example.yaml",
            store.validate_yaml_file("runtime_config.schema.json", examples_dir / "runtime_config.example.yaml"),
        ),
        ("trace.sample.jsonl", store.validate_jsonl_file("trace_event.schema.json", examples_dir / "trace.sample.jsonl")),
    ]

    ok = True
    for name, errs in failures:
        if errs:
            ok = False
            print("Example {} failed validation:".format(name))
            for e in errs:
                print("  - {}".format(e))

    if not ok:
        return 1

    print("Contracts OK")
    return 0


def cmd_show_trace(args: argparse.Namespace) -> int:
    replay = Replay(Path(args.trace))
    events = list(replay.iter_events(event_type=args.event_type))

    if args.tail is not None and args.tail >= 0:
        events = events[len(events) - args.tail :] if args.tail else []

    for e in events:
        if args.pretty:
            print(json.dumps(e, ensure_ascii=False, indent=2))
        else:
            print(json.dumps(e, ensure_ascii=False))
    return 0


def cmd_interpolate_filename(args: argparse.Namespace) -> int:
    bundle = _load_json(Path(args.bundle))
    runtime = Runtime()
    out = runtime.run(interpolate_filename, _runtime_config(args), bundle)
    print(json.dumps(out, ensure_ascii=False, indent=2))
    return 0


def cmd_extract_requires(args: argparse.Namespace) -> int:
    source_path = Path(args.source)
    tree = ast.parse(source_path.read_text(encoding="utf-8"), filename=str(source_path))
    runtime = Runtime()
    out = runtime.run(coerce_to_common_js, _runtime_config(args), tree)
    print(
        json.dumps(
            {
                "synchronous_requires": [_render_specifier(v) for v in out["synchronous_requires"]],
                "code": ast.unparse(out["ast"]),
            },
            ensure_ascii=False,
            indent=2,
        )
    )
    return 0


def _add_run_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", help="Runtime config YAML (run_id, trace_path, props)")
    p.add_argument("--trace", help="Trace output path (jsonl); overrides the config's trace_path")
    p.add_argument("--run-id", help="Run ID for trace correlation (default: config run_id or run_cli)")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="pluggable")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_check = sub.add_parser("check-contracts", help="Validate contracts/core schemas and examples")
    p_check.set_defaults(func=cmd_check_contracts)

    p_show_trace = sub.add_parser("show-trace", help="Show trace events from a JSONL file")
    p_show_trace.add_argument("--trace", required=True, help="Trace path (jsonl)")
    p_show_trace.add_argument("--event-type", help="Only show events of this type")
    p_show_trace.add_argument("--tail", type=int, help="Only show the last N events")
    p_show_trace.add_argument("--pretty", action="store_true", help="Indent JSON output")
    p_show_trace.set_defaults(func=cmd_show_trace)

    p_interp = sub.add_parser("interpolate-filename", help="Resolve hash placeholders in a bundle descriptor JSON")
    p_interp.add_argument("--bundle", required=True, help="Path to bundle descriptor JSON")
    _add_run_args(p_interp)
    p_interp.set_defaults(func=cmd_interpolate_filename)

    p_extract = sub.add_parser("extract-requires", help="Coerce a Python source file to require() calls and list them")
    p_extract.add_argument("--source", required=True, help="Path to a Python source file")
    _add_run_args(p_extract)
    p_extract.set_defaults(func=cmd_extract_requires)

    ns = parser.parse_args(argv)
    try:
        return int(ns.func(ns))
    except Exception as e:  # noqa: BLE001
        print(_format_cli_error(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

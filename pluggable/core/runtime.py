from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..contract_store import core_contracts
from ..trace.trace_emitter import TraceEmitter
from ..trace.trace_store_jsonl import TraceStoreJSONL
from .context import Context, ExtensionTable
from .errors import ValidationError
from .unit import Unit


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Per-run settings: trace correlation and the root context's initial properties.

    `trace_path=None` disables tracing.
    """

    run_id: str
    trace_path: Optional[Path] = None
    props: dict[str, Any] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Any) -> "RuntimeConfig":
        errors = core_contracts().validate("runtime_config.schema.json", raw)
        if errors:
            raise ValidationError(
                code="config.invalid",
                message="Runtime config does not validate against runtime_config.schema.json",
                data={"errors": errors},
            )
        trace_path = raw.get("trace_path")
        return cls(
            run_id=raw["run_id"],
            trace_path=Path(trace_path) if trace_path else None,
            props=dict(raw.get("props") or {}),
            meta=dict(raw.get("meta") or {}),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "RuntimeConfig":
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ValidationError(code="config.invalid", message=f"Invalid YAML: {path}") from e
        return cls.from_mapping(raw if raw is not None else {})


class Runtime:
    """
    Entry point for one pipeline run: root context in, root unit invoked.

    Hard rules:
    - the extension table is built before the run and never mutated during it
    - every run gets its own root context; nothing is shared between runs but the table
    """

    def __init__(self, extensions: Optional[ExtensionTable] = None):
        self._extensions = extensions if extensions is not None else ExtensionTable()

    @property
    def extensions(self) -> ExtensionTable:
        return self._extensions

    def root_context(self, config: RuntimeConfig, props: Optional[Mapping[str, Any]] = None) -> Context:
        trace = None
        if config.trace_path is not None:
            trace = TraceEmitter(store=TraceStoreJSONL(config.trace_path), run_id=config.run_id)
            trace.emit("run_started", message="Run started", data={"props": sorted(config.props)})

        root_props = dict(config.props)
        if props:
            root_props.update(props)
        return Context(root_props, extensions=self._extensions, trace=trace)

    def run(self, unit: Unit, config: RuntimeConfig, *args: Any, **kwargs: Any) -> Any:
        return unit(self.root_context(config), *args, **kwargs)

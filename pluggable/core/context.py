from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from .errors import UsageError, ValidationError

if TYPE_CHECKING:
    from ..trace.trace_emitter import TraceEmitter


Candidate = Callable[..., Any]


def _frozen(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class ExtensionTable:
    """
    Override candidates and (reserved) transforms, keyed by unit name.

    Built once by the surrounding pipeline before the root invocation and shared
    by reference with every context forked below it. Both the constructor and
    `build()` validate the entries and freeze chains into read-only tuples.
    """

    override: Mapping[str, Tuple[Candidate, ...]] = field(default_factory=lambda: MappingProxyType({}))
    transform: Mapping[str, Candidate] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        for table_name in ("override", "transform"):
            if not isinstance(getattr(self, table_name) or {}, Mapping):
                raise ValidationError(code="extensions.invalid", message=f"{table_name} must be a mapping")

        chains: Dict[str, Tuple[Candidate, ...]] = {}
        for unit_name, candidates in (self.override or {}).items():
            if not isinstance(unit_name, str) or not unit_name:
                raise ValidationError(code="extensions.invalid", message="override keys must be non-empty strings")
            if callable(candidates) or not isinstance(candidates, (list, tuple)):
                raise ValidationError(
                    code="extensions.invalid",
                    message=f"override[{unit_name}] must be a list of callables",
                    data={"unit": unit_name},
                )
            for i, c in enumerate(candidates):
                if not callable(c):
                    raise ValidationError(
                        code="extensions.invalid",
                        message=f"override[{unit_name}][{i}] is not callable",
                        data={"unit": unit_name, "index": i},
                    )
            chains[unit_name] = tuple(candidates)

        transforms: Dict[str, Candidate] = {}
        for unit_name, fn in (self.transform or {}).items():
            if not isinstance(unit_name, str) or not unit_name:
                raise ValidationError(code="extensions.invalid", message="transform keys must be non-empty strings")
            if not callable(fn):
                raise ValidationError(
                    code="extensions.invalid",
                    message=f"transform[{unit_name}] is not callable",
                    data={"unit": unit_name},
                )
            transforms[unit_name] = fn

        object.__setattr__(self, "override", _frozen(chains))
        object.__setattr__(self, "transform", _frozen(transforms))

    @classmethod
    def build(
        cls,
        override: Optional[Mapping[str, Any]] = None,
        transform: Optional[Mapping[str, Any]] = None,
    ) -> "ExtensionTable":
        return cls(override=override or {}, transform=transform or {})


EMPTY_EXTENSIONS = ExtensionTable()


class Context(MutableMapping):
    """
    Property bag threaded through unit invocations.

    Own properties behave like a dict. The extension table, the trace emitter and
    the dependency capability map live outside the mapping: they are never
    enumerated, compared or copied as properties.
    """

    __slots__ = ("_props", "_extensions", "_trace", "_deps")

    def __init__(
        self,
        props: Optional[Mapping[str, Any]] = None,
        *,
        extensions: Optional[ExtensionTable] = None,
        trace: Optional["TraceEmitter"] = None,
    ) -> None:
        self._props: Dict[str, Any] = dict(props or {})
        self._extensions = extensions if extensions is not None else EMPTY_EXTENSIONS
        self._trace = trace
        self._deps: Mapping[str, Callable[..., Any]] = MappingProxyType({})

    def __getitem__(self, key: str) -> Any:
        return self._props[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._props[key] = value

    def __delitem__(self, key: str) -> None:
        del self._props[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._props)

    def __len__(self) -> int:
        return len(self._props)

    def __repr__(self) -> str:
        return f"Context({self._props!r}, deps={sorted(self._deps)!r})"

    @property
    def deps(self) -> Mapping[str, Callable[..., Any]]:
        return self._deps

    @property
    def trace(self) -> Optional["TraceEmitter"]:
        return self._trace

    def invoke(self, local_name: str, *args: Any, **kwargs: Any) -> Any:
        fn = self._deps.get(local_name)
        if fn is None:
            raise UsageError(
                code="context.unknown_dependency",
                message=f"No dependency named {local_name!r} in this context",
                data={"available": sorted(self._deps)},
            )
        return fn(*args, **kwargs)

    def _bind(self, deps: Mapping[str, Callable[..., Any]]) -> None:
        self._deps = _frozen(deps)


def extensions_of(context: Context) -> ExtensionTable:
    return context._extensions


def derive(context: Context, property_overrides: Optional[Mapping[str, Any]] = None) -> Context:
    props = dict(context._props)
    if property_overrides:
        props.update(property_overrides)
    return Context(props, extensions=context._extensions, trace=context._trace)

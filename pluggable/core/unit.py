from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from .context import Context
from .errors import UsageError
from .strategies import DeferredStrategy, StreamStrategy, Strategy, SyncStrategy


@dataclass(frozen=True, eq=False)
class Unit:
    """
    A named default behavior plus the sub-units it may invoke.

    `name` is the stable key under which overrides are registered; it is fixed at
    construction. Calling a unit returns whatever its strategy delivers: a value
    (sync), a coroutine (deferred) or a lazy generator (stream).
    """

    name: str
    default: Callable[..., Any]
    strategy: Strategy
    dependencies: Mapping[str, Callable[..., Any]] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise UsageError(code="unit.invalid", message="Unit name must be a non-empty string")
        if not callable(self.default):
            raise UsageError(code="unit.invalid", message=f"Unit {self.name!r}: default behavior is not callable")
        if not isinstance(self.strategy, Strategy):
            raise UsageError(code="unit.invalid", message=f"Unit {self.name!r}: strategy must be a Strategy")
        if not isinstance(self.dependencies, Mapping):
            raise UsageError(code="unit.invalid", message=f"Unit {self.name!r}: dependencies must be a mapping")
        for local_name, dep in self.dependencies.items():
            if not isinstance(local_name, str) or not local_name or not callable(dep):
                raise UsageError(
                    code="unit.invalid",
                    message=f"Unit {self.name!r}: dependency {local_name!r} must be a callable under a non-empty name",
                )
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))

    def __call__(self, context: Context, *args: Any, **kwargs: Any) -> Any:
        if not isinstance(context, Context):
            raise UsageError(
                code="unit.context_invalid",
                message=f"Unit {self.name!r} must be invoked with a Context, got {type(context).__name__}",
            )
        return self.strategy.run(self, context, args, kwargs)

    def __repr__(self) -> str:
        return f"Unit({self.name!r}, strategy={self.strategy.kind!r}, dependencies={sorted(self.dependencies)!r})"


def _unit_factory(strategy: Strategy) -> Callable[..., Any]:
    def make(
        default: Optional[Callable[..., Any]] = None,
        *,
        name: Optional[str] = None,
        dependencies: Optional[Mapping[str, Callable[..., Any]]] = None,
    ) -> Any:
        def build(fn: Callable[..., Any]) -> Unit:
            return Unit(
                name=name if name is not None else getattr(fn, "__name__", ""),
                default=fn,
                strategy=strategy,
                dependencies=dependencies or {},
            )

        if default is None:
            return build
        return build(default)

    make.__name__ = strategy.kind
    make.__doc__ = f"Build a {strategy.kind} unit; usable as `{strategy.kind}(fn, ...)` or as a decorator."
    return make


deferred = _unit_factory(DeferredStrategy())
sync = _unit_factory(SyncStrategy())
stream = _unit_factory(StreamStrategy())

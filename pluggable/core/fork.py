from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

from .context import Context, derive
from .errors import UsageError


Invocable = Callable[..., Any]


def _bind_to(dep: Invocable, child: Context) -> Callable[..., Any]:
    # Forks from the child as it is at call time, never from the caller.
    def invoke(*args: Any, **kwargs: Any) -> Any:
        return dep(child, *args, **kwargs)

    invoke.__name__ = getattr(dep, "__name__", "invoke")
    invoke.__wrapped__ = dep  # type: ignore[attr-defined]
    return invoke


def fork(caller: Context, dependencies: Optional[Mapping[str, Invocable]] = None) -> Context:
    """
    Produce the child context for one invocation.

    Invariants:
    - the caller is never mutated; the child starts from a shallow copy of its own properties
    - the extension table is shared by reference
    - only `dependencies` are invocable from the child; the caller's own dependencies are not inherited
    """
    child = derive(caller)
    bound: Dict[str, Callable[..., Any]] = {}
    for local_name, dep in (dependencies or {}).items():
        if not isinstance(local_name, str) or not local_name:
            raise UsageError(code="fork.invalid_dependency", message="Dependency names must be non-empty strings")
        if not callable(dep):
            raise UsageError(
                code="fork.invalid_dependency",
                message=f"Dependency {local_name!r} is not callable",
                data={"dependency": local_name},
            )
        bound[local_name] = _bind_to(dep, child)
    child._bind(bound)
    return child

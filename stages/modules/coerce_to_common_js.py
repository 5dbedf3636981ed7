from __future__ import annotations

import ast
from typing import Any, Dict, List

from pluggable import Context, UsageError, sync

from .transform_service import TraversalRule, transform_tree


# Bare callee names treated as module-load calls: require("x"), __import__("x"), import_module("x").
# The only attribute form recognized is importlib.import_module("x").
MODULE_LOADERS = frozenset({"require", "__import__", "import_module"})


def _is_module_load(call: ast.Call) -> bool:
    func = call.func
    if isinstance(func, ast.Name):
        return func.id in MODULE_LOADERS
    if isinstance(func, ast.Attribute):
        return func.attr == "import_module" and isinstance(func.value, ast.Name) and func.value.id == "importlib"
    return False


def _coerce_to_common_js(ctx: Context, tree: ast.AST) -> Dict[str, Any]:
    synchronous_requires: List[Any] = []

    def on_call(node: ast.Call) -> None:
        if not _is_module_load(node):
            return
        if not node.args:
            raise UsageError(
                code="require.missing_target",
                message="Require expressions must include a target.",
                data={"line": getattr(node, "lineno", None)},
            )
        first = node.args[0]
        # Non-literal specifiers are collected as the argument node itself.
        synchronous_requires.append(first.value if isinstance(first, ast.Constant) else first)

    get_requires = TraversalRule(name="get_requires", visitors={"Call": on_call}, position="after")
    out = ctx.invoke("transform_tree", tree, {"passes": ("modules",), "rules": (get_requires,)})
    return {"ast": out["ast"], "synchronous_requires": synchronous_requires}


coerce_to_common_js = sync(
    _coerce_to_common_js,
    name="coerce_to_common_js",
    dependencies={"transform_tree": transform_tree},
)

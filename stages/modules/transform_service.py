from __future__ import annotations

import ast
import copy
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pluggable import Context, sync


Visitor = Callable[[ast.AST], None]


@dataclass(frozen=True)
class TraversalRule:
    """
    Node callbacks keyed by node class name (e.g. "Call"), run in source order.

    `position` places the rule before or after the built-in passes. A callback may
    raise to abort the whole transform.
    """

    name: str
    visitors: Mapping[str, Visitor]
    position: str = "after"


class _RuleVisitor(ast.NodeVisitor):
    def __init__(self, rule: TraversalRule):
        self._rule = rule

    def visit(self, node: ast.AST) -> None:
        callback = self._rule.visitors.get(type(node).__name__)
        if callback is not None:
            callback(node)
        self.generic_visit(node)


def _require(specifier: str) -> ast.Call:
    return ast.Call(func=ast.Name(id="require", ctx=ast.Load()), args=[ast.Constant(value=specifier)], keywords=[])


def _binding_name(specifier: str) -> str:
    return "_" + re.sub(r"\W", "_", specifier)


class ModulesToRequire(ast.NodeTransformer):
    """
    Rewrites import statements into `require(...)` assignments.

    import a.b as c          ->  c = require("a.b")
    from .m import x, y as z ->  __m = require(".m"); x = __m.x; z = __m.y

    Star imports and `from __future__` imports are left untouched.
    """

    def visit_Import(self, node: ast.Import) -> List[ast.stmt]:
        out: List[ast.stmt] = []
        for alias in node.names:
            target = alias.asname or alias.name.split(".", 1)[0]
            assign = ast.Assign(targets=[ast.Name(id=target, ctx=ast.Store())], value=_require(alias.name))
            out.append(ast.copy_location(assign, node))
        return out

    def visit_ImportFrom(self, node: ast.ImportFrom) -> Union[ast.ImportFrom, List[ast.stmt]]:
        if node.module == "__future__" or any(alias.name == "*" for alias in node.names):
            return node

        specifier = "." * (node.level or 0) + (node.module or "")
        binding = _binding_name(specifier)
        out: List[ast.stmt] = [
            ast.copy_location(ast.Assign(targets=[ast.Name(id=binding, ctx=ast.Store())], value=_require(specifier)), node)
        ]
        for alias in node.names:
            value = ast.Attribute(value=ast.Name(id=binding, ctx=ast.Load()), attr=alias.name, ctx=ast.Load())
            assign = ast.Assign(targets=[ast.Name(id=alias.asname or alias.name, ctx=ast.Store())], value=value)
            out.append(ast.copy_location(assign, node))
        return out


class AstTransformService:
    """
    Default syntax-tree transform service.

    Contract: transform_tree(tree, options) -> {"ast": transformed_tree}
    options:
      - passes: names of built-in passes to run, in order (e.g. ("modules",))
      - rules: TraversalRule objects applied before/after the passes
    The input tree is never mutated.
    """

    passes: Dict[str, Callable[[], ast.NodeTransformer]] = {"modules": ModulesToRequire}

    def transform_tree(self, tree: ast.AST, options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        options = options or {}
        rules = list(options.get("rules", ()))
        for rule in rules:
            if rule.position not in ("before", "after"):
                raise ValueError(f"Unknown rule position for {rule.name}: {rule.position}")

        tree = copy.deepcopy(tree)
        for rule in rules:
            if rule.position == "before":
                _RuleVisitor(rule).visit(tree)

        for pass_name in options.get("passes", ()):
            factory = self.passes.get(pass_name)
            if factory is None:
                raise ValueError(f"Unknown transform pass: {pass_name}")
            tree = factory().visit(tree)

        for rule in rules:
            if rule.position == "after":
                _RuleVisitor(rule).visit(tree)

        ast.fix_missing_locations(tree)
        return {"ast": tree}


_DEFAULT_SERVICE = AstTransformService()


def _transform_tree(ctx: Context, tree: ast.AST, options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return _DEFAULT_SERVICE.transform_tree(tree, options)


transform_tree = sync(_transform_tree, name="transform_tree")

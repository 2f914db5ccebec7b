"""Error construction sites and their message templates."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from prodguard.internals.report import Span
from prodguard.semantics.ast import (
    Node, Stmt, Expr, New, Identifier, StringLit, TemplateLit, Binary, Conditional, Call,
    NumberLit, Throw, Comment,
)
from prodguard.semantics.guards import (
    GuardVerdict, PRODUCTION, is_node_env, is_production_reachable,
)
from prodguard.semantics.visitors import GuardedVisitor

SUPPORTED_ERROR_CONSTRUCTORS = frozenset({"Error", "TypeError"})

OPT_IN_MARKER = "minify-error"
OPT_OUT_MARKER = "minify-error-disabled"


def extract_message(expr: Expr) -> Optional[Tuple[str, List[Expr]]]:
    """Template text and positional arguments of a message expression.

    'text'            → ("text", [])
    `a ${x} b`        → ("a %s b", [x])
    'a ' + `${x}`     → ("a %s", [x])

    Returns None for anything else (the message is unminifyable).
    """
    if isinstance(expr, StringLit):
        return expr.value, []
    if isinstance(expr, TemplateLit):
        return "%s".join(expr.cooked), list(expr.expressions)
    if isinstance(expr, Binary) and expr.op == "+":
        left = extract_message(expr.left)
        right = extract_message(expr.right)
        if left is None or right is None:
            return None
        return left[0] + right[0], left[1] + right[1]
    return None


def is_canonical_guard(expr: Expr) -> bool:
    """`process.env.NODE_ENV !== 'production'`, exactly as the rewrite emits it."""
    return (
        isinstance(expr, Binary) and expr.op == "!==" and is_node_env(expr.left)
        and isinstance(expr.right, StringLit) and expr.right.value == PRODUCTION
    )


def is_minified_message(expr: Expr) -> bool:
    """An argument already in `guard ? message : formatter(code, ...args)` form."""
    if not (isinstance(expr, Conditional) and is_canonical_guard(expr.test)):
        return False
    alt = expr.alternate
    return (
        isinstance(alt, Call) and isinstance(alt.callee, Identifier)
        and bool(alt.args) and isinstance(alt.args[0], NumberLit)
    )


@dataclass
class ErrorCallSite:
    """One `new Error(...)` / `new TypeError(...)` expression."""
    location: Optional[Span]
    template: Optional[str]                  # None when unminifyable or without a message
    args: List[Expr]
    verdict: GuardVerdict
    node: New
    statement: Optional[Stmt] = None         # innermost statement containing the site
    in_throw: bool = False                   # `throw new Error(...)`
    has_message: bool = True
    minified: bool = False
    markers: List[Comment] = field(default_factory=list)

    @property
    def production_reachable(self) -> bool:
        return is_production_reachable(self.verdict)

    def marked(self, marker: str) -> bool:
        return any(c.text.strip() == marker for c in self.markers)


def _marker_comments(site_node: New, statement: Optional[Stmt]) -> List[Comment]:
    found = [c for c in site_node.comments if c.text.strip() in (OPT_IN_MARKER, OPT_OUT_MARKER)]
    if statement is not None:
        found += [c for c in statement.comments if c.text.strip() in (OPT_IN_MARKER, OPT_OUT_MARKER)]
    return found


class SiteCollector(GuardedVisitor):
    """Find error construction sites in source order, each with its guard verdict."""

    def __init__(self) -> None:
        super().__init__()
        self.sites: List[ErrorCallSite] = []
        self._statement: Optional[Stmt] = None
        self._throw_value: Optional[Node] = None

    def collect(self, program) -> List[ErrorCallSite]:
        self.visit(program)
        return self.sites

    def visit(self, node: Node) -> None:
        if not isinstance(node, Stmt):
            return super().visit(node)
        saved = self._statement
        self._statement = node
        try:
            return super().visit(node)
        finally:
            self._statement = saved

    def visit_throw(self, node: Throw) -> None:
        self._throw_value = node.value
        super().visit_throw(node)

    def visit_new(self, node: New) -> None:
        if isinstance(node.callee, Identifier) and node.callee.name in SUPPORTED_ERROR_CONSTRUCTORS:
            self.sites.append(self._site(node))
        super().visit_new(node)

    def _site(self, node: New) -> ErrorCallSite:
        site = ErrorCallSite(
            location=node.loc,
            template=None,
            args=[],
            verdict=self.verdict(),
            node=node,
            statement=self._statement,
            in_throw=node is self._throw_value,
            markers=_marker_comments(node, self._statement),
        )
        if not node.args:
            site.has_message = False
            return site
        message = node.args[0]
        if is_minified_message(message):
            site.minified = True
            return site
        extracted = extract_message(message)
        if extracted is not None:
            site.template, site.args = extracted
        return site


def collect_sites(program) -> List[ErrorCallSite]:
    return SiteCollector().collect(program)

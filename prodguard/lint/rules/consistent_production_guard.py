"""consistent-production-guard: NODE_ENV is only ever compared against 'production'.

    process.env.NODE_ENV !== 'production'     ok
    'production' === process.env.NODE_ENV     ok
    process.env.NODE_ENV === 'development'    invalidComparison ('development')
    process.env.NODE_ENV !== env              invalidComparison ('non-literal')
    foo(process.env.NODE_ENV)                 invalidUsage
"""
from __future__ import annotations
from typing import Dict, Iterator, Optional, Tuple

from prodguard.internals.report import Reporter
from prodguard.lint.base import Rule, register
from prodguard.semantics.ast import Node, Program, Binary, iter_child_nodes
from prodguard.semantics.guards import PRODUCTION, STRICT_OPERATORS, is_node_env, literal_value

NON_LITERAL = "non-literal"


def _with_parents(node: Node, parent: Optional[Node] = None) -> Iterator[Tuple[Node, Optional[Node]]]:
    yield node, parent
    for child in iter_child_nodes(node):
        yield from _with_parents(child, node)


def _literal_text(value) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@register
class ConsistentProductionGuard(Rule):
    name = "consistent-production-guard"
    description = "Enforce that process.env.NODE_ENV is only compared against 'production'"
    message_codes = {"invalidComparison": "PG2002", "invalidUsage": "PG2003"}

    def check(self, program: Program, reporter: Reporter) -> None:
        for node, parent in _with_parents(program):
            if not is_node_env(node):
                continue
            problem = self._inspect(node, parent)
            if problem is None:
                continue
            message_id, data = problem
            self.report(reporter, message_id, node.loc, **data)

    def _inspect(self, node: Node, parent: Optional[Node]) -> Optional[Tuple[str, Dict[str, str]]]:
        if not (isinstance(parent, Binary) and parent.op in STRICT_OPERATORS):
            return "invalidUsage", {}
        other = parent.right if parent.left is node else parent.left
        is_lit, value = literal_value(other)
        if not is_lit:
            return "invalidComparison", {"comparedValue": NON_LITERAL}
        if value == PRODUCTION:
            return None
        return "invalidComparison", {"comparedValue": _literal_text(value)}

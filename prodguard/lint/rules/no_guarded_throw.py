"""no-guarded-throw: errors must be thrown the same way in every environment."""
from __future__ import annotations

from prodguard.internals.report import Reporter
from prodguard.lint.base import Rule, register
from prodguard.semantics.ast import Program, Throw
from prodguard.semantics.guards import GuardVerdict
from prodguard.semantics.visitors import GuardedVisitor

_ENVIRONMENT_SPECIFIC = (GuardVerdict.DEV_ONLY, GuardVerdict.PROD_ONLY)


class _ThrowVisitor(GuardedVisitor):
    def __init__(self, rule: "NoGuardedThrow", reporter: Reporter) -> None:
        super().__init__()
        self.rule = rule
        self.reporter = reporter

    def visit_throw(self, node: Throw) -> None:
        if self.verdict() in _ENVIRONMENT_SPECIFIC:
            self.rule.report(self.reporter, "guardedThrow", node.loc)
        super().visit_throw(node)


@register
class NoGuardedThrow(Rule):
    name = "no-guarded-throw"
    description = "Disallow throw statements inside process.env.NODE_ENV guarded branches"
    message_codes = {"guardedThrow": "PG2001"}

    def check(self, program: Program, reporter: Reporter) -> None:
        _ThrowVisitor(self, reporter).visit(program)

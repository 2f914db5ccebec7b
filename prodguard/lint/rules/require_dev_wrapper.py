"""require-dev-wrapper: development helpers must be provably dev-only.

    if (process.env.NODE_ENV !== 'production') {
      checkSlot(key, overrides[k]);     // ok
    }
    checkSlot(key, overrides[k]);       // missingDevWrapper
"""
from __future__ import annotations
from typing import FrozenSet

from prodguard.internals.report import Reporter
from prodguard.lint.base import Rule, register
from prodguard.lint.options import RequireDevWrapperOptions
from prodguard.semantics.ast import Call, Identifier, Program
from prodguard.semantics.guards import GuardVerdict
from prodguard.semantics.visitors import GuardedVisitor


class _CallVisitor(GuardedVisitor):
    def __init__(self, rule: "RequireDevWrapper", names: FrozenSet[str], reporter: Reporter) -> None:
        super().__init__()
        self.rule = rule
        self.names = names
        self.reporter = reporter

    def visit_call(self, node: Call) -> None:
        callee = node.callee
        if isinstance(callee, Identifier) and callee.name in self.names:
            if self.verdict() is not GuardVerdict.DEV_ONLY:
                self.rule.report(self.reporter, "missingDevWrapper", node.loc, functionName=callee.name)
        super().visit_call(node)


@register
class RequireDevWrapper(Rule):
    name = "require-dev-wrapper"
    description = "Enforce that development helpers are only called behind a production check"
    message_codes = {"missingDevWrapper": "PG2004"}
    options_model = RequireDevWrapperOptions

    def __init__(self, options=None, **kwargs) -> None:
        super().__init__(options, **kwargs)
        self.function_names: FrozenSet[str] = frozenset(self.options.function_names)

    def check(self, program: Program, reporter: Reporter) -> None:
        _CallVisitor(self, self.function_names, reporter).visit(program)

# lint/runner.py
"""Run the configured lint rules over one program, with per-rule timing."""
from __future__ import annotations
import sys
import time
from dataclasses import dataclass
from typing import List, Optional

from prodguard.internals.report import Reporter
from prodguard.lint.base import Rule
from prodguard.semantics.ast import Program


@dataclass
class RuleResult:
    name: str
    duration_ms: float
    reported: int


class LintRunner:
    """Applies rules in order; diagnostics go to the reporter passed to run().

    Example usage:
        runner = LintRunner([NoGuardedThrow(), RequireDevWrapper()])
        runner.run(program, reporter)
    """

    def __init__(self, rules: Optional[List[Rule]] = None, verbose: bool = False) -> None:
        self.rules: List[Rule] = list(rules or [])
        self.verbose = verbose
        self._results: List[RuleResult] = []

    def add_rule(self, rule: Rule) -> "LintRunner":
        self.rules.append(rule)
        return self

    def run(self, program: Program, reporter: Reporter) -> List[RuleResult]:
        self._results = []
        for rule in self.rules:
            before = len(reporter.items)
            start = time.perf_counter()
            rule.check(program, reporter)
            self._results.append(RuleResult(
                name=rule.name,
                duration_ms=(time.perf_counter() - start) * 1000,
                reported=len(reporter.items) - before,
            ))
        if self.verbose:
            self._print_timing(reporter.filename)
        return self._results

    def get_results(self) -> List[RuleResult]:
        return self._results

    def _print_timing(self, label: str) -> None:
        # one print per table; lint_paths runs files on worker threads
        total = sum(r.duration_ms for r in self._results)
        lines = [f"\n=== Lint Timing: {label} ==="]
        for result in self._results:
            lines.append(f"  {result.name:30} {result.duration_ms:8.2f}ms  {result.reported} reported")
        lines.append(f"  {'TOTAL':30} {total:8.2f}ms")
        print("\n".join(lines), file=sys.stderr)

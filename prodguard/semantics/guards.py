"""
Production-guard classification.

Answers, for a position in the AST, whether the code there provably never
runs when `process.env.NODE_ENV` is `'production'`.

The position is described by the stack of conditionals enclosing it (see
GuardedVisitor). Each conditional contributes a GuardFrame: the branch the
position sits in, and an abstraction of the test expression.

Recognized tests are deliberately narrow so a reader can audit them:

    process.env.NODE_ENV !== 'production'          strict comparison, either order
    process.env.NODE_ENV === 'test'                non-production literal
    process.env.NODE_ENV !== 'production' && x     guard as left operand only

Anything else (loose `==`, `!process.env.NODE_ENV`, `isDev(process.env.NODE_ENV)`,
comparison against a variable, guard on the right of `&&`) is opaque. Opaque
tests that mention NODE_ENV make the verdict UNPROVEN instead of UNGUARDED.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

from prodguard.semantics.ast import (
    Node, Expr, Identifier, Member, StringLit, NumberLit, BoolLit, NullLit, TemplateLit,
    Binary, Logical, walk,
)

PRODUCTION = "production"

STRICT_OPERATORS = ("===", "!==")


class GuardVerdict(str, Enum):
    UNGUARDED = "unguarded"
    DEV_ONLY  = "dev-only"
    PROD_ONLY = "prod-only"
    UNPROVEN  = "unproven"


class Branch(str, Enum):
    CONSEQUENT = "consequent"
    ALTERNATE  = "alternate"


@dataclass(frozen=True)
class NodeEnvComparison:
    operator: str                      # "===" | "!=="
    literal_side: str                  # "left" | "right"
    compared_value: Union[str, int, float, bool, None]


@dataclass(frozen=True)
class LogicalComposite:
    operator: str                      # "&&" | "||"
    left: "EnclosingTest"
    right: "EnclosingTest"


@dataclass(frozen=True)
class Opaque:
    mentions_node_env: bool = False


EnclosingTest = Union[NodeEnvComparison, LogicalComposite, Opaque]


@dataclass(frozen=True)
class GuardFrame:
    branch: Branch
    test: EnclosingTest


# ---------- syntax predicates ----------

def _property_name(node: Member) -> Optional[str]:
    if not node.computed and isinstance(node.property, Identifier):
        return node.property.name
    if node.computed and isinstance(node.property, StringLit):
        return node.property.value
    return None


def is_node_env(expr: Node) -> bool:
    """True for `process.env.NODE_ENV`, also written with `['...']` string keys."""
    if not isinstance(expr, Member) or expr.optional or _property_name(expr) != "NODE_ENV":
        return False
    env = expr.object
    if not isinstance(env, Member) or env.optional or _property_name(env) != "env":
        return False
    return isinstance(env.object, Identifier) and env.object.name == "process"


def mentions_node_env(expr: Node) -> bool:
    return any(is_node_env(n) for n in walk(expr))


def literal_value(expr: Node) -> Tuple[bool, Union[str, int, float, bool, None]]:
    """(True, value) when `expr` is a literal comparand, (False, None) otherwise."""
    if isinstance(expr, StringLit):
        return True, expr.value
    if isinstance(expr, NumberLit):
        return True, expr.value
    if isinstance(expr, BoolLit):
        return True, expr.value
    if isinstance(expr, NullLit):
        return True, None
    if isinstance(expr, TemplateLit) and not expr.expressions:
        return True, expr.cooked[0]
    return False, None


def abstract_test(expr: Expr) -> EnclosingTest:
    """Abstract a test expression into the shapes classify() understands."""
    if isinstance(expr, Binary) and expr.op in STRICT_OPERATORS:
        if is_node_env(expr.left):
            is_lit, value = literal_value(expr.right)
            if is_lit:
                return NodeEnvComparison(expr.op, "right", value)
        elif is_node_env(expr.right):
            is_lit, value = literal_value(expr.left)
            if is_lit:
                return NodeEnvComparison(expr.op, "left", value)
    elif isinstance(expr, Logical) and expr.op in ("&&", "||"):
        return LogicalComposite(expr.op, abstract_test(expr.left), abstract_test(expr.right))
    return Opaque(mentions_node_env(expr))


# ---------- classification ----------

def _is_production(value) -> bool:
    return isinstance(value, str) and value == PRODUCTION


def _prove(test: EnclosingTest, branch: Branch) -> Optional[GuardVerdict]:
    """What a single frame proves on its own, or None."""
    if isinstance(test, NodeEnvComparison):
        # `!==` proves "not production" in the consequent, `===` in the alternate
        required = "!==" if branch is Branch.CONSEQUENT else "==="
        if _is_production(test.compared_value):
            return GuardVerdict.DEV_ONLY if test.operator == required else GuardVerdict.PROD_ONLY
        # NODE_ENV === 'test' holds only outside production
        if test.operator != required:
            return GuardVerdict.DEV_ONLY
        return None

    if isinstance(test, LogicalComposite):
        safe = "&&" if branch is Branch.CONSEQUENT else "||"
        if test.operator == safe:
            return _prove(test.left, branch)
        return None

    return None


def _mentions(test: EnclosingTest) -> bool:
    if isinstance(test, NodeEnvComparison):
        return True
    if isinstance(test, LogicalComposite):
        return _mentions(test.left) or _mentions(test.right)
    return test.mentions_node_env


def classify(frames: Sequence[GuardFrame]) -> GuardVerdict:
    """Classify a position from its enclosing frames (outermost first).

    A DEV_ONLY proof at any level decides, since nothing nested under a
    development-only branch runs in production. Otherwise a PROD_ONLY
    proof decides. Without proof the verdict is UNPROVEN if any test
    mentions NODE_ENV, else UNGUARDED.
    """
    proofs = [_prove(frame.test, frame.branch) for frame in frames]
    if GuardVerdict.DEV_ONLY in proofs:
        return GuardVerdict.DEV_ONLY
    if GuardVerdict.PROD_ONLY in proofs:
        return GuardVerdict.PROD_ONLY
    if any(_mentions(frame.test) for frame in frames):
        return GuardVerdict.UNPROVEN
    return GuardVerdict.UNGUARDED


def is_production_reachable(verdict: GuardVerdict) -> bool:
    """DEV_ONLY code is removed from production bundles; everything else may ship."""
    return verdict is not GuardVerdict.DEV_ONLY

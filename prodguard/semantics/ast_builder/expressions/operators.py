"""Operator expression parsing (unary, binary, logical, assignment, conditional)."""
from __future__ import annotations
from typing import TYPE_CHECKING

from lark import Tree, Token

from prodguard.semantics.ast import (
    Expr, Unary, Update, Binary, Logical, Assign, Conditional, Sequence,
)
from prodguard.semantics.ast_builder.utils.tree_navigation import token_text
from prodguard.internals.report import span_of

if TYPE_CHECKING:
    from prodguard.semantics.ast_builder.builder import ASTBuilder


LOGICAL_OPS = frozenset({"&&", "||", "??"})


def expr_binary(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    """Lower one `left op right` level; left recursion in the grammar keeps chains left-associative."""
    left, op, right = t.children
    lhs = ast_builder._expr(left)
    rhs = ast_builder._expr(right)
    if op.value in LOGICAL_OPS:
        return Logical(op=op.value, left=lhs, right=rhs, loc=span_of(t))
    return Binary(op=op.value, left=lhs, right=rhs, loc=span_of(t))


def expr_unary(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    op, operand = t.children
    return Unary(op=op.value, operand=ast_builder._expr(operand), loc=span_of(t))


def expr_prefix_update(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    op, operand = t.children
    return Update(op=op.value, operand=ast_builder._expr(operand), prefix=True, loc=span_of(t))


def expr_postfix_update(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    operand, op = t.children
    return Update(op=op.value, operand=ast_builder._expr(operand), prefix=False, loc=span_of(t))


def expr_assignment(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    target, op_tree, value = t.children
    target_expr = ast_builder._expr(target)
    op = token_text(op_tree)
    if op == "=":
        from prodguard.semantics.ast_builder.expressions.functions import to_pattern
        # `[a, b] = pair` and `({ a } = obj)` destructure
        target_expr = to_pattern(target_expr)
    return Assign(op=op, target=target_expr, value=ast_builder._expr(value), loc=span_of(t))


def expr_conditional(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    test, consequent, alternate = t.children
    return Conditional(
        test=ast_builder._expr(test),
        consequent=ast_builder._expr(consequent),
        alternate=ast_builder._expr(alternate),
        loc=span_of(t),
    )


def expr_sequence(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    """Flatten the left-recursive `a, b, c` chain into one Sequence."""
    exprs: list[Expr] = []
    node: Tree | Token = t
    tail = []
    while isinstance(node, Tree) and node.data == "sequence":
        left, right = node.children
        tail.append(right)
        node = left
    exprs.append(ast_builder._expr(node))
    exprs.extend(ast_builder._expr(c) for c in reversed(tail))
    return Sequence(exprs=exprs, loc=span_of(t))

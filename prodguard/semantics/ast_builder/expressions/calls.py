"""Call, `new` and member access parsing."""
from __future__ import annotations
from typing import List, TYPE_CHECKING

from lark import Tree

from prodguard.semantics.ast import Expr, Call, New, Member, Identifier
from prodguard.semantics.ast_builder.utils.tree_navigation import token_text, trees
from prodguard.internals.report import span_of

if TYPE_CHECKING:
    from prodguard.semantics.ast_builder.builder import ASTBuilder


def parse_arguments(t: Tree, ast_builder: 'ASTBuilder') -> List[Expr]:
    return [ast_builder._expr(c) for c in trees(t.children)]


def expr_call(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    callee, args = t.children
    return Call(
        callee=ast_builder._expr(callee),
        args=parse_arguments(args, ast_builder),
        optional=(t.data == "optional_call"),
        loc=span_of(t),
    )


def expr_new_call(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    callee, args = t.children
    return New(callee=ast_builder._expr(callee), args=parse_arguments(args, ast_builder), loc=span_of(t))


def expr_new_bare(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    return New(callee=ast_builder._expr(t.children[0]), args=None, loc=span_of(t))


def expr_member_dot(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    obj, name = t.children
    return Member(
        object=ast_builder._expr(obj),
        property=Identifier(name=token_text(name), loc=span_of(name)),
        computed=False,
        optional=(t.data == "optional_dot"),
        loc=span_of(t),
    )


def expr_member_index(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    obj, index = t.children
    return Member(
        object=ast_builder._expr(obj),
        property=ast_builder._expr(index),
        computed=True,
        optional=(t.data == "optional_index"),
        loc=span_of(t),
    )

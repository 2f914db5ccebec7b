"""Control flow statement parsing (if, loops, jumps, throw, try, switch)."""
from __future__ import annotations
from typing import TYPE_CHECKING

from lark import Tree

from prodguard.semantics.ast import (
    Stmt, ExprStmt, EmptyStmt, If, For, ForIn, ForOf, While, DoWhile, Return, Break,
    Continue, Throw, Try, Switch, SwitchCase,
)
from prodguard.semantics.ast_builder.exceptions import ContextualKeywordError
from prodguard.semantics.ast_builder.expressions.functions import parse_binding_target
from prodguard.semantics.ast_builder.utils.tree_navigation import first_tree, token_text, trees
from prodguard.internals.report import span_of

if TYPE_CHECKING:
    from prodguard.semantics.ast_builder.builder import ASTBuilder


def parse_expr_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    return ExprStmt(expr=ast_builder._expr(t.children[0]), loc=span_of(t))


def parse_empty_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    return EmptyStmt(loc=span_of(t))


def parse_if_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    """if_stmt: `if (test) consequent [else alternate]`."""
    test = ast_builder._expr(t.children[0])
    consequent = ast_builder._stmt(t.children[1])
    alternate = ast_builder._stmt(t.children[2]) if len(t.children) > 2 else None
    return If(test=test, consequent=consequent, alternate=alternate, loc=span_of(t))


def parse_for_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    from prodguard.semantics.ast_builder.statements.declarations import var_decl_from_parts

    *heads, body = t.children
    init = test = update = None
    for head in heads:
        if head.data == "for_init":
            first = head.children[0]
            if isinstance(first, Tree) and first.data == "var_kind":
                init = var_decl_from_parts(head, ast_builder)
            else:
                init = ast_builder._expr(first)
        elif head.data == "for_test":
            test = ast_builder._expr(head.children[0])
        elif head.data == "for_update":
            update = ast_builder._expr(head.children[0])
    return For(init=init, test=test, update=update, body=ast_builder._stmt(body), loc=span_of(t))


def parse_for_in_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    kind, target, right, body = t.children
    return ForIn(
        kind=token_text(kind),
        target=parse_binding_target(target, ast_builder),
        right=ast_builder._expr(right),
        body=ast_builder._stmt(body),
        loc=span_of(t),
    )


def parse_for_of_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    kind, target, word, right, body = t.children
    if str(word) != "of":
        raise ContextualKeywordError("of", "for statement", str(word), span_of(word))
    return ForOf(
        kind=token_text(kind),
        target=parse_binding_target(target, ast_builder),
        right=ast_builder._expr(right),
        body=ast_builder._stmt(body),
        loc=span_of(t),
    )


def parse_while_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    test, body = t.children
    return While(test=ast_builder._expr(test), body=ast_builder._stmt(body), loc=span_of(t))


def parse_do_while_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    body, test = t.children
    return DoWhile(body=ast_builder._stmt(body), test=ast_builder._expr(test), loc=span_of(t))


def parse_return_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    value = ast_builder._expr(t.children[0]) if t.children else None
    return Return(value=value, loc=span_of(t))


def parse_break_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    return Break(loc=span_of(t))


def parse_continue_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    return Continue(loc=span_of(t))


def parse_throw_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    return Throw(value=ast_builder._expr(t.children[0]), loc=span_of(t))


def parse_try_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    block = ast_builder._block(t.children[0])
    param = handler = finalizer = None
    catch = first_tree(t.children, "catch_clause")
    if catch is not None:
        *binding, catch_block = catch.children
        if binding:
            param = parse_binding_target(binding[0], ast_builder)
        handler = ast_builder._block(catch_block)
    fin = first_tree(t.children, "finally_clause")
    if fin is not None:
        finalizer = ast_builder._block(fin.children[0])
    return Try(block=block, param=param, handler=handler, finalizer=finalizer, loc=span_of(t))


def parse_switch_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    discriminant, *clauses = t.children
    cases = []
    for clause in trees(clauses):
        if clause.data == "case_clause":
            test, *body = clause.children
            cases.append(SwitchCase(
                test=ast_builder._expr(test),
                body=[ast_builder._stmt(s) for s in body],
                loc=span_of(clause),
            ))
        else:
            cases.append(SwitchCase(
                test=None,
                body=[ast_builder._stmt(s) for s in clause.children],
                loc=span_of(clause),
            ))
    return Switch(discriminant=ast_builder._expr(discriminant), cases=cases, loc=span_of(t))

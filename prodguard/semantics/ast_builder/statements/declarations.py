"""Declaration parsing: variables, functions and classes."""
from __future__ import annotations
from typing import TYPE_CHECKING

from lark import Tree, Token

from prodguard.semantics.ast import (
    Stmt, VarDecl, Declarator, FunctionDecl, ClassDecl, ClassMethod, ClassField,
)
from prodguard.semantics.ast_builder.expressions.functions import parse_binding_target, parse_params
from prodguard.semantics.ast_builder.expressions.literals import parse_prop_key
from prodguard.semantics.ast_builder.utils.tree_navigation import (
    first_token, first_tree, has_token, token_text, trees,
)
from prodguard.internals.report import span_of

if TYPE_CHECKING:
    from prodguard.semantics.ast_builder.builder import ASTBuilder


_CLASS_MEMBER_TAGS = frozenset({"class_method", "class_field", "class_empty"})


def var_decl_from_parts(t: Tree, ast_builder: 'ASTBuilder') -> VarDecl:
    """Shared by `var_stmt` and the `for_init` declaration form."""
    kind_tree, *declarators = t.children
    decls = []
    for d in declarators:
        target = parse_binding_target(d.children[0], ast_builder)
        init = ast_builder._expr(d.children[1]) if len(d.children) > 1 else None
        decls.append(Declarator(target=target, init=init, loc=span_of(d)))
    return VarDecl(kind=token_text(kind_tree), declarations=decls, loc=span_of(t))


def parse_var_stmt(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    return var_decl_from_parts(t, ast_builder)


def parse_function_decl(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    name = first_token(t.children, "IDENT")
    return FunctionDecl(
        name=str(name) if name is not None else None,
        params=parse_params(first_tree(t.children, "params"), ast_builder),
        body=ast_builder._block(first_tree(t.children, "block")),
        is_async=has_token(t.children, "ASYNC"),
        is_generator=has_token(t.children, "STAR"),
        loc=span_of(t),
    )


def _parse_class_member(t: Tree, ast_builder: 'ASTBuilder'):
    if t.data == "class_method":
        key_tree, params_tree, body_tree = trees(t.children)
        return ClassMethod(
            key=parse_prop_key(key_tree, ast_builder),
            params=parse_params(params_tree, ast_builder),
            body=ast_builder._block(body_tree),
            is_static=has_token(t.children, "STATIC"),
            is_async=has_token(t.children, "ASYNC"),
            is_generator=has_token(t.children, "STAR"),
            loc=span_of(t),
        )
    parts = trees(t.children)
    value = ast_builder._expr(parts[1]) if len(parts) > 1 else None
    return ClassField(
        key=parse_prop_key(parts[0], ast_builder),
        value=value,
        is_static=has_token(t.children, "STATIC"),
        loc=span_of(t),
    )


def parse_class_decl(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    name = None
    superclass = None
    members = []
    for child in t.children:
        if isinstance(child, Token):
            name = str(child)
        elif child.data not in _CLASS_MEMBER_TAGS:
            superclass = ast_builder._expr(child)
        elif child.data != "class_empty":
            members.append(_parse_class_member(child, ast_builder))
    return ClassDecl(name=name, superclass=superclass, members=members, loc=span_of(t))

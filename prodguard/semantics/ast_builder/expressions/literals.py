"""Literal and primary expression parsing (identifiers, literals, arrays, objects)."""
from __future__ import annotations
from typing import List, Optional, TYPE_CHECKING

from lark import Tree, Token

from prodguard.semantics.ast import (
    Expr, Identifier, NumberLit, BoolLit, NullLit, This, Super, ArrayLit, ObjectLit,
    Property, ObjectMethod, Spread, AssignPattern, ComputedKey, StringLit, PropKey,
)
from prodguard.semantics.ast_builder.utils.string_processing import parse_string_token, parse_template_token
from prodguard.semantics.ast_builder.utils.tree_navigation import has_token, token_text, trees
from prodguard.internals.report import span_of

if TYPE_CHECKING:
    from prodguard.semantics.ast_builder.builder import ASTBuilder


def expr_identifier(t: Tree, ast_builder: 'ASTBuilder') -> Identifier:
    return Identifier(name=str(t.children[0]), loc=span_of(t))


def expr_number(t: Tree, ast_builder: 'ASTBuilder') -> NumberLit:
    return NumberLit(raw=str(t.children[0]), loc=span_of(t))


def expr_string(t: Tree, ast_builder: 'ASTBuilder') -> StringLit:
    return parse_string_token(t.children[0])


def expr_template(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    return parse_template_token(t.children[0], ast_builder)


def expr_keyword_value(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    word = token_text(t)
    loc = span_of(t)
    if word == "this":
        return This(loc=loc)
    if word == "super":
        return Super(loc=loc)
    if word == "null":
        return NullLit(loc=loc)
    return BoolLit(value=(word == "true"), loc=loc)


def expr_paren(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    # Parentheses are not kept; the printer re-derives them from precedence.
    return ast_builder._expr(t.children[0])


def expr_spread(t: Tree, ast_builder: 'ASTBuilder') -> Spread:
    return Spread(argument=ast_builder._expr(t.children[0]), loc=span_of(t))


def comma_separated(children: List[object], build) -> List[Optional[object]]:
    """Rebuild a bracketed list whose commas were kept, so holes become None.

    `[a, , b]` → [a, None, b]; a single trailing comma adds nothing.
    """
    items: List[Optional[object]] = []
    pending = None
    for child in children:
        if isinstance(child, Token):
            if child.value == ",":
                items.append(pending)
                pending = None
            continue
        pending = build(child)
    if pending is not None:
        items.append(pending)
    return items


def expr_array(t: Tree, ast_builder: 'ASTBuilder') -> ArrayLit:
    return ArrayLit(elements=comma_separated(t.children, ast_builder._expr), loc=span_of(t))


def parse_prop_key(t: Tree, ast_builder: 'ASTBuilder') -> PropKey:
    """prop_key / computed_key → Identifier, StringLit, NumberLit or ComputedKey."""
    if t.data == "computed_key":
        return ComputedKey(expr=ast_builder._expr(t.children[0]), loc=span_of(t))
    inner = t.children[0]
    if isinstance(inner, Token) and inner.type == "STRING":
        return parse_string_token(inner)
    if isinstance(inner, Token) and inner.type == "NUMBER":
        return NumberLit(raw=str(inner), loc=span_of(inner))
    if isinstance(inner, Tree) and inner.data == "computed_key":
        return parse_prop_key(inner, ast_builder)
    return Identifier(name=token_text(inner), loc=span_of(inner))


def parse_object_member(t: Tree, ast_builder: 'ASTBuilder'):
    loc = span_of(t)
    tag = t.data
    if tag == "property":
        key_tree, value_tree = t.children
        return Property(key=parse_prop_key(key_tree, ast_builder), value=ast_builder._expr(value_tree), loc=loc)
    if tag == "shorthand":
        name = Identifier(name=str(t.children[0]), loc=span_of(t.children[0]))
        return Property(key=name, value=Identifier(name=name.name, loc=name.loc), shorthand=True, loc=loc)
    if tag == "cover_initializer":
        # `{ a = 1 }` only appears in arrow parameters and destructuring assignments.
        name = Identifier(name=str(t.children[0]), loc=span_of(t.children[0]))
        default = ast_builder._expr(t.children[1])
        value = AssignPattern(target=Identifier(name=name.name, loc=name.loc), default=default, loc=loc)
        return Property(key=name, value=value, shorthand=True, loc=loc)
    if tag == "object_method":
        from prodguard.semantics.ast_builder.expressions.functions import parse_params
        key_tree, params_tree, body_tree = trees(t.children)
        return ObjectMethod(
            key=parse_prop_key(key_tree, ast_builder),
            params=parse_params(params_tree, ast_builder),
            body=ast_builder._block(body_tree),
            is_async=has_token(t.children, "ASYNC"),
            is_generator=has_token(t.children, "STAR"),
            loc=loc,
        )
    if tag == "spread":
        return expr_spread(t, ast_builder)
    raise NotImplementedError(f"unhandled object member: {tag}")


def expr_object(t: Tree, ast_builder: 'ASTBuilder') -> ObjectLit:
    members = [parse_object_member(c, ast_builder) for c in trees(t.children)]
    return ObjectLit(properties=members, loc=span_of(t))

"""Function expressions, arrow functions, parameters and binding patterns."""
from __future__ import annotations
from typing import List, TYPE_CHECKING

from lark import Tree, Token

from prodguard.semantics.ast import (
    Expr, FunctionExpr, ArrowFunction, Identifier, ObjectLit, ArrayLit, Property, Spread,
    Assign, AssignPattern, Member, ObjectPattern, ArrayPattern, RestElement, Pattern,
)
from prodguard.semantics.ast_builder.exceptions import JsSyntaxError
from prodguard.semantics.ast_builder.expressions.literals import comma_separated, parse_prop_key
from prodguard.semantics.ast_builder.utils.tree_navigation import first_token, first_tree, has_token, trees
from prodguard.internals.report import span_of

if TYPE_CHECKING:
    from prodguard.semantics.ast_builder.builder import ASTBuilder


_BINDING_TAGS = frozenset({"binding_ident", "object_pattern", "array_pattern"})


# ---------- binding patterns ----------

def parse_binding_target(t: Tree, ast_builder: 'ASTBuilder') -> Pattern:
    if t.data == "binding_ident":
        return Identifier(name=str(t.children[0]), loc=span_of(t))
    if t.data == "object_pattern":
        return ObjectPattern(
            properties=[_pattern_prop(c, ast_builder) for c in trees(t.children)],
            loc=span_of(t),
        )
    if t.data == "array_pattern":
        return ArrayPattern(
            elements=comma_separated(t.children, lambda c: _pattern_item(c, ast_builder)),
            loc=span_of(t),
        )
    raise NotImplementedError(f"unhandled binding target: {t.data}")


def parse_binding_element(t: Tree, ast_builder: 'ASTBuilder') -> Pattern:
    """binding_element: target with an optional `= default`."""
    target = parse_binding_target(t.children[0], ast_builder)
    if len(t.children) == 2:
        return AssignPattern(target=target, default=ast_builder._expr(t.children[1]), loc=span_of(t))
    return target


def _pattern_item(t: Tree, ast_builder: 'ASTBuilder') -> Pattern:
    if t.data == "pattern_rest":
        return RestElement(argument=parse_binding_target(t.children[0], ast_builder), loc=span_of(t))
    return parse_binding_element(t, ast_builder)


def _pattern_prop(t: Tree, ast_builder: 'ASTBuilder'):
    loc = span_of(t)
    if t.data == "pattern_shorthand":
        name_tok = t.children[0]
        key = Identifier(name=str(name_tok), loc=span_of(name_tok))
        value: Pattern = Identifier(name=key.name, loc=key.loc)
        if len(t.children) == 2:
            value = AssignPattern(target=value, default=ast_builder._expr(t.children[1]), loc=loc)
        return Property(key=key, value=value, shorthand=True, loc=loc)
    if t.data == "pattern_property":
        key_tree, element = t.children
        return Property(
            key=parse_prop_key(key_tree, ast_builder),
            value=parse_binding_element(element, ast_builder),
            loc=loc,
        )
    if t.data == "pattern_rest":
        return RestElement(argument=parse_binding_target(t.children[0], ast_builder), loc=loc)
    raise NotImplementedError(f"unhandled pattern property: {t.data}")


def to_pattern(expr: Expr) -> Pattern:
    """Reinterpret an expression parsed through the cover grammar as a binding pattern.

    Used for arrow parameters and destructuring assignment targets.
    """
    if isinstance(expr, (Identifier, Member, AssignPattern, ObjectPattern, ArrayPattern, RestElement)):
        return expr
    if isinstance(expr, Assign) and expr.op == "=":
        return AssignPattern(target=to_pattern(expr.target), default=expr.value, loc=expr.loc)
    if isinstance(expr, ArrayLit):
        elements: List = []
        for el in expr.elements:
            if el is None:
                elements.append(None)
            elif isinstance(el, Spread):
                elements.append(RestElement(argument=to_pattern(el.argument), loc=el.loc))
            else:
                elements.append(to_pattern(el))
        return ArrayPattern(elements=elements, loc=expr.loc)
    if isinstance(expr, ObjectLit):
        props: List = []
        for prop in expr.properties:
            if isinstance(prop, Spread):
                props.append(RestElement(argument=to_pattern(prop.argument), loc=prop.loc))
            elif isinstance(prop, Property):
                props.append(Property(key=prop.key, value=to_pattern(prop.value),
                                      shorthand=prop.shorthand, loc=prop.loc))
            else:
                raise JsSyntaxError("a method cannot appear in a destructuring pattern", prop.loc)
        return ObjectPattern(properties=props, loc=expr.loc)
    raise JsSyntaxError(f"invalid destructuring target: {type(expr).__name__}", expr.loc)


# ---------- parameters ----------

def parse_params(t: Tree, ast_builder: 'ASTBuilder') -> List[Pattern]:
    params: List[Pattern] = []
    for p in trees(t.children):
        if p.data == "rest_param":
            params.append(RestElement(argument=parse_binding_target(p.children[0], ast_builder), loc=span_of(p)))
            continue
        target = parse_binding_target(p.children[0], ast_builder)
        if len(p.children) == 2:
            target = AssignPattern(target=target, default=ast_builder._expr(p.children[1]), loc=span_of(p))
        params.append(target)
    return params


def _arrow_params(t: Tree, ast_builder: 'ASTBuilder') -> List[Pattern]:
    params: List[Pattern] = []
    for child in t.children:
        if isinstance(child, Token):
            params.append(Identifier(name=str(child), loc=span_of(child)))
        elif child.data in _BINDING_TAGS:
            params.append(RestElement(argument=parse_binding_target(child, ast_builder), loc=span_of(child)))
        elif child.data == "sequence":
            params.extend(to_pattern(e) for e in ast_builder._expr(child).exprs)
        else:
            params.append(to_pattern(ast_builder._expr(child)))
    return params


# ---------- function forms ----------

def expr_function(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    name = first_token(t.children, "IDENT")
    return FunctionExpr(
        name=str(name) if name is not None else None,
        params=parse_params(first_tree(t.children, "params"), ast_builder),
        body=ast_builder._block(first_tree(t.children, "block")),
        is_async=has_token(t.children, "ASYNC"),
        is_generator=has_token(t.children, "STAR"),
        loc=span_of(t),
    )


def expr_arrow(t: Tree, ast_builder: 'ASTBuilder') -> Expr:
    params_tree, body_tree = t.children
    if isinstance(body_tree, Tree) and body_tree.data == "block":
        body = ast_builder._block(body_tree)
    else:
        body = ast_builder._expr(body_tree)
    return ArrowFunction(params=_arrow_params(params_tree, ast_builder), body=body, loc=span_of(t))

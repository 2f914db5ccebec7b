"""Main expression parser coordinating specialized expression parsers."""
from __future__ import annotations
from typing import TYPE_CHECKING

from lark import Tree, Token

from prodguard.semantics.ast import Expr, Identifier
from prodguard.semantics.ast_builder.expressions import literals, operators, calls, functions
from prodguard.internals.report import span_of

if TYPE_CHECKING:
    from prodguard.semantics.ast_builder.builder import ASTBuilder


_BINARY_TAGS = (
    "logical_or", "logical_and", "bit_or", "bit_xor", "bit_and", "equality",
    "relational", "shift", "additive", "multiplicative", "exponent",
)


class ExpressionParser:
    """Coordinates expression parsing across specialized parsers."""

    def __init__(self, ast_builder: 'ASTBuilder'):
        self.ast_builder = ast_builder
        self.handlers = {
            "sequence": operators.expr_sequence,
            "assignment": operators.expr_assignment,
            "conditional": operators.expr_conditional,
            "unary": operators.expr_unary,
            "prefix_update": operators.expr_prefix_update,
            "postfix_update": operators.expr_postfix_update,
            "arrow_function": functions.expr_arrow,
            "function_expr": functions.expr_function,
            "call": calls.expr_call,
            "optional_call": calls.expr_call,
            "new_call": calls.expr_new_call,
            "new_bare": calls.expr_new_bare,
            "member_dot": calls.expr_member_dot,
            "optional_dot": calls.expr_member_dot,
            "member_index": calls.expr_member_index,
            "optional_index": calls.expr_member_index,
            "identifier": literals.expr_identifier,
            "number": literals.expr_number,
            "string": literals.expr_string,
            "template": literals.expr_template,
            "keyword_value": literals.expr_keyword_value,
            "paren": literals.expr_paren,
            "spread": literals.expr_spread,
            "array": literals.expr_array,
            "object": literals.expr_object,
        }
        for tag in _BINARY_TAGS:
            self.handlers[tag] = operators.expr_binary

    def parse_expr(self, t: Tree | Token) -> Expr:
        """Parse an expression node into an Expr object.

        Main dispatcher for all expression types.
        """
        # A bare IDENT reaches here from arrow parameters only
        if isinstance(t, Token):
            return Identifier(name=str(t), loc=span_of(t))

        handler = self.handlers.get(t.data)
        if handler is None:
            raise NotImplementedError(f"unhandled expr node: {t.data}")
        return handler(t, self.ast_builder)

"""Lark parser setup and AST construction."""
from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

from lark import Lark, Tree, UnexpectedInput, UnexpectedToken, UnexpectedCharacters

from prodguard.semantics.ast_builder import ASTBuilder
from prodguard.internals.brace_lexer import BraceContextLexer

GRAMMAR_PATH = Path(__file__).parent.parent / "grammar.lark"


@lru_cache(maxsize=1)
def get_parser() -> Lark:
    """Build the LALR parser once; the instance is shared by all threads."""
    return Lark.open(
        str(GRAMMAR_PATH),
        start=["program", "expr"],
        parser="lalr",
        lexer="basic",
        propagate_positions=True,
        maybe_placeholders=False,
        postlex=BraceContextLexer(),
    )


_TERMINAL_NAMES = {
    "_SEMI": "';'", "_RPAR": "')'", "_LPAR": "'('", "_RBRACE": "'}'",
    "_LBRACE": "'{'", "_LBRACE_BLOCK": "'{'", "_COLON": "':'", "RSQB": "']'",
    "_ARROW": "'=>'", "IDENT": "identifier", "STRING": "string",
}


def improve_parse_error(e: UnexpectedInput) -> str:
    """Short, single-line message for a lark parse error."""
    if isinstance(e, UnexpectedCharacters):
        return f"unexpected character {e.char!r}"

    if isinstance(e, UnexpectedToken):
        token = e.token
        found = repr(str(token))
        expected = sorted({_TERMINAL_NAMES[t] for t in e.expected if t in _TERMINAL_NAMES})
        if token.type == "$END":
            return "unexpected end of input"
        if "';'" in expected:
            # No automatic semicolon insertion
            return f"unexpected {found}, missing ';'?"
        if expected:
            return f"unexpected {found}, expected {' or '.join(expected)}"
        return f"unexpected {found}"

    return re.sub(r"\s+", " ", str(e)).strip()


def parse_expression_tree(src: str) -> Tree:
    """Parse a standalone expression (used for `${...}` segments of template literals)."""
    tree = get_parser().parse(src, start="expr")
    while isinstance(tree, Tree) and tree.data == "expr" and len(tree.children) == 1:
        tree = tree.children[0]
    return tree


def parse_to_ast(src: str, dump_parse: bool = False):
    """Parse JavaScript source into an AST.

    Returns:
        Tuple of (program, parse_tree).

    Raises:
        lark.UnexpectedInput, JsSyntaxError
    """
    parser = get_parser()
    tree = parser.parse(src, start="program")
    # Copy before building: template expressions re-enter the parser.
    comments = list(parser.options.postlex.comments)
    if dump_parse:
        print(tree.pretty())

    ast_builder = ASTBuilder()
    return ast_builder.build(tree, comments, src), tree

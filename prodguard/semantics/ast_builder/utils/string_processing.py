"""String processing utilities for JavaScript string and template literals."""
from __future__ import annotations
from typing import List, Optional, Tuple, TYPE_CHECKING

from lark import Token

if TYPE_CHECKING:
    from prodguard.internals.report import Span
    from prodguard.semantics.ast import Expr, StringLit, TemplateLit
    from prodguard.semantics.ast_builder.builder import ASTBuilder


_SIMPLE_ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    'b': '\b',
    'f': '\f',
    'v': '\v',
    '0': '\0',
}


def process_string_escapes(raw_string: str) -> str:
    r"""Process the escape sequences of a JavaScript string or template chunk.

    Handles:
    - \n \t \r \b \f \v \0
    - \xNN, \uNNNN and \u{N...}
    - line continuations (backslash followed by a newline) which vanish
    - any other escaped character stands for itself (\\ \" \' \` \$)
    """
    result = []
    i = 0
    while i < len(raw_string):
        char = raw_string[i]
        if char != '\\' or i + 1 >= len(raw_string):
            result.append(char)
            i += 1
            continue

        next_char = raw_string[i + 1]
        if next_char in _SIMPLE_ESCAPES:
            result.append(_SIMPLE_ESCAPES[next_char])
            i += 2
        elif next_char == 'x':
            try:
                result.append(chr(int(raw_string[i + 2:i + 4], 16)))
                i += 4
            except ValueError:
                result.append(next_char)
                i += 2
        elif next_char == 'u' and raw_string[i + 2:i + 3] == '{':
            close = raw_string.find('}', i + 3)
            try:
                result.append(chr(int(raw_string[i + 3:close], 16)))
                i = close + 1
            except ValueError:
                result.append(next_char)
                i += 2
        elif next_char == 'u':
            try:
                result.append(chr(int(raw_string[i + 2:i + 6], 16)))
                i += 6
            except ValueError:
                result.append(next_char)
                i += 2
        elif next_char == '\r' and raw_string[i + 2:i + 3] == '\n':
            i += 3
        elif next_char in '\n\r\u2028\u2029':
            i += 2
        else:
            result.append(next_char)
            i += 2

    return ''.join(result)


def quote_string(value: str, quote: str = "'") -> str:
    """Render `value` as a JavaScript string literal with the given quote."""
    out = [quote]
    for char in value:
        if char == quote or char == '\\':
            out.append('\\' + char)
        elif char == '\n':
            out.append('\\n')
        elif char == '\r':
            out.append('\\r')
        elif char == '\t':
            out.append('\\t')
        elif ord(char) < 0x20:
            out.append(f'\\x{ord(char):02x}')
        else:
            out.append(char)
    out.append(quote)
    return ''.join(out)


def split_template(raw_token: str, line: int, col: int) -> Tuple[List[str], List[Tuple[str, int, int]]]:
    """Split a template literal token into raw chunks and embedded expressions.

    Args:
        raw_token: The token text including the surrounding backticks
        line, col: Position of the opening backtick (1-based)

    Returns:
        Tuple of (quasis, expressions) where quasis are the raw chunks between
        `${...}` segments and expressions are (text, line, col) triples giving
        the source position of the first expression character.

    Raises:
        UnterminatedInterpolationError, EmptyInterpolationError
    """
    from prodguard.semantics.ast_builder.exceptions import (
        UnterminatedInterpolationError, EmptyInterpolationError,
    )
    from prodguard.internals.report import Span

    body = raw_token[1:-1]
    quasis: List[str] = []
    expressions: List[Tuple[str, int, int]] = []
    current: List[str] = []

    cur_line, cur_col = line, col + 1
    i = 0

    def advance(text: str) -> None:
        nonlocal cur_line, cur_col
        for ch in text:
            if ch == '\n':
                cur_line += 1
                cur_col = 1
            else:
                cur_col += 1

    while i < len(body):
        char = body[i]
        if char == '\\' and i + 1 < len(body):
            current.append(body[i:i + 2])
            advance(body[i:i + 2])
            i += 2
            continue

        if char == '$' and body[i + 1:i + 2] == '{':
            quasis.append(''.join(current))
            current = []
            advance('${')
            expr_line, expr_col = cur_line, cur_col
            i += 2
            start = i
            depth = 1
            while i < len(body) and depth:
                if body[i] == '{':
                    depth += 1
                elif body[i] == '}':
                    depth -= 1
                i += 1
            if depth:
                raise UnterminatedInterpolationError(
                    "unterminated ${ in template literal",
                    Span(expr_line, expr_col, expr_line, expr_col),
                )
            text = body[start:i - 1]
            if not text.strip():
                raise EmptyInterpolationError(
                    "empty ${} in template literal",
                    Span(expr_line, expr_col, expr_line, expr_col),
                )
            expressions.append((text, expr_line, expr_col))
            advance(text + '}')
            continue

        current.append(char)
        advance(char)
        i += 1

    quasis.append(''.join(current))
    return quasis, expressions


def apply_location_offset(node: object, line: int, col: int, visited: Optional[set] = None) -> None:
    """Move locations of nodes parsed from a template expression into file coordinates.

    Template expressions are parsed on their own, so their nodes start at 1:1.
    Nodes on the first line of the expression shift by `col - 1` columns; every
    node shifts by `line - 1` lines.
    """
    from prodguard.semantics.ast import Node
    from prodguard.internals.report import Span

    if visited is None:
        visited = set()
    if id(node) in visited or not isinstance(node, Node):
        return
    visited.add(id(node))

    if node.loc is not None:
        old = node.loc
        node.loc = Span(
            line=old.line + line - 1,
            col=old.col + (col - 1 if old.line == 1 else 0),
            end_line=old.end_line + line - 1,
            end_col=old.end_col + (col - 1 if old.end_line == 1 else 0),
        )

    for attr_name, attr_value in node.__dict__.items():
        if attr_name == 'loc':
            continue
        if isinstance(attr_value, list):
            for item in attr_value:
                apply_location_offset(item, line, col, visited)
        elif isinstance(attr_value, Node):
            apply_location_offset(attr_value, line, col, visited)


def parse_template_expr(text: str, line: int, col: int, ast_builder: 'ASTBuilder') -> 'Expr':
    """Parse the text of one `${...}` segment into an expression node."""
    from prodguard.internals.parser import parse_expression_tree
    from prodguard.semantics.ast_builder.exceptions import TemplateExpressionError
    from prodguard.internals.report import Span
    from lark import LarkError

    try:
        # The wrapping parenthesis shifts every column by one.
        tree = parse_expression_tree(f"({text})")
    except LarkError as e:
        raise TemplateExpressionError(text.strip(), Span(line, col, line, col + len(text))) from e
    expr = ast_builder._expr(tree)
    apply_location_offset(expr, line, col - 1)
    return expr


def parse_string_token(tok: Token) -> 'StringLit':
    """Build a StringLit from a STRING token, keeping the raw source text."""
    from prodguard.semantics.ast import StringLit
    from prodguard.internals.report import span_of

    raw_value = str(tok.value)
    return StringLit(value=process_string_escapes(raw_value[1:-1]), raw=raw_value, loc=span_of(tok))


def parse_template_token(tok: Token, ast_builder: 'ASTBuilder') -> 'TemplateLit':
    """Build a TemplateLit from a TEMPLATE token, parsing its embedded expressions."""
    from prodguard.semantics.ast import TemplateLit
    from prodguard.internals.report import span_of

    quasis, segments = split_template(str(tok.value), tok.line, tok.column)
    expressions = [parse_template_expr(text, line, col, ast_builder) for text, line, col in segments]
    return TemplateLit(
        quasis=quasis,
        cooked=[process_string_escapes(q) for q in quasis],
        expressions=expressions,
        loc=span_of(tok),
    )

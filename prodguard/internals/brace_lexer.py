# internals/brace_lexer.py
"""
Postlexer that resolves the context-dependent tokens of JavaScript.

Problem:
--------
An LALR(1) grammar cannot tell from `{` alone whether it opens a block or an
object literal, and cannot tell a function declaration from a function
expression when `function` starts a statement:

    if (x) { a; }          → block
    const o = { a: 1 };    → object literal
    function f() {}        → declaration
    const g = function() {};  → expression

Solution:
---------
The meaning is decided by the previous significant token, the same way hand
written JavaScript parsers do it:

- `{` becomes _LBRACE_BLOCK after `;`, `{`, `}`, `)`, `=>`, `else`, `do`,
  `try`, `catch`, `finally`, `class`, a class name, a `case`/`default` label
  colon, or at the start of input.
- `function` becomes _FUNCTION_DECL at statement start. For `async function`
  the statement-start status is the one recorded when `async` was seen.

Case label colons are found by remembering the nesting depth at which a
`case`/`default` label opened and skipping colons that close a `?:` operator.

Comments are dropped from the token stream and collected per parse so the AST
builder can attach them to statements.
"""
from __future__ import annotations

import threading
from typing import List

from lark import Token

COMMENT_TYPES = ("LINE_COMMENT", "BLOCK_COMMENT")

# Pseudo type recorded for the colon that ends a case/default label.
CASE_COLON = "CASE_COLON"

_BLOCK_BRACE_AFTER = frozenset({
    None, "_SEMI", "_LBRACE_BLOCK", "_RBRACE", "_RPAR", "_ARROW",
    "_ELSE", "_DO", "_TRY", "_CATCH", "_FINALLY", "_CLASS", "IDENT", CASE_COLON,
})

_STATEMENT_START_AFTER = frozenset({
    None, "_SEMI", "_LBRACE_BLOCK", "_RBRACE", "_RPAR",
    "_ELSE", "_DO", "_EXPORT", "_DEFAULT", CASE_COLON,
})

_LABEL_START_AFTER = frozenset({"_SEMI", "_LBRACE_BLOCK", "_RBRACE", CASE_COLON})

_OPENERS = frozenset({"_LPAR", "LSQB", "_LBRACE", "_LBRACE_BLOCK"})
_CLOSERS = frozenset({"_RPAR", "RSQB", "_RBRACE"})


def _retype(token: Token, type_: str) -> Token:
    return Token.new_borrow_pos(type_, token.value, token)


class BraceContextLexer:
    """Postlexer that retypes block braces and function declarations."""

    always_accept = COMMENT_TYPES

    def __init__(self) -> None:
        # One Lark instance is shared by every thread of a build, so the
        # comments of the parse in progress live in thread-local storage.
        self._local = threading.local()

    @property
    def comments(self) -> List[Token]:
        """Comments collected by the most recent parse on this thread."""
        return getattr(self._local, "comments", [])

    def process(self, stream):
        comments: List[Token] = []
        self._local.comments = comments

        prev = None
        prev_value = None
        depth = 0
        label_depth = None
        open_ternaries = 0
        async_at_start = False

        for token in stream:
            if token.type in COMMENT_TYPES:
                comments.append(token)
                continue

            kind = token.type
            if kind == "_LBRACE" and prev in _BLOCK_BRACE_AFTER:
                # `for (const x of {a: 1})` keeps the object literal
                if not (prev == "IDENT" and prev_value == "of"):
                    token = _retype(token, "_LBRACE_BLOCK")
            elif kind == "_FUNCTION":
                at_start = async_at_start if prev == "ASYNC" else prev in _STATEMENT_START_AFTER
                if at_start:
                    token = _retype(token, "_FUNCTION_DECL")
            elif kind == "ASYNC":
                async_at_start = prev in _STATEMENT_START_AFTER

            kind = token.type
            if kind in ("_CASE", "_DEFAULT") and prev in _LABEL_START_AFTER:
                label_depth = depth
                open_ternaries = 0
            elif kind in _OPENERS:
                depth += 1
            elif kind in _CLOSERS:
                depth -= 1
            elif kind == "_QMARK" and label_depth == depth:
                open_ternaries += 1
            elif kind == "_COLON" and label_depth == depth:
                if open_ternaries:
                    open_ternaries -= 1
                else:
                    label_depth = None
                    prev, prev_value = CASE_COLON, token.value
                    yield token
                    continue

            prev, prev_value = kind, token.value
            yield token

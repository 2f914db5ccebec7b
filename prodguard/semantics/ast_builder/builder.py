"""Main ASTBuilder orchestrator for prodguard.

This module contains the core ASTBuilder class that coordinates conversion of
Lark parse trees into typed AST nodes. The builder delegates to specialized
parsers:

- Expression parsing: prodguard.semantics.ast_builder.expressions
- Statement parsing: prodguard.semantics.ast_builder.statements
- Utilities: prodguard.semantics.ast_builder.utils

Architecture:
    - Dispatch tables keyed on the parse tree's rule name
    - Lazy initialization of parser instances
    - Comments are attached after the tree is built (see utils.comments)
"""
from __future__ import annotations
from typing import List, Sequence

from lark import Tree, Token

from prodguard.semantics.ast import Program, Block, Stmt, Expr, ExprStmt, StringLit
from prodguard.semantics.ast_builder.utils.comments import CommentAttacher
from prodguard.internals.report import span_of


class ASTBuilder:
    def __init__(self):
        """Initialize ASTBuilder with lazy-loaded parsers."""
        self._expr_parser = None
        self._stmt_parser = None

    @property
    def expr_parser(self):
        """Lazy-load ExpressionParser on first use."""
        if self._expr_parser is None:
            from prodguard.semantics.ast_builder.expressions.parser import ExpressionParser
            self._expr_parser = ExpressionParser(self)
        return self._expr_parser

    @property
    def stmt_parser(self):
        """Lazy-load StatementParser on first use."""
        if self._stmt_parser is None:
            from prodguard.semantics.ast_builder.statements.parser import StatementParser
            self._stmt_parser = StatementParser(self)
        return self._stmt_parser

    def build(self, tree: Tree, comments: Sequence[Token] = (), source: str = "") -> Program:
        """Build the Program AST from a `program` parse tree.

        `comments` are the comment tokens collected by the postlexer and
        `source` the text they came from.
        """
        assert isinstance(tree, Tree) and tree.data == "program"
        body = [self._stmt(ch) for ch in tree.children if isinstance(ch, Tree)]
        mark_directives(body)
        program = Program(body=body, loc=span_of(tree))
        if comments:
            CommentAttacher(comments, source).attach(program)
        return program

    def _stmt(self, t: Tree) -> Stmt:
        return self.stmt_parser.parse_stmt(t)

    def _expr(self, t: Tree | Token) -> Expr:
        return self.expr_parser.parse_expr(t)

    def _block(self, t: Tree) -> Block:
        body = [self._stmt(ch) for ch in t.children if isinstance(ch, Tree)]
        return Block(body=body, loc=span_of(t))


def mark_directives(body: List[Stmt]) -> None:
    """Flag the directive prologue (`'use strict';`, `'use client';`) of a program."""
    for stmt in body:
        if not (isinstance(stmt, ExprStmt) and isinstance(stmt.expr, StringLit)):
            return
        stmt.directive = stmt.expr.value

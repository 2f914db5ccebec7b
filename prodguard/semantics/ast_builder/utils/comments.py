"""Attach the comments collected by the postlexer to AST nodes.

Comments never reach the parser, so the builder places them afterwards by
source position:

- a comment before a statement (or switch case, or class member) inside the
  same list leads that statement;
- comments after the last statement of a block or program trail it;
- a comment inside an expression attaches to a `new` expression that starts
  right after it, with only whitespace in between:

      throw /* minify-error */ new Error('x');

Any other comment inside an expression is dropped.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from lark import Token

from prodguard.semantics.ast import (
    Node, Comment, Program, Block, Switch, SwitchCase, ClassDecl, New, iter_child_nodes,
)
from prodguard.internals.report import Span


@dataclass
class _Pending:
    node: Comment
    start: Tuple[int, int]
    end: Tuple[int, int]


def comment_from_token(tok: Token) -> Comment:
    text = str(tok.value)
    span = Span(tok.line, tok.column, tok.end_line, tok.end_column)
    if tok.type == "BLOCK_COMMENT":
        return Comment(block=True, text=text[2:-2], loc=span)
    return Comment(block=False, text=text[2:], loc=span)


class CommentAttacher:
    def __init__(self, comments: Sequence[Token], source: str = ""):
        self.pending = sorted(
            (_Pending(c, c.loc.start(), c.loc.end()) for c in map(comment_from_token, comments)),
            key=lambda p: p.start,
        )
        self.source = source
        self._line_starts = [0]
        for i, ch in enumerate(source):
            if ch == "\n":
                self._line_starts.append(i + 1)

    def attach(self, program: Program) -> None:
        self._attach_list(program.body, self.pending, program)

    # ---------- helpers ----------

    def _offset(self, pos: Tuple[int, int]) -> Optional[int]:
        line, col = pos
        if not self.source or line - 1 >= len(self._line_starts):
            return None
        return self._line_starts[line - 1] + col - 1

    def _attach_list(self, items: Sequence[Node], pending: List[_Pending], container: Optional[Node]) -> None:
        for item in items:
            if item.loc is None or not pending:
                continue
            start, end = item.loc.start(), item.loc.end()
            leading = [p for p in pending if p.end <= start]
            inner = [p for p in pending if p.start >= start and p.end <= end]
            pending = [p for p in pending if p.start >= end]
            item.comments.extend(p.node for p in leading)
            if inner:
                self._descend(item, inner)
        if pending and isinstance(container, (Program, Block)):
            container.trailing_comments.extend(p.node for p in pending)

    def _descend(self, node: Node, pending: List[_Pending]) -> None:
        if isinstance(node, (Block, SwitchCase)):
            self._attach_list(node.body, pending, node)
            return
        if isinstance(node, Switch):
            self._attach_list(node.cases, pending, None)
            return
        if isinstance(node, ClassDecl):
            self._attach_list(node.members, pending, None)
            return

        loose = list(pending)
        for child in iter_child_nodes(node):
            if child.loc is None:
                continue
            start, end = child.loc.start(), child.loc.end()
            inside = [p for p in loose if p.start >= start and p.end <= end]
            if inside:
                self._descend(child, inside)
                loose = [p for p in loose if p not in inside]
        if loose:
            self._attach_loose(node, loose)

    def _attach_loose(self, node: Node, pending: List[_Pending]) -> None:
        for p in pending:
            target = self._new_after(node, p)
            if target is not None:
                target.comments.append(p.node)

    def _new_after(self, node: Node, p: _Pending) -> Optional[New]:
        begin = self._offset(p.end)
        for child in iter_child_nodes(node):
            if child.loc is None or child.loc.start() < p.end:
                continue
            stop = self._offset(child.loc.start())
            if begin is None or stop is None or self.source[begin:stop].strip():
                return None
            return _leftmost_new(child)
        return None


def _leftmost_new(node: Node) -> Optional[New]:
    """The `new` expression that starts where `node` starts, if any."""
    while node is not None:
        if isinstance(node, New):
            return node
        start = node.loc.start() if node.loc else None
        node = next((c for c in iter_child_nodes(node) if c.loc is not None and c.loc.start() == start), None)
    return None

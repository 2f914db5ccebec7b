"""Tree navigation utilities for traversing Lark parse trees."""
from __future__ import annotations
from typing import Callable, List, Optional

from lark import Tree, Token


def first(children: List[object], pred: Callable) -> Optional[object]:
    """Find first child matching predicate."""
    for ch in children:
        if pred(ch):
            return ch
    return None


def first_token(children: List[object], type_: str) -> Optional[Token]:
    """Get first token of the given type from children."""
    return first(children, lambda c: isinstance(c, Token) and c.type == type_)  # type: ignore[return-value]


def has_token(children: List[object], type_: str) -> bool:
    return first_token(children, type_) is not None


def tokens(children: List[object], type_: str) -> List[Token]:
    """All tokens of the given type, in order."""
    return [c for c in children if isinstance(c, Token) and c.type == type_]


def first_tree(children: List[object], data: str) -> Optional[Tree]:
    """Get first Tree child with specific data tag."""
    return first(children, lambda c: isinstance(c, Tree) and c.data == data)  # type: ignore[return-value]


def trees(children: List[object]) -> List[Tree]:
    """Tree children only, dropping kept punctuation tokens."""
    return [c for c in children if isinstance(c, Tree)]


def token_text(t: Tree | Token) -> str:
    """Text of a token, or of the single token under a one-token tree (prop_name, var_kind)."""
    if isinstance(t, Token):
        return str(t.value)
    return token_text(t.children[0])

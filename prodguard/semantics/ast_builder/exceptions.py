"""Custom exceptions for AST building errors."""
from __future__ import annotations
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from prodguard.internals.report import Span


class JsSyntaxError(Exception):
    """Base class for syntax problems found while building the AST."""
    def __init__(self, message: str, span: Optional['Span'] = None):
        super().__init__(message)
        self.span = span


class UnterminatedInterpolationError(JsSyntaxError):
    """Exception raised when a `${` segment of a template literal is never closed."""


class EmptyInterpolationError(JsSyntaxError):
    """Exception raised when a template literal contains `${}`."""


class TemplateExpressionError(JsSyntaxError):
    """Exception raised when the text inside `${...}` is not an expression."""
    def __init__(self, text: str, span: Optional['Span'] = None):
        super().__init__(f"cannot parse template literal expression '{text}'", span)
        self.text = text


class ContextualKeywordError(JsSyntaxError):
    """Exception raised when `of`, `from` or `as` is expected but another word is found."""
    def __init__(self, expected: str, construct: str, word: str, span: Optional['Span'] = None):
        super().__init__(f"expected '{expected}' in {construct}, found '{word}'", span)
        self.expected = expected
        self.construct = construct
        self.word = word

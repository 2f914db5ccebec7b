"""
AST Builder module for prodguard.

Exports:
    ASTBuilder: Main class for building typed AST from Lark parse trees
    Exceptions: Custom exceptions for AST building errors
"""
# Main ASTBuilder class
from prodguard.semantics.ast_builder.builder import ASTBuilder

# Exception classes
from prodguard.semantics.ast_builder.exceptions import (
    JsSyntaxError,
    UnterminatedInterpolationError,
    EmptyInterpolationError,
    TemplateExpressionError,
    ContextualKeywordError,
)

__all__ = [
    'ASTBuilder',
    'JsSyntaxError',
    'UnterminatedInterpolationError',
    'EmptyInterpolationError',
    'TemplateExpressionError',
    'ContextualKeywordError',
]

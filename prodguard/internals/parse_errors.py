"""Shared parse exception handling for the pipeline and CLI."""
from __future__ import annotations

from lark import UnexpectedInput

from prodguard.internals.report import Span
from prodguard.semantics.ast_builder import (
    JsSyntaxError,
    TemplateExpressionError,
    ContextualKeywordError,
)


def handle_parse_exception(exc: Exception, reporter) -> bool:
    """Handle a parse exception by emitting diagnostics through the reporter.

    Args:
        exc: The exception to handle.
        reporter: Reporter for error/warning collection.

    Returns:
        True if the exception was handled, False otherwise.
    """
    from prodguard.internals import errors as er
    from prodguard.internals.parser import improve_parse_error

    if isinstance(exc, ContextualKeywordError):
        if exc.expected == "of":
            er.emit(reporter, er.ERR.PG1002, exc.span, word=exc.word)
        else:
            er.emit(reporter, er.ERR.PG1003, exc.span,
                    expected=exc.expected, construct=exc.construct, word=exc.word)
        return True

    if isinstance(exc, TemplateExpressionError):
        er.emit(reporter, er.ERR.PG1004, exc.span, text=exc.text)
        return True

    if isinstance(exc, JsSyntaxError):
        er.emit(reporter, er.ERR.PG1001, exc.span, detail=str(exc))
        return True

    if isinstance(exc, UnexpectedInput):
        line = getattr(exc, "line", None)
        col = getattr(exc, "column", None)
        span = Span(line, col, line, col) if isinstance(line, int) and line > 0 else None
        er.emit(reporter, er.ERR.PG1001, span, detail=improve_parse_error(exc))
        return True

    if isinstance(exc, NotImplementedError):
        er.emit(reporter, er.ERR.PG0001, None, node=str(exc))
        return True

    return False

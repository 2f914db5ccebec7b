# internals/errors.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from prodguard.internals.report import Span, Reporter


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class Category(str, Enum):
    GENERAL   = "general"
    PARSE     = "parse"
    LINT      = "lint"
    TRANSFORM = "transform"
    CATALOG   = "catalog"
    CONFIG    = "config"
    INTERNAL  = "internal"


@dataclass(frozen=True)
class ErrorMessage:
    code: str
    severity: Severity
    text: str
    category: Category = Category.GENERAL
    doc: str = ""


REGISTRY: Dict[str, ErrorMessage] = {}

class _ErrorCatalog:
    def __init__(self, backing: Dict[str, ErrorMessage]) -> None:
        self._registry = backing

    def __getattr__(self, name: str) -> ErrorMessage:
        try:
            return self._registry[name]
        except KeyError as e:
            raise AttributeError(name) from e

    def __getitem__(self, code: str) -> ErrorMessage:
        return self._registry[code]


ERR = _ErrorCatalog(REGISTRY)

def emit(r: Reporter, em: ErrorMessage, span: Optional[Span], *,
         severity: Optional[Severity] = None, rule: Optional[str] = None,
         message_id: Optional[str] = None, **kwargs) -> None:
    """Format `em` with `kwargs` and record it on the reporter.

    `severity` overrides the registry default (lint rules configured as
    "warn" report their error-level messages as warnings).
    """
    text = _fmt(em.code, **kwargs)
    extra = dict(rule=rule, message_id=message_id,
                 data={k: str(v) for k, v in kwargs.items()})
    if (severity or em.severity) == Severity.ERROR:
        r.error(em.code, text, span, **extra)
    else:
        r.warn(em.code, text, span, **extra)

def format_message(code: str, **kwargs) -> str:
    return _fmt(code, **kwargs)

def raise_internal_error(code: str, **kwargs) -> None:
    """Raise a RuntimeError for internal errors.

    Internal errors (PG0xxx codes) indicate bugs in prodguard itself, not
    problems in the analysed sources.

    Raises:
        RuntimeError: Always raises with formatted error message
    """
    text = _fmt(code, **kwargs)
    raise RuntimeError(f"{code}: {text}")


#
# --- Helpers
#

def _add(msg: ErrorMessage) -> None:
    if msg.code in REGISTRY:
        raise ValueError(f"duplicate error code {REGISTRY[msg.code]} in {msg}")
    REGISTRY[msg.code] = msg

def _get(code: str) -> ErrorMessage:
    try:
        return REGISTRY[code]
    except KeyError:
        raise KeyError(f"unknown error code: {code}")

def _fmt(code: str, **kwargs) -> str:
    msg = _get(code)
    try:
        return msg.text.format(**kwargs)
    except KeyError as key_error:
        missing = key_error.args[0]
        raise KeyError(f"missing text key '{missing}' for {code} "
                       f"(needed by: {msg.text!r})") from None

#
# --- Registry population
#

# Internal errors - PG0xxx range
_add(ErrorMessage("PG0001", Severity.ERROR,
    "unknown syntax node '{node}'",
    Category.INTERNAL, "The AST builder met a parse tree node it has no handler for."))

_add(ErrorMessage("PG0002", Severity.ERROR,
    "printer cannot render node '{node}'",
    Category.INTERNAL, "The JavaScript printer met an AST node it has no handler for."))

# Parse errors - PG1xxx range
_add(ErrorMessage("PG1001", Severity.ERROR,
    "{detail}",
    Category.PARSE, "The source is not valid JavaScript or uses syntax outside the supported subset."))

_add(ErrorMessage("PG1002", Severity.ERROR,
    "expected 'of' in for statement, found '{word}'",
    Category.PARSE))

_add(ErrorMessage("PG1003", Severity.ERROR,
    "expected '{expected}' in {construct}, found '{word}'",
    Category.PARSE, "Contextual keywords of import/export clauses."))

_add(ErrorMessage("PG1004", Severity.ERROR,
    "cannot parse template literal expression '{text}'",
    Category.PARSE))

# Lint rule violations - PG2xxx range
_add(ErrorMessage("PG2001", Severity.ERROR,
    "Do not wrap a throw in a process.env.NODE_ENV guard; errors must be thrown identically in every environment",
    Category.LINT, "no-guarded-throw / guardedThrow"))

_add(ErrorMessage("PG2002", Severity.ERROR,
    "process.env.NODE_ENV must be compared against 'production' only, not '{comparedValue}'",
    Category.LINT, "consistent-production-guard / invalidComparison"))

_add(ErrorMessage("PG2003", Severity.ERROR,
    "process.env.NODE_ENV must only be used in a '===' or '!==' comparison with 'production'",
    Category.LINT, "consistent-production-guard / invalidUsage"))

_add(ErrorMessage("PG2004", Severity.ERROR,
    "Function `{functionName}` must be wrapped with a production check "
    "(e.g., `if (process.env.NODE_ENV !== 'production')`) to prevent it from ending up in production bundles",
    Category.LINT, "require-dev-wrapper / missingDevWrapper"))

# Transform diagnostics - PG3xxx range
_add(ErrorMessage("PG3001", Severity.WARNING,
    "error thrown inside a development-only branch is left unminified",
    Category.TRANSFORM, "The throw is also reported by no-guarded-throw."))

_add(ErrorMessage("PG3002", Severity.WARNING,
    "Unminifyable error in production! You can only use literal strings and template strings as error messages",
    Category.TRANSFORM))

_add(ErrorMessage("PG3003", Severity.WARNING,
    "Unminified error message in production build: no code for '{message}'",
    Category.TRANSFORM))

_add(ErrorMessage("PG3004", Severity.ERROR,
    "{detail}",
    Category.TRANSFORM, "The rewrite of this file was aborted."))

# Catalog and configuration errors - PG4xxx range
_add(ErrorMessage("PG4001", Severity.ERROR,
    "{detail}",
    Category.CATALOG))

_add(ErrorMessage("PG4002", Severity.ERROR,
    "{detail}",
    Category.CONFIG))

_add(ErrorMessage("PG4003", Severity.ERROR,
    "cannot read '{path}': {reason}",
    Category.GENERAL))

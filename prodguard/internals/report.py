from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from lark import Token


class C:
    """ANSI color/style escape codes."""
    RESET = "\x1b[0m"
    BOLD  = "\x1b[1m"
    DIM   = "\x1b[2m"
    RED   = "\x1b[31m"
    YELLOW = "\x1b[33m"
    CYAN  = "\x1b[36m"
    GRAY  = "\x1b[90m"


@dataclass
class Span:
    line: int
    col: int
    end_line: int
    end_col: int

    def start(self) -> tuple[int, int]:
        return (self.line, self.col)

    def end(self) -> tuple[int, int]:
        return (self.end_line, self.end_col)


@dataclass
class Diagnostic:
    kind: str
    code: str
    message: str
    span: Optional[Span] = None
    filename: Optional[str] = None
    rule: Optional[str] = None         # lint rule name, e.g. "no-guarded-throw"
    message_id: Optional[str] = None   # stable id inside the rule, e.g. "guardedThrow"
    data: Dict[str, str] = field(default_factory=dict)


def span_of(t: Any) -> Optional[Span]:
    m = getattr(t, "meta", None)
    if m is not None and not getattr(m, "empty", True):
        return Span(m.line, m.column, m.end_line, m.end_column)
    if isinstance(t, Token):
        line = getattr(t, "line", None)
        col = getattr(t, "column", None)
        end_line = getattr(t, "end_line", None)
        end_col = getattr(t, "end_column", None)
        if line is not None and col is not None:
            return Span(line, col, end_line or line, end_col or col)
    return None


def _display_path(filename: str) -> str:
    try:
        return f"./{Path(filename).resolve().relative_to(Path.cwd())}"
    except ValueError:
        return filename


class Reporter:
    def __init__(self, source: Optional[str] = None, filename: str = "<input>") -> None:
        self.source = source
        self.filename = filename
        self.items: List[Diagnostic] = []

    def error(self, code: str, msg: str, span: Optional[Span], **extra):
        self.items.append(Diagnostic("error", code, msg, span, filename=self.filename, **extra))

    def warn(self, code: str, msg: str, span: Optional[Span], **extra):
        self.items.append(Diagnostic("warning", code, msg, span, filename=self.filename, **extra))

    def extend(self, other: "Reporter") -> None:
        """Merge diagnostics collected by another reporter (one per file in a build)."""
        self.items.extend(other.items)

    @property
    def has_errors(self) -> bool:
        return any(d.kind == "error" for d in self.items)

    @property
    def has_warnings(self) -> bool:
        return any(d.kind == "warning" for d in self.items)

    def exit_code(self) -> int:
        """0 when clean, 1 for warnings only, 2 when any error was reported."""
        if self.has_errors:
            return 2
        return 1 if self.has_warnings else 0

    def _source_lines(self, filename: Optional[str]) -> Optional[List[str]]:
        if filename is None or filename == self.filename:
            return self.source.splitlines() if self.source is not None else None
        try:
            return Path(filename).read_text(encoding="utf-8").splitlines()
        except OSError:
            return None

    def format(self, use_color: bool = True, use_unicode: bool = True) -> str:
        """Render all diagnostics.

        use_color   → ANSI colorize location/kind/markers
        use_unicode → use │ / ╰ / ╯ guides around the source line
        """
        out: List[str] = []

        for d in self.items:
            filename = _display_path(d.filename or self.filename)
            loc = f"{filename}:{d.span.line}:{d.span.col}" if d.span else filename
            message = d.message if d.message.endswith('.') else f"{d.message}."
            tag = f"{d.code} {d.rule}" if d.rule else d.code

            if use_color:
                kind = f"{C.BOLD}{C.RED}error{C.RESET}" if d.kind == "error" else f"{C.BOLD}{C.YELLOW}warning{C.RESET}"
                head = f"{C.CYAN}{loc}{C.RESET}: {kind} [{C.DIM}{tag}{C.RESET}]: {message}"
            else:
                head = f"{loc}: {d.kind} [{tag}]: {message}"

            if not d.span:
                out.append(head)
                continue

            lines = self._source_lines(d.filename)
            idx = d.span.line - 1
            line_text = lines[idx] if lines is not None and 0 <= idx < len(lines) else ""
            start = max(1, d.span.col)

            if use_unicode:
                gray = (lambda s: f"{C.GRAY}{s}{C.RESET}") if use_color else (lambda s: s)
                marker = "┯"
                if use_color:
                    marker = f"{C.RED if d.kind == 'error' else C.YELLOW}┯{C.RESET}"
                out.append(f"{gray('  ╭──┤ ')}{head}")
                out.append(f"{gray('  │')}  {line_text}")
                out.append(f"{gray('  │')}  {' ' * (start - 1)}{marker}")
                out.append(gray(f"  ╰{'─' * (start + 1)}╯"))
            else:
                out.append(head)
                out.append(f"  | {line_text}")
                out.append(f"  ` {' ' * (start - 1)}^")

        return "\n".join(out)

    def print(self, stream=None, use_color: Optional[bool] = None, use_unicode: Optional[bool] = None) -> None:
        """Print diagnostics to `stream` (default: sys.stderr).

        Color is auto-enabled for TTY unless NO_COLOR or TERM=dumb.
        Unicode guides are auto-enabled for TTY unless NO_UNICODE or TERM=dumb.
        """
        import os, sys
        stream = stream or sys.stderr

        is_tty = getattr(stream, "isatty", lambda: False)()
        dumb = os.getenv("TERM") == "dumb"
        if use_color is None:
            use_color = bool(is_tty and os.getenv("NO_COLOR") is None and not dumb)
        if use_unicode is None:
            use_unicode = bool(is_tty and os.getenv("NO_UNICODE") is None and not dumb)

        text = self.format(use_color=use_color, use_unicode=use_unicode)
        if text:
            print(text, file=stream)

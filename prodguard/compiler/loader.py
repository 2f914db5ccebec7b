"""Source file discovery and loading."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from prodguard.internals import errors as er
from prodguard.internals.parser import parse_to_ast
from prodguard.internals.parse_errors import handle_parse_exception
from prodguard.internals.report import Reporter
from prodguard.semantics.ast import Program

SKIPPED_DIRS = frozenset({"node_modules", "dist", "build", "__tests__", "__fixtures__"})


def discover_sources(paths: Iterable[Path], extensions: Sequence[str],
                     exclude: Sequence[str] = ()) -> List[Path]:
    """Expand files and directories into a sorted, de-duplicated list of sources.

    Files given explicitly are kept whatever their extension. Directories are
    searched recursively; excluded names match any path component.
    """
    skipped = SKIPPED_DIRS | set(exclude)
    found = set()
    for path in paths:
        path = Path(path)
        if path.is_file():
            found.add(path.resolve())
            continue
        for candidate in path.rglob("*"):
            if not candidate.is_file() or candidate.suffix not in extensions:
                continue
            if any(part in skipped for part in candidate.relative_to(path).parts):
                continue
            found.add(candidate.resolve())
    return sorted(found)


@dataclass
class SourceFile:
    path: Path
    source: str
    reporter: Reporter
    program: Optional[Program] = None

    @property
    def ok(self) -> bool:
        return self.program is not None


def load_source(path: Path) -> SourceFile:
    """Read and parse one file. Parse and read failures end up on its reporter."""
    reporter = Reporter(filename=str(path))
    try:
        src = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        er.emit(reporter, er.ERR.PG4003, None, path=path, reason=getattr(e, "strerror", None) or str(e))
        return SourceFile(path, "", reporter)

    reporter.source = src
    unit = SourceFile(path, src, reporter)
    try:
        unit.program, _ = parse_to_ast(src)
    except Exception as exc:
        if not handle_parse_exception(exc, reporter):
            raise
    return unit

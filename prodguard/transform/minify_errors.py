"""
Error message minification.

Rewrites production-reachable error construction sites so that production
bundles only carry a numeric code and the runtime arguments:

    throw new Error(`Unknown theme key ${key}.`);

becomes

    import _formatErrorMessage from './formatErrorMessage.js';
    throw new Error(process.env.NODE_ENV !== 'production'
        ? `Unknown theme key ${key}.`
        : _formatErrorMessage(17, key));

Development builds keep the full message; the production branch is what
remains after `process.env.NODE_ENV` is replaced and dead code is removed.
Sites inside development-only branches are left alone since they never ship.
"""
from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from prodguard.internals import errors as er
from prodguard.internals.report import Reporter
from prodguard.semantics.ast import (
    Program, Comment, Conditional, Binary, Member, Identifier, StringLit, NumberLit, Call,
    ImportDecl, ExprStmt, FunctionDecl, FunctionExpr, ClassDecl, walk,
)
from prodguard.semantics.guards import GuardVerdict, PRODUCTION
from prodguard.transform.catalog import CatalogError, MessageCatalog, normalize_template
from prodguard.transform.messages import (
    ErrorCallSite, OPT_IN_MARKER, OPT_OUT_MARKER, collect_sites,
)

MISSING_ERROR_MODES = ("write", "annotate", "throw")
DETECTION_MODES = ("opt-out", "opt-in")

FORMATTER_NAME_HINT = "_formatErrorMessage"

UNMINIFYABLE_NOTE = " FIXME (minify-errors-in-prod): Unminifyable error in production! "
UNMINIFIED_NOTE = " FIXME (minify-errors-in-prod): Unminified error message in production build! "

_EXTENSION_RE = re.compile(r"\.[a-zA-Z0-9]+$")


class MinifyError(Exception):
    pass


@dataclass(frozen=True)
class TransformOptions:
    runtime_module: str = "#formatErrorMessage"
    missing_error: str = "write"
    detection: str = "opt-out"
    out_extension: str = ".js"

    def validate(self) -> None:
        if self.missing_error not in MISSING_ERROR_MODES:
            raise MinifyError(f"Unknown missingError option: {self.missing_error}")
        if self.detection not in DETECTION_MODES:
            raise MinifyError(f"Unknown detection option: {self.detection}")


# ---------- runtime module resolution ----------

def to_import_specifier(relative_path: str) -> str:
    normalized = relative_path.replace(os.sep, "/")
    if normalized.startswith("/") or normalized.startswith("."):
        return normalized
    return f"./{normalized}"


def transform_extension(specifier: str, out_extension: str = ".js") -> str:
    """Swap the file extension of a relative import for the build's output extension."""
    return _EXTENSION_RE.sub(out_extension, specifier)


def find_package_json(start: Path) -> Optional[Path]:
    for directory in (start, *start.parents):
        candidate = directory / "package.json"
        if candidate.is_file():
            return candidate
    return None


def resolve_runtime_module(runtime_module: str, filename: Optional[str],
                           visited: Optional[Set[str]] = None) -> str:
    """Resolve a `#subpath` import through the nearest package.json `imports` field.

    Specifiers not starting with `#` are returned unchanged. A target starting
    with `.` becomes a path relative to the file being transformed.
    """
    if not runtime_module.startswith("#"):
        return runtime_module
    if filename is None:
        raise MinifyError("filename is not defined")

    source_dir = Path(os.path.abspath(filename)).parent
    pkg_path = find_package_json(source_dir)
    if pkg_path is None:
        raise MinifyError("Could not find package.json")
    try:
        pkg = json.loads(pkg_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise MinifyError(f"{pkg_path}: invalid JSON ({e.msg})") from e

    imports = pkg.get("imports") if isinstance(pkg, dict) else None
    target = imports.get(runtime_module) if isinstance(imports, dict) else None
    if not isinstance(target, str):
        raise MinifyError(f"Invalid runtime module path for {runtime_module}")

    visited = set() if visited is None else visited
    if runtime_module in visited:
        raise MinifyError(f"Circular import detected for {runtime_module}")
    visited.add(runtime_module)

    if target.startswith("."):
        resolved = os.path.normpath(os.path.join(pkg_path.parent, target))
        return to_import_specifier(os.path.relpath(resolved, source_dir))
    return resolve_runtime_module(target, filename, visited)


def runtime_import_source(options: TransformOptions, filename: Optional[str]) -> str:
    source = resolve_runtime_module(options.runtime_module, filename)
    if source.startswith("."):
        return transform_extension(source, options.out_extension)
    return source


# ---------- the transform ----------

def _taken_names(program: Program) -> Set[str]:
    names: Set[str] = set()
    for node in walk(program):
        if isinstance(node, Identifier):
            names.add(node.name)
        elif isinstance(node, (FunctionDecl, FunctionExpr, ClassDecl)) and node.name:
            names.add(node.name)
        elif isinstance(node, ImportDecl):
            names.update(n for n in (node.default, node.namespace) if n)
            names.update(s.local for s in node.specifiers)
    return names


def canonical_guard() -> Binary:
    node_env = Member(
        object=Member(object=Identifier(name="process", loc=None), property=Identifier(name="env", loc=None), loc=None),
        property=Identifier(name="NODE_ENV", loc=None),
        loc=None,
    )
    return Binary(op="!==", left=node_env, right=StringLit(value=PRODUCTION, loc=None), loc=None)


class ErrorRewriteTransform:
    """Rewrites the error construction sites of one program in place.

    Args:
        catalog: codes are looked up here; `missing_error="write"` appends to it.
        options: runtime module, missing-code policy, marker detection mode.
        filename: path of the source, used to resolve `#` runtime modules.
        reporter: receives PG3xxx diagnostics.
    """

    def __init__(self, catalog: MessageCatalog, options: TransformOptions = TransformOptions(),
                 filename: Optional[str] = None, reporter: Optional[Reporter] = None):
        options.validate()
        self.catalog = catalog
        self.options = options
        self.filename = filename
        self.reporter = reporter if reporter is not None else Reporter(filename=filename or "<input>")
        self._formatter: Optional[str] = None
        self.rewritten = 0

    # Sites that would be rewritten, without touching the tree (extraction phase)
    def eligible_sites(self, program: Program) -> List[ErrorCallSite]:
        return [s for s in collect_sites(program) if self._selected(s)]

    def _selected(self, site: ErrorCallSite) -> bool:
        if not site.production_reachable or not site.has_message or site.minified:
            return False
        if self.options.detection == "opt-in":
            return site.marked(OPT_IN_MARKER)
        return not site.marked(OPT_OUT_MARKER)

    def run(self, program: Program) -> bool:
        """Rewrite `program`. Returns True when the tree changed."""
        changed = False
        for site in collect_sites(program):
            if site.verdict is GuardVerdict.DEV_ONLY:
                if site.in_throw:
                    er.emit(self.reporter, er.ERR.PG3001, site.location)
                continue
            if not self._selected(site):
                continue
            if self._strip_opt_in_markers(site):
                changed = True
            changed |= self._rewrite(program, site)
        return changed

    def _strip_opt_in_markers(self, site: ErrorCallSite) -> bool:
        # opt-out markers are left in the output
        marker_ids = {id(c) for c in site.markers if c.text.strip() == OPT_IN_MARKER}
        if not marker_ids:
            return False
        site.node.comments[:] = [c for c in site.node.comments if id(c) not in marker_ids]
        if site.statement is not None:
            site.statement.comments[:] = [c for c in site.statement.comments if id(c) not in marker_ids]
        return True

    def _annotate(self, site: ErrorCallSite, note: str) -> bool:
        if any(c.text == note for c in site.node.comments):
            return False
        site.node.comments.insert(0, Comment(block=True, text=note, loc=None))
        return True

    def _rewrite(self, program: Program, site: ErrorCallSite) -> bool:
        mode = self.options.missing_error
        if site.template is None:
            if mode == "throw":
                raise MinifyError(
                    "Unminifyable error. You can only use literal strings and template strings as error messages."
                )
            er.emit(self.reporter, er.ERR.PG3002, site.location)
            return mode == "annotate" and self._annotate(site, UNMINIFYABLE_NOTE)

        entry = self.catalog.lookup(site.template)
        if entry is None:
            if mode == "throw":
                raise MinifyError(
                    f"Missing error code for message '{normalize_template(site.template)}'. "
                    "Did you forget to run `prodguard extract` first?"
                )
            if mode == "annotate":
                er.emit(self.reporter, er.ERR.PG3003, site.location,
                        message=normalize_template(site.template))
                return self._annotate(site, UNMINIFIED_NOTE)
            entry = self.catalog.assign(site.template)

        if entry.arity != len(site.args):
            raise CatalogError(
                f"error code {entry.code} expects {entry.arity} argument(s), "
                f"the message at line {site.location.line if site.location else '?'} supplies {len(site.args)}"
            )

        formatter = self._formatter_name(program)
        message = site.node.args[0]
        site.node.args[0] = Conditional(
            test=canonical_guard(),
            consequent=message,
            alternate=Call(
                callee=Identifier(name=formatter, loc=None),
                args=[NumberLit(raw=str(entry.code), loc=None), *site.args],
                loc=None,
            ),
            loc=message.loc,
        )
        self.rewritten += 1
        return True

    def _formatter_name(self, program: Program) -> str:
        """Local name of the formatter import, adding the import on first use."""
        if self._formatter is not None:
            return self._formatter
        source = runtime_import_source(self.options, self.filename)
        for stmt in program.body:
            if isinstance(stmt, ImportDecl) and stmt.source.value == source and stmt.default:
                self._formatter = stmt.default
                return self._formatter

        taken = _taken_names(program)
        name, n = FORMATTER_NAME_HINT, 2
        while name in taken:
            name = f"{FORMATTER_NAME_HINT}{n}"
            n += 1
        decl = ImportDecl(source=StringLit(value=source, loc=None), default=name, loc=None)
        position = 0
        while position < len(program.body):
            stmt = program.body[position]
            if not (isinstance(stmt, ExprStmt) and stmt.directive is not None):
                break
            position += 1
        program.body.insert(position, decl)
        self._formatter = name
        return name

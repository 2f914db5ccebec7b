"""Multi-file build, extraction and lint orchestration.

A build runs in two parallel phases around one single-writer step:

    1. extract   every file, read-only against the loaded catalog
    2. merge     new templates get codes in sorted-path, source order
    3. rewrite   every file in memory, now that all codes resolve
    4. flush     the catalog once, then write the outputs; nothing when a file failed
"""
from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from tqdm import tqdm

from prodguard.compiler.config import ProdguardConfig
from prodguard.compiler.loader import discover_sources, load_source
from prodguard.internals import errors as er
from prodguard.internals.report import Reporter
from prodguard.lint.runner import LintRunner
from prodguard.transform.catalog import CatalogEntry, CatalogError, MessageCatalog
from prodguard.transform.codegen import print_program
from prodguard.transform.minify_errors import ErrorRewriteTransform, MinifyError, TransformOptions

T = TypeVar("T")


@dataclass
class FileResult:
    path: Path
    reporter: Reporter
    templates: List[str] = field(default_factory=list)
    output: Optional[Path] = None
    text: Optional[str] = None               # rendered output, written once the build succeeds
    rewritten: int = 0
    failed: bool = False


@dataclass
class BuildResult:
    files: List[FileResult]
    new_codes: List[CatalogEntry] = field(default_factory=list)
    flushed: bool = False

    @property
    def failed(self) -> bool:
        return any(f.failed for f in self.files)

    def exit_code(self) -> int:
        return max((f.reporter.exit_code() for f in self.files), default=0)


def _run_parallel(fn: Callable[[Path], T], paths: Sequence[Path], jobs: Optional[int],
                  desc: str, progress: bool) -> List[T]:
    """Apply `fn` to every path on a thread pool; results come back in `paths` order."""
    results: Dict[Path, T] = {}
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        futures = {executor.submit(fn, p): p for p in paths}
        if progress:
            pbar = tqdm(total=len(paths), desc=desc, unit="file",
                        bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]")
        for future in as_completed(futures):
            results[futures[future]] = future.result()
            if progress:
                pbar.update(1)
        if progress:
            pbar.close()
    return [results[p] for p in paths]


# ---------- phase 1: extraction ----------

def _extract_file(path: Path, catalog: MessageCatalog, options: TransformOptions) -> FileResult:
    unit = load_source(path)
    result = FileResult(path, unit.reporter)
    if not unit.ok:
        result.failed = True
        return result
    transform = ErrorRewriteTransform(catalog, options, filename=str(path), reporter=unit.reporter)
    for site in transform.eligible_sites(unit.program):
        if site.template is not None and catalog.lookup(site.template) is None:
            result.templates.append(site.template)
    return result


def _merge(catalog: MessageCatalog, results: Sequence[FileResult]) -> List[CatalogEntry]:
    """Assign codes to the templates found in phase 1. `results` are in sorted-path order."""
    before = len(catalog.added)
    for result in results:
        catalog.stage(result.templates)
    return catalog.added[before:]


# ---------- phase 2: rewrite ----------

def _output_path(path: Path, base: Path, out_dir: Optional[Path], out_extension: str) -> Path:
    if out_dir is None:
        return path
    return (out_dir / path.relative_to(base)).with_suffix(out_extension)


def _rewrite_file(path: Path, catalog: MessageCatalog, options: TransformOptions,
                  output: Path, copy_unchanged: bool) -> FileResult:
    unit = load_source(path)
    result = FileResult(path, unit.reporter)
    if not unit.ok:
        result.failed = True
        return result
    transform = ErrorRewriteTransform(catalog, options, filename=str(path), reporter=unit.reporter)
    try:
        changed = transform.run(unit.program)
    except (CatalogError, MinifyError) as e:
        er.emit(unit.reporter, er.ERR.PG3004, None, detail=str(e))
        result.failed = True
        return result

    result.rewritten = transform.rewritten
    if changed:
        result.text = print_program(unit.program)
    elif copy_unchanged:
        result.text = unit.source
    else:
        return result
    result.output = output
    return result


def _write_outputs(results: Sequence[FileResult]) -> None:
    for result in results:
        if result.output is None:
            continue
        result.output.parent.mkdir(parents=True, exist_ok=True)
        result.output.write_text(result.text, encoding="utf-8")


# ---------- entry points ----------

def _sources(paths: Sequence[Path], config: ProdguardConfig) -> List[Path]:
    return discover_sources(paths, config.sources.extensions, config.sources.exclude)


def build(paths: Sequence[Path], config: ProdguardConfig, out_dir: Optional[Path] = None,
          jobs: Optional[int] = None, progress: bool = False) -> BuildResult:
    """Rewrite every source under `paths`, into `out_dir` or in place.

    Raises:
        CatalogError: the catalog file cannot be loaded.
    """
    options = config.catalog.transform_options()
    catalog = MessageCatalog.load(config.catalog_path)
    files = _sources(paths, config)
    if not files:
        return BuildResult([])

    new_codes: List[CatalogEntry] = []
    if options.missing_error == "write":
        extracted = _run_parallel(lambda p: _extract_file(p, catalog, options), files, jobs,
                                  "Extracting", progress)
        failed = [r for r in extracted if r.failed]
        if failed:
            return BuildResult(failed)
        new_codes = _merge(catalog, extracted)

    base = Path(os.path.commonpath([str(f.parent) for f in files]))
    out_dir = out_dir.resolve() if out_dir is not None else None
    results = _run_parallel(
        lambda p: _rewrite_file(p, catalog, options,
                                _output_path(p, base, out_dir, options.out_extension),
                                copy_unchanged=out_dir is not None),
        files, jobs, "Rewriting", progress,
    )
    build_result = BuildResult(results, new_codes)
    if build_result.failed:
        # nothing is written when any file failed
        for result in results:
            result.output = result.text = None
        return build_result
    # outputs only reference codes that are already on disk
    build_result.flushed = catalog.flush()
    _write_outputs(results)
    return build_result


def extract(paths: Sequence[Path], config: ProdguardConfig, jobs: Optional[int] = None,
            progress: bool = False) -> BuildResult:
    """Assign codes to every new production-reachable message without writing sources."""
    options = config.catalog.transform_options()
    catalog = MessageCatalog.load(config.catalog_path)
    files = _sources(paths, config)
    results = _run_parallel(lambda p: _extract_file(p, catalog, options), files, jobs,
                            "Extracting", progress)
    build_result = BuildResult(results)
    if build_result.failed:
        return build_result
    build_result.new_codes = _merge(catalog, results)
    build_result.flushed = catalog.flush()
    return build_result


def _lint_file(path: Path, runner: LintRunner) -> FileResult:
    unit = load_source(path)
    result = FileResult(path, unit.reporter)
    if not unit.ok:
        result.failed = True
        return result
    runner.run(unit.program, unit.reporter)
    return result


def lint_paths(paths: Sequence[Path], config: ProdguardConfig, jobs: Optional[int] = None,
               progress: bool = False, verbose: bool = False) -> List[FileResult]:
    """Lint every source under `paths`. `verbose` prints per-rule timing for each file."""
    rules = config.enabled_rules()
    files = _sources(paths, config)
    return _run_parallel(lambda p: _lint_file(p, LintRunner(rules, verbose=verbose)), files, jobs,
                         "Linting", progress)

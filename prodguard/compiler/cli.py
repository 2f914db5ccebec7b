"""CLI entry point and argument parsing."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable

from prodguard.internals.version import print_banner


def _print_reports(results: Iterable, use_color) -> None:
    for result in results:
        result.reporter.print(use_color=use_color)


def _config_error(code: str, detail: str) -> int:
    from prodguard.internals.errors import format_message
    print(f"{code}: {format_message(code, detail=detail)}", file=sys.stderr)
    return 2


def cmd_lint(args, config) -> int:
    from prodguard.compiler.pipeline import lint_paths

    results = lint_paths(args.paths, config, jobs=args.jobs, progress=args.progress, verbose=args.verbose)
    _print_reports(results, args.use_color)
    problems = sum(len(r.reporter.items) for r in results)
    print(f"{len(results)} file(s) checked, {problems} problem(s)", file=sys.stderr)
    return max((r.reporter.exit_code() for r in results), default=0)


def cmd_build(args, config) -> int:
    from prodguard.compiler.pipeline import build
    from prodguard.transform.catalog import CatalogError

    out_dir = Path(args.out) if args.out else None
    try:
        result = build(args.paths, config, out_dir=out_dir, jobs=args.jobs, progress=args.progress)
    except CatalogError as e:
        return _config_error("PG4001", str(e))
    _print_reports(result.files, args.use_color)

    rewritten = sum(f.rewritten for f in result.files)
    written = sum(1 for f in result.files if f.output is not None)
    print(f"{rewritten} error message(s) minified, {written} file(s) written, "
          f"{len(result.new_codes)} new code(s)", file=sys.stderr)
    if result.failed:
        print("catalog not updated: some files failed", file=sys.stderr)
        return 2
    return result.exit_code()


def cmd_extract(args, config) -> int:
    from prodguard.compiler.pipeline import extract
    from prodguard.transform.catalog import CatalogError

    try:
        result = extract(args.paths, config, jobs=args.jobs, progress=args.progress)
    except CatalogError as e:
        return _config_error("PG4001", str(e))
    _print_reports(result.files, args.use_color)
    if result.failed:
        print("catalog not updated: some files failed", file=sys.stderr)
        return 2
    for entry in result.new_codes:
        print(f"  {entry.code}: {entry.template}")
    print(f"{len(result.new_codes)} new error code(s) added to {config.catalog_path}")
    return result.exit_code()


def cmd_decode(args, config) -> int:
    from prodguard.transform.catalog import CatalogError, MessageCatalog

    try:
        catalog = MessageCatalog.load(config.catalog_path)
        print(catalog.format(args.code, *args.args))
    except CatalogError as e:
        return _config_error("PG4001", str(e))
    return 0


def cmd_dump_ast(args, config) -> int:
    from prodguard.compiler.loader import load_source

    unit = load_source(Path(args.file))
    if not unit.ok:
        unit.reporter.print(use_color=args.use_color)
        return 2
    for stmt in unit.program.body:
        print(stmt)
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="prodguard",
        description="NODE_ENV guard analysis, error-message minification and lint rules for JavaScript",
    )
    ap.add_argument("--config", metavar="FILE",
                    help="Configuration file (default: nearest prodguard.toml or pyproject.toml)")
    ap.add_argument("--no-color", action="store_true", help="Disable ANSI colors in diagnostics")
    sub = ap.add_subparsers(dest="command", required=True)

    def with_paths(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
        p.add_argument("paths", nargs="+", type=Path, metavar="PATH", help="Source files or directories")
        p.add_argument("-j", "--jobs", type=int, default=None, help="Parallel workers (default: CPU based)")
        return p

    p = with_paths(sub.add_parser("lint", help="Run the lint rules"))
    p.add_argument("-v", "--verbose", action="store_true", help="Print per-rule timing for every file")
    p.set_defaults(handler=cmd_lint)

    p = with_paths(sub.add_parser("build", help="Minify error messages"))
    p.add_argument("-o", "--out", metavar="OUT", help="Output directory (default: rewrite in place)")
    p.set_defaults(handler=cmd_build)

    with_paths(sub.add_parser("extract", help="Add new error messages to the catalog")).set_defaults(
        handler=cmd_extract)

    p = sub.add_parser("decode", help="Print the full message for an error code")
    p.add_argument("code", type=int, metavar="CODE")
    p.add_argument("args", nargs="*", metavar="ARG")
    p.set_defaults(handler=cmd_decode)

    p = sub.add_parser("dump-ast", help="Print the AST of a file")
    p.add_argument("file", metavar="FILE")
    p.set_defaults(handler=cmd_dump_ast)
    return ap


def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns 0 when clean, 1 for warnings only, 2 on errors."""
    from prodguard.compiler.config import ConfigError, load_config

    args = build_arg_parser().parse_args(argv)
    args.use_color = False if args.no_color else None
    args.progress = sys.stderr.isatty()
    print_banner()

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        return _config_error("PG4002", str(e))
    return args.handler(args, config)


if __name__ == "__main__":
    raise SystemExit(main())

import json
import tomllib
from pathlib import Path

import pytest

from conftest import FIXTURES, parse
from prodguard.compiler.config import load_config_from_dict
from prodguard.internals.parser import parse_to_ast
from prodguard.internals.report import Reporter
from prodguard.transform.catalog import CatalogEntry, CatalogError, MessageCatalog
from prodguard.transform.codegen import print_program
from prodguard.transform.messages import collect_sites, extract_message, is_canonical_guard
from prodguard.transform.minify_errors import (
    ErrorRewriteTransform, MinifyError, TransformOptions, canonical_guard, resolve_runtime_module,
    runtime_import_source, to_import_specifier, transform_extension,
)

RUNTIME = "@acme/utils/formatErrorMessage"
MINIFY_FIXTURES = FIXTURES / "minify"


def transform(src, catalog=None, filename=None, **options):
    options.setdefault("runtime_module", RUNTIME)
    program = parse(src)
    reporter = Reporter(filename="input.js")
    rewrite = ErrorRewriteTransform(catalog if catalog is not None else MessageCatalog(),
                                    TransformOptions(**options), filename=filename, reporter=reporter)
    changed = rewrite.run(program)
    return print_program(program), reporter, changed


def catalog_of(*templates):
    return MessageCatalog(entries=[CatalogEntry(i, t) for i, t in enumerate(templates, start=1)])


def catalog_dict(catalog):
    return {str(e.code): e.template for e in catalog}


# ---------- fixture cases ----------

def minify_cases():
    return sorted(p for p in MINIFY_FIXTURES.iterdir() if p.is_dir())


def _fixture_options(case: Path) -> TransformOptions:
    options_file = case / "options.toml"
    data = tomllib.loads(options_file.read_text(encoding="utf-8")) if options_file.exists() else {}
    return load_config_from_dict(data, root=case).catalog.transform_options()


@pytest.mark.parametrize("case", minify_cases(), ids=lambda p: p.name)
def test_minify_fixture(case: Path):
    options = _fixture_options(case)
    catalog = MessageCatalog.load(case / "error-codes.json")
    source_file = case / "input.js"
    program, _ = parse_to_ast(source_file.read_text(encoding="utf-8"))

    rewrite = ErrorRewriteTransform(catalog, options, filename=str(source_file))
    rewrite.run(program)
    output = print_program(program)
    assert output == (case / "output.js").read_text(encoding="utf-8")

    after = case / "error-codes.after.json"
    if after.exists():
        assert catalog_dict(catalog) == json.loads(after.read_text(encoding="utf-8"))
    else:
        assert catalog.added == []

    # the rewritten output is already minified
    again, _ = parse_to_ast(output)
    assert not ErrorRewriteTransform(catalog, options, filename=str(source_file)).run(again)
    assert print_program(again) == output


# ---------- message extraction ----------

def test_extract_message_shapes():
    template, args = extract_message(parse("`a ${x} b ${y.z}`;").body[0].expr)
    assert template == "a %s b %s"
    assert [type(a).__name__ for a in args] == ["Identifier", "Member"]

    template, args = extract_message(parse("'one ' + `two ${n}` + ' three';").body[0].expr)
    assert template == "one two %s three"
    assert len(args) == 1

    assert extract_message(parse("'a' + b;").body[0].expr) is None
    assert extract_message(parse("format(a);").body[0].expr) is None


def test_escapes_are_cooked_in_templates():
    template, _ = extract_message(parse(r"'Line\nbreak \'quoted\'';").body[0].expr)
    assert template == "Line\nbreak 'quoted'"


def test_sites_are_collected_in_source_order():
    sites = collect_sites(parse("""
    new Error('a');
    if (process.env.NODE_ENV !== 'production') {
      throw new TypeError('b');
    }
    new RangeError('c');
    new Error();
    """))
    assert [s.template for s in sites] == ["a", "b", None]
    assert [s.production_reachable for s in sites] == [True, False, True]
    assert [s.in_throw for s in sites] == [False, True, False]
    assert not sites[2].has_message


# ---------- rewriting ----------

def test_canonical_guard_is_synthesized():
    guard = canonical_guard()
    assert is_canonical_guard(guard)
    program = parse("x;")
    program.body[0].expr = guard
    assert print_program(program) == "process.env.NODE_ENV !== 'production';\n"


def test_rewritten_site_output():
    out, reporter, changed = transform("throw new Error(`Bad ${x}.`);")
    assert changed
    assert out == (
        f"import _formatErrorMessage from '{RUNTIME}';\n"
        "throw new Error(process.env.NODE_ENV !== 'production' ? `Bad ${x}.` : _formatErrorMessage(1, x));\n"
    )
    assert reporter.items == []


def test_opt_out_marker_survives_a_second_run():
    catalog = MessageCatalog()
    out, _, _ = transform("throw /* minify-error-disabled */ new Error('Kept.');\nthrow new Error('Boom.');",
                          catalog)
    assert "throw /* minify-error-disabled */ new Error('Kept.');" in out
    again, _, changed = transform(out, catalog)
    assert not changed
    assert again == out
    assert catalog_dict(catalog) == {"1": "Boom."}


def test_opt_in_marker_is_removed_once_minified():
    out, _, _ = transform("throw /* minify-error */ new Error('Boom.');", detection="opt-in")
    assert "minify-error" not in out
    assert "_formatErrorMessage(1)" in out


def test_existing_code_is_used():
    out, reporter, changed = transform("throw new Error('Boom.');", catalog_of("Other.", "Boom."))
    assert changed
    assert "_formatErrorMessage(2)" in out
    assert reporter.items == []


def test_write_mode_assigns_codes_in_source_order():
    catalog = catalog_of("Known.")
    out, _, _ = transform("new Error('b'); new Error('a'); new Error('b');", catalog)
    assert catalog_dict(catalog) == {"1": "Known.", "2": "b", "3": "a"}
    assert out.count("_formatErrorMessage(2)") == 2
    assert "_formatErrorMessage(3)" in out


def test_message_whitespace_is_normalized_for_lookup():
    out, _, _ = transform("throw new Error(`Too   many\n   spaces.`);", catalog_of("Too many spaces."))
    assert "_formatErrorMessage(1)" in out


def test_production_only_branch_is_minified():
    src = "if (process.env.NODE_ENV === 'production') { throw new Error('Prod.'); }"
    out, reporter, _ = transform(src, catalog_of("Prod."))
    assert "_formatErrorMessage(1)" in out
    assert reporter.items == []


def test_dev_only_throw_is_left_alone_with_warning():
    src = """
    if (process.env.NODE_ENV !== 'production') {
      throw new Error('Dev.');
    }
    """
    out, reporter, changed = transform(src, catalog_of("Dev."))
    assert not changed
    assert "_formatErrorMessage" not in out
    [diag] = reporter.items
    assert (diag.code, diag.kind) == ("PG3001", "warning")
    assert diag.span.line == 2


def test_dev_only_error_without_throw_is_silent():
    src = "if (process.env.NODE_ENV !== 'production') { console.error(new Error('Dev.')); }"
    _, reporter, changed = transform(src)
    assert not changed
    assert reporter.items == []


def test_unsupported_constructors_and_empty_messages_are_skipped():
    _, reporter, changed = transform("new RangeError('x'); new Error(); new Foo.Error('y');")
    assert not changed
    assert reporter.items == []


def test_unminifyable_message_warns_in_write_mode():
    out, reporter, changed = transform("throw new Error(getMessage());")
    assert not changed
    assert out == "throw new Error(getMessage());\n"
    assert [d.code for d in reporter.items] == ["PG3002"]


def test_annotate_mode_reports_missing_code():
    out, reporter, changed = transform("throw new Error('Missing.');", missing_error="annotate")
    assert changed
    assert "Unminified error message in production build!" in out
    [diag] = reporter.items
    assert diag.code == "PG3003"
    assert diag.data["message"] == "Missing."


def test_throw_mode_raises_for_missing_code():
    with pytest.raises(MinifyError, match="Missing error code for message 'Missing.'"):
        transform("throw new Error('Missing.');", missing_error="throw")


def test_throw_mode_raises_for_unminifyable_message():
    with pytest.raises(MinifyError, match="Unminifyable error"):
        transform("throw new Error(reason);", missing_error="throw")


def test_arity_mismatch_is_a_catalog_error():
    with pytest.raises(CatalogError, match="expects 1 argument"):
        transform("throw new Error('Use %s here.');", catalog_of("Use %s here."))


def test_formatter_name_avoids_collisions():
    src = "const _formatErrorMessage = 1;\nthrow new Error('Boom.');"
    out, _, _ = transform(src, catalog_of("Boom."))
    assert out.startswith(f"import _formatErrorMessage2 from '{RUNTIME}';\n")
    assert "_formatErrorMessage2(1)" in out


def test_existing_import_is_reused():
    src = f"import fmt from '{RUNTIME}';\nthrow new Error('Boom.');"
    out, _, _ = transform(src, catalog_of("Boom."))
    assert out.count("import ") == 1
    assert "fmt(1)" in out


def test_import_goes_after_directives():
    out, _, _ = transform("'use strict';\nthrow new Error('Boom.');", catalog_of("Boom."))
    assert out.splitlines()[:2] == ["'use strict';", f"import _formatErrorMessage from '{RUNTIME}';"]


def test_one_import_for_many_sites():
    out, _, _ = transform("new Error('a'); new Error('b');")
    assert out.count("import ") == 1


def test_eligible_sites_do_not_touch_the_tree():
    program = parse("throw new Error('a');\nthrow /* minify-error-disabled */ new Error('b');")
    rewrite = ErrorRewriteTransform(MessageCatalog(), TransformOptions(runtime_module=RUNTIME))
    assert [s.template for s in rewrite.eligible_sites(program)] == ["a"]
    assert print_program(program) == "throw new Error('a');\nthrow /* minify-error-disabled */ new Error('b');\n"


def test_unknown_modes_are_rejected():
    with pytest.raises(MinifyError, match="Unknown missingError option"):
        TransformOptions(missing_error="ignore").validate()
    with pytest.raises(MinifyError, match="Unknown detection option"):
        ErrorRewriteTransform(MessageCatalog(), TransformOptions(detection="sometimes"))


# ---------- runtime module resolution ----------

def write_package(root: Path, imports) -> None:
    root.mkdir(parents=True, exist_ok=True)
    (root / "package.json").write_text(json.dumps({"name": "pkg", "imports": imports}), encoding="utf-8")


def test_hash_import_resolves_relative_to_source(tmp_path):
    write_package(tmp_path, {"#formatErrorMessage": "./src/utils/formatErrorMessage.ts"})
    source = tmp_path / "src" / "components" / "Button.js"
    assert resolve_runtime_module("#formatErrorMessage", str(source)) == "../utils/formatErrorMessage.ts"
    options = TransformOptions(runtime_module="#formatErrorMessage", out_extension=".mjs")
    assert runtime_import_source(options, str(source)) == "../utils/formatErrorMessage.mjs"


def test_hash_import_next_to_package_json(tmp_path):
    write_package(tmp_path, {"#fmt": "./fmt.js"})
    assert resolve_runtime_module("#fmt", str(tmp_path / "index.js")) == "./fmt.js"


def test_hash_import_chain_and_cycle(tmp_path):
    write_package(tmp_path, {"#a": "#b", "#b": "./b.js", "#x": "#y", "#y": "#x"})
    source = str(tmp_path / "index.js")
    assert resolve_runtime_module("#a", source) == "./b.js"
    with pytest.raises(MinifyError, match="Circular import"):
        resolve_runtime_module("#x", source)


def test_hash_import_errors(tmp_path):
    with pytest.raises(MinifyError, match="filename is not defined"):
        resolve_runtime_module("#fmt", None)
    write_package(tmp_path, {"#other": "./other.js"})
    with pytest.raises(MinifyError, match="Invalid runtime module path"):
        resolve_runtime_module("#fmt", str(tmp_path / "index.js"))
    (tmp_path / "package.json").write_text("{broken", encoding="utf-8")
    with pytest.raises(MinifyError, match="invalid JSON"):
        resolve_runtime_module("#fmt", str(tmp_path / "index.js"))


def test_package_names_are_not_resolved():
    assert resolve_runtime_module(RUNTIME, None) == RUNTIME
    assert runtime_import_source(TransformOptions(runtime_module=RUNTIME, out_extension=".mjs"), None) == RUNTIME


def test_specifier_helpers():
    assert to_import_specifier("utils/fmt.js") == "./utils/fmt.js"
    assert to_import_specifier("../fmt.js") == "../fmt.js"
    assert transform_extension("./fmt.ts", ".cjs") == "./fmt.cjs"


def test_hash_runtime_module_in_transform(tmp_path):
    write_package(tmp_path, {"#formatErrorMessage": "./formatErrorMessage.js"})
    source = tmp_path / "lib" / "index.js"
    out, _, _ = transform("throw new Error('Boom.');", catalog_of("Boom."), filename=str(source),
                          runtime_module="#formatErrorMessage")
    assert out.startswith("import _formatErrorMessage from '../formatErrorMessage.js';\n")

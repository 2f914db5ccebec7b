import json
from pathlib import Path

import pytest

from prodguard.compiler.config import load_config_from_dict
from prodguard.compiler.loader import discover_sources, load_source
from prodguard.compiler.pipeline import build, extract, lint_paths

RUNTIME = "@acme/fmt"

A_JS = """\
export function getTheme(themes, key) {
  if (!themes[key]) {
    throw new Error(`Unknown theme key ${key}.`);
  }
  return themes[key];
}
"""

B_JS = """\
export function check(value) {
  if (value == null) {
    throw new TypeError('A value is required.');
  }
  throw new Error(`Unknown theme key ${value}.`);
}
"""

PLAIN_JS = "export const answer = 42;\n"


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path):
    write(tmp_path / "src" / "a.js", A_JS)
    write(tmp_path / "src" / "nested" / "b.js", B_JS)
    write(tmp_path / "src" / "plain.mjs", PLAIN_JS)
    write(tmp_path / "src" / "node_modules" / "dep" / "index.js", "throw new Error('Vendored.');\n")
    write(tmp_path / "src" / "notes.txt", "not javascript")
    return tmp_path


def make_config(root: Path, **catalog):
    catalog.setdefault("runtime_module", RUNTIME)
    return load_config_from_dict({"catalog": catalog}, root=root)


def read_catalog(root: Path) -> dict:
    return json.loads((root / "error-codes.json").read_text(encoding="utf-8"))


# ---------- discovery and loading ----------

def test_discover_sources(project):
    src = project / "src"
    found = discover_sources([src], (".js", ".mjs"))
    assert [p.relative_to(src.resolve()).as_posix() for p in found] == ["a.js", "nested/b.js", "plain.mjs"]


def test_discover_sources_exclude_and_explicit_files(project):
    src = project / "src"
    found = discover_sources([src, src / "notes.txt", src / "a.js"], (".js",), exclude=["nested"])
    assert [p.name for p in found] == ["a.js", "notes.txt"]


def test_load_source_reports_parse_errors(tmp_path):
    unit = load_source(write(tmp_path / "bad.js", "const = 1;\n"))
    assert not unit.ok
    assert [d.code for d in unit.reporter.items] == ["PG1001"]
    assert unit.reporter.source == "const = 1;\n"


def test_load_source_reports_unreadable_files(tmp_path):
    unit = load_source(tmp_path / "missing.js")
    assert not unit.ok
    [diag] = unit.reporter.items
    assert diag.code == "PG4003"
    assert "missing.js" in diag.message

    binary = tmp_path / "binary.js"
    binary.write_bytes(b"\xff\xfe\x00")
    assert load_source(binary).reporter.items[0].code == "PG4003"


# ---------- build ----------

def test_build_into_out_dir(project):
    result = build([project / "src"], make_config(project), out_dir=project / "out", jobs=2)
    assert not result.failed
    assert result.flushed
    assert [(e.code, e.template) for e in result.new_codes] == [
        (1, "Unknown theme key %s."),
        (2, "A value is required."),
    ]
    assert read_catalog(project) == {"1": "Unknown theme key %s.", "2": "A value is required."}

    out = project / "out"
    a = (out / "a.js").read_text(encoding="utf-8")
    assert a.startswith(f"import _formatErrorMessage from '{RUNTIME}';\n")
    assert "_formatErrorMessage(1, key)" in a
    b = (out / "nested" / "b.js").read_text(encoding="utf-8")
    assert "_formatErrorMessage(2)" in b
    assert "_formatErrorMessage(1, value)" in b
    assert (out / "plain.js").read_text(encoding="utf-8") == PLAIN_JS
    assert not (out / "node_modules").exists()

    # sources are untouched
    assert (project / "src" / "a.js").read_text(encoding="utf-8") == A_JS
    assert sum(f.rewritten for f in result.files) == 3
    assert result.exit_code() == 0


def test_build_out_extension(project):
    build([project / "src"], make_config(project, out_extension=".mjs"), out_dir=project / "out")
    assert (project / "out" / "a.mjs").exists()
    assert (project / "out" / "nested" / "b.mjs").exists()


def test_build_in_place(project):
    result = build([project / "src"], make_config(project))
    assert all(f.output is None or f.output == f.path for f in result.files)
    assert "_formatErrorMessage(1, key)" in (project / "src" / "a.js").read_text(encoding="utf-8")
    assert (project / "src" / "plain.mjs").read_text(encoding="utf-8") == PLAIN_JS
    plain = next(f for f in result.files if f.path.name == "plain.mjs")
    assert plain.output is None

    # a second build finds everything minified
    again = build([project / "src"], make_config(project))
    assert again.new_codes == []
    assert not again.flushed
    assert all(f.output is None for f in again.files)


def test_build_codes_do_not_depend_on_worker_count(tmp_path):
    catalogs = []
    for jobs in (1, 4):
        root = tmp_path / f"run{jobs}"
        for i in range(12):
            write(root / "src" / f"m{i:02}.js", f"throw new Error('Message {i % 5} from {i // 5}.');\n")
        build([root / "src"], make_config(root), out_dir=root / "out", jobs=jobs)
        catalogs.append(read_catalog(root))
    assert catalogs[0] == catalogs[1]
    assert catalogs[0]["1"] == "Message 0 from 0."


def test_existing_codes_are_kept(project):
    write(project / "error-codes.json", json.dumps({"7": "A value is required."}))
    result = build([project / "src"], make_config(project), out_dir=project / "out")
    assert [e.code for e in result.new_codes] == [8]
    assert read_catalog(project) == {"7": "A value is required.", "8": "Unknown theme key %s."}


def test_parse_failure_prevents_catalog_update(project):
    write(project / "src" / "broken.js", "throw new Error('x')\n")
    result = build([project / "src"], make_config(project), out_dir=project / "out")
    assert result.failed
    assert not result.flushed
    assert [f.path.name for f in result.files] == ["broken.js"]
    assert not (project / "error-codes.json").exists()
    assert not (project / "out").exists()


def test_rewrite_failure_prevents_catalog_update(project):
    write(project / "error-codes.json", json.dumps({"1": "Unknown theme key %s."}))
    result = build([project / "src"], make_config(project, missing_error="throw"), out_dir=project / "out")
    assert result.failed
    assert not result.flushed
    failed = [f for f in result.files if f.failed]
    assert [f.path.name for f in failed] == ["b.js"]
    assert failed[0].reporter.items[0].code == "PG3004"
    assert "A value is required." in failed[0].reporter.items[0].message
    assert not (project / "out").exists()
    assert all(f.output is None for f in result.files)


def test_failed_file_keeps_other_sources_untouched(tmp_path):
    bad = write(tmp_path / "src" / "a.js", "throw new Error('Bad %s value');\n")
    good = write(tmp_path / "src" / "b.js", "throw new Error('Fine message.');\n")
    result = build([tmp_path / "src"], make_config(tmp_path))
    assert result.failed
    assert not result.flushed
    assert good.read_text(encoding="utf-8") == "throw new Error('Fine message.');\n"
    assert not (tmp_path / "error-codes.json").exists()

    # once the broken message is fixed, both files are minified against a saved catalog
    bad.write_text("throw new Error('Bad value');\n", encoding="utf-8")
    again = build([tmp_path / "src"], make_config(tmp_path))
    assert not again.failed
    assert read_catalog(tmp_path) == {"1": "Bad value", "2": "Fine message."}
    assert "_formatErrorMessage(2)" in good.read_text(encoding="utf-8")


def test_annotate_mode_leaves_catalog_alone(project):
    result = build([project / "src"], make_config(project, missing_error="annotate"), out_dir=project / "out")
    assert not result.failed
    assert result.new_codes == []
    assert not (project / "error-codes.json").exists()
    assert result.exit_code() == 1
    assert "FIXME (minify-errors-in-prod)" in (project / "out" / "a.js").read_text(encoding="utf-8")


def test_unreadable_catalog_raises(project):
    from prodguard.transform.catalog import CatalogError

    write(project / "error-codes.json", "{oops")
    with pytest.raises(CatalogError):
        build([project / "src"], make_config(project))


def test_build_with_no_sources(tmp_path):
    result = build([tmp_path], make_config(tmp_path))
    assert result.files == []
    assert result.exit_code() == 0


# ---------- extract ----------

def test_extract_only_updates_the_catalog(project):
    result = extract([project / "src"], make_config(project))
    assert [e.template for e in result.new_codes] == ["Unknown theme key %s.", "A value is required."]
    assert result.flushed
    assert (project / "src" / "a.js").read_text(encoding="utf-8") == A_JS

    again = extract([project / "src"], make_config(project))
    assert again.new_codes == []
    assert not again.flushed


def test_extract_respects_opt_in(project):
    write(project / "src" / "marked.js", "throw /* minify-error */ new Error('Opted in.');\n")
    result = extract([project / "src"], make_config(project, detection="opt-in"))
    assert [e.template for e in result.new_codes] == ["Opted in."]


# ---------- lint ----------

def test_lint_paths(project):
    write(project / "src" / "guarded.js", "if (process.env.NODE_ENV !== 'production') {\n  throw new Error('x');\n}\n")
    results = lint_paths([project / "src"], make_config(project), jobs=2)
    by_name = {r.path.name: r for r in results}
    assert set(by_name) == {"a.js", "b.js", "guarded.js", "plain.mjs"}
    [diag] = by_name["guarded.js"].reporter.items
    assert (diag.rule, diag.span.line) == ("no-guarded-throw", 2)
    assert by_name["a.js"].reporter.items == []


def test_lint_respects_disabled_rules(project):
    write(project / "src" / "guarded.js", "if (process.env.NODE_ENV !== 'production') {\n  throw new Error('x');\n}\n")
    config = load_config_from_dict({"rules": {"no-guarded-throw": "off"}}, root=project)
    results = lint_paths([project / "src" / "guarded.js"], config)
    assert results[0].reporter.items == []

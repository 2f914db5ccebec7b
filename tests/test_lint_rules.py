from pathlib import Path

import pytest
from pydantic import ValidationError

from conftest import FIXTURES, parse
from fixture_metadata import get_fixture_category, parse_fixture_metadata
from prodguard.internals.errors import Severity
from prodguard.internals.parser import parse_to_ast
from prodguard.internals.report import Reporter
from prodguard.lint.base import RULES, Rule, get_rule, register
from prodguard.lint.options import RequireDevWrapperOptions
from prodguard.lint.rules import ConsistentProductionGuard, NoGuardedThrow, RequireDevWrapper
from prodguard.lint.runner import LintRunner

LINT_FIXTURES = FIXTURES / "lint"


def lint_fixture_files():
    return sorted(LINT_FIXTURES.glob("*/*.js"))


def run_rule(rule: Rule, src: str) -> Reporter:
    reporter = Reporter(source=src, filename="input.js")
    rule.check(parse(src), reporter)
    return reporter


@pytest.mark.parametrize("fixture", lint_fixture_files(), ids=lambda p: f"{p.parent.name}/{p.stem}")
def test_lint_fixture(fixture: Path):
    metadata = parse_fixture_metadata(fixture)
    rule_cls = get_rule(fixture.parent.name)
    rule = rule_cls(rule_cls.parse_options(metadata.options))

    source = fixture.read_text(encoding="utf-8")
    program, _ = parse_to_ast(source)
    reporter = Reporter(source=source, filename=str(fixture))
    rule.check(program, reporter)

    if get_fixture_category(fixture) == "valid":
        assert metadata.expect_clean
        assert reporter.items == []
        return

    assert metadata.expected, "invalid fixtures list their EXPECT_ERROR lines"
    assert len(reporter.items) == len(metadata.expected)
    unmatched = list(reporter.items)
    for expected in metadata.expected:
        match = next((d for d in unmatched if expected.matches(d)), None)
        assert match is not None, f"no diagnostic matches {expected}"
        unmatched.remove(match)
    assert all(d.rule == rule.name and d.kind == "error" for d in reporter.items)


def test_builtin_rules_are_registered():
    assert set(RULES) == {"no-guarded-throw", "consistent-production-guard", "require-dev-wrapper"}
    assert get_rule("no-guarded-throw") is NoGuardedThrow
    with pytest.raises(KeyError, match="unknown lint rule"):
        get_rule("no-such-rule")


def test_duplicate_registration_is_rejected():
    class Again(Rule):
        name = "no-guarded-throw"

    with pytest.raises(ValueError, match="duplicate lint rule"):
        register(Again)


def test_messages_are_full_sentences():
    messages = ConsistentProductionGuard.messages()
    assert set(messages) == {"invalidComparison", "invalidUsage"}
    assert messages["invalidComparison"] == (
        "process.env.NODE_ENV must be compared against 'production' only, not '{comparedValue}'."
    )
    assert NoGuardedThrow.messages()["guardedThrow"].startswith("Do not wrap a throw")
    assert "{functionName}" in RequireDevWrapper.messages()["missingDevWrapper"]


def test_report_carries_rule_and_data():
    reporter = run_rule(ConsistentProductionGuard(), "if (process.env.NODE_ENV === 'test') {}")
    [diag] = reporter.items
    assert diag.code == "PG2002"
    assert diag.rule == "consistent-production-guard"
    assert diag.message_id == "invalidComparison"
    assert diag.data == {"comparedValue": "test"}
    assert diag.message.endswith("not 'test'")
    assert (diag.span.line, diag.span.col) == (1, 5)


def test_warn_severity_reports_warnings():
    rule = NoGuardedThrow(severity=Severity.WARNING)
    reporter = run_rule(rule, "if (process.env.NODE_ENV !== 'production') { throw new Error('x'); }")
    assert [d.kind for d in reporter.items] == ["warning"]
    assert reporter.exit_code() == 1


@pytest.mark.parametrize("src, compared", [
    ("process.env.NODE_ENV === null;", "null"),
    ("process.env.NODE_ENV === true;", "true"),
    ("process.env.NODE_ENV === 1;", "1"),
    ("process.env.NODE_ENV === `dev`;", "dev"),
])
def test_compared_literal_text(src, compared):
    [diag] = run_rule(ConsistentProductionGuard(), src).items
    assert diag.data["comparedValue"] == compared


def test_computed_node_env_access_is_checked():
    [diag] = run_rule(ConsistentProductionGuard(), "const env = process.env['NODE_ENV'];").items
    assert diag.message_id == "invalidUsage"


def test_require_dev_wrapper_ignores_member_callees():
    assert run_rule(RequireDevWrapper(), "console.warn('x'); utils.warn('y');").items == []


def test_require_dev_wrapper_default_options():
    options = RequireDevWrapperOptions()
    assert options.function_names == ("warnOnce", "warn", "checkSlot")
    assert RequireDevWrapper().function_names == frozenset(options.function_names)


def test_options_accept_camel_and_snake_case():
    assert RequireDevWrapper.parse_options({"functionNames": ["a"]}).function_names == ("a",)
    assert RequireDevWrapper.parse_options({"function_names": ["b"]}).function_names == ("b",)
    assert RequireDevWrapper.parse_options(None).function_names == ("warnOnce", "warn", "checkSlot")


def test_unknown_option_is_rejected():
    with pytest.raises(ValidationError):
        RequireDevWrapper.parse_options({"functionName": ["typo"]})
    with pytest.raises(ValidationError):
        NoGuardedThrow.parse_options({"anything": True})


def test_invalid_option_type_is_rejected():
    with pytest.raises(ValidationError):
        RequireDevWrapper.parse_options({"functionNames": "warn"})


def test_options_are_frozen():
    options = RequireDevWrapper.parse_options({})
    with pytest.raises(ValidationError):
        options.function_names = ("x",)


def test_options_schema_uses_aliases():
    schema = RequireDevWrapper.schema()
    assert "functionNames" in schema["properties"]
    assert schema["additionalProperties"] is False
    assert NoGuardedThrow.schema().get("properties", {}) == {}


def test_runner_counts_reports_per_rule():
    src = """
    if (process.env.NODE_ENV === 'development') {
      throw new Error('x');
    }
    warn('y');
    """
    runner = LintRunner([NoGuardedThrow(), ConsistentProductionGuard()]).add_rule(RequireDevWrapper())
    reporter = Reporter()
    results = runner.run(parse(src), reporter)
    assert [(r.name, r.reported) for r in results] == [
        ("no-guarded-throw", 1),
        ("consistent-production-guard", 1),
        ("require-dev-wrapper", 1),
    ]
    assert runner.get_results() is results
    assert len(reporter.items) == 3


def test_verbose_runner_prints_timing(capsys):
    LintRunner([NoGuardedThrow()], verbose=True).run(parse("a();"), Reporter())
    err = capsys.readouterr().err
    assert "Lint Timing" in err
    assert "no-guarded-throw" in err

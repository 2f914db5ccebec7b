import pytest

from prodguard.compiler.config import (
    CatalogSettings, ConfigError, ProdguardConfig, find_config, load_config, load_config_from_dict,
)
from prodguard.internals.errors import Severity
from prodguard.lint.rules import RequireDevWrapper


def test_defaults_without_a_file(tmp_path):
    config = load_config(start=tmp_path)
    assert config.root == tmp_path.resolve()
    assert config.source_path is None
    assert config.catalog == CatalogSettings()
    assert config.catalog_path == tmp_path.resolve() / "error-codes.json"
    assert config.sources.extensions == (".js", ".mjs", ".cjs")
    assert sorted(r.name for r in config.enabled_rules()) == [
        "consistent-production-guard", "no-guarded-throw", "require-dev-wrapper",
    ]
    assert all(r.severity is Severity.ERROR for r in config.enabled_rules())


def test_prodguard_toml_is_found_upward(tmp_path):
    (tmp_path / "prodguard.toml").write_text('[catalog]\npath = "codes/errors.json"\n', encoding="utf-8")
    nested = tmp_path / "src" / "deep"
    nested.mkdir(parents=True)
    root = tmp_path.resolve()
    assert find_config(nested) == root / "prodguard.toml"
    config = load_config(start=nested)
    assert config.catalog_path == root / "codes" / "errors.json"
    assert config.source_path == root / "prodguard.toml"


def test_pyproject_needs_a_prodguard_table(tmp_path):
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n', encoding="utf-8")
    assert find_config(tmp_path) is None
    (tmp_path / "pyproject.toml").write_text(
        '[tool.prodguard.catalog]\nmissing_error = "annotate"\n', encoding="utf-8")
    config = load_config(start=tmp_path)
    assert config.catalog.missing_error == "annotate"


def test_prodguard_toml_wins_over_pyproject(tmp_path):
    (tmp_path / "pyproject.toml").write_text('[tool.prodguard.catalog]\npath = "a.json"\n', encoding="utf-8")
    (tmp_path / "prodguard.toml").write_text('[catalog]\npath = "b.json"\n', encoding="utf-8")
    assert load_config(start=tmp_path).catalog.path == "b.json"


def test_explicit_path(tmp_path):
    path = tmp_path / "custom.toml"
    path.write_text('[sources]\nextensions = [".jsx"]\nexclude = ["vendor"]\n', encoding="utf-8")
    config = load_config(path)
    assert config.sources.extensions == (".jsx",)
    assert config.sources.exclude == ("vendor",)
    assert config.root == tmp_path.resolve()


def test_rule_settings():
    config = load_config_from_dict({
        "rules": {
            "no-guarded-throw": "off",
            "consistent-production-guard": 1,
            "require-dev-wrapper": ["error", {"functionNames": ["devOnly"]}],
        },
    })
    rules = {r.name: r for r in config.enabled_rules()}
    assert set(rules) == {"consistent-production-guard", "require-dev-wrapper"}
    assert rules["consistent-production-guard"].severity is Severity.WARNING
    wrapper = rules["require-dev-wrapper"]
    assert isinstance(wrapper, RequireDevWrapper)
    assert wrapper.function_names == frozenset({"devOnly"})
    assert not config.rules["no-guarded-throw"].enabled


def test_severity_only_list():
    config = load_config_from_dict({"rules": {"no-guarded-throw": ["warn"]}})
    assert config.rules["no-guarded-throw"].severity is Severity.WARNING


@pytest.mark.parametrize("data, message", [
    ({"unknown": {}}, "unknown key"),
    ({"catalog": "x"}, "must be a table"),
    ({"catalog": {"paht": "x"}}, "unknown key"),
    ({"catalog": {"path": 1}}, "must be a string"),
    ({"catalog": {"missing_error": "ignore"}}, "Unknown missingError option"),
    ({"catalog": {"detection": "auto"}}, "Unknown detection option"),
    ({"catalog": {"out_extension": "js"}}, "must start with '.'"),
    ({"sources": {"extensions": "js"}}, "extensions must be a list"),
    ({"sources": {"extensions": ["js"]}}, "extensions must be a list"),
    ({"sources": {"exclude": [1]}}, "exclude must be a list"),
    ({"rules": []}, "must be a table"),
    ({"rules": {"no-such-rule": "error"}}, "unknown rule 'no-such-rule'"),
    ({"rules": {"no-guarded-throw": "loud"}}, "invalid severity"),
    ({"rules": {"no-guarded-throw": True}}, "invalid severity"),
    ({"rules": {"no-guarded-throw": 3}}, "invalid severity"),
    ({"rules": {"no-guarded-throw": [{"a": 1}]}}, "invalid severity"),
    ({"rules": {"no-guarded-throw": []}}, "expected \\[severity\\]"),
    ({"rules": {"no-guarded-throw": ["error", "x"]}}, "options must be a table"),
    ({"rules": {"require-dev-wrapper": ["error", {"functionName": ["x"]}]}}, "invalid options \\(functionName"),
    ({"rules": {"require-dev-wrapper": ["error", {"functionNames": 5}]}}, "invalid options"),
])
def test_invalid_configuration(data, message):
    with pytest.raises(ConfigError, match=message):
        load_config_from_dict(data)


def test_broken_toml_is_a_config_error(tmp_path):
    path = tmp_path / "prodguard.toml"
    path.write_text("[catalog\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="prodguard.toml"):
        load_config(path)


def test_missing_explicit_file_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError, match="cannot read"):
        load_config(tmp_path / "absent.toml")


def test_catalog_settings_to_transform_options():
    options = CatalogSettings(runtime_module="@acme/fmt", detection="opt-in").transform_options()
    assert options.runtime_module == "@acme/fmt"
    assert options.detection == "opt-in"
    assert options.missing_error == "write"


def test_config_object_defaults_are_independent():
    a, b = ProdguardConfig(), ProdguardConfig()
    a.rules["no-guarded-throw"].severity = None
    assert b.rules["no-guarded-throw"].enabled

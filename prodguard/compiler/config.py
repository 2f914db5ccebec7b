"""prodguard configuration (prodguard.toml or [tool.prodguard]) loading and validation."""
from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

import prodguard.lint.rules  # noqa: F401  (registers the built-in rules)
from prodguard.internals.errors import Severity
from prodguard.lint.base import RULES, Rule
from prodguard.lint.options import RuleOptions
from prodguard.transform.minify_errors import MinifyError, TransformOptions

CONFIG_NAME = "prodguard.toml"
PYPROJECT_NAME = "pyproject.toml"

DEFAULT_EXTENSIONS = (".js", ".mjs", ".cjs")

SEVERITIES: Dict[Any, Optional[Severity]] = {
    "error": Severity.ERROR, 2: Severity.ERROR,
    "warn": Severity.WARNING, 1: Severity.WARNING,
    "off": None, 0: None,
}

_TOP_LEVEL_KEYS = {"catalog", "sources", "rules"}
_CATALOG_KEYS = {"path", "runtime_module", "missing_error", "detection", "out_extension"}
_SOURCE_KEYS = {"extensions", "exclude"}


class ConfigError(Exception):
    pass


@dataclass
class CatalogSettings:
    path: str = "error-codes.json"
    runtime_module: str = "#formatErrorMessage"
    missing_error: str = "write"
    detection: str = "opt-out"
    out_extension: str = ".js"

    def transform_options(self) -> TransformOptions:
        return TransformOptions(
            runtime_module=self.runtime_module,
            missing_error=self.missing_error,
            detection=self.detection,
            out_extension=self.out_extension,
        )


@dataclass
class SourceSettings:
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    exclude: Tuple[str, ...] = ()


@dataclass
class RuleSetting:
    name: str
    severity: Optional[Severity]
    options: RuleOptions

    @property
    def enabled(self) -> bool:
        return self.severity is not None

    def instantiate(self) -> Rule:
        return RULES[self.name](self.options, severity=self.severity)


def _default_rules() -> Dict[str, RuleSetting]:
    return {
        name: RuleSetting(name, Severity.ERROR, cls.options_model())
        for name, cls in sorted(RULES.items())
    }


@dataclass
class ProdguardConfig:
    root: Path = field(default_factory=Path.cwd)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    sources: SourceSettings = field(default_factory=SourceSettings)
    rules: Dict[str, RuleSetting] = field(default_factory=_default_rules)
    source_path: Optional[Path] = None       # file the settings came from

    @property
    def catalog_path(self) -> Path:
        return self.root / self.catalog.path

    def enabled_rules(self) -> List[Rule]:
        return [s.instantiate() for s in self.rules.values() if s.enabled]


# ---------- discovery ----------

def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """Nearest prodguard.toml, or pyproject.toml with a [tool.prodguard] table, from `start` upward."""
    start = (start or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_NAME
        if candidate.is_file():
            return candidate
        pyproject = directory / PYPROJECT_NAME
        if pyproject.is_file() and "prodguard" in _read_toml(pyproject).get("tool", {}):
            return pyproject
    return None


def _read_toml(path: Path) -> dict:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e.strerror}") from e


def load_config(path: Optional[Path] = None, start: Optional[Path] = None) -> ProdguardConfig:
    """Load the explicit `path`, or discover one; without any file the defaults apply."""
    if path is None:
        path = find_config(start)
        if path is None:
            return ProdguardConfig(root=(start or Path.cwd()).resolve())
    path = Path(path).resolve()
    data = _read_toml(path)
    if path.name == PYPROJECT_NAME:
        data = data.get("tool", {}).get("prodguard", {})
    config = load_config_from_dict(data, root=path.parent)
    config.source_path = path
    return config


def load_config_from_dict(data: dict, root: Optional[Path] = None) -> ProdguardConfig:
    _check_keys("configuration", data, _TOP_LEVEL_KEYS)
    config = ProdguardConfig(root=root or Path.cwd())
    config.catalog = _parse_catalog(data.get("catalog", {}))
    config.sources = _parse_sources(data.get("sources", {}))
    config.rules.update(_parse_rules(data.get("rules", {})))
    return config


# ---------- sections ----------

def _check_keys(section: str, table: Any, allowed: set) -> None:
    if not isinstance(table, dict):
        raise ConfigError(f"[{section}] must be a table")
    unknown = sorted(set(table) - allowed)
    if unknown:
        raise ConfigError(f"unknown key(s) in {section}: {', '.join(unknown)}")


def _parse_catalog(table: dict) -> CatalogSettings:
    _check_keys("catalog", table, _CATALOG_KEYS)
    for key, value in table.items():
        if not isinstance(value, str):
            raise ConfigError(f"[catalog] {key} must be a string")
    settings = CatalogSettings(**table)
    if not settings.out_extension.startswith("."):
        raise ConfigError(f"[catalog] out_extension must start with '.', got '{settings.out_extension}'")
    try:
        settings.transform_options().validate()
    except MinifyError as e:
        raise ConfigError(f"[catalog] {e}") from e
    return settings


def _parse_sources(table: dict) -> SourceSettings:
    _check_keys("sources", table, _SOURCE_KEYS)
    settings = SourceSettings()
    if "extensions" in table:
        extensions = table["extensions"]
        if not isinstance(extensions, list) or not all(isinstance(e, str) and e.startswith(".") for e in extensions):
            raise ConfigError("[sources] extensions must be a list of strings starting with '.'")
        settings.extensions = tuple(extensions)
    if "exclude" in table:
        exclude = table["exclude"]
        if not isinstance(exclude, list) or not all(isinstance(e, str) for e in exclude):
            raise ConfigError("[sources] exclude must be a list of strings")
        settings.exclude = tuple(exclude)
    return settings


def _parse_severity(rule: str, value: Any) -> Optional[Severity]:
    if isinstance(value, bool) or not isinstance(value, (str, int)) or value not in SEVERITIES:
        raise ConfigError(f"rule '{rule}': invalid severity {value!r} (expected error, warn, off or 2, 1, 0)")
    return SEVERITIES[value]


def _parse_rules(table: dict) -> Dict[str, RuleSetting]:
    if not isinstance(table, dict):
        raise ConfigError("[rules] must be a table")
    parsed: Dict[str, RuleSetting] = {}
    for name, value in table.items():
        cls = RULES.get(name)
        if cls is None:
            raise ConfigError(f"unknown rule '{name}'")
        raw_options: dict = {}
        if isinstance(value, list):
            if not 1 <= len(value) <= 2:
                raise ConfigError(f"rule '{name}': expected [severity] or [severity, {{options}}]")
            severity = _parse_severity(name, value[0])
            if len(value) == 2:
                if not isinstance(value[1], dict):
                    raise ConfigError(f"rule '{name}': options must be a table")
                raw_options = value[1]
        else:
            severity = _parse_severity(name, value)
        try:
            options = cls.parse_options(raw_options)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'options'}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(f"rule '{name}': invalid options ({problems})") from e
        parsed[name] = RuleSetting(name, severity, options)
    return parsed

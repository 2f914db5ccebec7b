# lint/base.py
from __future__ import annotations
from typing import Any, ClassVar, Dict, Mapping, Optional, Type

from prodguard.internals import errors as er
from prodguard.internals.errors import Severity
from prodguard.internals.report import Reporter, Span
from prodguard.lint.options import RuleOptions
from prodguard.semantics.ast import Program

RULES: Dict[str, Type["Rule"]] = {}


def register(cls: Type["Rule"]) -> Type["Rule"]:
    if cls.name in RULES:
        raise ValueError(f"duplicate lint rule '{cls.name}'")
    RULES[cls.name] = cls
    return cls


def get_rule(name: str) -> Type["Rule"]:
    try:
        return RULES[name]
    except KeyError:
        raise KeyError(f"unknown lint rule: {name}") from None


class Rule:
    """A lint rule over one program.

    Subclasses set `name`, map each message id to a PG2xxx registry code in
    `message_codes`, and implement `check`. Options are validated by the
    pydantic model in `options_model`; a rule configured as "warn" reports
    its messages as warnings.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    message_codes: ClassVar[Dict[str, str]] = {}
    options_model: ClassVar[Type[RuleOptions]] = RuleOptions

    def __init__(self, options: Optional[RuleOptions] = None, severity: Severity = Severity.ERROR) -> None:
        self.options = options if options is not None else self.options_model()
        self.severity = severity

    @classmethod
    def parse_options(cls, raw: Optional[Mapping[str, Any]]) -> RuleOptions:
        """Validate raw options. Raises pydantic.ValidationError."""
        return cls.options_model.model_validate(dict(raw or {}))

    @classmethod
    def schema(cls) -> Dict[str, Any]:
        return cls.options_model.model_json_schema(by_alias=True)

    @classmethod
    def messages(cls) -> Dict[str, str]:
        """Message id -> message text, placeholders as `{name}`."""
        return {mid: er.REGISTRY[code].text + "." for mid, code in cls.message_codes.items()}

    def report(self, reporter: Reporter, message_id: str, span: Optional[Span], **data: Any) -> None:
        er.emit(reporter, er.ERR[self.message_codes[message_id]], span,
                severity=self.severity, rule=self.name, message_id=message_id, **data)

    def check(self, program: Program, reporter: Reporter) -> None:
        raise NotImplementedError

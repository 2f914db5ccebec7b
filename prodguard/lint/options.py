"""Pydantic option models for the lint rules."""

from __future__ import annotations

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class RuleOptions(BaseModel):
    """Options shared by every rule: none, and nothing unknown."""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=_to_camel,
        extra="forbid",
        frozen=True,
    )


class RequireDevWrapperOptions(RuleOptions):
    function_names: Tuple[str, ...] = Field(
        default=("warnOnce", "warn", "checkSlot"),
        alias="functionNames",
        description="Helpers that must only be called inside development-only code.",
    )

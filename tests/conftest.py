import textwrap
from pathlib import Path

import pytest

from prodguard.internals.parser import parse_to_ast
from prodguard.internals.report import Reporter

FIXTURES = Path(__file__).parent / "fixtures"


def parse(src: str):
    """Parse dedented source and return the Program."""
    program, _ = parse_to_ast(textwrap.dedent(src).lstrip("\n"))
    return program


@pytest.fixture
def reporter():
    return Reporter(filename="input.js")


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES

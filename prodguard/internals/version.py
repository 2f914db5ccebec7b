from __future__ import annotations
import sys, platform
from importlib.metadata import version as _pkg_version, PackageNotFoundError

from prodguard import __version__


def _dist_version(name: str) -> str:
    try:
        return _pkg_version(name)
    except PackageNotFoundError:
        return "unknown"


def get_versions() -> dict[str, str]:
    return {
        "app": __version__,
        "python": platform.python_version(),
        "lark": _dist_version("lark"),
        "pydantic": _dist_version("pydantic"),
    }


def print_banner(stream=None) -> None:
    """One-line banner; goes to stderr so stdout stays clean for `decode` and `dump-ast`."""
    stream = stream or sys.stderr
    v = get_versions()

    # Only use ANSI styling on an interactive terminal
    if getattr(stream, "isatty", lambda: False)():
        BOLD, DIM, RESET = "\x1b[1m", "\x1b[2m", "\x1b[0m"
    else:
        BOLD, DIM, RESET = "", "", ""

    print(
        f"{BOLD}prodguard{RESET} {v['app']} "
        f"{DIM}(Python {v['python']}, lark {v['lark']}, pydantic {v['pydantic']}){RESET}",
        file=stream,
    )

"""Persisted error-message catalog (error-codes.json).

The catalog maps integer codes to message templates. `%s` in a template is
a positional placeholder for one runtime argument. The file is append-only:
a code, once assigned, is never reused or renumbered.

File format:

    {
      "1": "Invalid hook call.",
      "2": "Unknown theme key %s."
    }

Keys ascend numerically, two-space indentation, UTF-8, trailing newline.
"""
from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

PLACEHOLDER = "%s"


class CatalogError(Exception):
    pass


def normalize_template(text: str) -> str:
    """Trim and collapse every whitespace run to one space."""
    return " ".join(text.split())


@dataclass(frozen=True)
class CatalogEntry:
    code: int
    template: str
    arity: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "arity", self.template.count(PLACEHOLDER))


class MessageCatalog:
    def __init__(self, path: Optional[Union[str, Path]] = None, entries: Iterable[CatalogEntry] = ()):
        self.path = Path(path) if path is not None else None
        self._by_code: Dict[int, CatalogEntry] = {}
        self._by_template: Dict[str, CatalogEntry] = {}
        self._added: List[CatalogEntry] = []
        self._lock = threading.Lock()
        for entry in entries:
            self._insert(entry)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "MessageCatalog":
        """Load the catalog at `path`; a missing file is an empty catalog."""
        path = Path(path)
        catalog = cls(path)
        if not path.exists():
            return catalog
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise CatalogError(f"{path}: invalid JSON ({e.msg} at line {e.lineno})") from e
        if not isinstance(data, dict):
            raise CatalogError(f"{path}: expected a JSON object of code -> message")
        for key, template in data.items():
            try:
                code = int(key)
            except ValueError:
                raise CatalogError(f"{path}: invalid error code '{key}'") from None
            if code < 1 or not isinstance(template, str):
                raise CatalogError(f"{path}: invalid entry for code '{key}'")
            catalog._insert(CatalogEntry(code, template))
        return catalog

    def _insert(self, entry: CatalogEntry) -> None:
        key = normalize_template(entry.template)
        if entry.code in self._by_code:
            raise CatalogError(f"duplicate error code {entry.code}")
        existing = self._by_template.get(key)
        if existing is not None:
            raise CatalogError(
                f"codes {existing.code} and {entry.code} have the same message '{key}'"
            )
        self._by_code[entry.code] = entry
        self._by_template[key] = entry

    # ---------- queries ----------

    def lookup(self, template: str) -> Optional[CatalogEntry]:
        return self._by_template.get(normalize_template(template))

    def get(self, code: int) -> Optional[CatalogEntry]:
        return self._by_code.get(code)

    def __len__(self) -> int:
        return len(self._by_code)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter([self._by_code[c] for c in sorted(self._by_code)])

    def __contains__(self, item) -> bool:
        if isinstance(item, int):
            return item in self._by_code
        return self.lookup(item) is not None

    @property
    def added(self) -> List[CatalogEntry]:
        """Entries assigned since load, in assignment order."""
        return list(self._added)

    @property
    def dirty(self) -> bool:
        return bool(self._added)

    # ---------- mutation ----------

    def assign(self, template: str) -> CatalogEntry:
        """Return the entry for `template`, appending one with the next free code on a miss."""
        with self._lock:
            existing = self.lookup(template)
            if existing is not None:
                return existing
            code = max(self._by_code, default=0) + 1
            entry = CatalogEntry(code, normalize_template(template))
            self._insert(entry)
            self._added.append(entry)
            return entry

    def stage(self, templates: Iterable[str]) -> List[CatalogEntry]:
        """Assign codes to a batch of templates in the given order."""
        return [self.assign(t) for t in templates]

    def to_json(self) -> str:
        data = {str(entry.code): entry.template for entry in self}
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    def flush(self) -> bool:
        """Write the whole catalog if anything was added. Returns True when written.

        The file is replaced atomically: a crash leaves the previous catalog intact.
        """
        if not self.dirty:
            return False
        if self.path is None:
            raise CatalogError("catalog has no file path to write to")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8", newline="\n") as f:
                f.write(self.to_json())
                f.flush()
                os.fsync(f.fileno())
            os.replace(str(tmp), str(self.path))
        finally:
            tmp.unlink(missing_ok=True)
        self._added.clear()
        return True

    # ---------- runtime decode ----------

    def format(self, code: int, *args) -> str:
        """Rebuild the message for `code`, substituting `args` for `%s` in order."""
        entry = self.get(code)
        if entry is None:
            raise CatalogError(f"unknown error code {code}")
        if len(args) != entry.arity:
            raise CatalogError(
                f"error code {code} expects {entry.arity} argument(s), got {len(args)}"
            )
        parts = entry.template.split(PLACEHOLDER)
        out = [parts[0]]
        for arg, part in zip(args, parts[1:]):
            out.append(str(arg))
            out.append(part)
        return "".join(out)

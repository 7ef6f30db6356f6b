# gcpv_watcher/providers.py
"""
Row sources feeding the parsers.

A row source is anything with `read_rows() -> list[str]`. Filtering is done by
plain functions passed to the source:
  - filter_blank_lines   : export files (every non-blank line is a record)
  - filter_comment_lines : EVT / roster files (also drops ';' and '#' comments)
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Union

LineFilter = Callable[[Iterable[str]], List[str]]


class RowSource(Protocol):
    def read_rows(self) -> List[str]:
        ...


def filter_blank_lines(lines: Iterable[str]) -> List[str]:
    return [ln for ln in lines if ln.strip()]


def filter_comment_lines(lines: Iterable[str]) -> List[str]:
    out = []
    for ln in lines:
        head = ln.lstrip()
        if not head or head.startswith(";") or head.startswith("#"):
            continue
        out.append(ln)
    return out


class FileRowSource:
    """Reads a text file fresh on every call; a vanished file raises FileNotFoundError."""

    def __init__(self, path: Union[str, Path], *, encoding: str = "utf-8-sig",
                 line_filter: LineFilter = filter_blank_lines):
        self.path = Path(path)
        self.encoding = encoding
        self.line_filter = line_filter

    def read_rows(self) -> List[str]:
        if not self.path.is_file():
            raise FileNotFoundError(f"The file '{self.path}' was not found.")
        text = self.path.read_text(encoding=self.encoding, errors="replace")
        return self.line_filter(text.splitlines())


class StaticRowSource:
    """In-memory rows (tests, tools)."""

    def __init__(self, rows: Sequence[str], line_filter: Optional[LineFilter] = filter_blank_lines):
        self._rows = list(rows)
        self.line_filter = line_filter

    def read_rows(self) -> List[str]:
        if self.line_filter is None:
            return list(self._rows)
        return self.line_filter(self._rows)

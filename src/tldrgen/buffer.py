"""Line-addressable text buffers.

The host editor owns the document. The plugin only talks to it through the
TextBuffer protocol; LineBuffer is the in-memory implementation used by the
CLI and IPC adapters.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class Position:
    """Editor position (zero-based line, character column)."""

    line: int
    ch: int = 0

    def to_dict(self) -> dict:
        return {"line": self.line, "ch": self.ch}


@runtime_checkable
class TextBuffer(Protocol):
    """Document surface the plugin reads from and edits."""

    def line_count(self) -> int: ...

    def get_line(self, index: int) -> str: ...

    def get_value(self) -> str: ...

    def replace_range(
        self,
        text: str,
        start: Position,
        end: Optional[Position] = None,
    ) -> None: ...


class LineBuffer:
    """In-memory document stored as a list of lines.

    Text is split on "\\n", so a trailing newline gives a final empty line.
    """

    def __init__(self, lines: Optional[list[str]] = None):
        self._lines: list[str] = list(lines) if lines is not None else []

    @classmethod
    def from_text(cls, text: str) -> "LineBuffer":
        return cls(text.split("\n"))

    @classmethod
    def from_file(cls, path: Path) -> "LineBuffer":
        return cls.from_text(Path(path).read_text(encoding="utf-8"))

    def write_to(self, path: Path) -> None:
        Path(path).write_text(self.get_value(), encoding="utf-8")

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, index: int) -> str:
        return self._lines[index]

    def get_value(self) -> str:
        return "\n".join(self._lines)

    def _offset(self, pos: Position) -> int:
        """Convert a position to an offset into get_value(), clamped."""
        if not self._lines:
            return 0
        line = min(max(pos.line, 0), len(self._lines) - 1)
        offset = sum(len(text) + 1 for text in self._lines[:line])
        return offset + min(max(pos.ch, 0), len(self._lines[line]))

    def replace_range(
        self,
        text: str,
        start: Position,
        end: Optional[Position] = None,
    ) -> None:
        """
        Replace the range start..end with text.

        With no end position the text is inserted at start.
        """
        value = self.get_value()
        begin = self._offset(start)
        finish = self._offset(end) if end is not None else begin
        if finish < begin:
            begin, finish = finish, begin
        self._lines = (value[:begin] + text + value[finish:]).split("\n")

"""Locator for the TLDR block.

Finds the line that holds an existing TLDR block, or the line a new block
should be inserted before.
"""

from collections.abc import Sequence
from dataclasses import dataclass

TLDR_MARKER = "TLDR:"
HEADING_MARKER = "#"


@dataclass(frozen=True)
class LocateResult:
    """Target line for the TLDR block.

    Attributes:
        index: Zero-based line index.
        existing: True if the line is an existing TLDR block to replace,
            False if the block is inserted before this line.
    """

    index: int
    existing: bool = False


def is_tldr_line(line: str) -> bool:
    """Check if a line is an existing TLDR block."""
    return line[: len(TLDR_MARKER)] == TLDR_MARKER


def _is_insert_target(line: str) -> bool:
    # A heading that is not itself a summary, or a blank line
    if line[:1] == HEADING_MARKER and "TLDR" not in line:
        return True
    return line == ""


def locate_tldr_line(lines: Sequence[str]) -> LocateResult:
    """
    Scan lines top-to-bottom for the TLDR target.

    Stops at the first line that is an existing TLDR block, a heading without
    "TLDR" in it, or an empty line. Falls back to inserting before line 0.

    Args:
        lines: Document lines, may be empty.

    Returns:
        LocateResult with the target index and whether it is a replace.
    """
    for index, line in enumerate(lines):
        if is_tldr_line(line):
            return LocateResult(index=index, existing=True)
        if _is_insert_target(line):
            return LocateResult(index=index, existing=False)

    return LocateResult(index=0, existing=False)

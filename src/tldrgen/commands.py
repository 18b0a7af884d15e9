"""
TLDR command and the command registry.

The host registers commands by id; running a command hands it the focused
document. generate_tldr locates the target line, awaits the summarizer, then
splices the formatted block into the document.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from tldrgen.buffer import Position, TextBuffer
from tldrgen.config import SettingsStore
from tldrgen.locator import is_tldr_line, locate_tldr_line
from tldrgen.summarizer import GeminiSummarizer, SummaryResult, format_tldr

log = structlog.get_logger()

GENERATE_TLDR_ID = "generate-tldr"
GENERATE_TLDR_NAME = "Generate TLDR"

MODE_REPLACE = "replace"
MODE_INSERT = "insert"


class CommandNotFoundError(Exception):
    """No command registered under the given id."""

    def __init__(self, command_id: str):
        self.command_id = command_id
        super().__init__(f"Command not found: {command_id}")


@dataclass(frozen=True)
class TLDREdit:
    """Splice applied to the document by generate_tldr."""

    mode: str
    start: Position
    end: Optional[Position]
    text: str
    summary: SummaryResult

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "start": self.start.to_dict(),
            "end": self.end.to_dict() if self.end is not None else None,
            "text": self.text,
            "summary": self.summary.text,
            "error": self.summary.error,
        }


CommandCallback = Callable[[Optional[TextBuffer]], Awaitable[Any]]


@dataclass(frozen=True)
class Command:
    id: str
    name: str
    callback: CommandCallback


class CommandRegistry:
    """Registered commands, keyed by id."""

    def __init__(self) -> None:
        self.commands: dict[str, Command] = {}

    def register(self, command: Command) -> None:
        self.commands[command.id] = command
        log.debug("command_registered", command_id=command.id)

    def get(self, command_id: str) -> Command:
        try:
            return self.commands[command_id]
        except KeyError:
            raise CommandNotFoundError(command_id) from None

    def list(self) -> list[Command]:
        return list(self.commands.values())

    async def run(self, command_id: str, buffer: Optional[TextBuffer]) -> Any:
        """Run a command against the focused document."""
        command = self.get(command_id)
        log.info("command_run", command_id=command_id)
        return await command.callback(buffer)


async def generate_tldr(
    buffer: Optional[TextBuffer],
    summarizer: GeminiSummarizer,
) -> Optional[TLDREdit]:
    """
    Generate a TLDR for the document and splice it in.

    An existing "TLDR:" line is replaced in full. Otherwise the block is
    inserted before the located line, which moves down intact.

    Args:
        buffer: Focused document, or None if there is none.
        summarizer: Summarizer to query.

    Returns:
        The applied TLDREdit, or None if there was no document.
    """
    if buffer is None:
        return None

    lines = [buffer.get_line(i) for i in range(buffer.line_count())]
    target = locate_tldr_line(lines)

    # Positions are captured before the request; edits made meanwhile are not tracked
    line = lines[target.index] if target.index < len(lines) else ""
    start = Position(target.index, 0)
    end = Position(target.index, len(line))
    replacing = is_tldr_line(line)

    summary = await summarizer.summarize(buffer.get_value())
    block = format_tldr(summary.text)

    if replacing:
        buffer.replace_range(block, start, end)
        edit = TLDREdit(MODE_REPLACE, start, end, block, summary)
    else:
        # Only break the line when there is a line to push down
        text = block + "\n" if lines else block
        buffer.replace_range(text, start)
        edit = TLDREdit(MODE_INSERT, start, None, text, summary)

    log.info(
        "tldr_applied",
        mode=edit.mode,
        line=target.index,
        error=summary.error,
    )
    return edit


class TLDRPlugin:
    """TLDR plugin: settings, summarizer and the generate-tldr command.

    Only one generation per document runs at a time; a repeat invocation while
    a request is outstanding is skipped.
    """

    def __init__(
        self,
        store: Optional[SettingsStore] = None,
        summarizer: Optional[GeminiSummarizer] = None,
        registry: Optional[CommandRegistry] = None,
    ) -> None:
        self.store = store or SettingsStore()
        self.summarizer = summarizer or GeminiSummarizer(lambda: self.store.settings)
        self.registry = registry or CommandRegistry()
        self._in_flight: set[int] = set()

    def load(self) -> None:
        """Load settings and register commands."""
        self.store.load()
        self.registry.register(
            Command(GENERATE_TLDR_ID, GENERATE_TLDR_NAME, self.generate_tldr)
        )
        log.info("plugin_loaded", settings_path=str(self.store.path))

    def is_busy(self, buffer: TextBuffer) -> bool:
        return id(buffer) in self._in_flight

    async def generate_tldr(self, buffer: Optional[TextBuffer]) -> Optional[TLDREdit]:
        if buffer is None:
            log.debug("tldr_no_document")
            return None

        if self.is_busy(buffer):
            log.warning("tldr_already_running")
            return None

        self._in_flight.add(id(buffer))
        try:
            return await generate_tldr(buffer, self.summarizer)
        finally:
            self._in_flight.discard(id(buffer))

"""tldrgen - Generate a TLDR heading for the open document."""

__version__ = "0.1.0"

from tldrgen.buffer import LineBuffer, Position, TextBuffer
from tldrgen.commands import (
    GENERATE_TLDR_ID,
    Command,
    CommandNotFoundError,
    CommandRegistry,
    TLDREdit,
    TLDRPlugin,
    generate_tldr,
)
from tldrgen.config import (
    SETTING_FIELDS,
    SettingsError,
    SettingsStore,
    TLDRSettings,
    UnknownSettingError,
)
from tldrgen.locator import LocateResult, is_tldr_line, locate_tldr_line
from tldrgen.summarizer import (
    NO_RESPONSE_TEXT,
    REQUEST_FAILED_TEXT,
    GeminiSummarizer,
    SummaryResult,
    format_tldr,
)

__all__ = [
    # Document
    "LineBuffer",
    "Position",
    "TextBuffer",
    # Locator
    "LocateResult",
    "is_tldr_line",
    "locate_tldr_line",
    # Summarizer
    "GeminiSummarizer",
    "SummaryResult",
    "format_tldr",
    "NO_RESPONSE_TEXT",
    "REQUEST_FAILED_TEXT",
    # Commands
    "GENERATE_TLDR_ID",
    "Command",
    "CommandNotFoundError",
    "CommandRegistry",
    "TLDREdit",
    "TLDRPlugin",
    "generate_tldr",
    # Settings
    "SETTING_FIELDS",
    "SettingsError",
    "SettingsStore",
    "TLDRSettings",
    "UnknownSettingError",
]

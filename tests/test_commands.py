"""Tests for the generate-tldr command, registry and plugin."""

import asyncio
import tempfile
from pathlib import Path

import pytest

from tldrgen.buffer import LineBuffer, Position
from tldrgen.commands import (
    GENERATE_TLDR_ID,
    MODE_INSERT,
    MODE_REPLACE,
    Command,
    CommandNotFoundError,
    CommandRegistry,
    TLDRPlugin,
    generate_tldr,
)
from tldrgen.config import SettingsStore
from tldrgen.summarizer import (
    ERROR_REQUEST_FAILED,
    REQUEST_FAILED_TEXT,
    SummaryResult,
)


class FakeSummarizer:
    """Returns a fixed result and records the documents it saw."""

    def __init__(self, result: SummaryResult, gate: asyncio.Event | None = None):
        self.result = result
        self.gate = gate
        self.documents: list[str] = []

    async def summarize(self, document_text: str) -> SummaryResult:
        self.documents.append(document_text)
        if self.gate is not None:
            await self.gate.wait()
        return self.result


class TestGenerateTLDR:
    """Test locating and splicing the TLDR block."""

    @pytest.mark.asyncio
    async def test_insert_before_heading(self):
        """Heading at line 0: block inserted, original lines pushed down."""
        buf = LineBuffer(["# Title", "Some text", ""])
        summarizer = FakeSummarizer(SummaryResult("Short summary."))

        edit = await generate_tldr(buf, summarizer)

        assert edit.mode == MODE_INSERT
        assert edit.start == Position(0, 0)
        assert edit.end is None
        assert buf.get_value() == "###### TLDR: \nShort summary.\n# Title\nSome text\n"
        assert summarizer.documents == ["# Title\nSome text\n"]

    @pytest.mark.asyncio
    async def test_replace_existing_block(self):
        """TLDR: line replaced in full, next line unchanged."""
        buf = LineBuffer(["TLDR: old", "Body text"])

        edit = await generate_tldr(buf, FakeSummarizer(SummaryResult("New summary.")))

        assert edit.mode == MODE_REPLACE
        assert edit.start == Position(0, 0)
        assert edit.end == Position(0, 9)
        assert edit.text == "###### TLDR: \nNew summary."
        assert buf.lines == ["###### TLDR: ", "New summary.", "Body text"]

    @pytest.mark.asyncio
    async def test_insert_is_non_destructive(self):
        lines = ["Intro paragraph", "", "# Heading", "Body"]
        buf = LineBuffer(lines)

        await generate_tldr(buf, FakeSummarizer(SummaryResult("Sum.")))

        assert buf.lines[:1] == lines[:1]
        assert buf.lines[1:3] == ["###### TLDR: ", "Sum."]
        assert buf.lines[3:] == lines[1:]

    @pytest.mark.asyncio
    async def test_replace_target_stable(self):
        """Same document state targets the same TLDR line each time."""
        original = ["Intro", "more", "TLDR: old", "Body"]

        for _ in range(2):
            buf = LineBuffer(original)
            edit = await generate_tldr(buf, FakeSummarizer(SummaryResult("S.")))
            assert edit.mode == MODE_REPLACE
            assert edit.start == Position(2, 0)
            assert buf.lines == ["Intro", "more", "###### TLDR: ", "S.", "Body"]

    @pytest.mark.asyncio
    async def test_twice_on_same_buffer(self):
        """The written block is not a TLDR: line, so a second run inserts at 0."""
        buf = LineBuffer(["TLDR: old", "Body text"])
        summarizer = FakeSummarizer(SummaryResult("S."))

        first = await generate_tldr(buf, summarizer)
        assert first.mode == MODE_REPLACE
        assert (first.start, first.end) == (Position(0, 0), Position(0, 9))
        assert buf.lines == ["###### TLDR: ", "S.", "Body text"]

        second = await generate_tldr(buf, summarizer)
        assert second.mode == MODE_INSERT
        assert second.start == Position(0, 0)
        assert buf.lines == ["###### TLDR: ", "S.", "###### TLDR: ", "S.", "Body text"]
        assert summarizer.documents[1] == "###### TLDR: \nS.\nBody text"

    @pytest.mark.asyncio
    async def test_plain_text_inserts_at_start(self):
        buf = LineBuffer(["just text", "more text"])

        edit = await generate_tldr(buf, FakeSummarizer(SummaryResult("S.")))

        assert edit.start == Position(0, 0)
        assert buf.lines == ["###### TLDR: ", "S.", "just text", "more text"]

    @pytest.mark.asyncio
    async def test_empty_document(self):
        """Zero-line document gets the block at line 0, character 0."""
        buf = LineBuffer([])

        edit = await generate_tldr(buf, FakeSummarizer(SummaryResult("S.")))

        assert edit.mode == MODE_INSERT
        assert buf.get_value() == "###### TLDR: \nS."

    @pytest.mark.asyncio
    async def test_no_document_is_noop(self):
        summarizer = FakeSummarizer(SummaryResult("S."))
        assert await generate_tldr(None, summarizer) is None
        assert summarizer.documents == []

    @pytest.mark.asyncio
    async def test_sentinel_written_on_failure(self):
        """Failures still splice the sentinel text."""
        buf = LineBuffer(["# Title"])
        result = SummaryResult(REQUEST_FAILED_TEXT, ERROR_REQUEST_FAILED)

        edit = await generate_tldr(buf, FakeSummarizer(result))

        assert edit.summary.error == ERROR_REQUEST_FAILED
        assert buf.lines[:2] == ["###### TLDR: ", "Error querying Gemini"]

    @pytest.mark.asyncio
    async def test_edit_to_dict(self):
        buf = LineBuffer(["TLDR: x"])
        edit = await generate_tldr(buf, FakeSummarizer(SummaryResult("S.")))

        assert edit.to_dict() == {
            "mode": "replace",
            "start": {"line": 0, "ch": 0},
            "end": {"line": 0, "ch": 7},
            "text": "###### TLDR: \nS.",
            "summary": "S.",
            "error": None,
        }


class TestCommandRegistry:
    """Test command registration."""

    @pytest.mark.asyncio
    async def test_register_and_run(self):
        registry = CommandRegistry()

        async def callback(buffer):
            return buffer.get_value()

        registry.register(Command("echo", "Echo", callback))

        assert registry.get("echo").name == "Echo"
        assert [c.id for c in registry.list()] == ["echo"]
        assert await registry.run("echo", LineBuffer(["hi"])) == "hi"

    @pytest.mark.asyncio
    async def test_unknown_command(self):
        registry = CommandRegistry()
        with pytest.raises(CommandNotFoundError, match="missing"):
            await registry.run("missing", None)


class TestTLDRPlugin:
    """Test plugin lifecycle and the in-flight guard."""

    def _plugin(self, tmpdir: str, summarizer) -> TLDRPlugin:
        store = SettingsStore(Path(tmpdir) / "settings.json")
        plugin = TLDRPlugin(store=store, summarizer=summarizer)
        plugin.load()
        return plugin

    @pytest.mark.asyncio
    async def test_load_registers_command(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            plugin = self._plugin(tmpdir, FakeSummarizer(SummaryResult("S.")))

            command = plugin.registry.get(GENERATE_TLDR_ID)
            assert command.name == "Generate TLDR"

            buf = LineBuffer(["# Title"])
            edit = await plugin.registry.run(GENERATE_TLDR_ID, buf)
            assert edit.mode == MODE_INSERT

    def test_default_summarizer_uses_store(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SettingsStore(Path(tmpdir) / "settings.json")
            plugin = TLDRPlugin(store=store)
            store.settings.key = "changed"
            assert plugin.summarizer.settings_provider().key == "changed"

    @pytest.mark.asyncio
    async def test_no_document(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            plugin = self._plugin(tmpdir, FakeSummarizer(SummaryResult("S.")))
            assert await plugin.registry.run(GENERATE_TLDR_ID, None) is None

    @pytest.mark.asyncio
    async def test_second_run_skipped_while_in_flight(self):
        """Repeat invocation on the same buffer is skipped."""
        with tempfile.TemporaryDirectory() as tmpdir:
            gate = asyncio.Event()
            summarizer = FakeSummarizer(SummaryResult("S."), gate=gate)
            plugin = self._plugin(tmpdir, summarizer)
            buf = LineBuffer(["# Title"])

            first = asyncio.create_task(plugin.generate_tldr(buf))
            await asyncio.sleep(0)
            assert plugin.is_busy(buf)

            assert await plugin.generate_tldr(buf) is None

            gate.set()
            edit = await first

            assert edit is not None
            assert not plugin.is_busy(buf)
            assert len(summarizer.documents) == 1
            assert buf.lines == ["###### TLDR: ", "S.", "# Title"]

    @pytest.mark.asyncio
    async def test_other_buffers_run_independently(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            gate = asyncio.Event()
            summarizer = FakeSummarizer(SummaryResult("S."), gate=gate)
            plugin = self._plugin(tmpdir, summarizer)
            a, b = LineBuffer(["# A"]), LineBuffer(["# B"])

            tasks = [
                asyncio.create_task(plugin.generate_tldr(a)),
                asyncio.create_task(plugin.generate_tldr(b)),
            ]
            await asyncio.sleep(0)
            gate.set()
            edits = await asyncio.gather(*tasks)

            assert all(edit is not None for edit in edits)
            assert a.lines[-1] == "# A"
            assert b.lines[-1] == "# B"

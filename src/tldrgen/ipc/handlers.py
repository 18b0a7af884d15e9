"""
IPC method handlers for tldrgen.

Each handler takes the request params dict and returns a JSON-serializable
dict. The host sends the document content; the handler edits an in-memory
copy and returns both the splice and the resulting document.
"""

from typing import Any, Optional

import structlog

from tldrgen.buffer import LineBuffer
from tldrgen.commands import GENERATE_TLDR_ID, TLDRPlugin
from tldrgen.config import SETTING_FIELDS, UnknownSettingError
from tldrgen.locator import locate_tldr_line

log = structlog.get_logger()


class IPCError(Exception):
    """Error with JSON-RPC error code."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


ERROR_MISSING_DOCUMENT = -32001
ERROR_UNKNOWN_SETTING = -32002
ERROR_INVALID_VALUE = -32003


def _buffer_from_params(params: dict) -> LineBuffer:
    """Build a buffer from {"text": str} or {"lines": [str, ...]}."""
    if "lines" in params:
        lines = params["lines"]
        if not isinstance(lines, list) or not all(isinstance(x, str) for x in lines):
            raise IPCError(ERROR_INVALID_VALUE, "lines must be a list of strings")
        return LineBuffer(lines)

    text = params.get("text")
    if text is None:
        raise IPCError(ERROR_MISSING_DOCUMENT, "Missing document: send text or lines")
    if not isinstance(text, str):
        raise IPCError(ERROR_INVALID_VALUE, "text must be a string")
    return LineBuffer.from_text(text)


def _settings_payload(plugin: TLDRPlugin) -> dict:
    values = plugin.store.settings.to_dict()
    return {
        "settings": values,
        "fields": [
            {
                "name": f.name,
                "label": f.label,
                "description": f.description,
                "placeholder": f.placeholder,
                "multiline": f.multiline,
            }
            for f in SETTING_FIELDS
        ],
    }


class GenerateTLDRHandler:
    """
    Handler for generate_tldr.

    Runs the generate-tldr command on the sent document. Requests carrying a
    document_id that already has a generation outstanding are skipped.
    """

    def __init__(self, plugin: TLDRPlugin):
        self.plugin = plugin
        self._in_flight: set[str] = set()

    async def __call__(self, params: dict) -> dict:
        buffer = _buffer_from_params(params)
        document_id: Optional[str] = params.get("document_id")
        if document_id is not None and not isinstance(document_id, str):
            raise IPCError(ERROR_INVALID_VALUE, "document_id must be a string")

        if document_id is not None:
            if document_id in self._in_flight:
                log.warning("tldr_already_running", document_id=document_id)
                return {"skipped": True}
            self._in_flight.add(document_id)

        try:
            edit = await self.plugin.registry.run(GENERATE_TLDR_ID, buffer)
        finally:
            if document_id is not None:
                self._in_flight.discard(document_id)

        if edit is None:
            return {"skipped": True}

        result = edit.to_dict()
        result["skipped"] = False
        result["document"] = buffer.get_value()
        return result


class LocateTLDRHandler:
    """Handler for locate_tldr: where the TLDR block would go."""

    async def __call__(self, params: dict) -> dict:
        buffer = _buffer_from_params(params)
        target = locate_tldr_line(buffer.lines)
        return {"index": target.index, "existing": target.existing}


class GetSettingsHandler:
    """Handler for get_settings."""

    def __init__(self, plugin: TLDRPlugin):
        self.plugin = plugin

    async def __call__(self, params: dict) -> dict:
        return _settings_payload(self.plugin)


class UpdateSettingsHandler:
    """Handler for update_settings: commit one field and save."""

    def __init__(self, plugin: TLDRPlugin):
        self.plugin = plugin

    async def __call__(self, params: dict) -> dict:
        name = params.get("field", "")
        value = params.get("value")

        if not isinstance(value, str):
            raise IPCError(ERROR_INVALID_VALUE, "value must be a string")

        try:
            self.plugin.store.update(name, value)
        except UnknownSettingError as e:
            raise IPCError(ERROR_UNKNOWN_SETTING, str(e))

        return _settings_payload(self.plugin)


class ListCommandsHandler:
    """Handler for list_commands."""

    def __init__(self, plugin: TLDRPlugin):
        self.plugin = plugin

    async def __call__(self, params: dict) -> dict:
        return {
            "commands": [
                {"id": c.id, "name": c.name} for c in self.plugin.registry.list()
            ]
        }


def create_handlers(plugin: TLDRPlugin) -> dict[str, Any]:
    """
    Create all IPC handlers for a loaded plugin.

    Returns:
        Dict mapping method names to handler instances
    """
    return {
        "generate_tldr": GenerateTLDRHandler(plugin),
        "locate_tldr": LocateTLDRHandler(),
        "get_settings": GetSettingsHandler(plugin),
        "update_settings": UpdateSettingsHandler(plugin),
        "list_commands": ListCommandsHandler(plugin),
    }

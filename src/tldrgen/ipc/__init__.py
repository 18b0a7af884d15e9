"""
IPC module for tldrgen.

JSON-RPC 2.0 server over Unix socket so an editor host can drive the
TLDR plugin.
"""

from tldrgen.ipc.handlers import (
    GenerateTLDRHandler,
    GetSettingsHandler,
    IPCError,
    ListCommandsHandler,
    LocateTLDRHandler,
    UpdateSettingsHandler,
    create_handlers,
)
from tldrgen.ipc.server import IPCServer, start_server

__all__ = [
    "IPCServer",
    "IPCError",
    "start_server",
    "create_handlers",
    "GenerateTLDRHandler",
    "LocateTLDRHandler",
    "GetSettingsHandler",
    "UpdateSettingsHandler",
    "ListCommandsHandler",
]

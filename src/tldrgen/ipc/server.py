"""JSON-RPC 2.0 server over a Unix socket.

Editor hosts connect, send line-delimited JSON requests and get one JSON
response line back per request.
"""

import asyncio
import inspect
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import structlog

from tldrgen.ipc.handlers import IPCError

log = structlog.get_logger()

DEFAULT_SOCKET_PATH = "/tmp/tldrgen.sock"

# Longest request line accepted; requests carry whole documents
DEFAULT_LINE_LIMIT = 16 * 1024 * 1024

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


class RPCError(Exception):
    """Protocol-level JSON-RPC error."""

    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)


@dataclass
class RPCRequest:
    method: str
    params: dict = field(default_factory=dict)
    id: Any = None

    @classmethod
    def from_json(cls, data: str) -> "RPCRequest":
        """Parse a request line.

        Raises:
            ValueError: If the line is not a valid JSON-RPC 2.0 request.
        """
        try:
            obj = json.loads(data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Parse error: {e}") from e

        if not isinstance(obj, dict):
            raise ValueError("Invalid request: expected an object")
        if obj.get("jsonrpc") != "2.0":
            raise ValueError("Invalid JSON-RPC version")

        method = obj.get("method")
        if not method or not isinstance(method, str):
            raise ValueError("Missing or invalid method")

        params = obj.get("params") or {}
        if not isinstance(params, dict):
            raise ValueError("Invalid params: expected an object")

        return cls(method=method, params=params, id=obj.get("id"))


def make_response(result: Any, id: Any) -> str:
    """Serialize a success response."""
    return json.dumps({"jsonrpc": "2.0", "result": result, "id": id})


def make_error(error: RPCError, id: Any) -> str:
    """Serialize an error response."""
    err: dict[str, Any] = {"code": error.code, "message": error.message}
    if error.data is not None:
        err["data"] = error.data
    return json.dumps({"jsonrpc": "2.0", "error": err, "id": id})


class IPCServer:
    """Unix socket JSON-RPC server dispatching to registered handlers."""

    def __init__(
        self,
        socket_path: str = DEFAULT_SOCKET_PATH,
        line_limit: int = DEFAULT_LINE_LIMIT,
    ):
        self.socket_path = socket_path
        self.line_limit = line_limit
        self.handlers: dict[str, Callable[[dict], Any]] = {}
        self._server: asyncio.AbstractServer | None = None

    def register(self, method: str, handler: Callable[[dict], Any]) -> None:
        """Register a sync or async handler for a method."""
        self.handlers[method] = handler

    async def _handle_request(self, data: str) -> str:
        request_id = None
        try:
            try:
                request = RPCRequest.from_json(data)
            except ValueError as e:
                code = PARSE_ERROR if str(e).startswith("Parse error") else INVALID_REQUEST
                raise RPCError(code, str(e)) from e

            request_id = request.id
            handler = self.handlers.get(request.method)
            if handler is None:
                raise RPCError(METHOD_NOT_FOUND, f"Method not found: {request.method}")

            log.debug("request_received", method=request.method, id=request_id)

            result = handler(request.params)
            if inspect.isawaitable(result):
                result = await result
            return make_response(result, request_id)

        except RPCError as e:
            return make_error(e, request_id)
        except IPCError as e:
            return make_error(RPCError(e.code, e.message), request_id)
        except Exception as e:
            log.exception("handler_error", id=request_id)
            return make_error(RPCError(INTERNAL_ERROR, f"Internal error: {e}"), request_id)

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        log.info("client_connected")
        try:
            while True:
                try:
                    line = await reader.readline()
                except ValueError:
                    # Line longer than line_limit; the stream is out of sync after this
                    log.warning("request_too_large", limit=self.line_limit)
                    error = RPCError(
                        INVALID_REQUEST,
                        f"Request too large: limit is {self.line_limit} bytes",
                    )
                    writer.write(make_error(error, None).encode("utf-8") + b"\n")
                    await writer.drain()
                    # Discard until the client hangs up so closing does not reset it
                    while await reader.read(self.line_limit):
                        pass
                    break

                if not line:
                    break

                response = await self._handle_request(line.decode("utf-8"))
                writer.write(response.encode("utf-8") + b"\n")
                await writer.drain()
        except asyncio.CancelledError:
            pass
        except Exception:
            log.exception("connection_error")
        finally:
            log.info("client_disconnected")
            writer.close()
            await writer.wait_closed()

    async def start(self) -> None:
        """Start listening, replacing a stale socket file."""
        socket_file = Path(self.socket_path)
        if socket_file.exists():
            socket_file.unlink()

        self._server = await asyncio.start_unix_server(
            self._handle_connection, self.socket_path, limit=self.line_limit
        )
        log.info("server_listening", socket_path=self.socket_path)

    async def stop(self) -> None:
        """Stop the server and remove the socket file."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

        socket_file = Path(self.socket_path)
        if socket_file.exists():
            socket_file.unlink()


async def start_server(
    handlers: dict[str, Callable[[dict], Any]],
    socket_path: str = DEFAULT_SOCKET_PATH,
) -> IPCServer:
    """Create, register and start a server."""
    server = IPCServer(socket_path)
    for method, handler in handlers.items():
        server.register(method, handler)
    await server.start()
    return server

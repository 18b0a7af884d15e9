"""
tldrgen entry point.

Run with: python -m tldrgen [command]
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

import structlog


def setup_logging(verbose: bool = False) -> None:
    """Configure structured logging."""
    level = logging.DEBUG if verbose else logging.INFO

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer()
            if sys.stderr.isatty()
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=level,
        stream=sys.stderr,
    )


def _load_plugin():
    from tldrgen.commands import TLDRPlugin

    plugin = TLDRPlugin()
    plugin.load()
    return plugin


async def run_generate(path: Path, dry_run: bool) -> int:
    """Generate a TLDR for a Markdown file."""
    from tldrgen.buffer import LineBuffer
    from tldrgen.commands import GENERATE_TLDR_ID
    from tldrgen.config import SettingsError

    log = structlog.get_logger()

    if not path.exists():
        log.error("file_not_found", path=str(path))
        return 1

    try:
        plugin = _load_plugin()
    except SettingsError as e:
        log.error("settings_error", error=str(e))
        return 1
    plugin.store.settings = plugin.store.settings.with_env_overrides()

    buffer = LineBuffer.from_file(path)
    edit = await plugin.registry.run(GENERATE_TLDR_ID, buffer)

    if edit is not None and not edit.summary.ok:
        log.warning("tldr_summary_failed", error=edit.summary.error, path=str(path))

    if dry_run:
        print(buffer.get_value())
    else:
        buffer.write_to(path)
        log.info("file_updated", path=str(path))

    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    """Generate a TLDR for a file."""
    setup_logging(args.verbose)
    return asyncio.run(run_generate(Path(args.file), args.dry_run))


def cmd_locate(args: argparse.Namespace) -> int:
    """Show where the TLDR block would go."""
    from tldrgen.buffer import LineBuffer
    from tldrgen.locator import locate_tldr_line

    setup_logging(args.verbose)
    log = structlog.get_logger()

    path = Path(args.file)
    if not path.exists():
        log.error("file_not_found", path=str(path))
        return 1

    target = locate_tldr_line(LineBuffer.from_file(path).lines)
    action = "replace" if target.existing else "insert before"
    print(f"line {target.index}: {action}")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Show settings or commit one field."""
    from tldrgen.config import SETTING_FIELDS, SettingsError, SettingsStore

    setup_logging(args.verbose)
    log = structlog.get_logger()

    store = SettingsStore()
    try:
        store.load()
        if args.set:
            name, value = args.set
            store.update(name, value)
    except SettingsError as e:
        log.error("settings_error", error=str(e))
        return 1

    values = store.settings.to_dict()
    print(f"# {store.path}")
    for f in SETTING_FIELDS:
        print(f"\n{f.label} ({f.name})")
        print(f"  {f.description}")
        print(f"  = {values[f.name]!r}")
    return 0


def cmd_commands(args: argparse.Namespace) -> int:
    """List registered commands."""
    from tldrgen.config import SettingsError

    setup_logging(args.verbose)
    log = structlog.get_logger()

    try:
        plugin = _load_plugin()
    except SettingsError as e:
        log.error("settings_error", error=str(e))
        return 1

    for command in plugin.registry.list():
        print(f"{command.id}\t{command.name}")
    return 0


async def run_server(socket_path: str) -> None:
    """Run the IPC server."""
    from tldrgen.ipc.handlers import create_handlers
    from tldrgen.ipc.server import IPCServer

    log = structlog.get_logger()

    plugin = _load_plugin()

    # Create server
    server = IPCServer(socket_path)
    for method, handler in create_handlers(plugin).items():
        server.register(method, handler)

    # Handle shutdown signals
    shutdown_event = asyncio.Event()

    def handle_signal(sig: int) -> None:
        log.info("shutdown_signal_received", signal=sig)
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    await server.start()
    log.info("server_started", socket_path=socket_path)

    try:
        await shutdown_event.wait()
    except asyncio.CancelledError:
        pass
    finally:
        log.info("server_stopping")
        await server.stop()
        log.info("server_stopped")


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the IPC server for editor hosts."""
    from tldrgen.config import SettingsError

    setup_logging(args.verbose)
    log = structlog.get_logger()

    try:
        asyncio.run(run_server(args.socket))
        return 0
    except KeyboardInterrupt:
        return 0
    except (OSError, SettingsError) as e:
        log.error("server_error", error=str(e))
        return 1


def cmd_version(args: argparse.Namespace) -> int:
    """Print version."""
    from tldrgen import __version__

    print(f"tldrgen {__version__}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    from tldrgen.config import TLDRSettings
    from tldrgen.ipc.server import DEFAULT_SOCKET_PATH

    parser = argparse.ArgumentParser(
        prog="tldrgen",
        description="Generate a TLDR heading for a document",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # generate command
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate a TLDR for a Markdown file",
    )
    generate_parser.add_argument("file", help="Path to the Markdown file")
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the result instead of writing the file",
    )
    generate_parser.set_defaults(func=cmd_generate)

    # locate command
    locate_parser = subparsers.add_parser(
        "locate",
        help="Show the line the TLDR block would go to",
    )
    locate_parser.add_argument("file", help="Path to the Markdown file")
    locate_parser.set_defaults(func=cmd_locate)

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Show or change settings",
    )
    config_parser.add_argument(
        "--set",
        nargs=2,
        metavar=("FIELD", "VALUE"),
        help=f"Set one of: {', '.join(TLDRSettings.field_names())}",
    )
    config_parser.set_defaults(func=cmd_config)

    # commands command
    commands_parser = subparsers.add_parser(
        "commands",
        help="List registered commands",
    )
    commands_parser.set_defaults(func=cmd_commands)

    # serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the IPC server",
    )
    serve_parser.add_argument(
        "--socket",
        default=os.getenv("TLDRGEN_SOCKET_PATH", DEFAULT_SOCKET_PATH),
        help=f"Unix socket path (default: {DEFAULT_SOCKET_PATH})",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # version command
    version_parser = subparsers.add_parser(
        "version",
        help="Print version",
    )
    version_parser.set_defaults(func=cmd_version)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

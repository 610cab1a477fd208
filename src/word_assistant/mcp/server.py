"""MCP server for the word assistant using stdio transport.

Lets an agent add words, run daily reviews and trigger synchronisation
with the remote word service through MCP tools.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import os
import sys

import mcp.server.stdio
import mcp.types as types
import yaml
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from pydantic import ValidationError

from .. import __version__
from ..config_loader import load_hierarchical_config
from ..config_schema import LoggingConfig, build_config
from ..logger import DEFAULT_LOG_FILE, setup_logging
from .lifespan import AppContext, server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response

logger = logging.getLogger(__name__)

SERVER_NAME = "word-assistant-mcp"

server = Server(SERVER_NAME)

# Initialized in main()
_context: AppContext | None = None
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_context() -> AppContext:
    """Get the global AppContext.

    Raises:
        RuntimeError: If the server lifespan has not started.
    """
    if _context is None:
        raise RuntimeError(
            "AppContext not initialized. Server lifespan not started."
        )
    return _context


def set_context(ctx: AppContext | None) -> None:
    global _context
    _context = ctx


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry.

    Raises:
        RuntimeError: If the registry is not initialized.
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Dispatch a tool call through the ToolRegistry."""
    ctx = get_context()
    try:
        return await get_registry().call_tool(name, arguments, ctx)
    except ValueError as e:
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


def _yaml_logging_config() -> LoggingConfig:
    """Return the YAML ``logging`` section, or defaults if it cannot be read.

    Read before logging is set up; a broken file is reported by the
    lifespan, which loads the same files again.
    """
    try:
        return build_config(load_hierarchical_config()).logging
    except (yaml.YAMLError, ValidationError):
        return LoggingConfig()


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Args:
        config_overrides: Optional CLI values (url, token, data_dir,
            debug, log_file).
    """
    overrides = dict(config_overrides or {})
    yaml_logging = _yaml_logging_config()
    log_file = (
        overrides.pop("log_file", None)
        or os.getenv("LOG_FILE")
        or yaml_logging.file
    )

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=log_file,
        level=yaml_logging.level,
    )

    registry = ToolRegistry(ALL_SPECS)
    logger.info("Registered %d tools", registry.tool_count())
    set_registry(registry)

    # set_context() is called here rather than inside the lifespan so that
    # running this file as __main__ updates the module actually serving.
    async with server_lifespan(config_overrides=overrides) as ctx:
        set_context(ctx)
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_context(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Word Assistant MCP Server - vocabulary reviews and offline-first sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .word_assistant/config.yml)
  word-assistant-mcp

  # Point at a word service and supply a credential
  word-assistant-mcp --api-url https://words.example.com/api --token abc123

  # Keep the local collection somewhere else
  word-assistant-mcp --data-dir ~/Documents/words

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )
    parser.add_argument(
        "--api-url",
        help="Word service base URL (overrides WORD_ASSISTANT_API_URL and config files)",
    )
    parser.add_argument(
        "--token",
        help="Bearer credential (visible in process list -- prefer WORD_ASSISTANT_TOKEN)",
    )
    parser.add_argument(
        "--data-dir",
        help="Directory for the local word collection (overrides WORD_ASSISTANT_DATA_DIR)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help=(
            "Log file path (default: LOG_FILE, then logging.file in "
            f"config.yml, then {DEFAULT_LOG_FILE})"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"{SERVER_NAME} version {__version__}",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Map parsed CLI arguments to the config override dict."""
    config_overrides = {}
    if args.api_url:
        config_overrides["url"] = args.api_url
    if args.token:
        config_overrides["token"] = args.token
    if args.data_dir:
        config_overrides["data_dir"] = args.data_dir
    if args.debug:
        config_overrides["debug"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    return config_overrides


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args()
    config_overrides = overrides_from_args(args)

    override_keys = [
        k for k in config_overrides if k not in ("token", "log_file")
    ]
    if override_keys:
        print(
            f"Config overrides from CLI: {', '.join(override_keys)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()

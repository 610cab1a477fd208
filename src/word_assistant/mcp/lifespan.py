"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..config import Config, load_config
from ..config_loader import discover_config_files, load_hierarchical_config
from ..config_schema import build_config, yaml_fallbacks
from ..core.client import SyncApiClient
from ..dictionary import DictionaryClient
from ..store import JsonFileKeyValueStore, WordStore
from ..sync import SyncEngine

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Objects shared by every tool handler for the server's lifetime."""

    config: Config
    store: WordStore
    engine: SyncEngine
    dictionary: DictionaryClient


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


def _resolve_config(overrides: dict[str, Any]) -> Config:
    """CLI > env vars (.env loaded first) > YAML config > defaults."""
    load_dotenv()

    fallbacks: dict[str, Any] | None = None
    sources = []
    config_files = discover_config_files()
    if config_files:
        unified = build_config(load_hierarchical_config())
        fallbacks = yaml_fallbacks(unified)
        sources.append(f"config file: {config_files[0]}")

    config = load_config(
        api_url=overrides.get("url"),
        token=overrides.get("token"),
        data_dir=overrides.get("data_dir"),
        debug=overrides.get("debug", False),
        yaml_fallbacks=fallbacks,
    )

    if overrides:
        sources.append("CLI arguments")
    sources.append("environment variables")
    source_desc = ", ".join(sources)
    logger.info("Configuration loaded from: %s", source_desc)
    _stderr_print(f"  Configuration loaded from: {source_desc}")
    return config


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[AppContext]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Resolve configuration (CLI > env/.env > YAML > defaults)
    - Open the local word store under ``config.data_dir``
    - Start the sync engine (periodic loop, store watching) and install
      the configured credential, if any

    Being offline or unauthenticated is not fatal: words stay local and
    sync resumes once the service is reachable with a valid credential.

    On shutdown:
    - Stop the engine, letting an in-flight round finish

    Yields:
        The ``AppContext`` for tool handlers.

    Raises:
        RuntimeError: If the configuration is invalid.
    """
    logger.info("MCP server starting...")
    _stderr_print("Word Assistant MCP Server starting...")

    try:
        config = _resolve_config(config_overrides or {})
    except Exception as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Ensure WORD_ASSISTANT_API_URL is set.")
        raise RuntimeError(
            f"Configuration error: {e}. Ensure WORD_ASSISTANT_API_URL is set."
        ) from e

    store = WordStore(JsonFileKeyValueStore(Path(config.data_dir)))
    _stderr_print(f"  Service URL: {config.api_url}")
    _stderr_print(f"  Local data: {config.data_dir} ({len(store)} words)")

    engine = SyncEngine(
        store,
        SyncApiClient(config),
        debounce_seconds=config.debounce_seconds,
        interval_seconds=config.interval_seconds,
    )
    unwatch = engine.watch_store()
    engine.start()

    if config.token and config.token != store.token:
        user = await engine.load_credential(config.token)
        if user is not None:
            _stderr_print(f"  Signed in as {user.email or user.id}")
        else:
            _stderr_print("  Credential not confirmed; working offline.")
    elif not store.token:
        _stderr_print("  No credential; words stay on this device.")

    _stderr_print("Server ready. Waiting for MCP client connection...")

    try:
        yield AppContext(
            config=config,
            store=store,
            engine=engine,
            dictionary=DictionaryClient(timeout=config.read_timeout),
        )
    finally:
        logger.info("MCP server shutting down")
        unwatch()
        await engine.stop()
        _stderr_print("Word Assistant MCP Server shutting down.")

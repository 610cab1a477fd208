"""MCP tool handlers for synchronisation with the remote word service.

Defines two tools:

- ``sync_now`` -- run a full sync immediately, falling back to pulling
  the service's whole collection when the sync round fails.
- ``sync_status`` -- engine status, cursor, word count, credential.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import mcp.types as types

from ...models import SyncStatus
from .errors import build_error_response, format_timestamp, text_result
from .registry import ToolSpec

if TYPE_CHECKING:
    from ..lifespan import AppContext

logger = logging.getLogger(__name__)


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="sync_now",
        description=(
            "Synchronise the whole local collection with the word service "
            "now. Progress is merged field by field, never lost. If the "
            "sync round fails, the service's collection is still pulled in."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="sync_status",
        description=(
            "Show sync state: status, last successful sync, number of "
            "local words and whether a credential is present."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
]


def _status_payload(ctx: AppContext) -> dict[str, Any]:
    cursor = ctx.store.last_synced_at
    return {
        "status": ctx.engine.status.value,
        "last_synced_at": cursor.isoformat() if cursor else None,
        "words": len(ctx.store),
        "has_credential": bool(ctx.store.token),
        "online": ctx.engine.is_online,
    }


async def _handle_sync_now(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    if not ctx.store.token:
        return build_error_response(
            "auth_error",
            "No credential available; nothing can be synced.",
            "Set WORD_ASSISTANT_TOKEN (or pass --token) and restart.",
        )
    if ctx.engine.in_flight:
        return text_result(
            "A sync is already in progress; try sync_status shortly.",
            _status_payload(ctx),
        )

    ok = await ctx.engine.full_sync()
    payload = _status_payload(ctx)
    if ok:
        return text_result(
            f"Sync complete: {payload['words']} words, last synced "
            f"{format_timestamp(ctx.store.last_synced_at)}.",
            payload,
        )
    if ctx.engine.status == SyncStatus.OFFLINE:
        return build_error_response(
            "offline",
            "Device is offline; changes stay local.",
            "Retry once connectivity is back.",
        )
    if not ctx.store.token:
        return build_error_response(
            "auth_error",
            "The credential was rejected and has been cleared.",
            "Supply a new credential (WORD_ASSISTANT_TOKEN or --token).",
        )
    logger.warning("Sync round failed; fetching the full collection")
    if await ctx.engine.fetch_all():
        return build_error_response(
            "server_error",
            "Sync failed; merged the service's collection instead "
            f"({len(ctx.store)} words). Local changes were not sent.",
            "Retry sync_now later to send them.",
        )
    return build_error_response(
        "server_error",
        "Sync failed; local data is unchanged.",
        "Check the server log and retry later.",
    )


async def _handle_sync_status(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    payload = _status_payload(ctx)
    lines = [
        f"Status:      {payload['status']}",
        f"Last sync:   {format_timestamp(ctx.store.last_synced_at)}",
        f"Words:       {payload['words']}",
        f"Credential:  {'yes' if payload['has_credential'] else 'no'}",
        f"Online:      {'yes' if payload['online'] else 'no'}",
    ]
    return text_result("\n".join(lines), payload)


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(tool=SYNC_TOOLS[0], handler=_handle_sync_now),
    ToolSpec(tool=SYNC_TOOLS[1], handler=_handle_sync_status),
]

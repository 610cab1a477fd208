"""ToolSpec and ToolRegistry.

- ToolSpec: Immutable dataclass linking a Tool definition to an async
  handler with the standardized signature (ctx, args) -> CallToolResult.
- ToolRegistry: Provides list_tools() and call_tool() dispatch, and
  translates the domain exceptions raised by handlers into structured
  error responses.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import mcp.types as types

from ...exceptions import (
    AuthenticationError,
    DictionaryError,
    SyncApiError,
    WordNotFoundError,
)
from .errors import build_error_response

if TYPE_CHECKING:
    from ..lifespan import AppContext

logger = logging.getLogger(__name__)

Handler = Callable[["AppContext", dict], Awaitable[types.CallToolResult]]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable pairing of an MCP tool and its handler.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        handler: Async handler with signature (ctx, args) -> CallToolResult.
    """

    tool: types.Tool
    handler: Handler


class ToolRegistry:
    def __init__(self, specs: list[ToolSpec]):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if spec.tool.name in self._specs:
                raise ValueError(f"Duplicate tool name: {spec.tool.name}")
            self._specs[spec.tool.name] = spec

    def list_tools(self) -> list[types.Tool]:
        """Return the Tool definitions of all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        ctx: AppContext,
    ) -> types.CallToolResult:
        """Dispatch a tool call to its handler.

        Raises:
            ValueError: If tool name is not registered.
        """
        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(ctx, args)
        except WordNotFoundError as e:
            return build_error_response(
                "not_found", str(e), "Check the spelling and retry."
            )
        except KeyError as e:
            return build_error_response(
                "not_found",
                e.args[0] if e.args else str(e),
                "Use vocab_stats or review_due to see the collection.",
            )
        except AuthenticationError as e:
            return build_error_response(
                "auth_error",
                str(e),
                "Supply a new credential (WORD_ASSISTANT_TOKEN or --token).",
            )
        except (SyncApiError, DictionaryError) as e:
            logger.warning("Service error in %s: %s", name, e)
            return build_error_response(
                "server_error",
                str(e),
                "Check network connectivity and retry later.",
            )
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error", str(e), "Retry later."
            )

"""MCP tool handlers for the word assistant.

Each module defines its ``types.Tool`` list and the matching ``ToolSpec``
list; handlers receive the server's ``AppContext``.
"""

from .errors import build_error_response
from .registry import ToolRegistry, ToolSpec
from .sync import SYNC_SPECS, SYNC_TOOLS
from .vocabulary import VOCABULARY_SPECS, VOCABULARY_TOOLS

ALL_SPECS: list[ToolSpec] = VOCABULARY_SPECS + SYNC_SPECS

__all__ = [
    "build_error_response",
    # Registry
    "ToolSpec",
    "ToolRegistry",
    # ToolSpec lists
    "ALL_SPECS",
    "SYNC_SPECS",
    "VOCABULARY_SPECS",
    # Tool lists
    "SYNC_TOOLS",
    "VOCABULARY_TOOLS",
]

"""HTTP transport for the remote word service, shared by the sync engine and the MCP server."""

from .async_utils import run_sync
from .client import SyncApiClient

__all__ = ["SyncApiClient", "run_sync"]

"""stdio MCP server exposing the word collection, reviews and sync to agents."""

"""Tests for tool registration, routing and CLI parsing in the MCP server.

Verifies:
- All tools appear in handle_list_tools
- Tool calls route through the ToolRegistry with the global context
- Unknown tools and a missing context are reported
- CLI arguments map to config overrides
- The YAML logging section is read before logging starts

Note: Handler behavior is tested in tests/test_mcp/tools/ -- this file
only covers the server layer.
"""

from unittest.mock import MagicMock, patch

import pytest
import yaml

from word_assistant.config_schema import LoggingConfig
from word_assistant.mcp.server import (
    _yaml_logging_config,
    build_parser,
    get_context,
    handle_call_tool,
    handle_list_tools,
    overrides_from_args,
    set_context,
    set_registry,
)
from word_assistant.mcp.tools import ALL_SPECS
from word_assistant.mcp.tools.registry import ToolRegistry


@pytest.fixture
def server_state(memory_store):
    """Install a registry and a context for the duration of a test."""
    ctx = MagicMock()
    ctx.store = memory_store
    set_registry(ToolRegistry(ALL_SPECS))
    set_context(ctx)
    yield ctx
    set_context(None)
    set_registry(None)


# ---------------------------------------------------------------------------
# Registration and routing
# ---------------------------------------------------------------------------


class TestToolRouting:
    async def test_all_tools_listed(self, server_state):
        tools = await handle_list_tools()
        assert len(tools) == len(ALL_SPECS)
        assert "word_add" in {t.name for t in tools}
        assert "sync_now" in {t.name for t in tools}

    async def test_call_routes_to_handler(self, server_state):
        server_state.engine.status.value = "idle"
        server_state.engine.is_online = True

        result = await handle_call_tool("sync_status", {})

        assert not result.isError
        assert result.structuredContent["words"] == 0
        assert result.structuredContent["status"] == "idle"

    async def test_unknown_tool(self, server_state):
        result = await handle_call_tool("does_not_exist", {})
        assert result.isError
        assert "Error (unknown_tool)" in result.content[0].text

    def test_context_required(self):
        set_context(None)
        with pytest.raises(RuntimeError, match="AppContext not initialized"):
            get_context()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestCli:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert overrides_from_args(args) == {}

    def test_all_flags(self):
        args = build_parser().parse_args(
            [
                "--api-url",
                "https://words.example.com/api",
                "--token",
                "abc",
                "--data-dir",
                "/tmp/words",
                "--debug",
                "--log-file",
                "/tmp/wa.log",
            ]
        )
        assert overrides_from_args(args) == {
            "url": "https://words.example.com/api",
            "token": "abc",
            "data_dir": "/tmp/words",
            "debug": True,
            "log_file": "/tmp/wa.log",
        }

    def test_version_flag_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "word-assistant-mcp version" in capsys.readouterr().out


class TestYamlLoggingConfig:
    def test_reads_logging_section(self):
        with patch(
            "word_assistant.mcp.server.load_hierarchical_config",
            return_value={"logging": {"level": "ERROR", "file": "/tmp/wa.log"}},
        ):
            config = _yaml_logging_config()
        assert config == LoggingConfig(level="ERROR", file="/tmp/wa.log")

    def test_broken_yaml_falls_back_to_defaults(self):
        with patch(
            "word_assistant.mcp.server.load_hierarchical_config",
            side_effect=yaml.YAMLError("bad"),
        ):
            assert _yaml_logging_config() == LoggingConfig()

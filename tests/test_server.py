"""
Tests for server setup, configuration and logging.
"""

import argparse
from unittest import mock

import pytest
from fastmcp import Client

from live_notebook_mcp import server
from live_notebook_mcp.core import branding
from live_notebook_mcp.core.config import ServerConfig
from live_notebook_mcp.core.logging import LOG_FILE_NAME, setup_logging
from live_notebook_mcp.tools import TOOL_NAMES


def _args(tmp_path, **overrides):
    values = dict(
        command="start",
        allow_root_dirs=[str(tmp_path)],
        log_dir=str(tmp_path / "logs"),
        log_level="INFO",
        max_output_size=2000,
        timeout_seconds=30,
        server_url="http://localhost:8888/",
        token=None,
        live=False,
        notebook=None,
        transport="stdio",
        host="127.0.0.1",
        port=8889,
        path="/mcp",
    )
    values.update(overrides)
    return argparse.Namespace(**values)


# --- ServerConfig Tests ---


def test_server_config_defaults():
    config = ServerConfig()
    assert config.max_output_size == 2000
    assert config.timeout_seconds == 30
    assert config.allow_root_dirs == []


def test_server_config_valid(tmp_path):
    config = ServerConfig(_args(tmp_path, max_output_size=500, timeout_seconds=12))
    assert config.server_url == "http://localhost:8888"
    settings = config.execution_settings()
    assert settings.max_output_size == 500
    assert settings.timeout_seconds == 12


def test_server_config_allow_root_not_absolute(tmp_path):
    with pytest.raises(ValueError, match="--allow-root must be an absolute path"):
        ServerConfig(_args(tmp_path, allow_root_dirs=["relative/path"]))


def test_server_config_allow_root_not_dir(tmp_path):
    with pytest.raises(ValueError, match="--allow-root directory does not exist"):
        ServerConfig(_args(tmp_path, allow_root_dirs=[str(tmp_path / "missing")]))


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"max_output_size": 0}, "--max-output-size must be positive"),
        ({"timeout_seconds": -1}, "--timeout-seconds must be positive"),
        ({"live": True, "server_url": ""}, "--live requires --server-url"),
        ({"notebook": "relative.ipynb"}, "--notebook must be an absolute path"),
        ({"transport": "sse", "port": 0}, "Port must be between 1 and 65535"),
        ({"transport": "sse", "path": "mcp"}, "Path must start with /"),
    ],
)
def test_server_config_invalid_values(tmp_path, overrides, message):
    with pytest.raises(ValueError, match=message):
        ServerConfig(_args(tmp_path, **overrides))


def test_get_run_kwargs(tmp_path):
    assert ServerConfig(_args(tmp_path)).get_run_kwargs() == {"transport": "stdio"}

    http_config = ServerConfig(_args(tmp_path, transport="streamable-http", log_level="DEBUG"))
    assert http_config.get_run_kwargs() == {
        "transport": "streamable-http",
        "host": "127.0.0.1",
        "port": 8889,
        "path": "/mcp",
        "log_level": "debug",
    }


# --- Server setup Tests ---


@pytest.mark.asyncio
async def test_setup_mcp_server_registers_all_tools(server_config):
    mcp_server = server.setup_mcp_server(server_config)

    async with Client(mcp_server) as client:
        tools = await client.list_tools()

    assert sorted(tool.name for tool in tools) == sorted(TOOL_NAMES)
    insert_tool = next(tool for tool in tools if tool.name == "insert_notebook_cells")
    assert "cells" in insert_tool.inputSchema["properties"]
    assert insert_tool.inputSchema["required"] == ["cells"]


def test_startup_message_lists_limits_and_roots(server_config):
    message = branding.get_server_startup_message(server_config)
    assert "Max output size: 2000 chars" in message
    assert "Execution timeout: 5 s" in message
    assert server_config.allow_root_dirs[0] in message


def test_main_version_command(capsys):
    with mock.patch.object(server, "parse_arguments", return_value=argparse.Namespace(command="version")):
        with pytest.raises(SystemExit) as exc_info:
            server.main()
    assert exc_info.value.code == 0
    assert "live_notebook_mcp.server" in capsys.readouterr().out


def test_main_configuration_error_exits(tmp_path):
    bad_args = _args(tmp_path, allow_root_dirs=["relative"])
    with mock.patch.object(server, "parse_arguments", return_value=bad_args):
        with pytest.raises(SystemExit) as exc_info:
            server.main()
    assert exc_info.value.code == 1


# --- setup_logging Tests ---


def test_setup_logging_creates_log_file(tmp_path):
    log_dir = tmp_path / "logs"
    setup_logging(str(log_dir), "debug")
    assert log_dir.is_dir()
    assert LOG_FILE_NAME == "server.log"
    assert (log_dir / "server.log").exists()


@mock.patch("os.makedirs", side_effect=OSError("Permission denied to create dir"))
def test_setup_logging_makedirs_error(mock_makedirs, tmp_path):
    log_dir = str(tmp_path / "unwritable_logs")
    setup_logging(log_dir, "INFO")
    mock_makedirs.assert_called_once_with(log_dir, exist_ok=True)

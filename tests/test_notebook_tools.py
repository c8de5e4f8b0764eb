"""
Tests for the MCP tool layer: argument passing, success results and error flagging.
"""

import pytest
from fastmcp.exceptions import ToolError

from live_notebook_mcp.core.config import ServerConfig
from live_notebook_mcp.tools import CellInput, NotebookToolsProvider


@pytest.fixture
def tools(server_config: ServerConfig, service) -> NotebookToolsProvider:
    return NotebookToolsProvider(server_config, service)


@pytest.mark.asyncio
async def test_tools_without_open_notebook_raise_tool_error(tools):
    with pytest.raises(ToolError, match="Error getting notebook info: No active notebook"):
        await tools.get_notebook_info()


@pytest.mark.asyncio
async def test_open_and_insert(tools, make_notebook, engine):
    path = make_notebook([("code", "a")])
    assert "Cells: 1" in await tools.open_notebook(path)

    text = await tools.insert_notebook_cells(cells=[CellInput(content="b", cell_type="code")])

    assert engine.executed == ["b"]
    assert "Notebook now has 2 cells." in text
    assert "Cell 1 (code): succeeded" in text


@pytest.mark.asyncio
async def test_range_error_is_flagged(tools, make_notebook):
    await tools.open_notebook(make_notebook([("code", "a"), ("code", "b")]))

    with pytest.raises(ToolError, match="Error deleting cells: End index 1 is invalid"):
        await tools.delete_notebook_cells(start_index=1, end_index=1)


@pytest.mark.asyncio
async def test_invalid_cells_are_flagged(tools, make_notebook):
    await tools.open_notebook(make_notebook([("code", "a")]))

    with pytest.raises(ToolError, match="Error inserting cells: Missing required parameter: cells array"):
        await tools.insert_notebook_cells(cells=None)


@pytest.mark.asyncio
async def test_failed_cell_is_a_normal_result(tools, make_notebook, engine):
    from live_notebook_mcp.documents import EngineResult

    from conftest import error_output

    await tools.open_notebook(make_notebook([("code", "1/0")]))
    engine.results["1/0"] = EngineResult(outputs=[error_output("ZeroDivisionError", "division by zero")], status="error")

    text = await tools.execute_notebook_cells(start_index=0, end_index=1)
    assert "Cell 0 (code): failed" in text
    assert "ZeroDivisionError: division by zero" in text


@pytest.mark.asyncio
async def test_timeout_is_flagged_with_applied_edit(tools, make_notebook, engine, server_config):
    server_config.timeout_seconds = 0.1
    await tools.open_notebook(make_notebook([("code", "a")]))
    engine.gate("slow")

    with pytest.raises(ToolError) as exc_info:
        await tools.modify_notebook_cell_content(cell_index=0, content="slow")

    message = str(exc_info.value)
    assert message.startswith("Error modifying cell content: Updated content of cell 0 (code).")
    assert "Execution timed out" in message


@pytest.mark.asyncio
async def test_unexpected_errors_are_flagged(tools, make_notebook, monkeypatch):
    await tools.open_notebook(make_notebook([("code", "a")]))

    async def broken_save():
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(tools.service, "save_notebook", broken_save)
    with pytest.raises(ToolError, match="Error saving notebook: disk on fire"):
        await tools.save_notebook()


@pytest.mark.asyncio
async def test_replace_and_get_cells(tools, make_notebook):
    await tools.open_notebook(make_notebook([("code", "a"), ("code", "b")]))
    await tools.replace_notebook_cells(
        start_index=0, end_index=2, cells=[CellInput(content="# Only", cell_type="markdown")], noexec=True
    )

    text = await tools.get_notebook_cells()
    assert text.startswith("Notebook has 1 cell.")
    assert "Cell 0 (markdown):\n# Only" in text


@pytest.mark.asyncio
async def test_save_notebook(tools, make_notebook):
    path = make_notebook([("code", "a")])
    await tools.open_notebook(path)
    assert (await tools.save_notebook()).startswith("Notebook saved successfully:")

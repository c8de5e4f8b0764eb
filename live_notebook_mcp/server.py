"""
Server entry point logic within the package.

Handles argument parsing, configuration, logging setup,
and launching the appropriate transport.
"""

import sys
from typing import Optional

from fastmcp import FastMCP
from loguru import logger

from .core.config import ServerConfig
from .core import branding
from .core.service import NotebookService
from .documents import DocumentManager
from .tools import TOOL_NAMES, NotebookToolsProvider
from .cli import parse_arguments
from .core.logging import setup_logging

SERVER_INSTRUCTIONS = """Edits and runs cells of one active Jupyter notebook.
Open a notebook with open_notebook (unless the server was started with --notebook).
Cell indices are 0-based and ranges are half-open: end_index must be greater than start_index.
Inserted, replaced and modified code cells are executed unless noexec is true.
Changes are kept in memory until save_notebook is called."""


def setup_mcp_server(config: ServerConfig, service: Optional[NotebookService] = None) -> FastMCP:
    """Initializes the FastMCP server and registers the notebook tools.

    Args:
        config: The server configuration object.
        service: The notebook service the tools call into. A new one with its own
            ``DocumentManager`` is created when omitted.

    Returns:
        The configured FastMCP server instance.
    """
    logger.debug("Initializing FastMCP server...")
    mcp_server = FastMCP("live_notebook_mcp", instructions=SERVER_INSTRUCTIONS)

    if service is None:
        service = NotebookService(DocumentManager(config))
    provider = NotebookToolsProvider(config, service)

    logger.debug("Registering tools with FastMCP...")
    registered_count = 0
    for name in TOOL_NAMES:
        try:
            mcp_server.tool(name=name)(getattr(provider, name))
            registered_count += 1
        except Exception as e:
            logger.error(f"Failed to register tool {name}: {e}", exc_info=True)

    if registered_count == 0:
        logger.warning("No tools were registered. Check provider methods and registration logic.")
    else:
        logger.debug(f"Successfully registered {registered_count} tools.")

    return mcp_server


def main():
    """Main entry point for the server."""

    logger.remove()
    logger.add(sys.stderr, level="INFO", format="{message}")

    args = parse_arguments()

    if args.command == "version":
        print(f"live_notebook_mcp.server {ServerConfig().version}")
        sys.exit(0)
    elif args.command == "help" and getattr(args, "help_cmd_show_version", False):
        print(f"live_notebook_mcp.server {ServerConfig().version}")
        sys.exit(0)

    try:
        config = ServerConfig(args=args)

        setup_logging(config.log_dir, config.log_level)

    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.opt(exception=True).critical(f"Unexpected error during argument parsing or config initialization: {e}")
        sys.exit(1)

    startup_message = branding.get_server_startup_message(config)
    logger.bind(literal=True).opt(colors=True).info(startup_message)

    try:
        mcp_server = setup_mcp_server(config)
        logger.debug(f"Starting server with {config.transport.upper()} transport.")
        mcp_server.run(**config.get_run_kwargs())

    except KeyboardInterrupt:
        logger.info("Server shutting down due to KeyboardInterrupt (Ctrl+C).")
        sys.exit(0)
    except Exception as e:
        logger.opt(exception=True).critical(f"Critical unexpected error in server execution: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

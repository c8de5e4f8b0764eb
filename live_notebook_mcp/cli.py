import argparse
import os
import sys
from typing import List, Optional

from .core.config import DEFAULT_MAX_OUTPUT_SIZE, DEFAULT_TIMEOUT_SECONDS, ServerConfig

DEFAULT_LOG_DIR = os.path.expanduser("~/.live-notebook-mcp")
DEFAULT_LOG_LEVEL_STR = "INFO"


def case_insensitive_log_level(value: str) -> str:
    """Convert input log level to uppercase for case-insensitive comparison."""
    return value.upper()


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for the Live Notebook MCP Server.

    This function sets up the argument parser with subcommands (start, version, help),
    defines all available arguments, and handles special cases like the help command.

    For the 'start' command, it defines arguments for allowed root directories,
    the Jupyter server to execute on, output and timeout limits, logging
    configuration, and network transport settings.

    Returns:
        An argparse.Namespace object containing the parsed command-line arguments.
        If no command is provided or help is requested, the function may exit the process
        after printing appropriate help text.
    """
    parser = argparse.ArgumentParser(
        description="Live Notebook MCP Server: edit and execute Jupyter notebook cells.",
    )

    _version_str = ServerConfig().version
    parser.version = f"%(prog)s {_version_str}"

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        help="Show program's version number and exit.",
    )

    subparsers = parser.add_subparsers(
        title="Commands",
        dest="command",
        help="Run 'python -m live_notebook_mcp.server <command> --help' for more information on a command.",
    )

    # --- Start command ---
    start_parser = subparsers.add_parser(
        "start",
        help="Start the Live Notebook MCP server.",
        description="Run the Live Notebook MCP server with the specified configurations.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    start_parser.add_argument(
        "--allow-root",
        dest="allow_root_dirs",
        action="append",
        required=True,
        metavar="DIR_PATH",
        help="Absolute path to a directory where notebooks are allowed. Can be used multiple times. This is required.",
    )
    start_parser.add_argument(
        "--log-dir",
        type=str,
        default=DEFAULT_LOG_DIR,
        metavar="PATH",
        help="Directory to store log files.",
    )
    start_parser.add_argument(
        "--log-level",
        type=case_insensitive_log_level,
        default=DEFAULT_LOG_LEVEL_STR,
        choices=["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"],
        help="Set the console logging level (case-insensitive).",
    )
    start_parser.add_argument(
        "--max-output-size",
        type=int,
        default=DEFAULT_MAX_OUTPUT_SIZE,
        metavar="CHARS",
        help="Maximum characters returned for each cell output; longer outputs are truncated.",
    )
    start_parser.add_argument(
        "--timeout-seconds",
        type=float,
        default=DEFAULT_TIMEOUT_SECONDS,
        metavar="SECONDS",
        help="Maximum time to wait for a range of cells to finish executing.",
    )
    start_parser.add_argument(
        "--server-url",
        type=str,
        default="http://localhost:8888",
        metavar="URL",
        help="Jupyter server that runs the kernel (and hosts the notebook in --live mode).",
    )
    start_parser.add_argument(
        "--token",
        type=str,
        default=None,
        help="Jupyter server token.",
    )
    start_parser.add_argument(
        "--live",
        action="store_true",
        help="Edit notebooks through the Jupyter server's collaboration room instead of the .ipynb file.",
    )
    start_parser.add_argument(
        "--notebook",
        type=str,
        default=None,
        metavar="NOTEBOOK_PATH",
        help="Absolute path of a notebook to open when the first tool is called.",
    )
    start_parser.add_argument(
        "--transport",
        type=str,
        default="stdio",
        choices=["stdio", "streamable-http", "sse"],
        help="Transport protocol to use for server communication.",
    )
    start_parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        metavar="IP_ADDR",
        help="Host to bind the server to (used for HTTP-based transports).",
    )
    start_parser.add_argument(
        "--port",
        type=int,
        default=8889,
        metavar="PORT_NUM",
        help="Port to bind the server to (used for HTTP-based transports).",
    )
    start_parser.add_argument(
        "--path",
        type=str,
        default="/mcp",
        metavar="URL_PATH",
        help="URL path for the MCP endpoint (used for HTTP-based transports).",
    )
    start_parser.set_defaults(command="start")

    version_parser = subparsers.add_parser("version", help="Show program's version number and exit.")
    version_parser.set_defaults(command="version")

    help_parser = subparsers.add_parser(
        "help",
        help="Show help for a command, or the program version.",
        description="Shows help for another command, or the program version with --version.",
    )
    help_parser.add_argument(
        "cmd_to_help",
        nargs="?",
        metavar="COMMAND_NAME",
        default=None,
        help="Command to show help for (start, version, help).",
    )
    help_parser.add_argument(
        "--version",
        dest="help_cmd_show_version",
        action="store_true",
        help="Show program's version number and exit.",
    )
    help_parser.set_defaults(command="help")

    parsed_args = parser.parse_args(argv)

    if parsed_args.command is None:
        parser.print_help()
        sys.exit(0)

    if parsed_args.command == "help" and not parsed_args.help_cmd_show_version:
        _print_command_help(parser, subparsers.choices, parsed_args.cmd_to_help)

    # 'help --version' is printed by server.main
    return parsed_args


def _print_command_help(parser: argparse.ArgumentParser, commands: dict, command: Optional[str]) -> None:
    """Prints help for ``command`` (or the whole program) and exits."""
    if command is None:
        parser.print_help()
        sys.exit(0)

    if command not in commands:
        print(f"Error: Unknown command '{command}' for help.\n", file=sys.stderr)
        parser.print_help(sys.stderr)
        sys.exit(1)

    commands[command].print_help()
    sys.exit(0)

"""Configuration handling for the server."""

import os
from dataclasses import dataclass
from typing import Optional
import argparse

from .. import __version__

DEFAULT_MAX_OUTPUT_SIZE = 2000
DEFAULT_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class ExecutionSettings:
    """Per-call limits passed explicitly into every notebook operation.

    Attributes:
        max_output_size: Character cap for each rendered output.
        timeout_seconds: Wall-clock budget for waiting on a whole execution range.
    """

    max_output_size: int = DEFAULT_MAX_OUTPUT_SIZE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


class ServerConfig:
    """
    Server configuration class that validates and stores configuration parameters.

    Attributes:
        version (str): Server version string.
        allow_root_dirs (List[str]): Directories notebooks may be opened from.
        max_output_size (int): Maximum characters returned per cell output.
        timeout_seconds (int): Maximum seconds to wait for an execution range.
        server_url (str): Jupyter server hosting the kernel (and the live notebook in live mode).
        token (str): Jupyter server token.
        live (bool): Edit notebooks through the server's collaboration room instead of the file.
        notebook (str): Notebook to open at startup.
        log_dir (str): Directory for log files.
        log_level (str): Logging level string.
        transport (str): Transport protocol to use (stdio, streamable-http, sse).
        host (str): Host to bind to (default: 0.0.0.0), used for HTTP transports.
        port (int): Port to bind to (default: 8889), used for HTTP transports.
        path (str): URL path for MCP endpoint, used for HTTP transports.
        command (str): Command for the server.
    """

    VALID_TRANSPORTS = ["stdio", "streamable-http", "sse"]

    def __init__(self, args: Optional[argparse.Namespace] = None):
        """
        Initialize configuration from command-line arguments or defaults.

        Args:
            args: Parsed command-line arguments. If None, only defaults are set and no validation is performed.
        """

        self.command = None
        self.version = __version__.__version__
        self.allow_root_dirs = []
        self.max_output_size = DEFAULT_MAX_OUTPUT_SIZE
        self.timeout_seconds = DEFAULT_TIMEOUT_SECONDS
        self.server_url = "http://localhost:8888"
        self.token = None
        self.live = False
        self.notebook = None
        self.log_dir = os.path.expanduser("~/.live-notebook-mcp")
        self.log_level = "INFO"
        self.transport = "stdio"
        self.host = "0.0.0.0"
        self.port = 8889
        self.path = "/mcp"

        if args:
            if hasattr(args, "command"):
                self.command = args.command
            self._apply_args(args)
            self._validate()

    def _apply_args(self, args: argparse.Namespace):
        """
        Apply parsed command-line arguments to the configuration.

        Args:
            args: Parsed command-line arguments.
        """

        for name in (
            "allow_root_dirs",
            "max_output_size",
            "timeout_seconds",
            "server_url",
            "token",
            "live",
            "notebook",
            "log_dir",
            "log_level",
            "transport",
            "host",
            "port",
            "path",
        ):
            if hasattr(args, name):
                setattr(self, name, getattr(args, name))

        if self.server_url:
            self.server_url = self.server_url.rstrip("/")

    def _validate(self):
        """
        Validate configuration values.

        Raises:
            ValueError: If any configuration values are invalid.
        """

        if self.command == "start" and not self.allow_root_dirs:
            raise ValueError("At least one --allow-root must be specified for the 'start' command")

        for dir_path in self.allow_root_dirs or []:
            if not os.path.isabs(dir_path):
                raise ValueError(f"--allow-root must be an absolute path: {dir_path}")

            if not os.path.isdir(dir_path):
                raise ValueError(f"--allow-root directory does not exist: {dir_path}")

        if self.max_output_size <= 0:
            raise ValueError(f"--max-output-size must be positive: {self.max_output_size}")

        if self.timeout_seconds <= 0:
            raise ValueError(f"--timeout-seconds must be positive: {self.timeout_seconds}")

        if self.live and not self.server_url:
            raise ValueError("--live requires --server-url")

        if self.notebook and not os.path.isabs(self.notebook):
            raise ValueError(f"--notebook must be an absolute path: {self.notebook}")

        if self.transport not in self.VALID_TRANSPORTS:
            raise ValueError(f"Invalid transport: {self.transport}. Must be one of {', '.join(self.VALID_TRANSPORTS)}")

        if self.transport in ["streamable-http", "sse"]:
            if not 1 <= self.port <= 65535:
                raise ValueError(f"Port must be between 1 and 65535, got {self.port}")

            if not self.path.startswith("/"):
                raise ValueError(f"Path must start with /, got '{self.path}'")

    def execution_settings(self) -> ExecutionSettings:
        """Snapshot of the limits to pass into a single operation."""
        return ExecutionSettings(max_output_size=self.max_output_size, timeout_seconds=self.timeout_seconds)

    def get_run_kwargs(self) -> dict:
        """
        Get the appropriate kwargs for FastMCP's run() method based on the configured transport.

        Returns:
            A dictionary of kwargs to pass to FastMCP.run().
        """

        if self.transport == "stdio":
            return {"transport": "stdio"}

        return {
            "transport": self.transport,
            "host": self.host,
            "port": self.port,
            "path": self.path,
            "log_level": self.log_level.lower(),
        }

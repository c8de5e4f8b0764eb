"""
Startup banner and connection summary printed when the server starts.

Colors use Loguru markup tags; the message is logged with ``opt(colors=True)``.
"""

from live_notebook_mcp.core.config import ServerConfig

BOX_WIDTH = 57


def get_ascii_banner() -> dict:
    """Returns the "Live Notebook MCP" banner with its display width."""

    blue = "fg #3776AB"
    orange = "fg #e46e2e"
    banner_lines = [
        "",
        f"<{orange}> _    _               </{orange}><{blue}> _  _       _       _              _   </{blue}>",
        f"<{orange}>| |  (_)_ _____       </{orange}><{blue}>| \\| |___ _| |_ ___| |__  ___  ___| |__</{blue}>",
        f"<{orange}>| |__| \\ V / -_)      </{orange}><{blue}>| .` / _ \\_   _/ -_) '_ \\/ _ \\/ _ \\ / /</{blue}>",
        f"<{orange}>|____|_|\\_/\\___|      </{orange}><{blue}>|_|\\_\\___/ |_| \\___|_.__/\\___/\\___/_\\_\\</{blue}>",
    ]

    return {"width": 59, "text": "\n".join(banner_lines)}


def _box_line(text: str, visible_length: int = None) -> str:
    """Pads ``text`` into a box row; ``visible_length`` excludes markup tags."""
    length = len(text) if visible_length is None else visible_length
    return f"│ {text}{' ' * max(BOX_WIDTH - length - 2, 0)} │"


def get_server_startup_message(config: ServerConfig) -> str:
    """
    Builds the startup message: banner, version and a box describing the
    transport, the Jupyter server, the execution limits and the allowed roots.

    Args:
        config: The validated server configuration.
    """

    banner = get_ascii_banner()

    version_str = f"Version {config.version}"
    padding_left = (banner["width"] - len(version_str)) // 2
    centered_version = " " * padding_left + version_str

    if config.transport == "stdio":
        transport_line = _box_line("<green>Server running</green> <dim>stdio</dim>", len("Server running stdio"))
        url_line = None
    else:
        transport_name = "Streamable HTTP" if config.transport == "streamable-http" else "SSE"
        url = f"http://{config.host}:{config.port}{config.path}"
        transport_line = _box_line(
            f"<green>Server running</green> <dim>{transport_name}</dim>", len(f"Server running {transport_name}")
        )
        url_line = _box_line(f"URL: <underline>{url}</underline>", len(f"URL: {url}"))

    mode = "live (collaboration room)" if config.live else "file"
    lines = [
        f"╭{'─' * BOX_WIDTH}╮",
        transport_line,
    ]
    if url_line:
        lines.append(url_line)
    lines += [
        _box_line(f"Jupyter server: {config.server_url}"),
        _box_line(f"Notebook mode: {mode}"),
        _box_line(f"Max output size: {config.max_output_size} chars"),
        _box_line(f"Execution timeout: {config.timeout_seconds} s"),
        _box_line(""),
        _box_line("root directories:"),
    ]
    lines += [_box_line(f" - {dir_path}") for dir_path in config.allow_root_dirs]
    if config.notebook:
        lines.append(_box_line(f"startup notebook: {config.notebook}"))
    lines.append(f"╰{'─' * BOX_WIDTH}╯")

    return f"{banner['text']}\n<magenta>{centered_version}</magenta>\n\n" + "\n".join(lines) + "\n"

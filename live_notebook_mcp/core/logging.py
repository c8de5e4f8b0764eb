import sys
import os
import logging
from loguru import logger

LOG_FILE_NAME = "server.log"

# Chatty at DEBUG: websocket frames, HTTP requests to the Jupyter server.
NOISY_LIBRARIES = ("websockets", "httpx", "httpcore", "pycrdt", "jupyter_ydoc")


class InterceptHandler(logging.Handler):
    """
    Redirects standard logging messages to Loguru.

    FastMCP and the Jupyter clients log through the standard `logging`
    module; this handler re-emits their records through Loguru so they end up
    in the same console and file sinks, attributed to their original caller.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def log_formatter(record: dict) -> str:
    """
    Loguru formatter for console output.

    Banner messages (bound with ``literal=True``) are printed as-is, tool
    successes (``tool_success=True``) are shown in green, INFO is kept
    concise, and everything else carries its origin.
    """
    if record["extra"].get("literal"):
        return "{message}"

    if record["extra"].get("tool_success"):
        return "<level>{level: <7}</level> <dim>|</dim> <green>{message}</green>\n"

    if record["level"].name == "INFO":
        return "<level>{level: <7}</level> <dim>|</dim> {message}\n"

    message_color = "white"

    if record["level"].name in ("ERROR", "CRITICAL"):
        message_color = "red"
    elif record["level"].name == "WARNING":
        message_color = "yellow"

    return (
        "<level>{level: <7}</level> <dim>|</dim> "
        "<light-green>{name}:{line} ({function})</light-green> - "
        f"<{message_color}>{{message}}</{message_color}>\n{{exception}}"
    )


def setup_logging(log_dir_path: str, log_level_str: str) -> None:
    """
    Configures Loguru handlers for console and file logging.

    The console sink writes to stderr (stdout carries the MCP stdio
    transport) at ``log_level_str``. When ``log_dir_path`` is set, a DEBUG file
    sink is added there with rotation and retention. Standard `logging` is
    routed through Loguru, with the noisiest client libraries capped at
    WARNING unless the console level is DEBUG or TRACE.

    Args:
        log_dir_path: Directory for the log file. If empty or None, file logging is disabled.
        log_level_str: Console logging level (e.g., "INFO", "DEBUG"). Case-insensitive.
    """
    logger.remove()

    console_log_level = log_level_str.upper()
    is_debug_or_trace = console_log_level in ["DEBUG", "TRACE"]

    logger.add(
        sys.stderr,
        level=console_log_level,
        format=log_formatter,
        colorize=True,
        backtrace=True,
        diagnose=is_debug_or_trace,
    )

    if log_dir_path:
        try:
            os.makedirs(log_dir_path, exist_ok=True)
            log_file_path = os.path.join(log_dir_path, LOG_FILE_NAME)
            logger.add(
                log_file_path,
                level="DEBUG",
                format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | {process.id} | {name}:{function}:{line} | {message}",
                rotation="10 MB",
                retention="7 days",
                enqueue=True,
                encoding="utf-8",
                backtrace=True,
                diagnose=True,
            )

            logger.debug(f"File logging enabled: {log_file_path}")
        except OSError as e:
            logger.error(f"Could not create log directory or file {log_dir_path}: {e}. File logging disabled.")
    else:
        logger.warning("No log directory specified. File logging disabled.")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    if not is_debug_or_trace:
        for name in NOISY_LIBRARIES:
            logging.getLogger(name).setLevel(logging.WARNING)
    logger.debug(f"Logging initialized. Console level: {console_log_level}. Intercepting standard logging.")

"""Logging setup for the CLI and the MCP server."""

import logging
import os

from rich.console import Console

from context_continue.config import LOG_LEVEL_ENV

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_logging(level: str | None = None, use_rich: bool = False) -> None:
    """Configure root logging. Call once at startup.

    Output always goes to stderr: the MCP stdio transport owns stdout.

    Args:
        level: Log level name. If None, uses CONTEXT_CONTINUE_LOG_LEVEL or INFO.
        use_rich: Use a Rich handler (server mode).
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    level = level.upper()
    if level not in LEVELS:
        level = "INFO"

    if use_rich:
        from rich.logging import RichHandler

        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=False,
            show_path=False,
            show_time=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s | %(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    logging.basicConfig(level=getattr(logging, level), handlers=[handler], force=True)

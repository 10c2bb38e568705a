# Logging and console output for toolchat, shared by the CLI, the API and the core loop.
# Date: 2025-10-02
# Version: 0.2.0

import logging
import os
from typing import Any, Iterable, Tuple

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

LOGGER_NAME = "toolchat"

# Custom logging level for success messages, between INFO and WARNING
SUCCESS_LEVEL_NUM = 25

logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")


def success_log(self, message, *args, **kwargs):
    if self.isEnabledFor(SUCCESS_LEVEL_NUM):
        self._log(SUCCESS_LEVEL_NUM, message, args, **kwargs)


if not hasattr(logging.Logger, "success"):
    setattr(logging.Logger, "success", success_log)


class ConsoleManager:
    """
    Singleton wrapper around a Rich console and the project logger.

    Log records go through a RichHandler on the same console that the CLI
    prints answers to, so log lines and conversation output never interleave
    mid-line.
    """

    def __init__(self):
        custom_theme = Theme({
            "logging.level.success": "bold green"
        })
        self._console = Console(theme=custom_theme)
        self._logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger(LOGGER_NAME)
        if logger.hasHandlers():
            return logger

        logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
        handler = RichHandler(
            console=self._console,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            keywords=["INFO", "SUCCESS", "WARNING", "ERROR", "DEBUG", "CRITICAL"],
            show_path=False
        )
        handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        return logger

    def set_level(self, level: str):
        self._logger.setLevel(level.upper())

    def debug(self, message: str):
        self._logger.debug(message)

    def info(self, message: str):
        self._logger.info(message)

    def success(self, message: str):
        self._logger.success(message)

    def warning(self, message: str):
        self._logger.warning(message)

    def error(self, message: str):
        self._logger.error(message)

    def exception(self, message: str):
        self._logger.exception(message)

    # Higher-level console helpers used by the CLI
    def rule(self, title: str, style: str = "cyan"):
        self._console.rule(f"[bold {style}]{title}[/bold {style}]", style=style)

    def print(self, *objects: Any, **kwargs):
        self._console.print(*objects, **kwargs)

    def print_markdown(self, text: str, title: str = "Assistant"):
        self._console.print(Panel(Markdown(text), title=f"[bold cyan]{title}[/bold cyan]", border_style="cyan"))

    def input(self, prompt: str) -> str:
        return self._console.input(prompt)

    def display_data_as_table(self, rows: Iterable[Tuple[str, Any]], title: str):
        table = Table(show_header=True, header_style="bold magenta", box=None, show_edge=False)
        table.add_column("Parameter", style="cyan", no_wrap=True, width=24)
        table.add_column("Value", style="white")

        for key, value in rows:
            if isinstance(value, list):
                table.add_row(key, ", ".join(map(str, value or [])))
            else:
                table.add_row(key, str(value))

        panel = Panel(table, title=f"[bold green]✓ {title}[/bold green]", border_style="green")
        self._console.print(panel)

    def display_error_panel(self, title: str, error_message: str):
        panel = Panel(error_message, title=f"[bold red]{title}[/bold red]", border_style="red")
        self._console.print(panel)


# Singleton instance for global use
console = ConsoleManager()

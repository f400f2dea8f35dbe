import logging
from typing import Any, Mapping

from rich.box import HEAVY, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mpesapy.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Console = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self):
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_result(self, title: str, values: Mapping[str, Any]) -> None:
        """Displays key/value rows in a table. ``None`` values show as a dash.

        Args:
            title: Table title.
            values: The fields to show.
        """
        logger.debug(f"Displaying result '{title}' with {len(values)} fields")
        table = Table(title=title, box=SIMPLE, border_style="cyan", show_header=False, padding=(0, 1))
        table.add_column("Field", style="bold cyan")
        table.add_column("Value", style="white")
        for key, value in values.items():
            table.add_row(str(key), "-" if value is None else str(value))
        self.console.print(table)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
            **kwargs: ``title`` overrides the panel title.
        """
        title = kwargs.get("title", "Error")
        panel = Panel(
            Text(error_message, style="white"),
            title=f"[bold red]{title}[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message with enhanced styling.

        Args:
            info_message: The informational message to display.
        """
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message with enhanced styling.

        Args:
            warning_message: The warning message to display.
        """
        logger.debug(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

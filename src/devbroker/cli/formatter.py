import logging
import typer
from typing import Optional
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from devbroker.core.models import BrokerConnection

# Create a stderr console for logging
error_console = Console(stderr=True)

class OutputFormatter:
    """
    Handles output formatting for the CLI.
    Ensures separation of concerns between System Logs (stderr) and Data (stdout).
    """

    @staticmethod
    def log(message: str, severity: str = "info") -> None:
        """
        Print system messages to stderr with color coding.
        """
        style = "white"
        prefix = "[SYSTEM]"

        if severity == "warning":
            style = "yellow"
        elif severity == "error":
            style = "red"
        elif severity == "critical":
            style = "bold red"
        elif severity == "success":
            style = "green"

        error_console.print(f"[{style}]{prefix} {message}[/{style}]")

    @staticmethod
    def print_connection(connection: BrokerConnection, as_json: bool = False) -> None:
        """
        Print broker connection parameters to stdout.
        """
        if as_json:
            typer.echo(connection.model_dump_json(indent=2))
            return

        table = Table(title="AMQP Dev Service", header_style="bold green")
        table.add_column("Property")
        table.add_column("Value")
        for key, value in connection.as_properties().items():
            table.add_row(key, value)

        Console().print(table)


def configure_logging(level: str = "INFO", console: Optional[Console] = None) -> None:
    """Route devbroker library logs through rich on stderr."""
    logger = logging.getLogger("devbroker")
    logger.setLevel(level.upper())
    if any(isinstance(handler, RichHandler) for handler in logger.handlers):
        return
    handler = RichHandler(console=console or error_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

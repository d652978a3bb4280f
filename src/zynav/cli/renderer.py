"""Rich-based output rendering for the CLI."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text

from zynav.index.service import IndexStats
from zynav.navigation.locations import DefinitionLocation


class Renderer:
    """Renders formatted output to the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def candidates(self, word: str, locations: list[DefinitionLocation]) -> None:
        """Display declaration candidates, one row each."""
        if not locations:
            self.warning(f"No declaration found for '{word}'")
            return
        title = f"{len(locations)} candidates for '{word}'" if len(locations) > 1 else f"Declaration of '{word}'"
        table = Table(title=title, title_justify="left", expand=False)
        table.add_column("Symbol", style="bold cyan")
        table.add_column("Kind", style="magenta")
        table.add_column("Location", style="green")
        table.add_column("Offset", justify="right", style="dim")
        for loc in locations:
            table.add_row(loc.display_label, loc.kind, loc.location_string(), str(loc.offset))
        self.console.print(table)

    def stats(self, stats: IndexStats, project_dir: str) -> None:
        """One-line summary of the index."""
        line = Text()
        line.append(f"{stats.file_count}", style="bold")
        line.append(" files · ", style="dim")
        line.append(f"{stats.location_count}", style="bold")
        line.append(" symbols · ", style="dim")
        line.append(f"{stats.name_count}", style="bold")
        line.append(" names", style="dim")
        line.append(f"  ({project_dir})", style="dim")
        self.console.print(line)

    def error(self, message: str) -> None:
        """Display an error message."""
        self.console.print(Text(f"Error: {message}", style="bold red"))

    def info(self, message: str) -> None:
        """Display an info message."""
        self.console.print(Text(message, style="dim"))

    def success(self, message: str) -> None:
        """Display a success message."""
        self.console.print(Text(message, style="bold green"))

    def warning(self, message: str) -> None:
        """Display a warning."""
        self.console.print(Text(f"Warning: {message}", style="yellow"))

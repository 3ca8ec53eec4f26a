"""Console output for the CLI.

Provides a Console class that wraps rich for consistent output. Everything
goes to stderr; stdout is left free for piping.
"""

from typing import TYPE_CHECKING

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from archiver.archiver import ArchiveReport


class Console:
    """CLI output manager wrapping rich."""

    def __init__(
        self,
        *,
        force_terminal: bool | None = None,
    ) -> None:
        """Initialize the console.

        Args:
            force_terminal: Force terminal mode (True/False) or auto-detect (None).
        """
        self._err_console = RichConsole(
            force_terminal=force_terminal,
            stderr=True,
        )

    @property
    def rich(self) -> RichConsole:
        """Underlying rich console (used for help rendering)."""
        return self._err_console

    # -------------------------------------------------------------------------
    # Status messages
    # -------------------------------------------------------------------------

    def success(self, message: str) -> None:
        """Print a success message."""
        self._err_console.print(f"[green]✓[/green] {message}")

    def error(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: list[str] | None = None,
    ) -> None:
        """Print an error message."""
        self._err_console.print(f"[red]✗[/red] {escape(message)}")
        for detail in details or []:
            self._err_console.print(f"  [red]-[/red] {escape(detail)}")
        if hint:
            self._err_console.print(f"  [dim]{hint}[/dim]")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        self._err_console.print(f"[yellow]⚠[/yellow] {message}")

    # -------------------------------------------------------------------------
    # Batch summary
    # -------------------------------------------------------------------------

    def report(self, report: "ArchiveReport") -> None:
        """Print a per-image summary table followed by totals."""
        if not report.results:
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("#", style="dim", width=3)
        table.add_column("Image")
        table.add_column("Status")
        table.add_column("Archive / Error")

        for i, result in enumerate(report.results, 1):
            if result.ok:
                status = "[green]saved[/green]"
                detail = str(result.output)
            else:
                status = f"[red]{result.status.value.replace('_', ' ')}[/red]"
                detail = escape(result.error or "")
            table.add_row(str(i), escape(result.reference), status, detail)

        self._err_console.print(table)

        summary = f"{report.saved} of {report.total} image{'s' if report.total != 1 else ''} saved"
        if report.failed:
            self.warning(f"{summary}, {report.failed} failed")
        else:
            self.success(summary)


# Module-level default instance for convenience
_default: Console | None = None


def get_console() -> Console:
    """Get the default console instance."""
    global _default
    if _default is None:
        _default = Console()
    return _default

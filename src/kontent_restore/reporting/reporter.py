"""Progress and error reporting for restore runs.

ImportReporter is the single sink importers talk to after every ledger write
and on every failure. It forwards events to the caller's observer callbacks,
prints progress through Rich when console output is enabled, and never
changes the outcome of a run: an observer that raises is logged and ignored.
"""

from collections.abc import Callable
from typing import Any

from rich.console import Console
from rich.table import Table

from kontent_restore.restore.models import BinaryFile, ImportEvent, ImportFailure
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)


class ImportReporter:
    """Forwards import progress to observers and the console."""

    def __init__(
        self,
        enable_log: bool = False,
        on_import: Callable[[ImportEvent], None] | None = None,
        on_error: Callable[[ImportFailure], None] | None = None,
        on_unsupported_binary_file: Callable[[BinaryFile], None] | None = None,
        console: Console | None = None,
    ):
        """Initialize reporter.

        Args:
            enable_log: Print progress lines to the console
            on_import: Observer for processed entities
            on_error: Observer for failures
            on_unsupported_binary_file: Observer for oversized asset payloads
            console: Rich console (defaults to stdout)
        """
        self.enable_log = enable_log
        self.on_import = on_import
        self.on_error = on_error
        self.on_unsupported_binary_file = on_unsupported_binary_file
        self.console = console or Console()
        self.counts: dict[str, int] = {}
        self.failures: list[ImportFailure] = []

    def _notify(self, callback: Callable[[Any], None] | None, payload: Any) -> None:
        if callback is None:
            return
        try:
            callback(payload)
        except Exception as e:
            logger.warning(
                "observer_callback_failed",
                callback=getattr(callback, "__name__", repr(callback)),
                error=str(e),
                exc_info=True,
            )

    def info(self, message: str) -> None:
        """Print a progress line when console output is enabled."""
        if self.enable_log:
            self.console.print(message)

    def stage_started(self, description: str, total: int) -> None:
        logger.info("stage_started", stage=description, total=total)
        self.info(f"[cyan]::[/cyan] Importing {description.lower()} ({total})")

    def stage_skipped(self, description: str) -> None:
        logger.info("stage_skipped", stage=description)
        self.info(f"[dim]•[/dim] Skipping {description.lower()}")

    def item_imported(self, title: str, type: str, data: Any) -> None:
        """Report one successfully processed entity."""
        self.counts[type] = self.counts.get(type, 0) + 1
        logger.info("item_imported", type=type, title=title)
        self.info(f"[green]✓[/green] {type}: {title}")
        self._notify(self.on_import, ImportEvent(title=title, type=type, data=data))

    def item_failed(self, title: str, type: str, error: Exception) -> None:
        """Report a failure that is about to abort the run."""
        failure = ImportFailure(title=title, type=type, error=error)
        self.failures.append(failure)
        self.info(f"[red]✗[/red] {type}: {title} ({error})")
        self._notify(self.on_error, failure)

    def unsupported_binary_file(self, binary_file: BinaryFile, file_name: str) -> None:
        """Report an asset payload too large to upload."""
        logger.warning(
            "unsupported_binary_file",
            asset_id=binary_file.asset_id,
            file_name=file_name,
            size_bytes=binary_file.size_bytes,
        )
        self.info(
            f"[yellow]⚠[/yellow] Removing binary data of '{file_name}' due to size "
            f"({binary_file.size_bytes} bytes)"
        )
        self._notify(self.on_unsupported_binary_file, binary_file)

    def summary_table(self) -> Table:
        """Build a table of processed entities per type."""
        table = Table(title="Import Summary", show_header=True, header_style="bold cyan")
        table.add_column("Type", style="cyan")
        table.add_column("Processed", justify="right", style="green")

        for type_name, count in self.counts.items():
            table.add_row(type_name, str(count))

        return table

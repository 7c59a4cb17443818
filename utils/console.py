"""
Console output helpers built on rich.

Progress bars for the long running phases of a merge and the end-of-run
summary table.
"""

import logging
from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Progress tracking using rich; a no-op when disabled."""

    def __init__(self, description: str = "Processing", total: int = 0, enabled: bool = True,
                 console: Optional[Console] = None):
        self.description = description
        self.total = total
        self.enabled = enabled
        self.console = console or Console(stderr=True)
        self.progress = None
        self.task = None

    def __enter__(self):
        if self.enabled:
            self.progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TimeElapsedColumn(),
                console=self.console,
                transient=True,
            )
            self.progress.start()
            self.task = self.progress.add_task(self.description, total=self.total)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.progress is not None:
            self.progress.stop()

    def update(self, advance: int = 1, description: str = None):
        """Update progress."""
        if self.progress is None or self.task is None:
            return
        if description:
            self.progress.update(self.task, description=description)
        self.progress.advance(self.task, advance)


def display_merge_summary(summary: Dict[str, Any], console: Optional[Console] = None) -> None:
    """
    Display the run summary using rich formatting.

    Args:
        summary: Ordered mapping of section name to {metric: value}
        console: Console to print to (stdout by default)
    """
    console = console or Console()

    for section, metrics in summary.items():
        table = Table(title=section)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="magenta", justify="right")
        for key, value in metrics.items():
            table.add_row(str(key), str(value))
        console.print(table)

    console.print(
        Panel(
            "✅ Merge completed successfully!",
            title="Status",
            border_style="green"
        )
    )

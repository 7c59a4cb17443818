"""Base class for exporters that run once all conversations are merged."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from core.entries.entry import Entry, EntryKind

logger = logging.getLogger(__name__)


class Generator(ABC):
    """Writes an export covering every saved conversation of a run."""

    name = "generator"

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)

    @abstractmethod
    def save_entries(self, entries: List[Entry]) -> Path:
        """
        Write the export.

        Args:
            entries: Saved anchor entries, one per conversation

        Returns:
            Path of the written file
        """

    def _check_entry(self, entry: Entry) -> None:
        if entry.kind != EntryKind.HTML:
            raise ValueError(f"Unable to export non-HTML entry {entry.name}")

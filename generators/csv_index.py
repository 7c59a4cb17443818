"""CSV index of merged conversations."""

import csv
import logging
from pathlib import Path
from typing import List

from core.entries.html_entry import HTMLEntry
from core.phone_book import PhoneBook
from core.shared_constants import INDEX_FILENAME
from generators.base import Generator

logger = logging.getLogger(__name__)


class CSVIndex(Generator):
    """
    One row per (conversation, participant) with the matched contact, the date
    range of the conversation and the size of its files.
    """

    name = "csv index"

    INDEX_HEADERS = [
        "phone number (html)",
        "first date",
        "last date",
        "name (vcf)",
        "phone number (vcf)",
        "match length",
        "path",
        "file size",
        "media size",
    ]

    def __init__(self, output_dir: Path, phone_book: PhoneBook, root_dir: Path = None):
        """
        Args:
            output_dir: Directory receiving index.csv
            phone_book: Phone book used to fill the contact columns
            root_dir: Directory the conversation paths are made relative to
        """
        super().__init__(output_dir)
        self.phone_book = phone_book
        self.root_dir = Path(root_dir) if root_dir else self.output_dir.parent

    def save_entries(self, entries: List[HTMLEntry]) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        index_path = self.output_dir / INDEX_FILENAME

        with open(index_path, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(self.INDEX_HEADERS)
            for entry in entries:
                for row in self.rows_for(entry):
                    writer.writerow(row)

        logger.info(f"Saved CSV index of {len(entries)} conversations to {index_path}")
        return index_path

    def rows_for(self, entry: HTMLEntry) -> List[list]:
        self._check_entry(entry)
        logger.debug(f"Saving entry {entry.name} to the csv index")

        relative_path = ""
        file_size = 0
        media_size = 0
        if entry.saved_path is not None:
            relative_path = entry.saved_path.relative_to(self.root_dir).as_posix()
            file_size = entry.size
            media_size = entry.media_size

        rows = []
        for phone_number in entry.phone_numbers:
            match = self.phone_book.get_and_record_match(phone_number)
            rows.append([
                phone_number,
                entry.timestamp.isoformat(),
                entry.last_timestamp.isoformat(),
                match.name or "",
                match.matched_number or "",
                match.match_length,
                relative_path,
                file_size,
                media_size,
            ])
        return rows

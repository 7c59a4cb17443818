"""
Merge engine: turns a flat Google Voice export into one transcript per conversation.

Files are classified, filtered and grouped by participants. Each group is folded
in chronological order into its first document, media files are copied next to
the transcript and wired into it, then the transcript is written. Exporters and
phone book reports run once every group is persisted.
"""

import logging
import shutil
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from core.entries.entry import Entry
from core.entries.factory import EntryFactory
from core.entries.html_entry import HTMLEntry
from core.errors import (
    MergerError,
    MissingAnchorError,
    OutputConflictError,
    PhoneNumberMismatchError,
)
from core.phone_book import PhoneBook
from core.shared_constants import IGNORED_FILENAMES
from core.unified_config import MergeConfig
from generators import CSVIndex, Generator, SMSBackup
from utils.console import ProgressTracker

logger = logging.getLogger(__name__)


@dataclass
class RunStats:
    """Counters for one merge run."""

    files: int = 0
    conversations: int = 0
    group_conversations: int = 0
    media_attached: int = 0
    entries_by_kind: Counter = field(default_factory=Counter)
    entries_by_action: Counter = field(default_factory=Counter)
    entries_by_format: Counter = field(default_factory=Counter)
    ignored_call_logs: int = 0
    ignored_media: int = 0
    ignored_voicemails: int = 0
    discarded_call_log_groups: int = 0
    discarded_voicemail_groups: int = 0
    output_files: List[Path] = field(default_factory=list)

    @property
    def entries(self) -> int:
        return sum(self.entries_by_kind.values())

    def record_group(self, anchor: HTMLEntry, entries: List[Entry]) -> None:
        self.conversations += 1
        if anchor.is_group_conversation:
            self.group_conversations += 1
        self.media_attached += len(anchor.media)
        for entry in entries:
            self.entries_by_kind[entry.kind.value] += 1
            self.entries_by_action[entry.action.value] += 1
            self.entries_by_format[entry.format.value] += 1

    def summary(self) -> Dict[str, Dict[str, int]]:
        """Sections for the console summary."""
        totals = {
            "Files": self.files,
            "Entries merged": self.entries,
            "Conversations": self.conversations,
            "Group conversations": self.group_conversations,
            "Media attached": self.media_attached,
        }
        skipped = {
            "Ignored call logs": self.ignored_call_logs,
            "Ignored media": self.ignored_media,
            "Ignored voicemails": self.ignored_voicemails,
            "Discarded call-log-only conversations": self.discarded_call_log_groups,
            "Discarded voicemail-only conversations": self.discarded_voicemail_groups,
        }
        return {
            "Merge Summary": totals,
            "Entries by Action": dict(sorted(self.entries_by_action.items())),
            "Entries by Format": dict(sorted(self.entries_by_format.items())),
            "Skipped": skipped,
        }


class ConversationMerger:
    """Merges an export directory into per-conversation transcripts."""

    def __init__(self, config: MergeConfig, phone_book: Optional[PhoneBook] = None):
        self.config = config
        self.phone_book = phone_book if phone_book is not None else PhoneBook()
        self.factory = EntryFactory(
            phone_book=self.phone_book,
            tolerate_missing_participants=config.tolerate_missing_participants,
        )
        self.stats = RunStats()
        self.saved_entries: List[HTMLEntry] = []
        self._output_ready = False

    @property
    def output_dir(self) -> Path:
        return self.config.output_dir

    def run(self) -> RunStats:
        """
        Execute the whole merge.

        Returns:
            RunStats of the run

        Raises:
            OutputConflictError: If the output directory exists and force is off
            MergerError: On any classification or merge failure
        """
        logger.info(f"Merging Google Voice export from {self.config.input_dir} to {self.output_dir}")

        self.prepare_output_dir()

        entries = self.classify(self.discover_files())
        groups = self.group(self.filter(entries))
        groups = self.discard_orphans(groups)

        with ProgressTracker("Merging conversations", len(groups), self.config.show_progress) as tracker:
            for key, group_entries in groups.items():
                logger.info(f"Merging {len(group_entries)} entries for {key}")
                anchor = self.merge_group(group_entries)
                self.saved_entries.append(anchor)
                self.stats.record_group(anchor, group_entries)
                tracker.update(1)

        for generator in self.generators():
            logger.info(f"Writing {generator.name}")
            self.stats.output_files.append(generator.save_entries(self.saved_entries))

        self.phone_book.save_logs(self.config.logs_dir)

        logger.info(
            f"Merged {self.stats.entries} entries into {self.stats.conversations} conversations"
        )
        return self.stats

    # ====================================================================
    # DISCOVERY
    # ====================================================================

    def prepare_output_dir(self) -> None:
        if self._output_ready:
            return

        output_dir = self.output_dir
        if output_dir.exists():
            if not self.config.force:
                raise OutputConflictError(output_dir)
            logger.info(f"Removing existing output directory {output_dir}")
            shutil.rmtree(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        self._output_ready = True

    def discover_files(self) -> List[Path]:
        input_dir = self.config.input_dir
        if not self.config.validate_input_directory():
            raise MergerError(f"Input directory {input_dir} does not exist")

        files = sorted(
            path for path in input_dir.iterdir()
            if path.is_file() and path.name not in IGNORED_FILENAMES
        )
        self.stats.files = len(files)
        logger.info(f"Found {len(files)} files in {input_dir}")
        return files

    def classify(self, files: List[Path]) -> List[Entry]:
        entries = []
        with ProgressTracker("Classifying files", len(files), self.config.show_progress) as tracker:
            for path in files:
                entries.append(self.factory.from_file(path))
                tracker.update(1)
        return entries

    # ====================================================================
    # FILTERING / GROUPING
    # ====================================================================

    def filter(self, entries: List[Entry]) -> List[Entry]:
        kept = []
        for entry in entries:
            if self.config.ignore_call_logs and entry.is_call_log:
                self.stats.ignored_call_logs += 1
                logger.debug(f"Ignoring call log {entry.name}")
                continue
            if self.config.ignore_voicemails and entry.is_voicemail:
                self.stats.ignored_voicemails += 1
                logger.debug(f"Ignoring voicemail {entry.name}")
                continue
            if self.config.ignore_media and entry.is_media:
                self.stats.ignored_media += 1
                logger.debug(f"Ignoring media {entry.name}")
                continue
            kept.append(entry)
        return kept

    @staticmethod
    def group(entries: List[Entry]) -> Dict[str, List[Entry]]:
        groups: Dict[str, List[Entry]] = {}
        for entry in entries:
            groups.setdefault(entry.key, []).append(entry)
        return groups

    def discard_orphans(self, groups: Dict[str, List[Entry]]) -> Dict[str, List[Entry]]:
        kept = {}
        for key, entries in groups.items():
            if self.config.ignore_orphan_call_logs and all(entry.is_call_log for entry in entries):
                self.stats.discarded_call_log_groups += 1
                logger.info(f"Discarding call-log-only conversation {key}")
                continue
            if self.config.ignore_orphan_voicemails and all(entry.is_voicemail for entry in entries):
                self.stats.discarded_voicemail_groups += 1
                logger.info(f"Discarding voicemail-only conversation {key}")
                continue
            kept[key] = entries
        return kept

    # ====================================================================
    # MERGING
    # ====================================================================

    def merge_group(self, entries: List[Entry]) -> HTMLEntry:
        """
        Fold one conversation group into its earliest document and save it.

        Args:
            entries: Entries sharing the same participant key

        Returns:
            The saved anchor entry

        Raises:
            PhoneNumberMismatchError: If entries disagree on participants
            MissingAnchorError: If the group has no HTML document
        """
        ordered = sorted(entries, key=lambda entry: entry.timestamp)

        expected = ordered[0].phone_numbers
        for entry in ordered:
            if entry.phone_numbers != expected:
                raise PhoneNumberMismatchError(expected, entry.phone_numbers, entry.name)

        anchor: Optional[HTMLEntry] = None
        deferred_media = []
        for entry in ordered:
            if entry.is_media:
                deferred_media.append(entry)
            elif anchor is None:
                anchor = entry
            else:
                anchor.merge(entry)

        if anchor is None:
            raise MissingAnchorError(
                f"Conversation {ordered[0].key} has {len(deferred_media)} media files but no document"
            )

        for media in deferred_media:
            media.save(self.output_dir)
            anchor.merge(media)

        anchor.save(self.output_dir)
        return anchor

    def generators(self) -> List[Generator]:
        generators = []
        if self.config.generate_csv:
            generators.append(CSVIndex(self.config.logs_dir, self.phone_book, root_dir=self.output_dir))
        if self.config.generate_xml:
            own_number = self.config.resolve_own_number()
            if own_number:
                logger.info(f"Using own number {own_number} for the SMS backup")
            else:
                logger.warning("Own number unknown; sent group messages may be attributed incorrectly")
            generators.append(SMSBackup(self.output_dir, self.phone_book, own_number))
        return generators

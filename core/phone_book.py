"""
Phone book for resolving export phone numbers to contact names.

The phone book is loaded from a VCF address book and supports two matching
strategies:

- exact: the normalized number must be present verbatim
- suffix: exact first, then the longest suffix of the query (down to a
  configured floor) that is a suffix of a known number

Every successful lookup performed through get_and_record_match() is recorded
so the run can report which export numbers were matched to which contacts and
which numbers stayed unknown.
"""

import csv
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from vobject.base import ParseError

from core.errors import PhoneBookError, PhoneBookLoadWarning
from core.shared_constants import MATCHED_NUMBERS_FILENAME, UNKNOWN_NUMBERS_FILENAME
from utils.phone_utils import normalize_phone_number
from utils.vcf_parser import read_contact_cards

logger = logging.getLogger(__name__)


class MatchStrategy(str, Enum):
    EXACT = "exact"
    SUFFIX = "suffix"


@dataclass(frozen=True)
class PhoneBookRecord:
    raw_number: str
    normalized_number: str
    display_name: str


@dataclass(frozen=True)
class MatchResult:
    """Outcome of a phone book lookup."""

    name: Optional[str] = None
    matched_number: Optional[str] = None
    match_length: int = 0

    @property
    def matched(self) -> bool:
        return self.name is not None


@dataclass
class MatchStats:
    """Match provenance for one run: contact number -> {queried number: match length}."""

    matched: Dict[str, Dict[str, int]] = field(default_factory=dict)
    unknown: Set[str] = field(default_factory=set)

    @property
    def matched_count(self) -> int:
        return sum(len(queries) for queries in self.matched.values())

    @property
    def unknown_count(self) -> int:
        return len(self.unknown)


class PhoneBook:
    """Maps phone numbers to contact names using exact or suffix matching."""

    MATCHED_LOG_HEADERS = ["phone number (html)", "phone number (vcf)", "match length", "name"]

    def __init__(
        self,
        contacts_path: Optional[Path] = None,
        strategy: MatchStrategy = MatchStrategy.EXACT,
        suffix_length: Optional[int] = None,
    ):
        """Initialize the phone book.

        Args:
            contacts_path: VCF file to load; None builds an empty phone book
            strategy: Matching strategy
            suffix_length: Shortest suffix accepted by the suffix strategy

        Raises:
            PhoneBookError: If the contacts file is missing or the strategy options are invalid
        """
        self.strategy = MatchStrategy(strategy)
        self.suffix_length = suffix_length

        if self.strategy == MatchStrategy.SUFFIX and (not suffix_length or suffix_length < 1):
            raise PhoneBookError(
                f"Invalid suffix length of {suffix_length} for suffix-based matching strategy"
            )

        self._numbers: Dict[str, str] = {}
        self._suffixes: Dict[str, Tuple[str, str]] = {}
        self._cache: Dict[str, MatchResult] = {}

        self.records: List[PhoneBookRecord] = []
        self.load_warnings: List[PhoneBookLoadWarning] = []
        self.stats = MatchStats()

        if contacts_path is None:
            return

        contacts_path = Path(contacts_path)
        if not contacts_path.exists():
            raise PhoneBookError(f"Contacts VCF file {contacts_path} does not exist")

        logger.info(f"Using {self.describe_strategy()} phone number matching strategy")
        self._load(contacts_path)
        logger.info(f"Loaded {len(self.records)} phone numbers from {contacts_path}")

    @classmethod
    def from_records(
        cls,
        records: Iterable[Tuple[str, str]],
        strategy: MatchStrategy = MatchStrategy.EXACT,
        suffix_length: Optional[int] = None,
    ) -> "PhoneBook":
        """Build a phone book from (name, phone number) pairs instead of a VCF file."""
        phone_book = cls(strategy=strategy, suffix_length=suffix_length)
        for name, number in records:
            phone_book.add(name, number)
        return phone_book

    def describe_strategy(self) -> str:
        if self.strategy == MatchStrategy.SUFFIX:
            return f"{self.strategy.value} (with suffix {self.suffix_length})"
        return self.strategy.value

    def __len__(self) -> int:
        return len(self._numbers)

    # ====================================================================
    # LOADING
    # ====================================================================

    def _load(self, contacts_path: Path) -> None:
        try:
            cards = list(read_contact_cards(contacts_path))
        except (OSError, UnicodeDecodeError, ParseError) as e:
            raise PhoneBookError(f"Failed to read contacts file {contacts_path}: {e}") from e

        for index, card in enumerate(cards):
            if not card.full_name:
                self._warn(f"Unable to find the full name (fn) property for vCard #{index + 1}")
                continue
            if not card.phone_numbers:
                self._warn(
                    f"Unable to find the phone number (tel) property for vCard #{index + 1} "
                    f"({card.full_name})"
                )
                continue

            for number in card.phone_numbers:
                self.add(card.full_name, number)

    def _warn(self, message: str) -> None:
        warning = PhoneBookLoadWarning(message)
        self.load_warnings.append(warning)
        logger.warning(message)

    def add(self, name: str, phone_number: str) -> None:
        """Register a contact number. Later registrations win on collisions."""
        normalized = normalize_phone_number(phone_number)
        if not normalized:
            self._warn(f"Skipping phone number {phone_number!r} of {name}: no digits")
            return

        previous = self._numbers.get(normalized)
        if previous is not None and previous != name:
            logger.warning(
                f"Phone number {normalized} is listed for both {previous} and {name}; using {name}"
            )
        self._numbers[normalized] = name
        self.records.append(PhoneBookRecord(phone_number, normalized, name))

        if self.strategy == MatchStrategy.SUFFIX:
            for length in range(self.suffix_length, len(normalized) + 1):
                suffix = normalized[-length:]
                existing = self._suffixes.get(suffix)
                if existing is not None and existing[1] != normalized:
                    logger.warning(
                        f"Suffix {suffix} of {normalized} ({name}) replaces {existing[1]} ({existing[0]})"
                    )
                self._suffixes[suffix] = (name, normalized)

        self._cache.clear()

    # ====================================================================
    # LOOKUP
    # ====================================================================

    def get(self, phone_number: str) -> MatchResult:
        """
        Look up a phone number without recording statistics.

        Args:
            phone_number: Number as found in the export (normalized internally)

        Returns:
            MatchResult; an unmatched result has name None and match length 0
        """
        cached = self._cache.get(phone_number)
        if cached is not None:
            return cached

        result = self._lookup(normalize_phone_number(phone_number))
        self._cache[phone_number] = result
        return result

    def _lookup(self, normalized: str) -> MatchResult:
        if not normalized:
            return MatchResult()

        name = self._numbers.get(normalized)
        if name is not None:
            return MatchResult(name, normalized, len(normalized))

        if self.strategy == MatchStrategy.SUFFIX:
            # Longest suffix first
            for start in range(0, len(normalized) - self.suffix_length + 1):
                suffix = normalized[start:]
                hit = self._suffixes.get(suffix)
                if hit is None:
                    continue
                name, matched_number = hit
                logger.info(f"Found suffix-based match {suffix} for phone number {normalized}")
                # Suffix hits report the configured length, not the overlap found
                return MatchResult(name, matched_number, self.suffix_length)

        return MatchResult()

    def get_and_record_match(self, phone_number: str) -> MatchResult:
        """Look up a phone number and record the outcome in the run statistics."""
        result = self.get(phone_number)
        queried = normalize_phone_number(phone_number) or phone_number

        if result.matched:
            self.stats.matched.setdefault(result.matched_number, {})[queried] = result.match_length
        else:
            self.stats.unknown.add(queried)

        return result

    def resolve_name(self, phone_number: str) -> Optional[str]:
        return self.get_and_record_match(phone_number).name

    # ====================================================================
    # REPORTING
    # ====================================================================

    def save_logs(self, logs_dir: Path) -> None:
        """
        Write the unknown and matched number reports, replacing earlier ones.

        Args:
            logs_dir: Directory receiving unknown_numbers.csv and matched_numbers.csv
        """
        logs_dir = Path(logs_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)

        unknown_path = logs_dir / UNKNOWN_NUMBERS_FILENAME
        with open(unknown_path, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            for number in sorted(self.stats.unknown):
                writer.writerow([number])

        matched_path = logs_dir / MATCHED_NUMBERS_FILENAME
        with open(matched_path, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(self.MATCHED_LOG_HEADERS)
            for matched_number in sorted(self.stats.matched):
                name = self._numbers.get(matched_number, "")
                for queried, length in sorted(self.stats.matched[matched_number].items()):
                    writer.writerow([queried, matched_number, length, name])

        logger.info(
            f"Saved phone book logs: {self.stats.matched_count} matched, "
            f"{self.stats.unknown_count} unknown ({logs_dir})"
        )

"""
Filename classifier for Google Voice Takeout exports.

Export files are named "<phone> - <Action> - <timestamp>.<ext>", or
"Group Conversation - <timestamp>.<ext>" for group threads whose participants
are only listed inside the companion HTML document.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dateutil import parser as date_parser

from core.entries.entry import Entry, EntryAction, EntryFormat
from core.entries.html_entry import HTMLEntry
from core.entries.media_entry import MediaEntry
from core.errors import (
    InvalidFilenameError,
    MissingParticipantsError,
    ParticipantResolutionError,
    TimestampParseError,
)
from core.shared_constants import (
    COMPONENT_SEPARATOR,
    COMPONENT_SPLIT_PATTERN,
    GROUP_CONVERSATION_PREFIX,
    TIMESTAMP_PATTERN,
    UNKNOWN_PHONE_NUMBER,
)
from utils.phone_utils import normalize_phone_number

logger = logging.getLogger(__name__)


def split_components(stem: str) -> List[str]:
    """Split an extension-less filename into its trimmed " - " components."""
    return [component.strip() for component in COMPONENT_SPLIT_PATTERN.split(stem.strip())]


def parse_timestamp(value: str, path: Optional[Path] = None) -> Tuple[datetime, str]:
    """
    Parse a Google Voice filename timestamp.

    Accepts "2024-01-05T14_03_22Z", with optional fractional seconds, an
    optional "+HH_MM" offset and any trailing counter such as "-1-1".

    Returns:
        (aware UTC datetime, timestamp text without the trailing counter)

    Raises:
        TimestampParseError: If the value does not follow the pattern
    """
    match = TIMESTAMP_PATTERN.match(value.strip())
    if not match:
        raise TimestampParseError(f"Unable to parse timestamp {value!r}", path)

    zone = match.group("zone") or ""
    iso = (
        f"{match.group('date')}T{match.group('hour')}:{match.group('minute')}:{match.group('second')}"
        f"{match.group('fraction') or ''}{zone.replace('_', ':')}"
    )
    try:
        timestamp = date_parser.isoparse(iso)
    except ValueError as e:
        raise TimestampParseError(f"Unable to parse timestamp {value!r}: {e}", path) from e

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    else:
        timestamp = timestamp.astimezone(timezone.utc)

    core = value.strip()[: len(value.strip()) - len(match.group("suffix"))]
    return timestamp, core


class EntryFactory:
    """Builds entries from export filenames."""

    def __init__(self, phone_book=None, tolerate_missing_participants: bool = False):
        self.phone_book = phone_book
        self.tolerate_missing_participants = tolerate_missing_participants
        self._participants_cache: Dict[Path, List[str]] = {}

    def from_file(self, path: Path) -> Entry:
        """
        Classify an export file.

        Args:
            path: File in the export directory

        Returns:
            An HTMLEntry or a MediaEntry

        Raises:
            ClassificationError: If the filename cannot be classified
            ParticipantResolutionError: If a group conversation has no readable participants
        """
        path = Path(path)
        name = path.name
        logger.debug(f"Processing {name}")

        entry_format = EntryFormat.from_extension(path.suffix, path)
        components = split_components(path.stem)

        if components[0].startswith(GROUP_CONVERSATION_PREFIX):
            action, phone_numbers, timestamp = self._classify_group_conversation(path, components)
        else:
            action, phone_numbers, timestamp, name = self._classify_single(path, components)

        if entry_format.is_media:
            return MediaEntry(action, entry_format, name, phone_numbers, timestamp, path)
        return HTMLEntry(
            action, entry_format, name, phone_numbers, timestamp, path, phone_book=self.phone_book
        )

    def _classify_group_conversation(self, path: Path, components: List[str]):
        if len(components) != 2:
            raise InvalidFilenameError("Invalid or unsupported group conversation entry", path)

        timestamp, timestamp_text = parse_timestamp(components[1], path)
        companion = path.parent / f"{GROUP_CONVERSATION_PREFIX}{COMPONENT_SEPARATOR}{timestamp_text}.html"
        return EntryAction.GROUP_CONVERSATION, self._group_participants(companion), timestamp

    def _group_participants(self, companion: Path) -> List[str]:
        if companion in self._participants_cache:
            return self._participants_cache[companion]

        if not companion.exists():
            raise ParticipantResolutionError(
                f"Group conversation document {companion.name} not found", companion
            )
        try:
            participants = HTMLEntry.query_participants(companion)
        except (OSError, UnicodeDecodeError) as e:
            raise ParticipantResolutionError(
                f"Unable to read group conversation document {companion.name}: {e}", companion
            ) from e

        if not participants:
            if not self.tolerate_missing_participants:
                raise MissingParticipantsError(
                    f"No participants found in group conversation {companion.name}", companion
                )
            logger.warning(
                f"No participants found in group conversation {companion.name}; "
                f"grouping it under {UNKNOWN_PHONE_NUMBER!r}"
            )
            participants = [UNKNOWN_PHONE_NUMBER]

        self._participants_cache[companion] = participants
        return participants

    def _classify_single(self, path: Path, components: List[str]):
        name = path.name

        if len(components) == 3:
            phone, action_token, timestamp_text = components
            action = EntryAction.from_token(action_token, path)
        elif len(components) == 2:
            phone, timestamp_text = components
            action = EntryAction.PLACED
            logger.warning(f"No action in {name}; assuming {action.value}")
        else:
            raise InvalidFilenameError("Invalid or unsupported entry", path)

        if not phone:
            phone_number = UNKNOWN_PHONE_NUMBER
            name = f"{UNKNOWN_PHONE_NUMBER} {name.lstrip()}"
            logger.warning(f"No phone number in {path.name}; using {UNKNOWN_PHONE_NUMBER!r}")
        else:
            # Exports keyed by contact name have no digits: keep the name as the key
            phone_number = normalize_phone_number(phone) or phone

        timestamp, _ = parse_timestamp(timestamp_text, path)
        return action, [phone_number], timestamp, name

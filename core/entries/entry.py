"""
Base entry model shared by HTML documents and media files.

An entry is one file of the Google Voice export, classified by its filename
into an action, a format and the set of participants it belongs to.
"""

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from core.errors import UnknownActionError, UnknownFormatError, UnsupportedOperation

logger = logging.getLogger(__name__)


class EntryKind(str, Enum):
    HTML = "html"
    MEDIA = "media"


class EntryAction(str, Enum):
    RECEIVED = "Received"
    PLACED = "Placed"
    MISSED = "Missed"
    TEXT = "Text"
    VOICEMAIL = "Voicemail"
    RECORDED = "Recorded"
    GROUP_CONVERSATION = "Group Conversation"
    UNKNOWN = "Unknown"

    @classmethod
    def from_token(cls, token: str, path: Optional[Path] = None) -> "EntryAction":
        """Parse the action component of a filename.

        Raises:
            UnknownActionError: If the token is not a filename action
        """
        for action in FILENAME_ACTIONS:
            if action.value == token:
                return action
        raise UnknownActionError(f"Unknown action: {token!r}", path)

    @property
    def is_call_log(self) -> bool:
        return self in (EntryAction.RECEIVED, EntryAction.PLACED, EntryAction.MISSED)

    @property
    def is_voicemail(self) -> bool:
        return self in (EntryAction.VOICEMAIL, EntryAction.RECORDED)


FILENAME_ACTIONS = (
    EntryAction.RECEIVED,
    EntryAction.PLACED,
    EntryAction.MISSED,
    EntryAction.TEXT,
    EntryAction.VOICEMAIL,
    EntryAction.RECORDED,
)


class EntryFormat(str, Enum):
    HTML = "html"
    JPG = "jpg"
    GIF = "gif"
    MP3 = "mp3"
    MP4 = "mp4"
    THREE_GP = "3gp"
    AMR = "amr"
    VCF = "vcf"

    @classmethod
    def from_extension(cls, extension: str, path: Optional[Path] = None) -> "EntryFormat":
        """Map a file extension (with or without the dot, any case) to a format.

        Raises:
            UnknownFormatError: If the extension is not supported
        """
        value = extension.lower().lstrip(".")
        if value == "jpeg":
            value = "jpg"
        try:
            return cls(value)
        except ValueError:
            raise UnknownFormatError(f"Unknown format: {extension!r}", path) from None

    @property
    def is_media(self) -> bool:
        return self != EntryFormat.HTML

    @property
    def kind(self) -> EntryKind:
        return EntryKind.MEDIA if self.is_media else EntryKind.HTML


class Entry:
    """
    A classified export file.

    Attributes:
        action: What the file records (text, voicemail, call...)
        kind: HTML document or media file
        format: File format derived from the extension
        name: Original filename, amended when the phone number was missing
        phone_numbers: Sorted, unique participant numbers
        timestamp: Aware UTC datetime parsed from the filename
        source_path: Location of the file in the export
        saved_path: Location in the output directory once save() succeeded
    """

    kind: EntryKind = None

    def __init__(
        self,
        action: EntryAction,
        format: EntryFormat,
        name: str,
        phone_numbers: Iterable[str],
        timestamp: datetime,
        source_path: Path,
    ):
        if format.kind != self.kind:
            raise ValueError(
                f"{type(self).__name__} cannot hold {format.value} files ({name})"
            )

        numbers = sorted(set(phone_numbers))
        if not numbers and action != EntryAction.GROUP_CONVERSATION:
            raise ValueError(f"Entry {name} has no phone numbers")

        self.action = action
        self.format = format
        self.name = name
        self.phone_numbers: List[str] = numbers
        self.timestamp = timestamp
        self.source_path = Path(source_path)
        self.saved_path: Optional[Path] = None

    @property
    def key(self) -> str:
        """Participant key used to group entries into conversations."""
        return ",".join(self.phone_numbers)

    @property
    def is_media(self) -> bool:
        return self.kind == EntryKind.MEDIA

    @property
    def is_call_log(self) -> bool:
        return self.action.is_call_log

    @property
    def is_voicemail(self) -> bool:
        return self.action.is_voicemail

    @property
    def is_group_conversation(self) -> bool:
        return self.action == EntryAction.GROUP_CONVERSATION

    def output_dir_for(self, output_dir: Path) -> Path:
        """Directory holding this entry's conversation in the output tree."""
        return Path(output_dir) / self.key

    def load(self) -> None:
        raise UnsupportedOperation(f"{type(self).__name__} does not support load()")

    def merge(self, other: "Entry") -> None:
        raise UnsupportedOperation(f"{type(self).__name__} does not support merge()")

    def save(self, output_dir: Path) -> Path:
        raise UnsupportedOperation(f"{type(self).__name__} does not support save()")

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(action={self.action.value!r}, format={self.format.value!r}, "
            f"key={self.key!r}, timestamp={self.timestamp.isoformat()})"
        )

"""
Message extraction from merged conversation documents.

Turns the text messages, call logs and voicemails of a (merged) HTMLEntry into
a flat list of Message objects that the SMS Backup exporter can serialize.
"""

import copy
import logging
import mimetypes
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

import dateutil.parser
from bs4 import Tag

from core.entries.entry import EntryAction
from core.shared_constants import ENTRY_SECTION_CLASS
from utils.phone_utils import normalize_phone_number

if TYPE_CHECKING:
    from core.entries.html_entry import HTMLEntry
    from core.phone_book import PhoneBook

logger = logging.getLogger(__name__)

CONTENT_TYPE_FALLBACKS = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".mp3": "audio/mpeg",
    ".mp4": "video/mp4",
    ".3gp": "video/3gpp",
    ".amr": "audio/amr",
    ".vcf": "text/x-vCard",
}

OWN_MESSAGE_LABEL = "Me"


class MessageType(IntEnum):
    RECEIVED = 1
    SENT = 2


@dataclass
class MessageMedia:
    content_type: str
    name: str
    data: bytes


@dataclass
class Message:
    """A single message of a conversation, ready for export."""

    type: MessageType
    sender: str
    target: str
    participants: List[str]
    timestamp_millis: int
    text: str
    media: List[MessageMedia] = field(default_factory=list)
    is_group_conversation: bool = False
    is_call_log: bool = False
    sender_name: Optional[str] = None

    @property
    def is_mms(self) -> bool:
        return self.is_group_conversation or bool(self.media)


def guess_content_type(path: Path) -> str:
    """Return the MIME type of an attachment, falling back on the extensions exports use."""
    suffix = path.suffix.lower()
    if suffix in CONTENT_TYPE_FALLBACKS:
        return CONTENT_TYPE_FALLBACKS[suffix]
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or "application/octet-stream"


def to_millis(timestamp: datetime) -> int:
    return int(timestamp.timestamp() * 1000)


def _parse_title_timestamp(tag: Optional[Tag]) -> Optional[int]:
    if tag is None or not tag.get("title"):
        return None
    try:
        return to_millis(dateutil.parser.parse(tag["title"]))
    except (ValueError, OverflowError) as e:
        logger.debug(f"Failed to parse timestamp {tag['title']!r}: {e}")
        return None


def _tel_number(container: Optional[Tag]) -> Optional[str]:
    if container is None:
        return None
    link = container.find("a", class_="tel")
    if link is None or not link.get("href", "").startswith("tel:"):
        return None
    return normalize_phone_number(link["href"][len("tel:"):]) or None


def get_message_text(message: Tag) -> str:
    """Text of a message's <q> element, with <br> turned into newlines."""
    q_tag = message.find("q")
    if q_tag is None:
        return ""
    q_tag = copy.copy(q_tag)
    for br in q_tag.find_all("br"):
        br.replace_with("\n")
    return q_tag.get_text()


def is_own_message(message: Tag) -> bool:
    cite = message.find("cite")
    if cite is None:
        return False
    if cite.find("abbr", class_="fn") is not None:
        return True
    return cite.get_text(strip=True) == OWN_MESSAGE_LABEL


class MessageExtractor:
    """Extracts messages from one merged conversation document."""

    def __init__(self, entry: "HTMLEntry", phone_book: Optional["PhoneBook"] = None, own_number: Optional[str] = None):
        self.entry = entry
        self.phone_book = phone_book
        self.own_number = normalize_phone_number(own_number) if own_number else None

        self.base_dir = (entry.saved_path or entry.source_path).parent
        self.is_group = entry.is_group_conversation or len(entry.phone_numbers) > 1
        self.target = entry.phone_numbers[0] if entry.phone_numbers else ""

        self.participants = list(entry.phone_numbers)
        if self.own_number and self.own_number not in self.participants:
            self.participants.append(self.own_number)

    def extract(self) -> List[Message]:
        document = self.entry.ensure_loaded()
        messages = []

        for element in document.select(".message, .haudio"):
            classes = element.get("class", [])
            if "haudio" in classes:
                messages.append(self._call_message(element))
            elif element.find_parent(class_="haudio") is None:
                messages.append(self._text_message(element))

        logger.debug(f"Extracted {len(messages)} messages from {self.entry.name}")
        return messages

    def _resolve_name(self, number: str) -> Optional[str]:
        if self.phone_book is None or not number:
            return None
        return self.phone_book.resolve_name(number)

    def _text_message(self, element: Tag) -> Message:
        own = is_own_message(element)
        sender = _tel_number(element.find("cite"))
        if sender is None:
            sender = (self.own_number or OWN_MESSAGE_LABEL) if own else self.target

        timestamp = _parse_title_timestamp(element.find("abbr", class_="dt"))
        return Message(
            type=MessageType.SENT if own else MessageType.RECEIVED,
            sender=sender,
            target=self.target,
            participants=self.participants,
            timestamp_millis=timestamp if timestamp is not None else to_millis(self.entry.timestamp),
            text=get_message_text(element),
            media=self._message_media(element),
            is_group_conversation=self.is_group,
            sender_name=None if own else self._resolve_name(sender),
        )

    def _call_message(self, element: Tag) -> Message:
        section = element.find_parent("div", class_=ENTRY_SECTION_CLASS)
        action = self.entry.action
        if section is not None and section.get("data-action"):
            action = EntryAction(section["data-action"])

        sent = action == EntryAction.PLACED
        sender = _tel_number(element.find(class_="contributor")) or self.target

        lines = []
        title = element.find("span", class_="fn")
        if title is not None and title.get_text(strip=True):
            lines.append(title.get_text(" ", strip=True))
        duration = element.find("abbr", class_="duration")
        if duration is not None and duration.get_text(strip=True):
            lines.append(duration.get_text(strip=True))
        transcription = element.select_one(".description .full-text")
        if transcription is not None and transcription.get_text(strip=True):
            lines.append(transcription.get_text(" ", strip=True))

        timestamp = _parse_title_timestamp(element.find("abbr", class_="published"))
        return Message(
            type=MessageType.SENT if sent else MessageType.RECEIVED,
            sender=(self.own_number or sender) if sent else sender,
            target=self.target,
            participants=self.participants,
            timestamp_millis=timestamp if timestamp is not None else to_millis(self.entry.timestamp),
            text="\n".join(lines) or action.value,
            is_group_conversation=self.is_group,
            is_call_log=True,
            sender_name=self._resolve_name(sender),
        )

    def _message_media(self, element: Tag) -> List[MessageMedia]:
        sources = []
        for img in element.find_all("img", src=True):
            sources.append(img["src"])
        for video in element.find_all("video", src=True):
            sources.append(video["src"])
        for vcard in element.find_all("a", class_="vcard", href=True):
            sources.append(vcard["href"])

        media = []
        for src in sources:
            path = self.base_dir / src
            if not path.is_file():
                logger.debug(f"Skipping unresolved attachment {src} in {self.entry.name}")
                continue
            media.append(MessageMedia(guess_content_type(path), path.name, path.read_bytes()))
        return media


def extract_messages(
    entry: "HTMLEntry", phone_book: Optional["PhoneBook"] = None, own_number: Optional[str] = None
) -> List[Message]:
    """Extract the messages of a conversation document in document order."""
    return MessageExtractor(entry, phone_book, own_number).extract()

"""
SMS Backup & Restore compatible XML export.

Text-only one-to-one messages are written as <sms> elements; group
conversations and messages carrying media are written as <mms> elements with
base64 encoded parts.
"""

import logging
from base64 import b64encode
from pathlib import Path
from typing import List, Optional

from core.entries.html_entry import HTMLEntry
from core.entries.message import Message, MessageType, extract_messages
from core.phone_book import PhoneBook
from core.shared_constants import SMS_BACKUP_FILENAME
from generators.base import Generator
from templates.config import (
    ADDR_RECIPIENT_TYPE,
    ADDR_SENDER_TYPE,
    CONTACT_NAME_ATTRIBUTE,
    MEDIA_PART_TEMPLATE,
    MMS_RECEIVED_M_TYPE,
    MMS_RECEIVED_MSG_BOX,
    MMS_SENT_M_TYPE,
    MMS_SENT_MSG_BOX,
    MMS_XML_TEMPLATE,
    PARTICIPANT_TEMPLATE,
    SMS_XML_TEMPLATE,
    SMSES_CLOSE,
    SMSES_OPEN_TEMPLATE,
    TEXT_PART_TEMPLATE,
    XML_HEADER,
)

logger = logging.getLogger(__name__)


def escape_xml(s: str) -> str:
    """
    Escape special characters for XML output.

    Args:
        s: String to escape

    Returns:
        str: XML-escaped string with newlines kept as character references
    """
    replacements = {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        "'": "&apos;",
        '"': "&quot;",
        "\r\n": "&#10;",
        "\n": "&#10;",
    }

    for old, new in replacements.items():
        s = s.replace(old, new)
    return s


def _contact_name(message: Message) -> str:
    if not message.sender_name:
        return ""
    return CONTACT_NAME_ATTRIBUTE.format(name=escape_xml(message.sender_name))


def format_sms_xml(message: Message) -> str:
    return SMS_XML_TEMPLATE.format(
        address=escape_xml(message.target),
        time=message.timestamp_millis,
        type=int(message.type),
        message=escape_xml(message.text),
        contact_name=_contact_name(message),
    )


def format_mms_xml(message: Message) -> str:
    sent = message.type == MessageType.SENT

    seq = 0
    parts = TEXT_PART_TEMPLATE.format(seq=seq, text=escape_xml(message.text))
    for media in message.media:
        seq += 1
        parts += MEDIA_PART_TEMPLATE.format(
            seq=seq,
            type=media.content_type,
            name=escape_xml(media.name),
            data=b64encode(media.data).decode("utf-8"),
        )

    participants_xml = "".join(
        PARTICIPANT_TEMPLATE.format(
            number=escape_xml(participant),
            code=ADDR_SENDER_TYPE if participant == message.sender else ADDR_RECIPIENT_TYPE,
        )
        for participant in message.participants
    )

    return MMS_XML_TEMPLATE.format(
        participants=escape_xml("~".join(message.participants)),
        time=message.timestamp_millis,
        m_type=MMS_SENT_M_TYPE if sent else MMS_RECEIVED_M_TYPE,
        msg_box=MMS_SENT_MSG_BOX if sent else MMS_RECEIVED_MSG_BOX,
        text_only=0 if message.media else 1,
        contact_name=_contact_name(message),
        parts=parts,
        participants_xml=participants_xml,
    )


def format_message_xml(message: Message) -> str:
    if message.is_mms:
        return format_mms_xml(message)
    return format_sms_xml(message)


class SMSBackup(Generator):
    """Writes every message of the run to sms.xml."""

    name = "sms backup"

    def __init__(self, output_dir: Path, phone_book: Optional[PhoneBook] = None, own_number: Optional[str] = None):
        super().__init__(output_dir)
        self.phone_book = phone_book
        self.own_number = own_number

    def messages_for(self, entry: HTMLEntry) -> List[Message]:
        self._check_entry(entry)
        logger.debug(f"Saving entry {entry.name} to the SMS backup export")
        return extract_messages(entry, self.phone_book, self.own_number)

    def save_entries(self, entries: List[HTMLEntry]) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        sms_path = self.output_dir / SMS_BACKUP_FILENAME

        messages = []
        for entry in entries:
            messages.extend(self.messages_for(entry))

        with open(sms_path, "w", encoding="utf-8") as f:
            f.write(XML_HEADER)
            f.write(SMSES_OPEN_TEMPLATE.format(count=len(messages)))
            for message in messages:
                f.write(format_message_xml(message))
            f.write(SMSES_CLOSE)

        logger.info(f"Saved {len(messages)} messages to {sms_path}")
        return sms_path

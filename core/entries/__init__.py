"""Entry model for Google Voice export files."""

from .entry import Entry, EntryAction, EntryFormat, EntryKind
from .factory import EntryFactory
from .html_entry import HTMLEntry
from .media_entry import MediaEntry
from .message import Message, MessageMedia, MessageType, extract_messages

__all__ = [
    "Entry",
    "EntryAction",
    "EntryFactory",
    "EntryFormat",
    "EntryKind",
    "HTMLEntry",
    "MediaEntry",
    "Message",
    "MessageMedia",
    "MessageType",
    "extract_messages",
]

"""
HTML conversation documents.

An HTMLEntry is the anchor of a conversation: sibling documents of the same
participants are appended to it in chronological order and media files are
wired into the placeholders Google Voice left in the markup.

Document lifecycle: empty -> fixed -> merged siblings -> attached media -> saved.
Fixing is idempotent and only adds markup around the original content.
"""

import copy
import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional

from bs4 import BeautifulSoup, Tag

from core.entries.entry import Entry, EntryFormat, EntryKind
from core.entries.media_entry import MediaEntry
from core.errors import MissingPlaceholderError, UnsavedMediaError
from core.shared_constants import (
    ENTRY_SECTION_CLASS,
    MEDIA_DIRNAME,
    OUTPUT_TIMESTAMP_FORMAT,
    PARTICIPANTS_HEADER_CLASS,
    STYLE_MARKER_ID,
)
from templates import get_template_loader
from utils.phone_utils import format_for_display, normalize_phone_number

if TYPE_CHECKING:
    from core.phone_book import PhoneBook

logger = logging.getLogger(__name__)

IMAGE_WIDTH = "50%"
VIDEO_WIDTH = "50%"


class HTMLEntry(Entry):
    """A Google Voice HTML document (text thread, call log or voicemail)."""

    kind = EntryKind.HTML

    def __init__(self, *args, phone_book: Optional["PhoneBook"] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.phone_book = phone_book
        self.document: Optional[BeautifulSoup] = None
        self.media: List[MediaEntry] = []
        self.merged_entries: List["HTMLEntry"] = []
        self.last_timestamp: datetime = self.timestamp

    # ====================================================================
    # LOADING
    # ====================================================================

    def load(self) -> None:
        with open(self.source_path, "r", encoding="utf-8") as f:
            self.document = BeautifulSoup(f.read(), "html.parser")

    def ensure_loaded(self) -> BeautifulSoup:
        if not self.is_loaded:
            self.load()
        return self.document

    @property
    def is_loaded(self) -> bool:
        return self.document is not None

    @property
    def is_fixed(self) -> bool:
        return self.document is not None and self.document.find("style", id=STYLE_MARKER_ID) is not None

    @staticmethod
    def query_participants(path: Path) -> List[str]:
        """
        Read the participants of a group conversation document.

        Args:
            path: Group conversation HTML file

        Returns:
            Sorted, unique, normalized numbers of the tel: links in the participants block
        """
        with open(path, "r", encoding="utf-8") as f:
            soup = BeautifulSoup(f.read(), "html.parser")

        numbers = set()
        for link in soup.select(".participants .sender.vcard a"):
            href = link.get("href", "")
            if not href.startswith("tel:"):
                continue
            number = normalize_phone_number(href[len("tel:"):])
            if number:
                numbers.add(number)
        return sorted(numbers)

    # ====================================================================
    # FIXING
    # ====================================================================

    def fix(self) -> None:
        """
        Normalize the document so it can be combined with others.

        Removes scripts, external stylesheets and the original styles, installs
        the merger style sheet, wraps the body content in an entry section and
        prepends the participants header. Calling fix() again is a no-op.
        """
        document = self.ensure_loaded()
        if self.is_fixed:
            return

        head, body = self._ensure_skeleton(document)

        for tag in document.find_all(["script", "link", "style"]):
            tag.decompose()

        style = document.new_tag("style", id=STYLE_MARKER_ID)
        style.string = get_template_loader().style_sheet()
        head.append(style)

        section = document.new_tag(
            "div",
            attrs={
                "class": ENTRY_SECTION_CLASS,
                "data-entry": self.source_path.stem,
                "data-action": self.action.value,
            },
        )
        for child in list(body.contents):
            section.append(child.extract())
        body.append(section)

        participants = self.participant_labels()
        body.insert(0, self._participants_header(document, participants))

        title = head.find("title")
        if title is None:
            title = document.new_tag("title")
            head.insert(0, title)
        title.string = ", ".join(participants)

    def _ensure_skeleton(self, document: BeautifulSoup):
        html = document.find("html")
        if html is None:
            html = document.new_tag("html")
            for child in list(document.contents):
                html.append(child.extract())
            document.append(html)

        body = html.find("body")
        if body is None:
            body = document.new_tag("body")
            for child in list(html.contents):
                if isinstance(child, Tag) and child.name == "head":
                    continue
                body.append(child.extract())
            html.append(body)

        head = html.find("head")
        if head is None:
            head = document.new_tag("head")
            html.insert(0, head)

        return head, body

    def participant_labels(self) -> List[str]:
        """Human readable participant labels, e.g. "Jane Doe (555) 123-4567"."""
        labels = []
        for number in self.phone_numbers:
            display = format_for_display(number)
            name = self.phone_book.get_and_record_match(number).name if self.phone_book else None
            labels.append(f"{name} {display}" if name else display)
        return labels

    def _participants_header(self, document: BeautifulSoup, labels: Iterable[str]) -> Tag:
        header = document.new_tag("div", attrs={"class": PARTICIPANTS_HEADER_CLASS})
        for label in labels:
            span = document.new_tag("span")
            span.string = label
            header.append(span)
        return header

    # ====================================================================
    # MERGING
    # ====================================================================

    def merge(self, other: Entry) -> None:
        """
        Merge another entry of the same conversation into this one.

        Args:
            other: A later HTML entry, or a media entry that was already saved

        Raises:
            UnsavedMediaError: If a media entry has not been saved yet
            MissingPlaceholderError: If a media entry has nowhere to go in the document
        """
        if other.kind == EntryKind.HTML:
            self._merge_document(other)
        else:
            self._attach_media(other)

    def _merge_document(self, other: "HTMLEntry") -> None:
        logger.debug(f"Merging {other.name} into {self.name}")

        self.fix()
        other.fix()

        body = self.document.body
        body.append(self.document.new_tag("hr"))
        for section in other.document.find_all("div", class_=ENTRY_SECTION_CLASS):
            body.append(copy.copy(section))

        self.merged_entries.append(other)
        if other.last_timestamp > self.last_timestamp:
            self.last_timestamp = other.last_timestamp

    def _attach_media(self, media: MediaEntry) -> None:
        if media.saved_path is None:
            raise UnsavedMediaError(f"Media {media.name} must be saved before it is merged")

        logger.debug(f"Attaching media {media.name} to {self.name}")

        self.fix()
        document = self.document
        keys = {media.source_path.stem, media.source_path.name}
        src = f"{MEDIA_DIRNAME}/{media.saved_path.name}"

        if media.format in (EntryFormat.JPG, EntryFormat.GIF):
            placeholder = self._find_placeholder("img", "src", keys)
            replacement = document.new_tag(
                "img", src=src, alt="Image MMS Attachment", width=IMAGE_WIDTH
            )
        elif media.format in (EntryFormat.MP4, EntryFormat.THREE_GP):
            placeholder = self._find_placeholder("a", "href", keys, class_="video")
            replacement = document.new_tag("video", controls="", src=src, width=VIDEO_WIDTH)
            fallback = document.new_tag("a", rel="enclosure", href=src)
            fallback.string = media.saved_path.name
            replacement.append(fallback)
        elif media.format == EntryFormat.VCF:
            placeholder = self._find_placeholder("a", "href", keys, class_="vcard")
            replacement = document.new_tag("a", attrs={"class": "vcard", "href": src})
            replacement.string = placeholder.get_text(strip=True) if placeholder else media.saved_path.name
        elif media.format == EntryFormat.MP3 and media.action.is_voicemail:
            self._attach_recording(media, keys, src)
            self.media.append(media)
            return
        else:
            if media.format == EntryFormat.AMR:
                logger.warning(f"AMR audio {media.name} may not play in most browsers")
            placeholder = self._find_placeholder("audio", "src", keys)
            replacement = self._audio_tag(src)

        if placeholder is None:
            raise MissingPlaceholderError(
                f"Unable to find a {media.format.value} placeholder for {media.name} in {self.name}"
            )

        placeholder.replace_with(replacement)
        self.media.append(media)

    def _attach_recording(self, media: MediaEntry, keys: set, src: str) -> None:
        """Insert a voicemail or recording player before the duration of its call entry."""
        section = self.document.find(
            "div", attrs={"class": ENTRY_SECTION_CLASS, "data-entry": media.source_path.stem}
        )
        duration = section.find("abbr", class_="duration") if section is not None else None
        if duration is not None:
            duration.insert_before(self._audio_tag(src))
            return

        placeholder = self._find_placeholder("audio", "src", keys)
        if placeholder is None:
            raise MissingPlaceholderError(
                f"Unable to find the call entry for recording {media.name} in {self.name}"
            )
        placeholder.replace_with(self._audio_tag(src))

    def _audio_tag(self, src: str) -> Tag:
        return self.document.new_tag("audio", controls="", src=src)

    def _find_placeholder(self, tag: str, attribute: str, keys: set, class_: Optional[str] = None) -> Optional[Tag]:
        for key in sorted(keys):
            attrs = {attribute: key}
            if class_:
                attrs["class"] = class_
            found = self.document.find(tag, attrs=attrs)
            if found is not None:
                return found
        return None

    # ====================================================================
    # SAVING
    # ====================================================================

    def output_filename(self) -> str:
        return f"{self.timestamp.strftime(OUTPUT_TIMESTAMP_FORMAT)} {self.key}.html"

    def save(self, output_dir: Path) -> Path:
        """
        Write the (merged) document to <output_dir>/<key>/<timestamp> <key>.html.

        Returns:
            The path of the written file
        """
        self.fix()

        conversation_dir = self.output_dir_for(output_dir)
        conversation_dir.mkdir(parents=True, exist_ok=True)

        destination = conversation_dir / self.output_filename()
        with open(destination, "w", encoding="utf-8") as f:
            f.write(str(self.document))
        self.saved_path = destination

        logger.debug(f"Saved {self.name} to {destination}")
        return destination

    @property
    def size(self) -> int:
        if self.saved_path is None or not self.saved_path.exists():
            return 0
        return self.saved_path.stat().st_size

    @property
    def media_size(self) -> int:
        return sum(media.size for media in self.media if media.saved_path is not None)

    @property
    def entry_count(self) -> int:
        return 1 + len(self.merged_entries)

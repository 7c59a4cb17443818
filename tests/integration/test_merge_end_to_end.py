"""
End-to-end merge tests.

Each test builds a small Takeout export, runs the merger and inspects the
output tree: one directory per conversation, one merged document per
directory, media copied next to it and the phone book reports in logs/.
"""

import unittest
from datetime import datetime, timezone

from bs4 import BeautifulSoup

from core.entries import EntryFactory
from core.errors import (
    MissingAnchorError,
    OutputConflictError,
    PhoneNumberMismatchError,
)
from core.merger import ConversationMerger
from core.phone_book import MatchStrategy, PhoneBook
from tests.base_test import (
    BaseMergerTest,
    call_html,
    group_conversation_html,
    message_html,
    text_thread_html,
    vcard,
)

NUMBER = "+15551234567"
T1 = "2021-06-01T10_00_00Z"
T2 = "2021-06-02T08_30_00Z"


class TestMergeEndToEnd(BaseMergerTest):
    """Merging complete exports."""

    def write_text(self, number=NUMBER, timestamp=T1, text="hello", **attachments):
        return self.export.write(
            f"{number} - Text - {timestamp}.html",
            text_thread_html([message_html(number, "Alice", text, "2021-06-01T10:00:00.000Z", **attachments)]),
        )

    def write_call(self, action, number=NUMBER, timestamp=T2, **kwargs):
        return self.export.write(
            f"{number} - {action} - {timestamp}.html",
            call_html(f"{action} call", number, "Alice", "2021-06-02T08:30:00.000Z", **kwargs),
        )

    def read_document(self, path):
        return BeautifulSoup(path.read_text(encoding="utf-8"), "html.parser")

    def conversation_files(self, key):
        return sorted((self.output_dir / key).glob("*.html"))

    def test_single_text_thread(self):
        """A lone text thread becomes one fixed document and one SMS."""
        self.write_text()

        merger = ConversationMerger(self.make_config(generate_xml=True))
        stats = merger.run()

        [document_path] = self.conversation_files(NUMBER)
        self.assertEqual(document_path.name, f"{T1} {NUMBER}.html")
        document = self.read_document(document_path)
        self.assertEqual(document.find("q").get_text(), "hello")
        self.assertEqual(stats.conversations, 1)
        self.assertEqual(stats.entries_by_action["Text"], 1)

        xml = (self.output_dir / "sms.xml").read_text(encoding="utf-8")
        self.assertEqual(xml.count("<sms "), 1)
        self.assertIn('body="hello"', xml)
        self.assertIn('type="1"', xml)

    def test_text_and_voicemail_are_merged_in_order(self):
        """Entries of the same number fold into the earliest document."""
        self.write_call("Voicemail", transcription="Call me back")
        self.export.write_bytes(f"{NUMBER} - Voicemail - {T2}.mp3", b"ID3audio")
        self.write_text()

        stats = ConversationMerger(self.make_config()).run()

        self.assertEqual([p.name for p in self.output_dir.iterdir() if p.is_dir()].count(NUMBER), 1)
        [document_path] = self.conversation_files(NUMBER)
        self.assertEqual(document_path.name, f"{T1} {NUMBER}.html")

        document = self.read_document(document_path)
        sections = document.find_all("div", class_="gvoice-entry")
        self.assertEqual([s["data-action"] for s in sections], ["Text", "Voicemail"])
        self.assertEqual(len(document.find_all("hr")), 1)

        audio = sections[1].find("audio")
        self.assertEqual(audio["src"], f"media/{NUMBER} - Voicemail - {T2}.mp3")
        self.assertTrue((self.output_dir / NUMBER / "media" / f"{NUMBER} - Voicemail - {T2}.mp3").exists())

        self.assertEqual(stats.entries, 3)
        self.assertEqual(stats.media_attached, 1)

    def test_orphan_call_log_is_discarded(self):
        self.write_call("Missed")

        stats = ConversationMerger(self.make_config(ignore_orphan_call_logs=True)).run()

        self.assertFalse((self.output_dir / NUMBER).exists())
        self.assertEqual(stats.conversations, 0)
        self.assertEqual(stats.entries, 0)
        self.assertEqual(stats.discarded_call_log_groups, 1)

    def test_call_log_with_text_is_not_orphan(self):
        self.write_text()
        self.write_call("Missed")

        stats = ConversationMerger(self.make_config(ignore_orphan_call_logs=True)).run()

        self.assertEqual(stats.conversations, 1)
        self.assertEqual(stats.entries, 2)

    def test_orphan_voicemail_is_discarded(self):
        """The recording belongs to the voicemail, so the group is still voicemail-only."""
        self.write_call("Voicemail")
        self.export.write_bytes(f"{NUMBER} - Voicemail - {T2}.mp3", b"ID3audio")

        stats = ConversationMerger(self.make_config(ignore_orphan_voicemails=True)).run()

        self.assertFalse((self.output_dir / NUMBER).exists())
        self.assertEqual(stats.conversations, 0)
        self.assertEqual(stats.discarded_voicemail_groups, 1)

    def test_ignore_call_logs(self):
        self.write_text()
        self.write_call("Placed")

        stats = ConversationMerger(self.make_config(ignore_call_logs=True)).run()

        [document_path] = self.conversation_files(NUMBER)
        sections = self.read_document(document_path).find_all("div", class_="gvoice-entry")
        self.assertEqual(len(sections), 1)
        self.assertEqual(stats.ignored_call_logs, 1)

    def test_ignore_media_keeps_placeholders(self):
        media_name = f"{NUMBER} - Text - {T1}-1-1.jpg"
        self.write_text(image=media_name[:-len(".jpg")])
        self.export.write_bytes(media_name, b"\xff\xd8")

        stats = ConversationMerger(self.make_config(ignore_media=True)).run()

        self.assertFalse((self.output_dir / NUMBER / "media").exists())
        self.assertEqual(stats.ignored_media, 1)
        [document_path] = self.conversation_files(NUMBER)
        self.assertEqual(self.read_document(document_path).find("img")["src"], media_name[:-len(".jpg")])

    def test_group_conversation_with_image(self):
        """Group media lands in the group document's placeholder."""
        timestamp = "2021-06-01T10_00_00Z"
        media_name = f"Group Conversation - {timestamp}-1-1.jpg"
        self.export.write(
            f"Group Conversation - {timestamp}.html",
            group_conversation_html(
                [("+15552223333", "Bob"), ("+15551112222", "Carol")],
                [message_html("+15552223333", "Bob", "look", "2021-06-01T10:00:00.000Z", image=media_name[:-4])],
            ),
        )
        self.export.write_bytes(media_name, b"GIF89a")

        stats = ConversationMerger(self.make_config()).run()

        key = "+15551112222,+15552223333"
        [document_path] = self.conversation_files(key)
        img = self.read_document(document_path).find("img")
        self.assertEqual(img["src"], f"media/{media_name}")
        self.assertEqual(stats.group_conversations, 1)
        self.assertTrue((self.output_dir / key / "media" / media_name).exists())

    def test_media_without_document(self):
        self.export.write_bytes(f"{NUMBER} - Text - {T1}-1-1.jpg", b"\xff\xd8")

        with self.assertRaises(MissingAnchorError):
            ConversationMerger(self.make_config()).run()

    def test_phone_number_mismatch(self):
        first = self.write_text()
        second = self.write_text(number="+15559998888", timestamp=T2)
        factory = EntryFactory()
        merger = ConversationMerger(self.make_config())

        with self.assertRaises(PhoneNumberMismatchError) as cm:
            merger.merge_group([factory.from_file(first), factory.from_file(second)])

        self.assertEqual(cm.exception.expected, [NUMBER])
        self.assertEqual(cm.exception.actual, ["+15559998888"])

    def test_existing_output_directory(self):
        self.write_text()
        self.output_dir.mkdir()

        with self.assertRaises(OutputConflictError):
            ConversationMerger(self.make_config()).run()

    def test_force_replaces_output_directory(self):
        self.write_text()
        self.output_dir.mkdir()
        (self.output_dir / "stale.txt").write_text("old")

        ConversationMerger(self.make_config(force=True)).run()

        self.assertFalse((self.output_dir / "stale.txt").exists())
        self.assertEqual(len(self.conversation_files(NUMBER)), 1)

    def test_ignored_system_files(self):
        self.write_text()
        self.export.write("desktop.ini", "[.ShellClassInfo]")

        stats = ConversationMerger(self.make_config()).run()

        self.assertEqual(stats.files, 1)

    def test_phone_book_reports(self):
        contacts = self.export.write_contacts(vcard("Alice", "+15551234567"))
        self.write_text(number="5551234567")
        self.write_text(number="+15550001111", timestamp=T2)
        phone_book = PhoneBook(contacts, MatchStrategy.SUFFIX, 8)

        ConversationMerger(self.make_config(), phone_book).run()

        logs_dir = self.output_dir / "logs"
        self.assertEqual(
            (logs_dir / "unknown_numbers.csv").read_text().splitlines(), ["+15550001111"]
        )
        matched = (logs_dir / "matched_numbers.csv").read_text().splitlines()
        self.assertEqual(matched[1], "5551234567,+15551234567,8,Alice")
        self.assertEqual(phone_book.stats.matched, {"+15551234567": {"5551234567": 8}})

        [document_path] = self.conversation_files("5551234567")
        self.assertIn("Alice", self.read_document(document_path).title.string)

    def test_merge_is_deterministic(self):
        self.write_text()
        self.write_call("Received")

        ConversationMerger(self.make_config()).run()
        first = {p.name: p.read_bytes() for p in (self.output_dir / NUMBER).glob("*.html")}
        ConversationMerger(self.make_config(force=True)).run()
        second = {p.name: p.read_bytes() for p in (self.output_dir / NUMBER).glob("*.html")}

        self.assertEqual(first, second)

    def test_anchor_timestamps(self):
        self.write_text()
        self.write_call("Received")

        merger = ConversationMerger(self.make_config())
        merger.run()

        [anchor] = merger.saved_entries
        self.assertEqual(anchor.timestamp, datetime(2021, 6, 1, 10, 0, tzinfo=timezone.utc))
        self.assertEqual(anchor.last_timestamp, datetime(2021, 6, 2, 8, 30, tzinfo=timezone.utc))
        self.assertEqual(anchor.entry_count, 2)


if __name__ == '__main__':
    unittest.main()

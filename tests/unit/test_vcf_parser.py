"""
Unit tests for VCF (vCard) parsing.

Covers reading contact cards for the phone book and extracting the user's own
number from the Phones.vcf file of an export.
"""

import pytest
from pathlib import Path
from tempfile import TemporaryDirectory

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from utils.vcf_parser import extract_own_number_from_vcf, read_contact_cards


class TestReadContactCards:
    """Test reading contact cards with vobject."""

    def test_reads_names_and_numbers(self, tmp_path):
        vcf_file = tmp_path / "contacts.vcf"
        vcf_file.write_text(
            "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:Jane Doe\r\nN:Doe;Jane;;;\r\n"
            "TEL;TYPE=CELL:+1 555 123 4567\r\nTEL;TYPE=HOME:(555) 987-6543\r\nEND:VCARD\r\n"
            "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:John Roe\r\nN:Roe;John;;;\r\n"
            "TEL:+44 20 7946 0958\r\nEND:VCARD\r\n"
        )

        cards = list(read_contact_cards(vcf_file))

        assert [card.full_name for card in cards] == ["Jane Doe", "John Roe"]
        assert cards[0].phone_numbers == ["+1 555 123 4567", "(555) 987-6543"]
        assert cards[1].phone_numbers == ["+44 20 7946 0958"]

    def test_card_without_number_or_name(self, tmp_path):
        vcf_file = tmp_path / "contacts.vcf"
        vcf_file.write_text(
            "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:No Phone\r\nN:Phone;No;;;\r\nEND:VCARD\r\n"
            "BEGIN:VCARD\r\nVERSION:3.0\r\nN:;;;;\r\nTEL:+15550001111\r\nEND:VCARD\r\n"
        )

        cards = list(read_contact_cards(vcf_file))

        assert cards[0].full_name == "No Phone"
        assert cards[0].phone_numbers == []
        assert cards[1].full_name is None
        assert cards[1].phone_numbers == ["+15550001111"]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(read_contact_cards(tmp_path / "missing.vcf"))


class TestVCFParser:
    """Test VCF parsing for own number extraction."""

    def test_extract_own_number_from_valid_vcf(self):
        """Test extraction from real Phones.vcf format."""
        vcf_content = """BEGIN:VCARD
VERSION:3.0
FN:
N:;;;;
item1.TEL:+13474106066
item1.X-ABLabel:Google Voice
TEL;TYPE=CELL:+13473865957
TEL;TYPE=CELL:+16313611005
END:VCARD"""

        with TemporaryDirectory() as tmpdir:
            vcf_file = Path(tmpdir) / "Phones.vcf"
            vcf_file.write_text(vcf_content)

            own_number = extract_own_number_from_vcf(vcf_file)

            assert own_number == "+13474106066"

    def test_extract_own_number_google_voice_label(self):
        """The labelled number wins even when it is not the first one."""
        vcf_content = """BEGIN:VCARD
VERSION:3.0
FN:User Name
TEL;TYPE=CELL:+13473865957
item1.TEL:+13474106066
item1.X-ABLabel:Google Voice
END:VCARD"""

        with TemporaryDirectory() as tmpdir:
            vcf_file = Path(tmpdir) / "Phones.vcf"
            vcf_file.write_text(vcf_content)

            assert extract_own_number_from_vcf(vcf_file) == "+13474106066"

    def test_extract_own_number_normalizes_to_e164(self):
        vcf_content = """BEGIN:VCARD
VERSION:3.0
FN:User Name
item1.TEL:(347) 410-6066
item1.X-ABLabel:Google Voice
END:VCARD"""

        with TemporaryDirectory() as tmpdir:
            vcf_file = Path(tmpdir) / "Phones.vcf"
            vcf_file.write_text(vcf_content)

            assert extract_own_number_from_vcf(vcf_file) == "+13474106066"

    def test_extract_own_number_fallback_to_first(self):
        vcf_content = """BEGIN:VCARD
VERSION:3.0
FN:User Name
TEL;TYPE=CELL:+13473865957
TEL;TYPE=CELL:+16313611005
END:VCARD"""

        with TemporaryDirectory() as tmpdir:
            vcf_file = Path(tmpdir) / "Phones.vcf"
            vcf_file.write_text(vcf_content)

            assert extract_own_number_from_vcf(vcf_file) == "+13473865957"

    def test_extract_own_number_missing_file(self):
        assert extract_own_number_from_vcf(Path("/nonexistent/Phones.vcf")) is None

    def test_extract_own_number_none_path(self):
        assert extract_own_number_from_vcf(None) is None

"""
VCF (vCard) parsing for Google Voice Takeout exports.

Reads contact cards for the phone book and extracts the user's own Google
Voice number from the Phones.vcf file included in the export.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

import vobject

from utils.phone_utils import to_e164

logger = logging.getLogger(__name__)

GOOGLE_VOICE_LABEL = "google voice"


@dataclass
class ContactCard:
    """A single vCard reduced to what the merger needs."""

    full_name: Optional[str]
    phone_numbers: List[str] = field(default_factory=list)
    labels: List[Optional[str]] = field(default_factory=list)


def _card_full_name(vcard) -> Optional[str]:
    if not hasattr(vcard, "fn"):
        return None
    value = str(vcard.fn.value).replace("\r\n", " ").replace("\n", " ").strip()
    return value or None


def _tel_label(vcard, tel) -> Optional[str]:
    """Return the X-ABLabel attached to a grouped TEL property (item1.TEL)."""
    if not tel.group:
        return None
    for label in vcard.contents.get("x-ablabel", []):
        if label.group == tel.group:
            return str(label.value)
    return None


def read_contact_cards(vcf_file_path: Path) -> Iterator[ContactCard]:
    """
    Iterate over the contact cards of a VCF file.

    Args:
        vcf_file_path: Path to the .vcf file

    Yields:
        ContactCard objects in file order

    Raises:
        FileNotFoundError: If the file does not exist
    """
    vcf_content = Path(vcf_file_path).read_text(encoding="utf-8")

    for vcard in vobject.readComponents(vcf_content, ignoreUnreadable=True):
        if vcard.name.upper() != "VCARD":
            continue

        tels = vcard.contents.get("tel", [])
        yield ContactCard(
            full_name=_card_full_name(vcard),
            phone_numbers=[str(tel.value).strip() for tel in tels if str(tel.value).strip()],
            labels=[_tel_label(vcard, tel) for tel in tels if str(tel.value).strip()],
        )


def extract_own_number_from_vcf(vcf_file_path: Path) -> Optional[str]:
    """
    Extract user's own phone number from Phones.vcf file.

    Looks for the phone number labelled "Google Voice" (X-ABLabel). If there
    is none, returns the first valid phone number as a fallback.

    Args:
        vcf_file_path: Path to Phones.vcf file

    Returns:
        User's Google Voice number in E164 format (+1XXXXXXXXXX), or None if not found
    """
    if not vcf_file_path or not Path(vcf_file_path).exists():
        logger.debug(f"VCF file not found: {vcf_file_path}")
        return None

    try:
        cards = list(read_contact_cards(vcf_file_path))
    except (OSError, UnicodeDecodeError, vobject.base.ParseError) as e:
        logger.warning(f"Failed to read VCF file {vcf_file_path}: {e}")
        return None

    fallback = None
    for card in cards:
        for number, label in zip(card.phone_numbers, card.labels):
            e164 = to_e164(number)
            if not e164:
                continue
            if label and label.strip().lower() == GOOGLE_VOICE_LABEL:
                logger.debug(f"Found Google Voice number in VCF: {e164}")
                return e164
            if fallback is None:
                fallback = e164

    if fallback:
        logger.debug(f"Using first phone number from VCF as fallback: {fallback}")
    else:
        logger.debug("No valid phone numbers found in VCF file")
    return fallback

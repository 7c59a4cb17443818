"""
Phone number helpers shared by the classifier, the phone book and the renderers.

Normalization is purely textual (keep digits and '+') so that matching stays
predictable; phonenumbers is only used for display formatting and E.164
conversion.
"""

import logging
import re
from typing import Optional

import phonenumbers
from phonenumbers import PhoneNumberFormat

logger = logging.getLogger(__name__)

DEFAULT_REGION = "US"

_NON_PHONE_CHARACTERS = re.compile(r"[^0-9+]")


def normalize_phone_number(phone_number: str) -> str:
    """
    Strip every character that is not a digit or '+'.

    The operation is idempotent: normalizing a normalized number returns it
    unchanged.

    Args:
        phone_number: Raw phone number as found in a filename, a tel: link or a VCF card

    Returns:
        The normalized phone number (possibly empty)
    """
    if phone_number is None:
        return ""
    return _NON_PHONE_CHARACTERS.sub("", str(phone_number))


def to_e164(phone_number: str, region: str = DEFAULT_REGION) -> Optional[str]:
    """
    Convert a phone number to E.164 format.

    Args:
        phone_number: Phone number in any common format
        region: Region used to interpret numbers without a country code

    Returns:
        The E.164 representation, or None if the number is not valid
    """
    try:
        parsed = phonenumbers.parse(phone_number, region)
    except phonenumbers.NumberParseException as e:
        logger.debug(f"Failed to parse phone number '{phone_number}': {e}")
        return None

    if not phonenumbers.is_valid_number(parsed):
        logger.debug(f"Invalid phone number: {phone_number}")
        return None

    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)


def format_for_display(phone_number: str, region: str = DEFAULT_REGION) -> str:
    """
    Format a phone number for people to read.

    Numbers phonenumbers cannot parse (short codes, sentinels, contact names)
    are returned unchanged.
    """
    try:
        parsed = phonenumbers.parse(phone_number, region)
    except phonenumbers.NumberParseException:
        return phone_number

    if not phonenumbers.is_possible_number(parsed):
        return phone_number

    if parsed.country_code == phonenumbers.country_code_for_region(region):
        return phonenumbers.format_number(parsed, PhoneNumberFormat.NATIONAL)
    return phonenumbers.format_number(parsed, PhoneNumberFormat.INTERNATIONAL)

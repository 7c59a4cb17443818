"""
Shared constants for the Google Voice export merger.

Centralizes the export filename grammar and the output layout so the entry
classes, the merger and the generators agree on them.
"""

import re

# ====================================================================
# FILENAME GRAMMAR
# ====================================================================

# Separator between filename components: "<phone> - <Action> - <timestamp>"
COMPONENT_SEPARATOR = " - "
COMPONENT_SPLIT_PATTERN = re.compile(r"\s+-\s+|^-\s+")

GROUP_CONVERSATION_PREFIX = "Group Conversation"

# 2024-01-05T14_03_22Z, 2024-01-05T14_03_22.123Z, 2024-01-05T14_03_22-05_00,
# optionally followed by a counter such as "-1-1"
TIMESTAMP_PATTERN = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})T(?P<hour>\d{2})_(?P<minute>\d{2})_(?P<second>\d{2})"
    r"(?P<fraction>\.\d+)?"
    r"(?P<zone>Z|[+-]\d{2}_?\d{2})?"
    r"(?P<suffix>.*)$"
)

# Sentinel used when an export has no phone number for an entry
UNKNOWN_PHONE_NUMBER = "unknown"

# Files that are never part of an export
IGNORED_FILENAMES = frozenset({"desktop.ini", ".DS_Store", "Thumbs.db"})

# ====================================================================
# OUTPUT LAYOUT
# ====================================================================

MEDIA_DIRNAME = "media"
LOGS_DIRNAME = "logs"
OUTPUT_TIMESTAMP_FORMAT = "%Y-%m-%dT%H_%M_%SZ"

UNKNOWN_NUMBERS_FILENAME = "unknown_numbers.csv"
MATCHED_NUMBERS_FILENAME = "matched_numbers.csv"
INDEX_FILENAME = "index.csv"
SMS_BACKUP_FILENAME = "sms.xml"
DEFAULT_LOG_FILENAME = "gvoice_merger.log"

# ====================================================================
# DOCUMENT MARKERS
# ====================================================================

# Presence of this style element means a document has already been fixed
STYLE_MARKER_ID = "gvoice-merger-style"
ENTRY_SECTION_CLASS = "gvoice-entry"
PARTICIPANTS_HEADER_CLASS = "gvoice-participants"

"""
Exception taxonomy for the Google Voice export merger.

Every error raised on purpose by the merger derives from MergerError so the CLI
can report it uniformly. Classification, participant resolution and output
conflicts are fatal for the whole run; merge invariant violations abort at the
group that triggered them.
"""

from pathlib import Path
from typing import List, Optional, Union


class MergerError(Exception):
    """Base class for all merger errors."""


# ====================================================================
# CLASSIFICATION
# ====================================================================


class ClassificationError(MergerError):
    """A filename could not be classified into an entry."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            message = f"{message} (file: {self.path.name})"
        super().__init__(message)


class InvalidFilenameError(ClassificationError):
    """The filename does not follow the export naming grammar."""


class UnknownActionError(ClassificationError):
    """The action token is not one of the known filename actions."""


class UnknownFormatError(ClassificationError):
    """The file extension does not map to a supported format."""


class TimestampParseError(ClassificationError):
    """The timestamp component could not be parsed."""


# ====================================================================
# PARTICIPANTS
# ====================================================================


class ParticipantResolutionError(MergerError):
    """A group conversation's participants could not be determined."""

    def __init__(self, message: str, companion_path: Optional[Path] = None):
        self.companion_path = companion_path
        super().__init__(message)


class MissingParticipantsError(ParticipantResolutionError):
    """The companion document was read but listed no participants."""


# ====================================================================
# MERGE INVARIANTS
# ====================================================================


class MergeInvariantError(MergerError):
    """A conversation group violated one of the merge invariants."""


class PhoneNumberMismatchError(MergeInvariantError):
    """Two entries of the same group disagree on their participants."""

    def __init__(self, expected: List[str], actual: List[str], entry_name: str):
        self.expected = expected
        self.actual = actual
        self.entry_name = entry_name
        super().__init__(
            f"Entry {entry_name} has participants {actual} but its group has {expected}"
        )


class MissingPlaceholderError(MergeInvariantError):
    """A media file has no matching placeholder in the conversation document."""


class UnsavedMediaError(MergeInvariantError):
    """A media entry was merged before it was saved to the output directory."""


class MissingAnchorError(MergeInvariantError):
    """A conversation group contains media only and no document to attach it to."""


class UnsupportedOperation(MergerError):
    """The operation is not available for this kind of entry."""


# ====================================================================
# PHONE BOOK / OUTPUT
# ====================================================================


class PhoneBookError(MergerError):
    """The phone book could not be built."""


class PhoneBookLoadWarning(UserWarning):
    """A contact card was skipped while loading the phone book."""


class OutputConflictError(MergerError):
    """The output directory already exists and force mode is off."""

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        super().__init__(
            f"Output directory {output_dir} already exists. Use --force to overwrite it."
        )

"""Media entries: images, audio, video and contact cards attached to conversations."""

import logging
import shutil
from pathlib import Path

from core.entries.entry import Entry, EntryKind
from core.shared_constants import MEDIA_DIRNAME

logger = logging.getLogger(__name__)


class MediaEntry(Entry):
    """A media file. It can only be copied next to its conversation."""

    kind = EntryKind.MEDIA

    def save(self, output_dir: Path) -> Path:
        """
        Copy the media file to <output_dir>/<key>/media/<name>.

        Args:
            output_dir: Root of the output tree

        Returns:
            The path the file was copied to
        """
        media_dir = self.output_dir_for(output_dir) / MEDIA_DIRNAME
        media_dir.mkdir(parents=True, exist_ok=True)

        destination = media_dir / self.source_path.name
        shutil.copy2(self.source_path, destination)
        self.saved_path = destination

        logger.debug(f"Copied media {self.source_path.name} to {destination}")
        return destination

    @property
    def size(self) -> int:
        path = self.saved_path or self.source_path
        return path.stat().st_size if path.exists() else 0

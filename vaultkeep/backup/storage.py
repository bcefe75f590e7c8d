"""
Backup store handling.

Archives are built in the temporary directory and moved into the backup
directory with a single atomic rename, so the store never holds a
partially written archive.
"""

import os
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .compression import is_archive_filename


class RelocationError(Exception):
    """Raised when an archive cannot be moved into the backup store."""
    pass


class ArchiveFile:
    """An archive found in the backup store."""

    def __init__(self, path: str, modified: datetime, size: int = 0):
        self.path = path
        self.modified = modified
        self.size = size

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    def __repr__(self):
        return f"ArchiveFile({self.name!r}, modified={self.modified.isoformat()})"


def relocate_archive(temp_path: str, final_path: str):
    """
    Atomically move a completed archive to its final path.

    The temporary archive is left in place when the move fails.

    Raises:
        RelocationError: If the rename fails (cross-device, permissions, missing file)
    """
    try:
        os.replace(temp_path, final_path)
    except OSError as e:
        raise RelocationError(f"Failed to move archive {temp_path} to {final_path}: {e}") from e


class BackupStore:
    """
    The backup directory holding finished archives.
    """

    def __init__(self, base_path: str, logger: Optional[logging.Logger] = None):
        """
        Args:
            base_path: Backup directory
            logger: Logger for store events
        """
        self.base_path = Path(base_path)
        self.logger = logger or logging.getLogger(__name__)

    def path_for(self, filename: str) -> str:
        """Full path of filename inside the store."""
        return str(self.base_path / filename)

    def relocate(self, temp_path: str, filename: Optional[str] = None) -> str:
        """
        Move an archive from the temporary directory into the store.

        Args:
            temp_path: Path of the completed archive
            filename: Name in the store (defaults to the temporary file's name)

        Returns:
            Final path of the archive

        Raises:
            RelocationError: If the move fails
        """
        final_path = self.path_for(filename or os.path.basename(temp_path))
        relocate_archive(temp_path, final_path)
        self.logger.debug(f"Relocated {temp_path} -> {final_path}")
        return final_path

    def list_archives(self) -> List[ArchiveFile]:
        """
        List archives matching the naming convention.

        Other entries in the directory are ignored.

        Raises:
            OSError: If the directory cannot be listed
        """
        archives = []

        with os.scandir(self.base_path) as entries:
            for entry in entries:
                if not is_archive_filename(entry.name):
                    continue
                try:
                    if not entry.is_file():
                        continue
                    stat = entry.stat()
                except FileNotFoundError:
                    # Removed between listing and stat
                    continue

                archives.append(ArchiveFile(
                    path=entry.path,
                    modified=datetime.fromtimestamp(stat.st_mtime),
                    size=stat.st_size
                ))

        return archives

    def delete(self, archive: ArchiveFile):
        """
        Delete an archive from the store.

        Raises:
            OSError: If the file cannot be removed
        """
        os.remove(archive.path)

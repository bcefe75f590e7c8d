"""
Retention policy enforcement for the backup store.

Keeps the most recent archives and deletes the oldest ones beyond the
configured retention count. Deletion is best effort: one file failing to
delete does not stop the others.
"""

import logging
from typing import List, Dict, Any, Optional

from .storage import BackupStore, ArchiveFile


class RetentionError(Exception):
    """Raised when the backup store cannot be scanned."""
    pass


class PruneDeleteError(RetentionError):
    """A single archive could not be deleted."""

    def __init__(self, archive: ArchiveFile, cause: Exception):
        super().__init__(f"Failed to delete old backup file {archive.name}: {cause}")
        self.archive = archive
        self.cause = cause


def select_expired(archives: List[ArchiveFile], retain_count: int) -> List[ArchiveFile]:
    """
    Pick the archives to delete.

    Archives are ordered oldest first by modification time, ties broken by
    name. Nothing is selected when there are at most retain_count archives.

    Args:
        archives: Archives found in the store, in any order
        retain_count: Number of newest archives to keep

    Returns:
        The len(archives) - retain_count oldest archives
    """
    if len(archives) <= retain_count:
        return []

    ordered = sorted(archives, key=lambda a: (a.modified, a.name))
    return ordered[:len(ordered) - retain_count]


class RetentionManager:
    """
    Applies the retention count to a backup store.
    """

    def __init__(self, store: BackupStore, retain_count: int, logger: Optional[logging.Logger] = None):
        """
        Args:
            store: Backup store to prune
            retain_count: Number of newest archives to keep
            logger: Logger for pruning events
        """
        self.store = store
        self.retain_count = retain_count
        self.logger = logger or logging.getLogger(__name__)

    def prune(self) -> Dict[str, Any]:
        """
        Delete archives beyond the retention count.

        Returns:
            Dict with summary of the pruning pass:
            {
                'matched': int,
                'deleted': List[str],
                'errors': List[PruneDeleteError]
            }

        Raises:
            RetentionError: If the store cannot be listed
        """
        try:
            archives = self.store.list_archives()
        except OSError as e:
            raise RetentionError(f"Failed to list backup directory {self.store.base_path}: {e}") from e

        summary = {
            'matched': len(archives),
            'deleted': [],
            'errors': []
        }

        expired = select_expired(archives, self.retain_count)
        if not expired:
            self.logger.info(
                f"Retention: {len(archives)} archive(s), keeping up to {self.retain_count}, nothing to remove"
            )
            return summary

        for archive in expired:
            self.logger.info(f"Removing old backup file: {archive.name}")
            try:
                self.store.delete(archive)
                summary['deleted'].append(archive.name)
            except OSError as e:
                error = PruneDeleteError(archive, e)
                self.logger.warning(str(error))
                summary['errors'].append(error)

        self.logger.info(
            f"Retention complete. "
            f"Matched: {summary['matched']}, "
            f"Deleted: {len(summary['deleted'])}, "
            f"Errors: {len(summary['errors'])}"
        )
        return summary

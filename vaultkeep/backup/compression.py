"""
7-Zip archive creation.

Archives are created with a fixed flag set:
- a         add files to archive
- -mx=0     no compression (store only)
- -mhe=on   encrypt archive headers, hiding the file listing
- -mtm=on   store modification timestamps
- -mtc=on   store creation timestamps
- -mta=on   store access timestamps
- -mtr=on   store file attributes
"""

import os
import logging
import subprocess
from datetime import datetime
from typing import List, Optional


ARCHIVE_PREFIX = 'backup_'
ARCHIVE_EXTENSION = '7z'

ARCHIVE_FLAGS = ['-mx=0', '-mhe=on', '-mtm=on', '-mtc=on', '-mta=on', '-mtr=on']
PASSWORD_MASK = '******'


class ArchiveToolError(Exception):
    """Raised when the archiving tool fails."""

    def __init__(self, message: str, returncode: Optional[int] = None, output: str = ''):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


def build_command_args(source_dirs: List[str], output_path: str, password: str) -> List[str]:
    """
    Build the 7-Zip argument list (without the executable).

    Args:
        source_dirs: Directories to archive, in order
        output_path: Archive path to create
        password: Archive password

    Returns:
        Argument list
    """
    return ['a'] + ARCHIVE_FLAGS + ['-p' + password, output_path] + list(source_dirs)


def generate_archive_filename(archive_id: str, when: Optional[datetime] = None) -> str:
    """
    Generate the archive filename.

    Format: backup_{YYYY-MM-DD}_{id}.7z
    """
    when = when or datetime.now()
    return f"{ARCHIVE_PREFIX}{when.strftime('%Y-%m-%d')}_{archive_id}.{ARCHIVE_EXTENSION}"


def is_archive_filename(filename: str) -> bool:
    """Check whether a filename follows the archive naming convention."""
    return filename.startswith(ARCHIVE_PREFIX) and filename.endswith('.' + ARCHIVE_EXTENSION)


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an archive file in bytes.

    Raises:
        ArchiveToolError: If the archive does not exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except FileNotFoundError:
        raise ArchiveToolError(f"Archive not found: {archive_path}")
    except OSError as e:
        raise ArchiveToolError(f"Failed to get archive size: {e}")


class ArchiveBuilder:
    """
    Runs the provisioned 7-Zip executable and logs its output.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def build(self, tool_path: str, source_dirs: List[str], output_path: str, password: str) -> str:
        """
        Create an encrypted archive of source_dirs at output_path.

        All tool output is logged line by line. The password never reaches
        the log.

        Args:
            tool_path: Path to the 7-Zip executable
            source_dirs: Directories to archive
            output_path: Archive path (inside the temporary directory)
            password: Archive password

        Returns:
            output_path

        Raises:
            ArchiveToolError: If the tool cannot be started or exits non-zero
        """
        if not source_dirs:
            raise ArchiveToolError("No source directories provided")

        args = build_command_args(source_dirs, output_path, password)
        self.logger.info(f"Starting backup: {output_path}")
        self.logger.debug(
            "Running: %s", ' '.join([tool_path] + self._redact_args(args, password))
        )

        output_lines = []
        try:
            process = subprocess.Popen(
                [tool_path] + args,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors='replace'
            )
        except (OSError, ValueError) as e:
            # ValueError: an argument holds a NUL byte
            raise ArchiveToolError(f"Failed to start 7-Zip: {e}") from e

        with process:
            for line in process.stdout:
                line = self._redact(line.rstrip('\r\n'), password)
                output_lines.append(line)
                if line:
                    self.logger.info(line)
            returncode = process.wait()

        output = '\n'.join(output_lines)
        if returncode != 0:
            self.logger.error(f"7-Zip execution failed with exit code {returncode}")
            self._remove_partial(output_path)
            raise ArchiveToolError(
                f"7-Zip failed with exit code {returncode}",
                returncode=returncode,
                output=output
            )

        return output_path

    def _remove_partial(self, output_path: str):
        """Remove a partially written archive from the temporary directory."""
        if os.path.exists(output_path):
            try:
                os.remove(output_path)
                self.logger.info(f"Removed partial archive: {output_path}")
            except OSError as e:
                self.logger.warning(f"Failed to remove partial archive {output_path}: {e}")

    @staticmethod
    def _redact_args(args: List[str], password: str) -> List[str]:
        return ['-p' + PASSWORD_MASK if arg == '-p' + password else arg for arg in args]

    @staticmethod
    def _redact(line: str, password: str) -> str:
        return line.replace(password, PASSWORD_MASK) if password else line

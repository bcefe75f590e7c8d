"""
Provisioning of the bundled 7-Zip executable.

The package ships one 7-Zip binary per supported platform in its tools
directory. For each run the matching binary is copied into the temporary
directory, made executable and, on macOS, stripped of the quarantine
attribute so it can run unattended.
"""

import os
import sys
import logging
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional


QUARANTINE_ATTRIBUTE = 'com.apple.quarantine'


class ProvisionError(Exception):
    """Raised when the archiving tool cannot be provisioned."""
    pass


class UnsupportedPlatformError(ProvisionError):
    """Raised when no bundled tool exists for the current platform."""
    pass


class AttributeClearError(ProvisionError):
    """Raised when the quarantine attribute cannot be removed."""
    pass


class ToolPayload:
    """A bundled executable for one platform."""

    def __init__(self, resource_name: str, file_name: str, clear_quarantine: bool = False):
        self.resource_name = resource_name
        self.file_name = file_name
        self.clear_quarantine = clear_quarantine

    def __repr__(self):
        return f"ToolPayload({self.resource_name!r}, {self.file_name!r})"


# Platform id -> bundled payload
TOOL_PAYLOADS: Dict[str, ToolPayload] = {
    'darwin': ToolPayload('7zz', '7zz', clear_quarantine=True),
    'win32': ToolPayload('7za.exe', '7za.exe'),
    'linux': ToolPayload('7zzs', '7zzs'),
}


def current_platform() -> str:
    """Return the platform id used as key in TOOL_PAYLOADS."""
    if sys.platform.startswith('linux'):
        return 'linux'
    return sys.platform


class ToolProvisioner:
    """
    Extracts the platform-specific 7-Zip executable for a single run.
    """

    def __init__(self, tools_dir: str, payloads: Optional[Dict[str, ToolPayload]] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Args:
            tools_dir: Directory containing the bundled payload files
            payloads: Platform lookup table (defaults to TOOL_PAYLOADS)
            logger: Logger for provisioning events
        """
        self.tools_dir = Path(tools_dir)
        self.payloads = payloads if payloads is not None else TOOL_PAYLOADS
        self.logger = logger or logging.getLogger(__name__)

    def provision(self, temp_dir: str, platform_id: Optional[str] = None) -> str:
        """
        Write the executable for the platform into temp_dir.

        Args:
            temp_dir: Writable directory for the extracted executable
            platform_id: Platform id (defaults to the running platform)

        Returns:
            Path to the extracted executable

        Raises:
            UnsupportedPlatformError: If no payload matches the platform
            AttributeClearError: If the quarantine attribute cannot be removed
            ProvisionError: If the payload is missing or cannot be written
        """
        platform_id = platform_id or current_platform()
        payload = self.payloads.get(platform_id)
        if payload is None:
            raise UnsupportedPlatformError(f"Unsupported operating system: {platform_id}")

        source_path = self.tools_dir / payload.resource_name
        try:
            data = source_path.read_bytes()
        except FileNotFoundError as e:
            raise ProvisionError(f"Bundled 7-Zip binary not found: {source_path}") from e
        except OSError as e:
            raise ProvisionError(f"Failed to read bundled 7-Zip binary {source_path}: {e}") from e

        output_path = Path(temp_dir) / payload.file_name
        try:
            output_path.write_bytes(data)
            os.chmod(output_path, 0o755)
        except OSError as e:
            self.release(str(output_path))
            raise ProvisionError(f"Failed to write 7-Zip binary: {e}") from e

        if payload.clear_quarantine:
            try:
                self._clear_quarantine(output_path)
            except AttributeClearError:
                self.release(str(output_path))
                raise

        self.logger.debug(f"Provisioned 7-Zip binary for {platform_id}: {output_path}")
        return str(output_path)

    def _clear_quarantine(self, path: Path):
        """
        Remove the macOS quarantine attribute from path.

        An attribute that is not present counts as cleared.

        Raises:
            AttributeClearError: If xattr is unavailable or fails
        """
        try:
            result = subprocess.run(
                ['xattr', '-d', QUARANTINE_ATTRIBUTE, str(path)],
                capture_output=True,
                text=True
            )
        except OSError as e:
            raise AttributeClearError(f"Failed to remove macOS quarantine attribute: {e}") from e

        if result.returncode != 0 and 'No such xattr' not in result.stderr:
            raise AttributeClearError(
                f"Failed to remove macOS quarantine attribute (exit {result.returncode}): "
                f"{result.stderr.strip()}"
            )

    def release(self, tool_path: str):
        """Delete an extracted executable. A missing file is not an error."""
        try:
            os.remove(tool_path)
            self.logger.debug(f"Removed 7-Zip binary: {tool_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Failed to remove 7-Zip binary {tool_path}: {e}")

    @contextmanager
    def provisioned(self, temp_dir: str, platform_id: Optional[str] = None) -> Iterator[str]:
        """
        Provision the executable for the duration of a with-block.

        The executable is removed when the block exits, whether or not it
        raised.
        """
        tool_path = self.provision(temp_dir, platform_id)
        try:
            yield tool_path
        finally:
            self.release(tool_path)

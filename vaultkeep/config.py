import os
import json
from pathlib import Path
from typing import List, Optional

from cryptography.fernet import InvalidToken

from vaultkeep.utils.master_key import MasterKeyManager, SECRET_KEY_ENV


# Directory holding the bundled 7-Zip payloads shipped with the package
DEFAULT_TOOLS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'resources')
DEFAULT_CONFIG_FILE = 'config.json'
DEFAULT_LOG_FILE_NAME = 'backup.log'


class ConfigError(Exception):
    """Raised when the configuration file is missing, malformed or invalid."""
    pass


class EmailSettings:
    """Status email settings, consumed only by the notifier."""

    def __init__(self, recipient: str = '', sender: str = '', smtp_server: str = '',
                 smtp_port: int = 0, smtp_auth_enabled: bool = False,
                 smtp_user: str = '', smtp_password: str = ''):
        self.recipient = recipient
        self.sender = sender
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.smtp_auth_enabled = smtp_auth_enabled
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password

    def __repr__(self):
        return f"EmailSettings(recipient={self.recipient!r}, smtp_server={self.smtp_server!r})"


class BackupConfig:
    """
    Backup configuration.

    Built once at startup by load_config() and handed to every component
    that needs it. The archive password is kept out of repr().
    """

    def __init__(
        self,
        directories: List[str],
        backup_dir: str,
        temp_dir: str,
        password: str,
        retain_recent_backups: int,
        log_file_name: str = DEFAULT_LOG_FILE_NAME,
        debug_mode: bool = False,
        tools_dir: str = DEFAULT_TOOLS_DIR,
        email: Optional[EmailSettings] = None
    ):
        self.directories = list(directories)
        self.backup_dir = backup_dir
        self.temp_dir = temp_dir
        self.password = password
        self.retain_recent_backups = retain_recent_backups
        self.log_file_name = log_file_name
        self.debug_mode = debug_mode
        self.tools_dir = tools_dir
        self.email = email or EmailSettings()

        self.validate()

    def validate(self):
        """
        Check configuration invariants.

        Raises:
            ConfigError: If any value is missing or out of range
        """
        if not self.directories:
            raise ConfigError("At least one source directory must be configured")

        for directory in self.directories:
            if not isinstance(directory, str) or not directory:
                raise ConfigError(f"Invalid source directory: {directory!r}")

        for name in ('backup_dir', 'temp_dir', 'log_file_name', 'tools_dir'):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ConfigError(f"'{name}' must be a non-empty string")

        if not isinstance(self.password, str) or not self.password:
            raise ConfigError("Archive password must be a non-empty string")

        retain = self.retain_recent_backups
        if isinstance(retain, bool) or not isinstance(retain, int) or retain < 0:
            raise ConfigError(
                f"'retain_recent_backups' must be a non-negative integer, got {retain!r}"
            )

        if not isinstance(self.debug_mode, bool):
            raise ConfigError("'debug_mode' must be true or false")

        if Path(self.backup_dir).expanduser().resolve() == Path(self.temp_dir).expanduser().resolve():
            raise ConfigError("'backup_dir' and 'temp_dir' must be different directories")

    @property
    def log_file_path(self) -> str:
        return os.path.join(self.backup_dir, self.log_file_name)

    def __repr__(self):
        return (
            f"BackupConfig(directories={self.directories!r}, backup_dir={self.backup_dir!r}, "
            f"temp_dir={self.temp_dir!r}, retain_recent_backups={self.retain_recent_backups!r}, "
            f"debug_mode={self.debug_mode!r})"
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'BackupConfig':
        """
        Build a configuration from the parsed JSON document.

        Environment variables VAULTKEEP_BACKUP_DIR, VAULTKEEP_TEMP_DIR and
        VAULTKEEP_PASSWORD take precedence over the file values.

        Raises:
            ConfigError: If required keys are missing or values are invalid
        """
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object")

        missing = [
            key for key in ('directories', 'backup_dir', 'temp_dir', 'retain_recent_backups')
            if key not in data
        ]
        if missing:
            raise ConfigError(f"Missing configuration keys: {', '.join(missing)}")

        directories = data['directories']
        if not isinstance(directories, list):
            raise ConfigError("'directories' must be a list of paths")

        email = EmailSettings(
            recipient=data.get('email_recipient', ''),
            sender=data.get('email_sender', ''),
            smtp_server=data.get('email_smtp_server', ''),
            smtp_port=data.get('email_smtp_port', 0),
            smtp_auth_enabled=data.get('email_smtp_auth_enabled', False),
            smtp_user=data.get('email_smtp_user', ''),
            smtp_password=data.get('email_smtp_password', '')
        )

        return cls(
            directories=directories,
            backup_dir=os.environ.get('VAULTKEEP_BACKUP_DIR') or data['backup_dir'],
            temp_dir=os.environ.get('VAULTKEEP_TEMP_DIR') or data['temp_dir'],
            password=_resolve_password(data),
            retain_recent_backups=data['retain_recent_backups'],
            log_file_name=data.get('log_file_name') or DEFAULT_LOG_FILE_NAME,
            debug_mode=data.get('debug_mode', False),
            tools_dir=data.get('tools_dir') or DEFAULT_TOOLS_DIR,
            email=email
        )


def _resolve_password(data: dict) -> str:
    """
    Pick the archive password from the environment, the plaintext key or
    the encrypted key, in that order.
    """
    password = os.environ.get('VAULTKEEP_PASSWORD')
    if password:
        return password

    for key in ('password', 'password_encrypted'):
        if data.get(key) and not isinstance(data[key], str):
            raise ConfigError(f"'{key}' must be a string")

    if data.get('password'):
        return data['password']

    encrypted = data.get('password_encrypted')
    if not encrypted:
        raise ConfigError("Either 'password' or 'password_encrypted' must be configured")

    secret_key = os.environ.get(SECRET_KEY_ENV)
    if not secret_key:
        raise ConfigError(f"{SECRET_KEY_ENV} must be set to decrypt 'password_encrypted'")

    try:
        return MasterKeyManager(secret_key).decrypt_password(encrypted)
    except (InvalidToken, ValueError) as e:
        raise ConfigError(f"Failed to decrypt 'password_encrypted': {e!r}") from e


def load_config(path: str = DEFAULT_CONFIG_FILE) -> BackupConfig:
    """
    Load the configuration file.

    Args:
        path: Path to the JSON configuration file

    Returns:
        Validated BackupConfig

    Raises:
        ConfigError: If the file is missing, unreadable, malformed or invalid
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed configuration file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file {path}: {e}") from e

    return BackupConfig.from_dict(data)

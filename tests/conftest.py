"""
Shared pytest fixtures for vaultkeep tests.

This module provides fixtures for:
- Backup, temporary and source directories
- Configuration dicts, files and BackupConfig instances
- A tools directory with fake 7-Zip payloads
- Helpers to populate the backup store with archives of known age
"""

import os
import json
import time
from pathlib import Path

import pytest

from vaultkeep.config import BackupConfig
from vaultkeep.backup.storage import BackupStore


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep environment overrides from leaking into tests."""
    for name in ('VAULTKEEP_BACKUP_DIR', 'VAULTKEEP_TEMP_DIR', 'VAULTKEEP_PASSWORD', 'VAULTKEEP_SECRET_KEY'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def backup_dir(tmp_path):
    path = tmp_path / 'backups'
    path.mkdir()
    return path


@pytest.fixture
def temp_dir(tmp_path):
    path = tmp_path / 'temp'
    path.mkdir()
    return path


@pytest.fixture
def source_dirs(tmp_path):
    """
    Create two source directories with a few files.
    """
    documents = tmp_path / 'documents'
    documents.mkdir()
    (documents / 'report.txt').write_text('Quarterly report')
    (documents / 'nested').mkdir()
    (documents / 'nested' / 'notes.md').write_text('Notes')

    photos = tmp_path / 'photos'
    photos.mkdir()
    (photos / 'image.jpg').write_bytes(b'\xff\xd8\xff')

    return [str(documents), str(photos)]


@pytest.fixture
def tools_dir(tmp_path):
    """
    Create a tools directory with fake payloads for every platform.
    """
    path = tmp_path / 'tools'
    path.mkdir()
    (path / '7zz').write_bytes(b'macos-7zz-binary')
    (path / '7za.exe').write_bytes(b'windows-7za-binary')
    (path / '7zzs').write_bytes(b'linux-7zzs-binary')
    return path


@pytest.fixture
def config_dict(backup_dir, temp_dir, source_dirs, tools_dir):
    """Raw configuration as it appears in config.json."""
    return {
        'directories': source_dirs,
        'backup_dir': str(backup_dir),
        'temp_dir': str(temp_dir),
        'password': 'test_password_123',
        'retain_recent_backups': 3,
        'log_file_name': 'backup.log',
        'debug_mode': False,
        'tools_dir': str(tools_dir),
        'email_recipient': 'ops@example.com',
        'email_sender': 'backup@example.com',
        'email_smtp_server': 'smtp.example.com',
        'email_smtp_port': 587,
        'email_smtp_auth_enabled': True,
        'email_smtp_user': 'backup',
        'email_smtp_password': 'smtp_secret'
    }


@pytest.fixture
def config_file(tmp_path, config_dict):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps(config_dict))
    return path


@pytest.fixture
def backup_config(config_dict):
    return BackupConfig.from_dict(config_dict)


@pytest.fixture
def store(backup_dir):
    return BackupStore(str(backup_dir))


@pytest.fixture
def make_archive(backup_dir):
    """
    Factory creating a file in the backup directory with a given age.

    Usage: make_archive('backup_2024-01-01_AAAAAA.7z', age_seconds=3600)
    """
    now = time.time()

    def _make(name: str, age_seconds: float = 0, content: bytes = b'archive') -> Path:
        path = backup_dir / name
        path.write_bytes(content)
        mtime = now - age_seconds
        os.utime(path, (mtime, mtime))
        return path

    return _make

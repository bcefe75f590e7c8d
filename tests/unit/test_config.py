"""
Unit tests for configuration loading (vaultkeep/config.py).
"""

import json

import pytest

from vaultkeep.config import (
    BackupConfig,
    ConfigError,
    DEFAULT_LOG_FILE_NAME,
    DEFAULT_TOOLS_DIR,
    load_config
)
from vaultkeep.utils.master_key import MasterKeyManager


class TestLoadConfig:
    """Test load_config function."""

    def test_load_valid_file(self, config_file, config_dict):
        config = load_config(str(config_file))

        assert config.directories == config_dict['directories']
        assert config.backup_dir == config_dict['backup_dir']
        assert config.temp_dir == config_dict['temp_dir']
        assert config.password == 'test_password_123'
        assert config.retain_recent_backups == 3
        assert config.debug_mode is False
        assert config.email.recipient == 'ops@example.com'
        assert config.email.smtp_port == 587

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / 'missing.json'))

    def test_malformed_file(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{"directories": [')

        with pytest.raises(ConfigError, match="Malformed"):
            load_config(str(path))

    def test_not_an_object(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('[1, 2, 3]')

        with pytest.raises(ConfigError, match="JSON object"):
            load_config(str(path))

    def test_defaults(self, tmp_path, config_dict):
        for key in ('log_file_name', 'debug_mode', 'tools_dir'):
            del config_dict[key]
        path = tmp_path / 'minimal.json'
        path.write_text(json.dumps(config_dict))

        config = load_config(str(path))

        assert config.log_file_name == DEFAULT_LOG_FILE_NAME
        assert config.debug_mode is False
        assert config.tools_dir == DEFAULT_TOOLS_DIR


class TestValidation:
    """Test BackupConfig validation."""

    @pytest.mark.parametrize("key", ['directories', 'backup_dir', 'temp_dir', 'retain_recent_backups'])
    def test_missing_required_key(self, config_dict, key):
        del config_dict[key]

        with pytest.raises(ConfigError, match="Missing configuration keys"):
            BackupConfig.from_dict(config_dict)

    def test_empty_directories(self, config_dict):
        config_dict['directories'] = []

        with pytest.raises(ConfigError, match="At least one source directory"):
            BackupConfig.from_dict(config_dict)

    def test_directories_not_a_list(self, config_dict):
        config_dict['directories'] = '/data'

        with pytest.raises(ConfigError, match="must be a list"):
            BackupConfig.from_dict(config_dict)

    @pytest.mark.parametrize("value", [-1, 1.5, '3', True, None])
    def test_invalid_retention(self, config_dict, value):
        config_dict['retain_recent_backups'] = value

        with pytest.raises(ConfigError, match="non-negative integer"):
            BackupConfig.from_dict(config_dict)

    def test_zero_retention_allowed(self, config_dict):
        config_dict['retain_recent_backups'] = 0

        assert BackupConfig.from_dict(config_dict).retain_recent_backups == 0

    def test_same_backup_and_temp_dir(self, config_dict):
        config_dict['temp_dir'] = config_dict['backup_dir'] + '/../backups'

        with pytest.raises(ConfigError, match="must be different"):
            BackupConfig.from_dict(config_dict)

    def test_debug_mode_must_be_bool(self, config_dict):
        config_dict['debug_mode'] = 'yes'

        with pytest.raises(ConfigError, match="debug_mode"):
            BackupConfig.from_dict(config_dict)

    def test_password_not_in_repr(self, backup_config):
        assert 'test_password_123' not in repr(backup_config)

    def test_log_file_path(self, backup_config, backup_dir):
        assert backup_config.log_file_path == str(backup_dir / 'backup.log')


class TestPassword:
    """Test archive password resolution."""

    def test_missing_password(self, config_dict):
        del config_dict['password']

        with pytest.raises(ConfigError, match="'password' or 'password_encrypted'"):
            BackupConfig.from_dict(config_dict)

    def test_encrypted_password(self, config_dict, monkeypatch):
        monkeypatch.setenv('VAULTKEEP_SECRET_KEY', 'master-secret')
        del config_dict['password']
        config_dict['password_encrypted'] = MasterKeyManager('master-secret').encrypt_password('from_vault')

        assert BackupConfig.from_dict(config_dict).password == 'from_vault'

    def test_encrypted_password_without_secret_key(self, config_dict):
        del config_dict['password']
        config_dict['password_encrypted'] = MasterKeyManager('master-secret').encrypt_password('x')

        with pytest.raises(ConfigError, match="VAULTKEEP_SECRET_KEY"):
            BackupConfig.from_dict(config_dict)

    def test_encrypted_password_wrong_secret_key(self, config_dict, monkeypatch):
        monkeypatch.setenv('VAULTKEEP_SECRET_KEY', 'wrong-secret')
        del config_dict['password']
        config_dict['password_encrypted'] = MasterKeyManager('master-secret').encrypt_password('x')

        with pytest.raises(ConfigError, match="Failed to decrypt"):
            BackupConfig.from_dict(config_dict)

    @pytest.mark.parametrize("value", [123, ['secret'], {'value': 'secret'}])
    def test_encrypted_password_must_be_string(self, config_dict, monkeypatch, value):
        monkeypatch.setenv('VAULTKEEP_SECRET_KEY', 'master-secret')
        del config_dict['password']
        config_dict['password_encrypted'] = value

        with pytest.raises(ConfigError, match="'password_encrypted' must be a string"):
            BackupConfig.from_dict(config_dict)

    def test_password_must_be_string(self, config_dict):
        config_dict['password'] = 123

        with pytest.raises(ConfigError, match="'password' must be a string"):
            BackupConfig.from_dict(config_dict)


class TestEnvironmentOverrides:
    """Test VAULTKEEP_* environment overrides."""

    def test_directory_overrides(self, config_dict, tmp_path, monkeypatch):
        monkeypatch.setenv('VAULTKEEP_BACKUP_DIR', str(tmp_path / 'nas'))
        monkeypatch.setenv('VAULTKEEP_TEMP_DIR', str(tmp_path / 'scratch'))

        config = BackupConfig.from_dict(config_dict)

        assert config.backup_dir == str(tmp_path / 'nas')
        assert config.temp_dir == str(tmp_path / 'scratch')

    def test_password_override(self, config_dict, monkeypatch):
        monkeypatch.setenv('VAULTKEEP_PASSWORD', 'env_password')

        assert BackupConfig.from_dict(config_dict).password == 'env_password'

import os
import logging
from logging.handlers import RotatingFileHandler

from vaultkeep.config import BackupConfig, ConfigError


__version__ = '1.0.0'

LOGGER_NAME = 'vaultkeep'


def configure_logging(config: BackupConfig, debug: bool = False) -> logging.Logger:
    """
    Configure logging for a backup run.

    Everything goes to the log file in the backup directory. The console
    only gets a copy in debug mode.
    """
    log_level = logging.DEBUG if debug else logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # File handler
    file_handler = RotatingFileHandler(
        config.log_file_path,
        maxBytes=10485760,  # 10MB
        backupCount=10,
        encoding='utf-8'
    )
    file_handler.setLevel(log_level)
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    logger.addHandler(file_handler)

    # Console handler
    if debug:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
        )
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    logger.setLevel(log_level)

    logger.info(f"Logging to file: {config.log_file_path} (level: {logging.getLevelName(log_level)})")
    return logger


def prepare_directories(config: BackupConfig):
    """
    Create the backup and temporary directories and check they are writable.

    Raises:
        ConfigError: If a directory cannot be created or written to
    """
    for name in ('backup_dir', 'temp_dir'):
        path = getattr(config, name)
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Cannot create {name} {path}: {e}") from e
        if not os.access(path, os.W_OK):
            raise ConfigError(f"{name} is not writable: {path}")


def create_executor(config: BackupConfig, debug: bool = False):
    """Backup executor factory"""
    from vaultkeep.backup.executor import BackupExecutor

    prepare_directories(config)
    logger = configure_logging(config, debug or config.debug_mode)

    return BackupExecutor(config, logger=logger.getChild('backup'))

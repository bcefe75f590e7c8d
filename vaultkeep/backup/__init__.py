"""
Backup module for vaultkeep.

This module handles the core backup pipeline:
- Provisioning the bundled 7-Zip executable
- Archive creation
- Relocation into the backup store
- Retention policy enforcement
- Execution orchestration
"""

from .executor import BackupExecutor, RunResult
from .provisioner import ToolProvisioner
from .compression import ArchiveBuilder
from .storage import BackupStore
from .retention import RetentionManager
from .notifier import StatusNotifier

__all__ = [
    'BackupExecutor',
    'RunResult',
    'ToolProvisioner',
    'ArchiveBuilder',
    'BackupStore',
    'RetentionManager',
    'StatusNotifier'
]

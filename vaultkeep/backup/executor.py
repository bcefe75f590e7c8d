"""
Backup executor - orchestrates one backup run.

Workflow:
1. provisioning  Generate the archive id and extract the 7-Zip binary
2. building      Create the encrypted archive in the temporary directory
3. relocating    Move the archive into the backup directory
4. pruning       Delete archives beyond the retention count
5. notifying     Report the outcome
6. done

Failures in the first three steps end the run in the 'failed' state.
Failures while pruning or notifying are logged and the run still succeeds.
The extracted 7-Zip binary is removed on every path.
"""

import os
import logging
from datetime import datetime
from typing import Callable, List, Optional

from vaultkeep.config import BackupConfig
from vaultkeep.utils.identifiers import generate_id, RandomSourceError
from .provisioner import ToolProvisioner, ProvisionError
from .compression import ArchiveBuilder, ArchiveToolError, generate_archive_filename, get_archive_size
from .storage import BackupStore, RelocationError
from .retention import RetentionManager, RetentionError
from .notifier import StatusNotifier, NotifyError


STATE_PROVISIONING = 'provisioning'
STATE_BUILDING = 'building'
STATE_RELOCATING = 'relocating'
STATE_PRUNING = 'pruning'
STATE_NOTIFYING = 'notifying'
STATE_DONE = 'done'
STATE_FAILED = 'failed'

FATAL_ERRORS = (ProvisionError, RandomSourceError, ArchiveToolError, RelocationError)

ARCHIVE_ID_LENGTH = 6


class ArchiveJob:
    """Identifier and paths of a single run's archive."""

    def __init__(self, job_id: str, created_at: datetime, temp_dir: str, store: BackupStore):
        self.id = job_id
        self.created_at = created_at
        self.filename = generate_archive_filename(job_id, created_at)
        self.temp_path = os.path.join(temp_dir, self.filename)
        self.final_path = store.path_for(self.filename)

    def __repr__(self):
        return f"ArchiveJob({self.filename!r})"


class RunResult:
    """Outcome of a backup run."""

    def __init__(self):
        self.status = 'running'
        self.state = STATE_PROVISIONING
        self.job: Optional[ArchiveJob] = None
        self.error: Optional[Exception] = None
        self.warnings: List[Exception] = []
        self.pruned: List[str] = []
        self.started_at = datetime.now()
        self.completed_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 'success'

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def __repr__(self):
        return f"RunResult(status={self.status!r}, state={self.state!r}, job={self.job!r})"


class BackupExecutor:
    """
    Orchestrates the complete backup workflow for one run.
    """

    def __init__(
        self,
        config: BackupConfig,
        provisioner: Optional[ToolProvisioner] = None,
        builder: Optional[ArchiveBuilder] = None,
        store: Optional[BackupStore] = None,
        retention: Optional[RetentionManager] = None,
        notifier: Optional[StatusNotifier] = None,
        id_generator: Callable[[int], str] = generate_id,
        clock: Callable[[], datetime] = datetime.now,
        platform_id: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize backup executor.

        Components default to ones built from config.

        Args:
            config: Backup configuration
            platform_id: Platform id for tool provisioning (defaults to the running platform)
            logger: Logger for run events
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.provisioner = provisioner or ToolProvisioner(config.tools_dir, logger=self.logger)
        self.builder = builder or ArchiveBuilder(logger=self.logger)
        self.store = store or BackupStore(config.backup_dir, logger=self.logger)
        self.retention = retention or RetentionManager(
            self.store, config.retain_recent_backups, logger=self.logger
        )
        self.notifier = notifier or StatusNotifier(config.email)
        self.id_generator = id_generator
        self.clock = clock
        self.platform_id = platform_id

    def execute(self) -> RunResult:
        """
        Execute the backup run.

        Returns:
            RunResult with status 'success' or 'failed'
        """
        result = RunResult()
        self.logger.info("Backup process starting...")

        try:
            self._produce_archive(result)
        except FATAL_ERRORS as e:
            result.error = e
            result.status = 'failed'
            result.completed_at = datetime.now()
            self.logger.error(f"Backup failed while {result.state}: {e}")
            result.state = STATE_FAILED
            return result
        except Exception:
            self.logger.exception(f"Backup failed with unexpected error while {result.state}")
            raise

        result.state = STATE_PRUNING
        self._prune(result)

        # Success is settled before the notifier sees the result
        result.status = 'success'

        result.state = STATE_NOTIFYING
        self._notify(result)

        result.state = STATE_DONE
        result.completed_at = datetime.now()
        self.logger.info("Backup process completed successfully!")
        return result

    def _produce_archive(self, result: RunResult):
        """
        Provision, build and relocate.

        Raises:
            One of FATAL_ERRORS
        """
        result.state = STATE_PROVISIONING
        job = ArchiveJob(
            self.id_generator(ARCHIVE_ID_LENGTH),
            self.clock(),
            self.config.temp_dir,
            self.store
        )
        result.job = job
        self.logger.info(f"Creating archive at temporary path: {job.temp_path}")

        with self.provisioner.provisioned(self.config.temp_dir, self.platform_id) as tool_path:
            result.state = STATE_BUILDING
            self.builder.build(tool_path, self.config.directories, job.temp_path, self.config.password)

        file_size = get_archive_size(job.temp_path)
        self.logger.info(f"Archive created: {job.filename} ({file_size / 1024 / 1024:.2f} MB)")

        result.state = STATE_RELOCATING
        self.logger.info(f"Moving archive to final destination: {job.final_path}")
        try:
            self.store.relocate(job.temp_path, job.filename)
        except RelocationError:
            self.logger.error(f"Archive left at {job.temp_path} for manual recovery")
            raise

    def _prune(self, result: RunResult):
        try:
            summary = self.retention.prune()
        except RetentionError as e:
            self.logger.warning(f"Failed to clean up old backups: {e}")
            result.warnings.append(e)
            return

        result.pruned = summary['deleted']
        result.warnings.extend(summary['errors'])

    def _notify(self, result: RunResult):
        try:
            self.notifier.notify(result)
        except NotifyError as e:
            self.logger.warning(f"Failed to send status email: {e}")
            result.warnings.append(e)

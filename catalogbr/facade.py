# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Facade - Public entry point for backups and restores.

The facade validates the archive location, prepares a private staging
folder and the job parameters, goes through the job gate and launches the
job. Both run_backup() and run_restore() return as soon as the job has been
admitted; callers poll the returned execution (or await execution.wait()).

Example:
    server = await ServerConfig.open("/var/lib/catalog")
    facade = BackupFacade(server, create_config(data_dir="/var/lib/catalog"))

    execution = await facade.run_backup("/backups/catalog.zip", overwrite=True)
    await execution.wait()
"""

import shutil
from pathlib import Path
from typing import Dict, List, Sequence

import aiosqlite
import structlog
from ulid import ULID

from catalogbr.archive import extract_archive
from catalogbr.catalog.catalog import Catalog
from catalogbr.catalog.server import ServerConfig
from catalogbr.codec import EntityCodec, ServiceLoaderRegistry, create_codec
from catalogbr.config import BRConfig, JobKind
from catalogbr.errors import (
    explain_archive_exists,
    explain_archive_not_found,
    explain_unreachable_path,
)
from catalogbr.exceptions import (
    ArchiveError,
    ArchiveExistsError,
    ArchiveNotFoundError,
    ConcurrentExecutionError,
    UnreachablePathError,
)
from catalogbr.execution import BackupExecution, ExecutionAdapter, RestoreExecution
from catalogbr.gate import JobGate
from catalogbr.jobs import JobExecution, JobLauncher
from catalogbr.journal import complete_execution, init_journal_db, record_execution
from catalogbr.options import (
    PARAM_OUTPUT_FILE_PATH,
    backup_job_parameters,
    restore_job_parameters,
)
from catalogbr.plugins import ConfigProvider
from catalogbr.registry import ExecutionRegistry
from catalogbr.stages import BACKUP_JOB_NAME, build_backup_job, build_restore_job

logger = structlog.get_logger()


class BackupFacade:
    """
    Orchestrates backup and restore jobs against one live server configuration.

    Args:
        server: The live server configuration
        config: Engine configuration
        providers: Plugin configuration providers
    """

    def __init__(
        self,
        server: ServerConfig,
        config: BRConfig,
        providers: Sequence[ConfigProvider] | None = None,
    ):
        self.server = server
        self.config = config
        self.providers: List[ConfigProvider] = list(providers or [])
        self.registry = ExecutionRegistry()
        self.gate = JobGate(self.registry, config.gate_timeout)
        self.launcher = JobLauncher()
        self.service_loaders = ServiceLoaderRegistry()
        self.session = str(ULID())
        self.backup_job = build_backup_job(self)
        self.restore_job = build_restore_job(self)
        self._journal_ready = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def backup_executions(self) -> Dict[int, ExecutionAdapter]:
        return self.registry.executions(JobKind.BACKUP)

    @property
    def restore_executions(self) -> Dict[int, ExecutionAdapter]:
        return self.registry.executions(JobKind.RESTORE)

    def get_backup_running_executions(self) -> List[ExecutionAdapter]:
        return self.registry.running(JobKind.BACKUP)

    def get_restore_running_executions(self) -> List[ExecutionAdapter]:
        return self.registry.running(JobKind.RESTORE)

    def get_execution(self, execution_id: int) -> ExecutionAdapter | None:
        return self.registry.get(execution_id)

    def create_codec(self, catalog: Catalog | None, exclude_ids: bool = False) -> EntityCodec:
        """Codec in the configured format, resolving references by name against catalog."""
        return create_codec(
            self.config.serialization_format,
            catalog,
            exclude_ids=exclude_ids,
            service_loaders=self.service_loaders,
        )

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    async def run_backup(
        self,
        archive: Path | str,
        overwrite: bool = False,
        options: List[str] | None = None,
        max_wait: float | None = None,
    ) -> BackupExecution:
        """
        Launch a backup of the live configuration into `archive`.

        Args:
            archive: Target archive (.zip, .tar.zst or .tzst)
            overwrite: Replace an existing non-empty archive
            options: Option flags such as "BK_BEST_EFFORT" or "BK_DRY_RUN=true"
            max_wait: Admission ceiling in seconds (defaults to the configured one)

        Returns:
            The registered, running backup execution

        Raises:
            ArchiveExistsError: Target exists and overwrite is off
            UnreachablePathError: Target folder cannot be created
            ConcurrentExecutionError: Another job is still running
        """
        archive = Path(archive)
        options = list(options or [])

        if archive.is_dir():
            raise ArchiveError(
                f"Target archive is a directory: {archive}",
                details={"archive": str(archive)},
            )
        if archive.exists() and not overwrite and archive.stat().st_size > 0:
            raise ArchiveExistsError(
                explain_archive_exists(),
                details={"archive": str(archive)},
            )

        # An existing archive is replaced only when the new one is complete
        created = not archive.exists()
        try:
            archive.parent.mkdir(parents=True, exist_ok=True)
            archive.touch()
        except OSError as e:
            raise UnreachablePathError(
                explain_unreachable_path(),
                details={"archive": str(archive)},
            ) from e

        await self._ensure_journal()
        staging = self._allocate_staging(JobKind.BACKUP)
        parameters = backup_job_parameters(staging, options)

        def launch() -> BackupExecution:
            execution = self.launcher.run(self.backup_job, parameters, on_finish=self._job_finished)
            return BackupExecution(execution, archive, overwrite=overwrite, options=options)

        try:
            adapter = await self.gate.admit(JobKind.BACKUP, launch, self._ceiling(max_wait))
        except ConcurrentExecutionError:
            shutil.rmtree(staging, ignore_errors=True)
            if created:
                archive.unlink(missing_ok=True)
            raise

        await self._journal_record(adapter)
        logger.info(
            "backup_job_launched",
            execution_id=adapter.id,
            archive=str(archive),
            overwrite=overwrite,
            options=options,
        )
        return adapter

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    async def run_restore(
        self,
        archive: Path | str,
        options: List[str] | None = None,
        max_wait: float | None = None,
    ) -> RestoreExecution:
        """
        Launch a restore from `archive`.

        With "BK_DRY_RUN" the archive is fully read and written to a
        throwaway directory; the live configuration is never touched.

        Raises:
            ArchiveNotFoundError: Archive does not exist
            ArchiveError: Archive cannot be extracted
            ConcurrentExecutionError: Another job is still running
        """
        archive = Path(archive)
        options = list(options or [])

        if not archive.is_file():
            raise ArchiveNotFoundError(
                explain_archive_not_found(str(archive)),
                details={"archive": str(archive)},
            )

        await self._ensure_journal()
        staging = self._allocate_staging(JobKind.RESTORE)
        try:
            await extract_archive(archive, staging)
        except ArchiveError:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        parameters = restore_job_parameters(staging, options)

        def launch() -> RestoreExecution:
            execution = self.launcher.run(self.restore_job, parameters, on_finish=self._job_finished)
            return RestoreExecution(execution, archive, options=options)

        try:
            adapter = await self.gate.admit(JobKind.RESTORE, launch, self._ceiling(max_wait))
        except ConcurrentExecutionError:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        await self._journal_record(adapter)
        logger.info(
            "restore_job_launched",
            execution_id=adapter.id,
            archive=str(archive),
            options=options,
        )
        return adapter

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ceiling(self, max_wait: float | None) -> float:
        return self.config.admission_ceiling if max_wait is None else max_wait

    def _allocate_staging(self, kind: JobKind) -> Path:
        staging = self.config.staging_dir / f"{kind.value}-{ULID()}"
        staging.mkdir(parents=True, exist_ok=True)
        return staging

    async def _job_finished(self, execution: JobExecution) -> None:
        adapter = self.registry.get(execution.id)
        try:
            if adapter is not None and self.config.journal_path is not None:
                async with aiosqlite.connect(self.config.journal_path) as db:
                    await complete_execution(db, self.session, adapter)
        except Exception as e:
            logger.error("execution_journal_failed", execution_id=execution.id, error=str(e))
        finally:
            if execution.job_name == BACKUP_JOB_NAME and self.config.cleanup_staging:
                shutil.rmtree(execution.parameters[PARAM_OUTPUT_FILE_PATH], ignore_errors=True)
            await self.gate.release()
            logger.debug("job_gate_released", execution_id=execution.id)

    async def _ensure_journal(self) -> None:
        if self.config.journal_path is None or self._journal_ready:
            return
        await init_journal_db(self.config.journal_path)
        self._journal_ready = True

    async def _journal_record(self, adapter: ExecutionAdapter) -> None:
        """Journal a launched execution; the job keeps running if this fails."""
        if self.config.journal_path is None:
            return
        try:
            async with aiosqlite.connect(self.config.journal_path) as db:
                await record_execution(db, self.session, adapter)
        except Exception as e:
            logger.error("execution_journal_failed", execution_id=adapter.id, error=str(e))

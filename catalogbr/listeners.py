# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Restore Listener - Lock, working catalog and reload around a restore.

Before the first step the listener takes the configuration lock and gives
the restore execution a fresh working catalog that shares the live
resource loader and resource pool. After the last step it reloads the live
configuration (successful hard restore) or discards the working catalog
(dry-run or failure). The lock is always released.
"""

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from catalogbr.catalog.catalog import Catalog
from catalogbr.catalog.server import ServerConfig
from catalogbr.config import ExecutionStatus
from catalogbr.exceptions import LifecycleError
from catalogbr.jobs import JobExecution
from catalogbr.options import PARAM_INPUT_FILE_PATH, Options

if TYPE_CHECKING:
    from catalogbr.facade import BackupFacade

logger = structlog.get_logger()


class RestoreJobListener:
    """Lifecycle listener of the restore job."""

    def __init__(self, facade: "BackupFacade"):
        self.facade = facade

    async def before_job(self, job_execution: JobExecution) -> None:
        live = self.facade.server
        await live.configuration_lock.acquire()
        logger.debug("configuration_lock_acquired", execution_id=job_execution.id)

        restore = self.facade.registry.get_restore(job_execution.id)
        if restore is None:
            raise LifecycleError(
                f"Restore execution {job_execution.id} is not registered",
                details={"execution_id": job_execution.id},
            )

        working = Catalog(live.catalog.resource_loader, live.catalog.resource_pool)
        for listener in live.catalog.listeners:
            working.add_listener(listener)

        restore.restore_catalog = working
        restore.restore_config = ServerConfig(live.data_store, catalog=working)
        logger.info("working_catalog_created", execution_id=job_execution.id)

    async def after_job(self, job_execution: JobExecution) -> None:
        live = self.facade.server
        restore = self.facade.registry.get_restore(job_execution.id)
        options = Options.from_job_parameters(job_execution.parameters)

        try:
            if job_execution.exit_status == ExecutionStatus.COMPLETED and not options.dry_run:
                await self._reload(live)
                logger.info("restore_applied", execution_id=job_execution.id)
            else:
                logger.info(
                    "working_catalog_discarded",
                    execution_id=job_execution.id,
                    dry_run=options.dry_run,
                    exit_status=job_execution.exit_status.value if job_execution.exit_status else None,
                )
        except Exception as e:
            failure = LifecycleError(
                f"Failed to reload the restored configuration: {e}",
                details={"execution_id": job_execution.id},
            )
            if restore is not None:
                restore.add_failure(failure)
            raise failure from e
        finally:
            if restore is not None and restore.restore_catalog is not None:
                for listener in list(restore.restore_catalog.listeners):
                    restore.restore_catalog.remove_listener(listener)
                restore.restore_catalog.clear()

            if live.configuration_lock.locked():
                live.configuration_lock.release()
                logger.debug("configuration_lock_released", execution_id=job_execution.id)

            if self.facade.config.cleanup_staging:
                staging = job_execution.parameters.get(PARAM_INPUT_FILE_PATH)
                if staging:
                    shutil.rmtree(Path(staging), ignore_errors=True)

    async def _reload(self, live: ServerConfig) -> None:
        await live.reload(self.facade.config.serialization_format)
        for provider in self.facade.providers:
            await provider.load_configuration(live.data_store)
            await provider.reload()

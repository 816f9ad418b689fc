# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore stages - Read the extracted archive into the working catalog, then
commit the working configuration either to the live data directory (hard
restore) or to a throwaway directory (dry-run).
"""

import shutil
from typing import TYPE_CHECKING, Tuple

import structlog
from ulid import ULID

from catalogbr.jobs import StepExecution
from catalogbr.layout import (
    CONFIGURATION_TREES,
    RESOURCE_FOLDERS,
    SECTIONS,
    Section,
    copy_folder,
)
from catalogbr.exceptions import LifecycleError
from catalogbr.resources import ResourceStore
from catalogbr.stages.base import AbstractCatalogStage, StageContext

if TYPE_CHECKING:
    from catalogbr.facade import BackupFacade

logger = structlog.get_logger()


class RestoreSectionStage(AbstractCatalogStage):
    """Reads every file of the given sections and applies it to the working catalog."""

    def __init__(self, name: str, facade: "BackupFacade", sections: Tuple[Section, ...]):
        super().__init__(name, facade)
        self.sections = sections

    async def run(self, context: StageContext, step_execution: StepExecution) -> None:
        for section in self.sections:
            for resource in section.discover(context.staging, context.codec.extension):
                step_execution.read_count += 1
                try:
                    await self.do_read(context, section, resource)
                    step_execution.write_count += 1
                except Exception as e:
                    self.handle_error(context, e, section=section.name, path=resource.path)


class RestorePluginsStage(AbstractCatalogStage):
    """
    Checks the plugin files present in the archive.

    Files a plugin declares but the archive lacks are skipped: the plugin
    may not have been configured when the backup was taken.
    """

    async def run(self, context: StageContext, step_execution: StepExecution) -> None:
        for provider in self.facade.providers:
            for location in provider.file_locations():
                source = context.staging.get(location.path)
                if not source.exists():
                    logger.debug("plugin_file_not_in_archive", plugin=provider.name, path=location.path)
                    continue
                step_execution.read_count += 1
                try:
                    await provider.check_configuration(source)
                    step_execution.write_count += 1
                except Exception as e:
                    self.handle_error(context, e, plugin=provider.name, path=location.path)


class RestoreCommitStage(AbstractCatalogStage):
    """
    Writes the working configuration out.

    Hard restore: disposes the live resource pool, catalog and global
    configuration, clears the configuration trees and rewrites every
    section into the live data directory. Files already written are not
    rolled back if a later write fails.

    Dry-run: performs the same writes into a temporary directory that is
    always deleted afterwards.
    """

    async def run(self, context: StageContext, step_execution: StepExecution) -> None:
        try:
            if context.options.dry_run:
                await self._commit_dry_run(context, step_execution)
            else:
                await self._commit_live(context, step_execution)
        except Exception as e:
            logger.error("restore_commit_failed", execution_id=context.execution.id, error=str(e))
            cause = LifecycleError(
                f"Restore commit failed: {e}",
                details={"execution_id": context.execution.id},
            )
            context.execution.add_failure(cause)
            raise cause from e

    async def _commit_dry_run(self, context: StageContext, step_execution: StepExecution) -> None:
        target_dir = self.facade.config.staging_dir / f"dryrun-{ULID()}"
        target = ResourceStore(target_dir)
        try:
            await self.write_all(context, step_execution, target)
            logger.info(
                "restore_dry_run_committed",
                execution_id=context.execution.id,
                entities=step_execution.write_count,
            )
        finally:
            shutil.rmtree(target_dir, ignore_errors=True)

    async def _commit_live(self, context: StageContext, step_execution: StepExecution) -> None:
        live = self.facade.server
        live.catalog.resource_pool.dispose()
        live.dispose()

        for tree in CONFIGURATION_TREES:
            live.data_store.delete(tree)

        await self.write_all(context, step_execution, live.data_store)
        logger.info(
            "restore_committed_to_data_dir",
            execution_id=context.execution.id,
            data_dir=str(live.data_store.base_dir),
            entities=step_execution.write_count,
        )

    async def write_all(
        self,
        context: StageContext,
        step_execution: StepExecution,
        target: ResourceStore,
    ) -> None:
        target.create_directory("")

        for section in SECTIONS:
            for entity in section.entities(context.server):
                step_execution.read_count += 1
                await self.do_write(context, section, entity, target, context.staging)
                step_execution.write_count += 1

        for provider in self.facade.providers:
            for location in provider.file_locations():
                source = context.staging.get(location.path)
                if source.exists():
                    await target.copy(source, location.path)

        for folder in RESOURCE_FOLDERS:
            source = context.staging.get(folder.name)
            if source.is_dir():
                await copy_folder(source, target.get(folder.name), folder.accept)

# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup stages - Serialize the live configuration into the staging folder,
then pack the staging folder into the target archive.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Tuple

import structlog

from catalogbr.archive import create_archive
from catalogbr.jobs import StepExecution
from catalogbr.layout import RESOURCE_FOLDERS, Section, copy_folder
from catalogbr.stages.base import AbstractCatalogStage, StageContext

if TYPE_CHECKING:
    from catalogbr.facade import BackupFacade

logger = structlog.get_logger()


class BackupSectionStage(AbstractCatalogStage):
    """Writes every entity of the given sections to the staging folder."""

    def __init__(self, name: str, facade: "BackupFacade", sections: Tuple[Section, ...]):
        super().__init__(name, facade)
        self.sections = sections

    async def run(self, context: StageContext, step_execution: StepExecution) -> None:
        loader = context.server.catalog.resource_loader
        for section in self.sections:
            for entity in section.entities(context.server):
                step_execution.read_count += 1
                try:
                    await self.do_write(context, section, entity, context.staging, loader)
                    step_execution.write_count += 1
                except Exception as e:
                    self.handle_error(context, e, section=section.name)


class BackupPluginsStage(AbstractCatalogStage):
    """Lets every plugin provider save its files into the staging folder."""

    async def run(self, context: StageContext, step_execution: StepExecution) -> None:
        for provider in self.facade.providers:
            step_execution.read_count += 1
            try:
                await provider.save_configuration(context.staging)
                step_execution.write_count += 1
            except Exception as e:
                self.handle_error(context, e, plugin=provider.name)


class BackupResourcesFoldersStage(AbstractCatalogStage):
    """Copies the auxiliary resource folders, each through its filter."""

    async def run(self, context: StageContext, step_execution: StepExecution) -> None:
        data_store = context.server.data_store
        for folder in RESOURCE_FOLDERS:
            source = data_store.get(folder.name)
            if not source.is_dir():
                continue
            step_execution.read_count += 1
            try:
                copied = await copy_folder(source, context.staging.get(folder.name), folder.accept)
                step_execution.write_count += copied
            except Exception as e:
                self.handle_error(context, e, folder=folder.name)


class CreateArchiveStage(AbstractCatalogStage):
    """Packs the staging folder into the archive (nothing in dry-run mode)."""

    async def run(self, context: StageContext, step_execution: StepExecution) -> None:
        archive: Path = context.execution.archive_file

        if context.options.dry_run:
            if archive.exists() and archive.stat().st_size == 0:
                archive.unlink()
            logger.info(
                "backup_dry_run_archive_skipped",
                execution_id=context.execution.id,
                archive=str(archive),
            )
            return

        try:
            await create_archive(
                context.staging.base_dir,
                archive,
                zstd_level=self.facade.config.zstd_level,
            )
        except Exception as e:
            context.execution.add_failure(e)
            raise
        step_execution.write_count += 1

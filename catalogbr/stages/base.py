# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Stage Base - Shared behavior of backup and restore stages.

At entry a stage resolves, once, which execution it belongs to and from
that which server configuration it works on: the live one for a backup,
the restore-private working configuration for a restore. Entity errors go
through handle_error(), which applies the best-effort policy uniformly.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from catalogbr.catalog.server import ServerConfig
from catalogbr.codec import EntityCodec
from catalogbr.config import JobKind
from catalogbr.exceptions import CatalogBRError, StageError
from catalogbr.execution import ExecutionAdapter
from catalogbr.jobs import StepExecution
from catalogbr.layout import Section
from catalogbr.options import PARAM_INPUT_FILE_PATH, PARAM_OUTPUT_FILE_PATH, Options
from catalogbr.resources import Resource, ResourceStore

if TYPE_CHECKING:
    from catalogbr.facade import BackupFacade

logger = structlog.get_logger()


@dataclass
class StageContext:
    """What a stage works on, resolved once at stage entry."""

    execution: ExecutionAdapter
    kind: JobKind
    options: Options
    server: ServerConfig
    codec: EntityCodec
    staging: ResourceStore

    @property
    def is_restore(self) -> bool:
        return self.kind == JobKind.RESTORE


class AbstractCatalogStage:
    """Base class of every pipeline stage."""

    def __init__(self, name: str, facade: "BackupFacade"):
        self.name = name
        self.facade = facade

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    async def execute(self, step_execution: StepExecution) -> None:
        context = self.resolve(step_execution)
        await self.run(context, step_execution)

    async def run(self, context: StageContext, step_execution: StepExecution) -> None:
        raise NotImplementedError

    def resolve(self, step_execution: StepExecution) -> StageContext:
        job_execution = step_execution.job_execution
        registry = self.facade.registry
        options = Options.from_job_parameters(job_execution.parameters)

        restore = registry.get_restore(job_execution.id)
        if restore is not None:
            if restore.restore_config is None:
                raise StageError(
                    f"Restore execution {restore.id} has no working catalog",
                    details={"stage": self.name, "execution_id": restore.id},
                )
            return StageContext(
                execution=restore,
                kind=JobKind.RESTORE,
                options=options,
                server=restore.restore_config,
                codec=self.facade.create_codec(restore.restore_catalog, exclude_ids=False),
                staging=ResourceStore(job_execution.parameters[PARAM_INPUT_FILE_PATH]),
            )

        backup = registry.get_backup(job_execution.id)
        if backup is not None:
            return StageContext(
                execution=backup,
                kind=JobKind.BACKUP,
                options=options,
                server=self.facade.server,
                codec=self.facade.create_codec(self.facade.server.catalog, exclude_ids=True),
                staging=ResourceStore(job_execution.parameters[PARAM_OUTPUT_FILE_PATH]),
            )

        raise StageError(
            f"Execution {job_execution.id} is not registered",
            details={"stage": self.name, "execution_id": job_execution.id},
        )

    def handle_error(self, context: StageContext, error: Exception, **details: Any) -> None:
        """
        Record an entity error.

        With best-effort the error becomes a warning and the stage goes on;
        otherwise it becomes a failure and is raised again.
        """
        if isinstance(error, CatalogBRError):
            cause = error
        else:
            cause = StageError(f"{self.name}: {error}", details={"stage": self.name, **details})
            cause.__cause__ = error

        if context.options.best_effort:
            context.execution.add_warning(cause)
            logger.warning(
                "stage_entity_skipped",
                stage=self.name,
                execution_id=context.execution.id,
                error=str(cause),
                **details,
            )
            return

        context.execution.add_failure(cause)
        logger.error(
            "stage_entity_failed",
            stage=self.name,
            execution_id=context.execution.id,
            error=str(cause),
            **details,
        )
        raise cause

    async def do_write(
        self,
        context: StageContext,
        section: Section,
        entity: Any,
        target: ResourceStore,
        companion_source: ResourceStore,
    ) -> Resource:
        """Serialize an entity (and copy its companion files) into target."""
        directory, filename = section.target(entity, target, context.codec.extension)

        # Nothing is written for an entity whose companion files are missing
        sources = []
        for companion in section.companions(entity):
            source = companion_source.get(directory.path).get(companion)
            if not source.exists():
                raise StageError(
                    f"Missing file '{companion}' for {section.name} entry {filename}",
                    details={"section": section.name, "path": source.path},
                )
            sources.append((companion, source))

        written = await context.codec.write(entity, directory, filename)
        for companion, source in sources:
            await source.copy_to(directory.get(companion))
        return written

    async def do_read(self, context: StageContext, section: Section, resource: Resource) -> Any:
        """Deserialize one file of a section and apply it to the working configuration."""
        entity = await context.codec.read(resource.parent(), resource.name)

        for companion in section.companions(entity):
            if not resource.parent().get(companion).exists():
                raise StageError(
                    f"Missing file '{companion}' for {section.name} entry {resource.path}",
                    details={"section": section.name, "path": resource.path},
                )

        section.apply(entity, context.server)
        return entity

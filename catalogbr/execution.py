# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Executions - Per-run records of backup and restore jobs.

An adapter wraps the job runner's JobExecution and adds what the backup
and restore pipelines need: declared options, failure and warning causes,
the archive location and, for restores, the working catalog.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from catalogbr.catalog.catalog import Catalog
from catalogbr.catalog.server import ServerConfig
from catalogbr.config import ExecutionStatus, JobKind
from catalogbr.jobs import JobExecution, StepExecution
from catalogbr.options import Options


class ExecutionAdapter:
    """Base class for backup and restore executions."""

    kind: JobKind

    def __init__(
        self,
        delegate: JobExecution,
        archive_file: Path,
        options: List[str] | None = None,
    ):
        self.delegate = delegate
        self.archive_file = archive_file
        self.options: List[str] = list(options or [])
        self._failures: List[BaseException] = []
        self._warnings: List[BaseException] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id}, status={self.status.value})"

    @property
    def id(self) -> int:
        return self.delegate.id

    @property
    def status(self) -> ExecutionStatus:
        return self.delegate.status

    @property
    def is_running(self) -> bool:
        return self.delegate.is_running

    @property
    def start_time(self) -> datetime | None:
        return self.delegate.start_time

    @property
    def end_time(self) -> datetime | None:
        return self.delegate.end_time

    @property
    def parameters(self) -> Dict[str, str]:
        return self.delegate.parameters

    @property
    def step_executions(self) -> List[StepExecution]:
        return self.delegate.step_executions

    @property
    def total_steps(self) -> int:
        return self.delegate.total_steps

    @property
    def completed_steps(self) -> int:
        return self.delegate.completed_steps

    @property
    def progress(self) -> str:
        return self.delegate.progress

    @property
    def parsed_options(self) -> Options:
        return Options.from_job_parameters(self.delegate.parameters)

    @property
    def failures(self) -> List[BaseException]:
        """
        All failure causes: entity errors recorded by stages, step errors
        raised outside an entity operation, and lifecycle errors.
        """
        causes = list(self._failures)
        for step in self.delegate.step_executions:
            causes.extend(f for f in step.failures if not any(f is c for c in causes))
        causes.extend(f for f in self.delegate.failures if not any(f is c for c in causes))
        return causes

    @property
    def warnings(self) -> List[BaseException]:
        return list(self._warnings)

    def add_failure(self, cause: BaseException) -> None:
        self._failures.append(cause)

    def add_warning(self, cause: BaseException) -> None:
        self._warnings.append(cause)

    async def wait(self) -> "ExecutionAdapter":
        """Wait for the job to reach a terminal status."""
        if self.delegate.task is not None:
            await self.delegate.task
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "status": self.status.value,
            "archive": str(self.archive_file),
            "options": list(self.options),
            "progress": self.progress,
            "total_steps": self.total_steps,
            "completed_steps": self.completed_steps,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "steps": [
                {
                    "name": step.name,
                    "status": step.status.value,
                    "read_count": step.read_count,
                    "write_count": step.write_count,
                }
                for step in self.step_executions
            ],
            "failures": [str(f) for f in self.failures],
            "warnings": [str(w) for w in self.warnings],
        }


class BackupExecution(ExecutionAdapter):
    kind = JobKind.BACKUP

    def __init__(
        self,
        delegate: JobExecution,
        archive_file: Path,
        overwrite: bool = False,
        options: List[str] | None = None,
    ):
        super().__init__(delegate, archive_file, options)
        self.overwrite = overwrite

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "overwrite": self.overwrite}


class RestoreExecution(ExecutionAdapter):
    """
    A restore run. Owns the working catalog (and the server configuration
    around it) that the restore stages populate.
    """

    kind = JobKind.RESTORE

    def __init__(
        self,
        delegate: JobExecution,
        archive_file: Path,
        options: List[str] | None = None,
    ):
        super().__init__(delegate, archive_file, options)
        self.restore_catalog: Catalog | None = None
        self.restore_config: ServerConfig | None = None

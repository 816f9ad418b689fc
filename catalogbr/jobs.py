# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Jobs - A small sequential job runner on top of asyncio.

A Job is an ordered list of steps plus lifecycle listeners. The launcher
assigns execution ids, schedules each job as its own asyncio task and
returns immediately; callers observe progress through the JobExecution.
"""

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Awaitable, Callable, Dict, List, Protocol

import structlog

from catalogbr.config import ExecutionStatus, StepStatus

logger = structlog.get_logger()


@dataclass
class StepExecution:
    """Progress of one step within a job execution."""

    name: str
    job_execution: "JobExecution" = field(repr=False)
    status: StepStatus = StepStatus.NOT_STARTED
    start_time: datetime | None = None
    end_time: datetime | None = None
    read_count: int = 0
    write_count: int = 0
    failures: List[BaseException] = field(default_factory=list)


@dataclass
class JobExecution:
    """A single run of a job."""

    id: int
    job_name: str
    parameters: Dict[str, str]
    status: ExecutionStatus = ExecutionStatus.STARTING
    exit_status: ExecutionStatus | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    step_executions: List[StepExecution] = field(default_factory=list)
    total_steps: int = 0
    completed_steps: int = 0
    failures: List[BaseException] = field(default_factory=list)
    task: asyncio.Task | None = field(default=None, repr=False)

    @property
    def is_running(self) -> bool:
        return self.status.is_running

    @property
    def progress(self) -> str:
        return f"{self.completed_steps}/{self.total_steps}"


class Step(Protocol):
    name: str

    async def execute(self, step_execution: StepExecution) -> None: ...


class JobListener(Protocol):
    async def before_job(self, job_execution: JobExecution) -> None: ...

    async def after_job(self, job_execution: JobExecution) -> None: ...


@dataclass
class Job:
    name: str
    steps: List[Step]
    listeners: List[JobListener] = field(default_factory=list)


FinishCallback = Callable[[JobExecution], Awaitable[Any]]


class JobLauncher:
    """
    Launches jobs as asyncio tasks.

    run() never awaits: the caller can register the returned execution
    before the job's first step gets a chance to run.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)

    def run(
        self,
        job: Job,
        parameters: Dict[str, str],
        on_finish: FinishCallback | None = None,
    ) -> JobExecution:
        execution = JobExecution(
            id=next(self._ids),
            job_name=job.name,
            parameters=dict(parameters),
            total_steps=len(job.steps),
        )
        execution.task = asyncio.create_task(
            _execute(job, execution, on_finish),
            name=f"{job.name}-{execution.id}",
        )
        logger.debug("job_scheduled", job=job.name, execution_id=execution.id)
        return execution


async def _execute(
    job: Job,
    execution: JobExecution,
    on_finish: FinishCallback | None,
) -> JobExecution:
    execution.status = ExecutionStatus.STARTED
    execution.start_time = datetime.now(UTC)
    logger.info("job_started", job=job.name, execution_id=execution.id)

    try:
        exit_status = ExecutionStatus.COMPLETED
        try:
            for listener in job.listeners:
                await listener.before_job(execution)
        except Exception as e:
            logger.error("job_before_listener_failed", execution_id=execution.id, error=str(e))
            execution.failures.append(e)
            exit_status = ExecutionStatus.FAILED
        else:
            exit_status = await _run_steps(job, execution)

        execution.exit_status = exit_status

        for listener in job.listeners:
            try:
                await listener.after_job(execution)
            except Exception as e:
                logger.error("job_after_listener_failed", execution_id=execution.id, error=str(e))
                execution.failures.append(e)
                execution.exit_status = ExecutionStatus.FAILED

        execution.status = execution.exit_status
        execution.end_time = datetime.now(UTC)
        logger.info(
            "job_finished",
            job=job.name,
            execution_id=execution.id,
            status=execution.status.value,
            progress=execution.progress,
        )
    finally:
        if execution.status.is_running:
            execution.status = ExecutionStatus.FAILED
            execution.end_time = datetime.now(UTC)
        if on_finish is not None:
            await on_finish(execution)

    return execution


async def _run_steps(job: Job, execution: JobExecution) -> ExecutionStatus:
    # Steps after a failed one stay NOT_STARTED
    execution.step_executions = [
        StepExecution(name=step.name, job_execution=execution) for step in job.steps
    ]

    for step, step_execution in zip(job.steps, execution.step_executions):
        step_execution.status = StepStatus.RUNNING
        step_execution.start_time = datetime.now(UTC)
        try:
            await step.execute(step_execution)
        except Exception as e:
            step_execution.status = StepStatus.FAILED
            step_execution.failures.append(e)
            step_execution.end_time = datetime.now(UTC)
            logger.error(
                "step_failed",
                execution_id=execution.id,
                step=step.name,
                error=str(e),
            )
            return ExecutionStatus.FAILED

        step_execution.status = StepStatus.COMPLETED
        step_execution.end_time = datetime.now(UTC)
        execution.completed_steps += 1
        logger.debug(
            "step_completed",
            execution_id=execution.id,
            step=step.name,
            read_count=step_execution.read_count,
            write_count=step_execution.write_count,
        )

    return ExecutionStatus.COMPLETED

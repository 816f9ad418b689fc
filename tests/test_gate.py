# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Single-active-job tests.

These tests verify the job gate guarantees:
1. Mutual exclusion - at most one backup or restore runs at any instant
2. Refused launches leave no trace - nothing registered, no placeholder left
3. Waiting admission - a launch waits for the running job, then proceeds
"""

import asyncio
from pathlib import Path

import pytest

from catalogbr.config import ExecutionStatus, JobKind
from catalogbr.exceptions import ConcurrentExecutionError
from catalogbr.execution import BackupExecution
from catalogbr.gate import GateState, JobGate
from catalogbr.jobs import JobExecution
from catalogbr.registry import ExecutionRegistry


# ============================================================================
# Mutual exclusion
# ============================================================================

@pytest.mark.asyncio
async def test_concurrent_launches_admit_exactly_one(facade, temp_dir: Path):
    """
    Five simultaneous launches that refuse to wait: exactly one is admitted,
    the other four fail with the concurrent-execution error.
    """
    results = await asyncio.gather(
        *[
            facade.run_backup(temp_dir / "out" / f"backup-{i}.zip", max_wait=0)
            for i in range(5)
        ],
        return_exceptions=True,
    )

    admitted = [r for r in results if isinstance(r, BackupExecution)]
    refused = [r for r in results if isinstance(r, ConcurrentExecutionError)]

    assert len(admitted) == 1
    assert len(refused) == 4
    assert all(
        e.message == "Could not start a new Backup Job Execution since there are currently Running jobs."
        for e in refused
    )
    assert len(facade.backup_executions) == 1

    await admitted[0].wait()
    assert admitted[0].status == ExecutionStatus.COMPLETED


@pytest.mark.asyncio
async def test_refused_launch_registers_nothing(facade, temp_dir: Path):
    """A refused launch leaves the registry and the file system untouched."""
    first = await facade.run_backup(temp_dir / "first.zip", max_wait=0)

    second_archive = temp_dir / "second.zip"
    with pytest.raises(ConcurrentExecutionError):
        await facade.run_backup(second_archive, max_wait=0)

    assert len(facade.backup_executions) == 1
    assert not second_archive.exists()
    assert len(list(facade.config.staging_dir.iterdir())) == 1

    await first.wait()


@pytest.mark.asyncio
async def test_refused_overwrite_keeps_existing_archive(facade, temp_dir: Path):
    """
    CRITICAL: a refused overwrite must not destroy the archive it was
    going to replace.
    """
    archive = temp_dir / "catalog.zip"
    previous = await facade.run_backup(archive)
    await previous.wait()
    content = archive.read_bytes()
    assert content

    blocker = await facade.run_backup(temp_dir / "blocker.zip", max_wait=0)
    with pytest.raises(ConcurrentExecutionError):
        await facade.run_backup(archive, overwrite=True, max_wait=0)

    assert archive.read_bytes() == content
    assert len(facade.backup_executions) == 2

    await blocker.wait()


@pytest.mark.asyncio
async def test_refused_launch_keeps_existing_placeholder(facade, temp_dir: Path):
    """Only a placeholder created by the refused call itself is removed."""
    archive = temp_dir / "placeholder.zip"
    archive.touch()

    blocker = await facade.run_backup(temp_dir / "blocker.zip", max_wait=0)
    with pytest.raises(ConcurrentExecutionError):
        await facade.run_backup(archive, max_wait=0)

    assert archive.exists()

    await blocker.wait()


@pytest.mark.asyncio
async def test_backup_refused_while_restore_runs(facade, temp_dir: Path, bk_test_simple_zip: Path):
    """Backups and restores share one gate."""
    restore = await facade.run_restore(bk_test_simple_zip, options=["BK_DRY_RUN"], max_wait=0)
    assert facade.gate.state == GateState.RUNNING_RESTORE

    archive = temp_dir / "refused.zip"
    with pytest.raises(ConcurrentExecutionError) as exc_info:
        await facade.run_backup(archive, max_wait=0)

    assert "Backup Job Execution" in exc_info.value.message
    assert facade.backup_executions == {}
    assert not archive.exists()

    await restore.wait()
    assert restore.status == ExecutionStatus.COMPLETED


@pytest.mark.asyncio
async def test_launch_admitted_after_previous_job_finished(facade, temp_dir: Path):
    """Once a job is over the gate is idle again."""
    first = await facade.run_backup(temp_dir / "one.zip", max_wait=0)
    await first.wait()

    assert facade.gate.state == GateState.IDLE
    assert facade.gate.is_quiescent()

    second = await facade.run_backup(temp_dir / "two.zip", max_wait=0)
    await second.wait()

    assert second.id > first.id
    assert second.status == ExecutionStatus.COMPLETED


# ============================================================================
# Waiting admission
# ============================================================================

@pytest.mark.asyncio
async def test_waiting_launch_starts_after_running_job(facade, temp_dir: Path):
    """A launch allowed to wait is admitted as soon as the running job ends."""
    first = await facade.run_backup(temp_dir / "first.zip", max_wait=0)
    second = await facade.run_backup(temp_dir / "second.zip", max_wait=10)

    assert not first.is_running
    await second.wait()

    assert second.status == ExecutionStatus.COMPLETED
    assert first.end_time <= second.start_time


@pytest.mark.asyncio
async def test_at_most_one_execution_running(facade, temp_dir: Path):
    """Sampled continuously, the registry never shows two running executions."""
    peak = 0
    done = asyncio.Event()

    async def monitor() -> None:
        nonlocal peak
        while not done.is_set():
            peak = max(peak, len(facade.registry.running()))
            await asyncio.sleep(0)

    watcher = asyncio.create_task(monitor())
    executions = await asyncio.gather(
        *[facade.run_backup(temp_dir / f"queued-{i}.zip", max_wait=10) for i in range(3)]
    )
    for execution in executions:
        await execution.wait()
    done.set()
    await watcher

    assert peak == 1
    assert [e.status for e in executions] == [ExecutionStatus.COMPLETED] * 3
    assert len({e.id for e in executions}) == 3


# ============================================================================
# Gate in isolation
# ============================================================================

def _backup_adapter(execution_id: int, status: ExecutionStatus) -> BackupExecution:
    delegate = JobExecution(id=execution_id, job_name="backupJob", parameters={}, status=status)
    return BackupExecution(delegate, Path(f"/tmp/{execution_id}.zip"))


@pytest.mark.asyncio
async def test_gate_times_out_when_job_never_finishes():
    """The admission ceiling bounds the wait."""
    registry = ExecutionRegistry()
    gate = JobGate(registry, timeout=0.05)

    await gate.admit(JobKind.BACKUP, lambda: _backup_adapter(1, ExecutionStatus.STARTED), max_wait=0)
    assert gate.state == GateState.RUNNING_BACKUP

    loop = asyncio.get_running_loop()
    started = loop.time()
    with pytest.raises(ConcurrentExecutionError):
        await gate.admit(
            JobKind.BACKUP,
            lambda: _backup_adapter(2, ExecutionStatus.STARTING),
            max_wait=0.2,
        )

    assert loop.time() - started >= 0.2
    assert registry.get(2) is None


@pytest.mark.asyncio
async def test_gate_release_wakes_waiting_admission():
    registry = ExecutionRegistry()
    gate = JobGate(registry, timeout=5.0)

    first = await gate.admit(
        JobKind.BACKUP, lambda: _backup_adapter(1, ExecutionStatus.STARTED), max_wait=0
    )
    waiter = asyncio.create_task(
        gate.admit(JobKind.BACKUP, lambda: _backup_adapter(2, ExecutionStatus.STARTED), max_wait=5)
    )
    await asyncio.sleep(0.01)
    assert not waiter.done()

    first.delegate.status = ExecutionStatus.COMPLETED
    await gate.release()

    second = await asyncio.wait_for(waiter, timeout=1)
    assert second.id == 2
    assert registry.running_ids() == [2]

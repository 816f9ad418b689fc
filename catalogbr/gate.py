# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Job Gate - At most one backup or restore at any instant.

The gate is a three-state machine (IDLE, RUNNING_BACKUP, RUNNING_RESTORE)
guarded by one asyncio.Condition shared by both job kinds. Admission,
launch and registration happen inside the same critical section, so two
callers can never both observe an idle system and both launch.
"""

import asyncio
from enum import Enum
from typing import Callable

import structlog

from catalogbr.config import DEFAULT_GATE_TIMEOUT, JobKind
from catalogbr.errors import explain_concurrent_execution
from catalogbr.exceptions import ConcurrentExecutionError
from catalogbr.execution import ExecutionAdapter
from catalogbr.registry import ExecutionRegistry

logger = structlog.get_logger()


class GateState(str, Enum):
    IDLE = "IDLE"
    RUNNING_BACKUP = "RUNNING_BACKUP"
    RUNNING_RESTORE = "RUNNING_RESTORE"


_RUNNING_STATE = {
    JobKind.BACKUP: GateState.RUNNING_BACKUP,
    JobKind.RESTORE: GateState.RUNNING_RESTORE,
}


class JobGate:
    """Single-active-job admission control."""

    def __init__(self, registry: ExecutionRegistry, timeout: float = DEFAULT_GATE_TIMEOUT):
        self.registry = registry
        self.timeout = timeout
        self.state = GateState.IDLE
        self._condition = asyncio.Condition()

    def is_quiescent(self) -> bool:
        return self.state == GateState.IDLE and not self.registry.running()

    async def admit(
        self,
        kind: JobKind,
        launch: Callable[[], ExecutionAdapter],
        max_wait: float,
    ) -> ExecutionAdapter:
        """
        Admit, launch and register a job once the system is quiescent.

        Waits for a completion signal in slices of `timeout` seconds, for at
        most `max_wait` seconds overall (0 fails immediately).

        Raises:
            ConcurrentExecutionError: If a job is still running after max_wait
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait

        async with self._condition:
            while not self.is_quiescent():
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.warning(
                        "job_admission_refused",
                        kind=kind.value,
                        state=self.state.value,
                        running=self.registry.running_ids(),
                    )
                    raise ConcurrentExecutionError(
                        explain_concurrent_execution(kind.label),
                        details={"running": self.registry.running_ids()},
                    )
                try:
                    await asyncio.wait_for(
                        self._condition.wait(), timeout=min(self.timeout, remaining)
                    )
                except asyncio.TimeoutError:
                    logger.debug("job_admission_wait_elapsed", kind=kind.value)

            adapter = launch()
            self.registry.register(adapter)
            self.state = _RUNNING_STATE[kind]
            logger.info("job_admitted", kind=kind.value, execution_id=adapter.id)
            return adapter

    async def release(self) -> None:
        """Return to IDLE and wake every waiting admission."""
        async with self._condition:
            self.state = GateState.IDLE
            self._condition.notify_all()

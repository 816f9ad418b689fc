# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Execution Registry - Every backup and restore execution by id.

Entries are added when a job is admitted and never removed, so finished
executions stay available for inspection. The registry is safe to read
from other threads (for example a web server's worker threads).
"""

import threading
from typing import Dict, List

from catalogbr.config import JobKind
from catalogbr.exceptions import CatalogBRError
from catalogbr.execution import BackupExecution, ExecutionAdapter, RestoreExecution


class ExecutionRegistry:
    """Thread-safe map of execution id to execution adapter, per job kind."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._executions: Dict[JobKind, Dict[int, ExecutionAdapter]] = {
            JobKind.BACKUP: {},
            JobKind.RESTORE: {},
        }

    def register(self, adapter: ExecutionAdapter) -> ExecutionAdapter:
        with self._lock:
            for executions in self._executions.values():
                if adapter.id in executions:
                    raise CatalogBRError(
                        f"Execution id {adapter.id} is already registered",
                        details={"execution_id": adapter.id},
                    )
            self._executions[adapter.kind][adapter.id] = adapter
        return adapter

    def get(self, execution_id: int) -> ExecutionAdapter | None:
        with self._lock:
            for executions in self._executions.values():
                if execution_id in executions:
                    return executions[execution_id]
        return None

    def get_backup(self, execution_id: int) -> BackupExecution | None:
        with self._lock:
            return self._executions[JobKind.BACKUP].get(execution_id)

    def get_restore(self, execution_id: int) -> RestoreExecution | None:
        with self._lock:
            return self._executions[JobKind.RESTORE].get(execution_id)

    def executions(self, kind: JobKind) -> Dict[int, ExecutionAdapter]:
        """Snapshot of all executions of a kind."""
        with self._lock:
            return dict(self._executions[kind])

    def running(self, kind: JobKind | None = None) -> List[ExecutionAdapter]:
        """Running executions of one kind, or of both kinds."""
        kinds = [kind] if kind is not None else list(JobKind)
        with self._lock:
            return [
                adapter
                for k in kinds
                for adapter in self._executions[k].values()
                if adapter.is_running
            ]

    def running_ids(self, kind: JobKind | None = None) -> List[int]:
        return sorted(adapter.id for adapter in self.running(kind))

# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr FastAPI Integration - REST endpoints for backups and restores.

This module provides:
- Protected endpoints to launch and inspect backup/restore executions
- The execution journal listing (when a journal is configured)
- A lifespan helper that opens the live configuration and builds the facade
"""

import os
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from typing import List, Sequence

import aiosqlite
import structlog
from fastapi import Depends, FastAPI, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from catalogbr.catalog.server import ServerConfig
from catalogbr.config import BRConfig
from catalogbr.exceptions import (
    ArchiveError,
    ArchiveExistsError,
    ArchiveNotFoundError,
    ConcurrentExecutionError,
)
from catalogbr.execution import ExecutionAdapter
from catalogbr.facade import BackupFacade
from catalogbr.journal import list_executions
from catalogbr.plugins import ConfigProvider

logger = structlog.get_logger()

# Security
security = HTTPBearer(auto_error=False)


class BackupRequest(BaseModel):
    archive: str
    overwrite: bool = False
    options: List[str] = Field(default_factory=list)


class RestoreRequest(BaseModel):
    archive: str
    options: List[str] = Field(default_factory=list)


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> bool:
    """
    Verify API key from Authorization header.

    The API key is read from the CATALOGBR_ADMIN_API_KEY environment variable.
    Requests must include: Authorization: Bearer <api_key>

    Raises:
        HTTPException: If API key is missing or invalid
    """
    api_key = os.getenv("CATALOGBR_ADMIN_API_KEY")

    if not api_key:
        raise HTTPException(
            status_code=500,
            detail="CATALOGBR_ADMIN_API_KEY environment variable not set",
        )

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Authorization header required",
        )

    if credentials.credentials != api_key:
        raise HTTPException(
            status_code=403,
            detail="Invalid API key",
        )

    return True


def _admission_error(error: Exception) -> HTTPException:
    """Map a launch failure to its HTTP status."""
    if isinstance(error, (ArchiveExistsError, ConcurrentExecutionError)):
        status_code = 409
    elif isinstance(error, ArchiveNotFoundError):
        status_code = 404
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail=error.message)


def _found(execution: ExecutionAdapter | None, execution_id: int) -> dict:
    if execution is None:
        raise HTTPException(
            status_code=404,
            detail=f"Execution {execution_id} not found",
        )
    return execution.to_dict()


def register_br_routes(
    app: FastAPI,
    facade: BackupFacade,
    prefix: str = "/rest/br",
) -> None:
    """
    Register backup/restore endpoints on a FastAPI app.

    All endpoints require Bearer token authentication.

    Args:
        app: FastAPI application
        facade: Backup facade bound to the live configuration
        prefix: URL prefix for endpoints (default: /rest/br)
    """

    @app.post(f"{prefix}/backup", status_code=201, dependencies=[Depends(verify_api_key)])
    async def start_backup(request: BackupRequest) -> dict:
        """
        Launch a backup. Returns as soon as the job has been admitted.
        """
        try:
            execution = await facade.run_backup(
                request.archive,
                overwrite=request.overwrite,
                options=request.options,
            )
        except (ArchiveError, ConcurrentExecutionError) as e:
            raise _admission_error(e)
        return execution.to_dict()

    @app.get(f"{prefix}/backup", dependencies=[Depends(verify_api_key)])
    async def list_backups() -> list:
        return [e.to_dict() for _, e in sorted(facade.backup_executions.items())]

    @app.get(f"{prefix}/backup/{{execution_id}}", dependencies=[Depends(verify_api_key)])
    async def get_backup(execution_id: int) -> dict:
        return _found(facade.backup_executions.get(execution_id), execution_id)

    @app.post(f"{prefix}/restore", status_code=201, dependencies=[Depends(verify_api_key)])
    async def start_restore(request: RestoreRequest) -> dict:
        """
        Launch a restore. Use the "BK_DRY_RUN" option to validate an archive
        without touching the live configuration.
        """
        try:
            execution = await facade.run_restore(request.archive, options=request.options)
        except (ArchiveError, ConcurrentExecutionError) as e:
            raise _admission_error(e)
        return execution.to_dict()

    @app.get(f"{prefix}/restore", dependencies=[Depends(verify_api_key)])
    async def list_restores() -> list:
        return [e.to_dict() for _, e in sorted(facade.restore_executions.items())]

    @app.get(f"{prefix}/restore/{{execution_id}}", dependencies=[Depends(verify_api_key)])
    async def get_restore(execution_id: int) -> dict:
        return _found(facade.restore_executions.get(execution_id), execution_id)

    @app.get(f"{prefix}/executions", dependencies=[Depends(verify_api_key)])
    async def list_journal(
        kind: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list:
        """
        List journaled executions, including those of previous runs.

        Args:
            kind: Filter by kind (backup, restore)
            limit: Maximum number of executions to return
            offset: Number of executions to skip
        """
        if facade.config.journal_path is None:
            raise HTTPException(status_code=404, detail="Execution journal is not enabled")
        if not facade.config.journal_path.exists():
            return []
        async with aiosqlite.connect(facade.config.journal_path) as db:
            return await list_executions(db, kind, limit, offset)

    @app.get(f"{prefix}/health", dependencies=[Depends(verify_api_key)])
    async def health_check() -> dict:
        """
        Health check endpoint.

        Reports whether the data directory is reachable and what is running.
        """
        data_dir_ok = facade.server.data_store.base_dir.is_dir()
        running = facade.registry.running_ids()

        return {
            "status": "healthy" if data_dir_ok else "unhealthy",
            "data_dir_accessible": data_dir_ok,
            "gate_state": facade.gate.state.value,
            "running_executions": running,
            "timestamp": datetime.now(UTC).isoformat(),
        }


@asynccontextmanager
async def catalogbr_lifespan(
    app: FastAPI,
    config: BRConfig,
    providers: Sequence[ConfigProvider] | None = None,
    prefix: str = "/rest/br",
):
    """
    Lifespan context manager for FastAPI.

        app = FastAPI(lifespan=lambda app: catalogbr_lifespan(app, config))

    Args:
        app: FastAPI application
        config: Engine configuration
        providers: Plugin configuration providers
        prefix: URL prefix for the endpoints
    """
    logger.info("catalogbr_lifespan_starting", data_dir=str(config.data_dir))

    server = await ServerConfig.open(config.data_dir, config.serialization_format)
    facade = BackupFacade(server, config, providers)
    app.state.catalogbr_facade = facade

    register_br_routes(app, facade, prefix)

    logger.info("catalogbr_lifespan_started")

    try:
        yield
    finally:
        logger.info("catalogbr_lifespan_stopping")
        for execution in facade.registry.running():
            await execution.wait()
        logger.info("catalogbr_lifespan_stopped")


def get_br_facade(app: FastAPI) -> BackupFacade:
    """
    Get the backup facade from a FastAPI app.

    Raises:
        RuntimeError: If catalogbr is not initialized
    """
    facade = getattr(app.state, "catalogbr_facade", None)
    if not facade:
        raise RuntimeError("catalogbr not initialized. Use catalogbr_lifespan first.")
    return facade

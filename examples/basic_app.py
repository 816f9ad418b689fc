# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example FastAPI Application with catalogbr Integration.

This example serves the backup/restore endpoints for one data directory,
with a persistent execution journal and a properties-based plugin.

Run with:
    uvicorn examples.basic_app:app --reload

Environment variables:
    CATALOGBR_DATA_DIR: Live data directory
    CATALOGBR_STAGING_DIR: Staging area for archives being built or read
    CATALOGBR_JOURNAL_PATH: SQLite execution journal (optional)
    CATALOGBR_ADMIN_API_KEY: API key for the backup/restore endpoints
"""

import os
from pathlib import Path

from fastapi import FastAPI

from catalogbr.builder import (
    build_config,
    create_empty_config,
    enable_journal,
    with_data_dir,
    with_gate_timeout,
    with_staging_dir,
)
from catalogbr.env import create_config_from_env
from catalogbr.exceptions import ConfigurationError
from catalogbr.integrations.fastapi import catalogbr_lifespan, get_br_facade
from catalogbr.plugins import PropertiesConfigProvider
from catalogbr.resources import ResourceStore


def create_catalogbr_config():
    """
    Create catalogbr configuration from environment variables, falling back
    to a local development layout.
    """
    try:
        return create_config_from_env()
    except ConfigurationError as e:
        print(f"Failed to create catalogbr config from environment: {e}")

    data_dir = Path(os.getenv("CATALOGBR_DATA_DIR", "./data_dir"))

    config = create_empty_config()
    config = with_data_dir(config, data_dir)
    config = with_staging_dir(config, "./staging")
    # Wait up to a minute for a running job, in 10 second slices
    config = with_gate_timeout(config, 10, max_wait=60)
    config = enable_journal(config, "./journal.db")

    return build_config(config)


catalogbr_config = create_catalogbr_config()

# Security configuration lives next to the catalog and travels with backups
security_provider = PropertiesConfigProvider(
    "security",
    ResourceStore(catalogbr_config.data_dir),
    ["security/auth.properties", "security/users.properties"],
)

app = FastAPI(
    title="Catalog Backup/Restore",
    description="Example application serving catalog backups and restores",
    version="1.0.0",
    lifespan=lambda app: catalogbr_lifespan(app, catalogbr_config, [security_provider]),
)


@app.get("/")
async def root():
    """Root endpoint."""
    facade = get_br_facade(app)
    return {
        "message": "Catalog Backup/Restore",
        "docs": "/docs",
        "health": "/rest/br/health",
        "workspaces": [ws.name for ws in facade.server.catalog.get_workspaces()],
    }


# ============================================================================
# catalogbr Endpoints (registered by the lifespan)
# ============================================================================
#
# POST /rest/br/backup                 - Launch a backup
# GET  /rest/br/backup                 - List backup executions
# GET  /rest/br/backup/{execution_id}  - Backup execution status
# POST /rest/br/restore                - Launch a restore (BK_DRY_RUN to validate)
# GET  /rest/br/restore                - List restore executions
# GET  /rest/br/restore/{execution_id} - Restore execution status
# GET  /rest/br/executions             - Journaled executions
# GET  /rest/br/health                 - Health check
#
# All endpoints require: Authorization: Bearer <CATALOGBR_ADMIN_API_KEY>


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)

# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Catalog Backup/Restore - Backup and restore orchestration for a configuration catalog.

Builds point-in-time archives of a live configuration catalog and restores
them either in place (hard restore) or against a throwaway copy (dry-run),
with at most one backup or restore running at any time. Package name: catalogbr.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from catalogbr.builder import create_config

# Environment-based configuration
from catalogbr.env import create_config_from_env

# Live configuration
from catalogbr.catalog import Catalog, ServerConfig

# Orchestration
from catalogbr.facade import BackupFacade
from catalogbr.execution import BackupExecution, RestoreExecution
from catalogbr.plugins import PropertiesConfigProvider, TileCacheConfigProvider

__all__ = [
    # Version
    "__version__",
    # Configuration creation (primary user-facing APIs)
    "create_config",
    "create_config_from_env",
    # Live configuration
    "Catalog",
    "ServerConfig",
    # Orchestration
    "BackupFacade",
    "BackupExecution",
    "RestoreExecution",
    "PropertiesConfigProvider",
    "TileCacheConfigProvider",
]

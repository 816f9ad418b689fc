# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Framework Integrations - FastAPI endpoints for backups and restores.
"""

from catalogbr.integrations.fastapi import (
    catalogbr_lifespan,
    get_br_facade,
    register_br_routes,
    verify_api_key,
)

__all__ = [
    "catalogbr_lifespan",
    "get_br_facade",
    "register_br_routes",
    "verify_api_key",
]

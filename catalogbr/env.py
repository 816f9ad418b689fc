# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

These helpers are small, convenient wrappers around create_config(). They
make it easy to build a configuration for a deployed service from
environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path

from catalogbr.builder import create_config
from catalogbr.config import BRConfig, DEFAULT_GATE_TIMEOUT, SerializationFormat
from catalogbr.errors import (
    explain_invalid_format_env,
    explain_invalid_timeout_env,
    explain_missing_data_dir_env,
)
from catalogbr.exceptions import ConfigurationError


def _parse_seconds(name: str, value: str | None, default: float | None) -> float | None:
    if value is None or value == "":
        return default
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_timeout_env(name, value)) from exc
    if seconds < 0:
        raise ConfigurationError(explain_invalid_timeout_env(name, value))
    return seconds


def _parse_format(value: str | None) -> SerializationFormat:
    if not value:
        return SerializationFormat.XML
    try:
        return SerializationFormat(value.lower())
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_format_env(value)) from exc


def create_config_from_env() -> BRConfig:
    """
    Create a BRConfig from environment variables.

    Required:
        - CATALOGBR_DATA_DIR: Live configuration data directory

    Optional environment variables:
        - CATALOGBR_STAGING_DIR: Root for per-job staging directories
        - CATALOGBR_GATE_TIMEOUT: Admission re-check slice in seconds (default: 300)
        - CATALOGBR_GATE_MAX_WAIT: Admission ceiling in seconds (0 = fail fast)
        - CATALOGBR_FORMAT: 'xml' | 'json' (default: xml)
        - CATALOGBR_JOURNAL_PATH: SQLite execution journal file
    """

    data_dir = os.getenv("CATALOGBR_DATA_DIR")
    if not data_dir:
        raise ConfigurationError(explain_missing_data_dir_env())

    staging_dir = os.getenv("CATALOGBR_STAGING_DIR")
    gate_timeout = _parse_seconds(
        "CATALOGBR_GATE_TIMEOUT", os.getenv("CATALOGBR_GATE_TIMEOUT"), DEFAULT_GATE_TIMEOUT
    )
    gate_max_wait = _parse_seconds(
        "CATALOGBR_GATE_MAX_WAIT", os.getenv("CATALOGBR_GATE_MAX_WAIT"), None
    )
    serialization_format = _parse_format(os.getenv("CATALOGBR_FORMAT"))
    journal_path = os.getenv("CATALOGBR_JOURNAL_PATH")

    if gate_timeout == 0:
        raise ConfigurationError(explain_invalid_timeout_env("CATALOGBR_GATE_TIMEOUT", "0"))

    return create_config(
        data_dir=Path(data_dir),
        staging_dir=Path(staging_dir) if staging_dir else None,
        gate_timeout=gate_timeout,
        gate_max_wait=gate_max_wait,
        serialization_format=serialization_format,
        journal_path=Path(journal_path) if journal_path else None,
    )

# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Builder - Functional builder pattern for configuration.

This module provides pure functions for building BRConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

import tempfile
from pathlib import Path
from typing import Any, Callable, Dict

from catalogbr.config import (
    BRConfig,
    DEFAULT_GATE_TIMEOUT,
    DEFAULT_ZSTD_LEVEL,
    SerializationFormat,
)


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial empty configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "data_dir": None,
        "staging_dir": Path(tempfile.gettempdir()) / "catalogbr",
        "gate_timeout": DEFAULT_GATE_TIMEOUT,
        "gate_max_wait": None,
        "serialization_format": SerializationFormat.XML,
        "zstd_level": DEFAULT_ZSTD_LEVEL,
        "journal_path": None,
        "cleanup_staging": True,
    }


def with_data_dir(config: ConfigDict, data_dir: Path | str) -> ConfigDict:
    """
    Set the live configuration data directory.

    Args:
        config: Current configuration dictionary
        data_dir: Directory holding the live configuration tree

    Returns:
        New configuration dictionary with data_dir set
    """
    return {**config, "data_dir": Path(data_dir)}


def with_staging_dir(config: ConfigDict, staging_dir: Path | str) -> ConfigDict:
    """
    Set the root folder for private staging directories.

    Args:
        config: Current configuration dictionary
        staging_dir: Folder under which per-job staging directories are created

    Returns:
        New configuration dictionary with staging_dir set
    """
    return {**config, "staging_dir": Path(staging_dir)}


def with_gate_timeout(
    config: ConfigDict,
    timeout: float,
    max_wait: float | None = None,
) -> ConfigDict:
    """
    Set how long an admission waits for a running job to finish.

    Args:
        config: Current configuration dictionary
        timeout: Re-check slice in seconds
        max_wait: Overall ceiling in seconds (None: one slice, 0: fail fast)

    Returns:
        New configuration dictionary with gate settings
    """
    return {**config, "gate_timeout": timeout, "gate_max_wait": max_wait}


def fail_fast(config: ConfigDict) -> ConfigDict:
    """
    Reject a launch immediately when another job is running.

    Args:
        config: Current configuration dictionary

    Returns:
        New configuration dictionary with a zero admission ceiling
    """
    return {**config, "gate_max_wait": 0.0}


def json_format(config: ConfigDict) -> ConfigDict:
    """
    Serialize catalog entities as JSON instead of XML.

    Args:
        config: Current configuration dictionary

    Returns:
        New configuration dictionary with JSON serialization
    """
    return {**config, "serialization_format": SerializationFormat.JSON}


def enable_journal(config: ConfigDict, journal_path: Path | str) -> ConfigDict:
    """
    Persist execution history to a SQLite journal.

    Args:
        config: Current configuration dictionary
        journal_path: Path of the SQLite database file

    Returns:
        New configuration dictionary with the journal enabled
    """
    return {**config, "journal_path": Path(journal_path)}


def keep_staging(config: ConfigDict) -> ConfigDict:
    """
    Keep staging directories after jobs end (useful when debugging archives).

    Args:
        config: Current configuration dictionary

    Returns:
        New configuration dictionary with staging cleanup disabled
    """
    return {**config, "cleanup_staging": False}


def build_config(config_dict: ConfigDict) -> BRConfig:
    """
    Build and validate a BRConfig from a configuration dictionary.

    Args:
        config_dict: Configuration dictionary

    Returns:
        Validated, immutable BRConfig

    Raises:
        ConfigurationError: If configuration is invalid
    """
    return BRConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose builder functions left to right.

    Example:
        configure = pipe(json_format, fail_fast)
        config = build_config(configure(with_data_dir(create_empty_config(), "/data")))
    """

    def composed(config: ConfigDict) -> ConfigDict:
        for func in funcs:
            config = func(config)
        return config

    return composed


def create_config(
    data_dir: Path | str,
    staging_dir: Path | str | None = None,
    gate_timeout: float | None = None,
    gate_max_wait: float | None = None,
    serialization_format: str | SerializationFormat | None = None,
    journal_path: Path | str | None = None,
    **kwargs: Any,
) -> BRConfig:
    """
    Create a BRConfig in one call.

    Example:
        config = create_config(
            data_dir="/var/lib/catalog",
            staging_dir="/var/tmp/catalogbr",
            gate_max_wait=0,
            serialization_format="json",
        )
    """
    config_dict = with_data_dir(create_empty_config(), data_dir)

    if staging_dir:
        config_dict = with_staging_dir(config_dict, staging_dir)

    if gate_timeout is not None or gate_max_wait is not None:
        config_dict = with_gate_timeout(
            config_dict,
            gate_timeout if gate_timeout is not None else config_dict["gate_timeout"],
            gate_max_wait,
        )

    if serialization_format is not None:
        if isinstance(serialization_format, str):
            config_dict["serialization_format"] = SerializationFormat(
                serialization_format.lower()
            )
        else:
            config_dict["serialization_format"] = serialization_format

    if journal_path:
        config_dict = enable_journal(config_dict, journal_path)

    # Apply any additional kwargs
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    return build_config(config_dict)

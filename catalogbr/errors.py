# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for catalogbr.

These helpers centralize wording for admission and configuration errors so
that the facade, the REST layer and the tests agree on the same text.
"""


def explain_archive_exists() -> str:
    """
    Explain that a backup target already exists.
    """

    return (
        "The target archive file already exists. "
        "Use 'overwrite=TRUE' if you want to overwrite it."
    )


def explain_unreachable_path() -> str:
    """
    Explain that the parent folder of a backup target cannot be created.
    """

    return "The path to target archive file is unreachable."


def explain_archive_not_found(archive: str) -> str:
    """
    Explain that a restore source archive is missing.
    """

    return f"The source archive file {archive!r} does not exist."


def explain_concurrent_execution(kind: str) -> str:
    """
    Explain that a job could not be admitted because another one is running.

    Args:
        kind: Job kind label, "Backup" or "Restore"
    """

    return (
        f"Could not start a new {kind} Job Execution "
        "since there are currently Running jobs."
    )


def explain_missing_data_dir_env() -> str:
    """
    Explain that the data directory environment variable is missing.
    """

    return (
        "Data directory is not configured. "
        "Set the CATALOGBR_DATA_DIR environment variable or pass data_dir=... to create_config()."
    )


def explain_invalid_timeout_env(name: str, value: str | None) -> str:
    """
    Explain that a gate timeout environment variable is invalid.
    """

    return (
        f"Invalid {name} value: {value!r}. "
        "It must be a non-negative number of seconds."
    )


def explain_invalid_format_env(value: str | None) -> str:
    """
    Explain that CATALOGBR_FORMAT is invalid.
    """

    return (
        f"Invalid CATALOGBR_FORMAT value: {value!r}. "
        "Expected one of: 'xml' or 'json'."
    )

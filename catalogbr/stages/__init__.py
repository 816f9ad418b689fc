# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Step Pipeline - Backup and restore stages, and the jobs built from them.
"""

from typing import TYPE_CHECKING

from catalogbr.jobs import Job
from catalogbr.layout import STEP_SECTIONS
from catalogbr.listeners import RestoreJobListener
from catalogbr.stages.base import AbstractCatalogStage, StageContext
from catalogbr.stages.backup import (
    BackupPluginsStage,
    BackupResourcesFoldersStage,
    BackupSectionStage,
    CreateArchiveStage,
)
from catalogbr.stages.restore import (
    RestoreCommitStage,
    RestorePluginsStage,
    RestoreSectionStage,
)

if TYPE_CHECKING:
    from catalogbr.facade import BackupFacade

BACKUP_JOB_NAME = "backupJob"
RESTORE_JOB_NAME = "restoreJob"


def build_backup_job(facade: "BackupFacade") -> Job:
    """
    Backup job: one stage per catalog section group, then plugin files,
    auxiliary resource folders and finally the archive.
    """
    steps = [
        BackupSectionStage(f"backup_{group}", facade, sections)
        for group, sections in STEP_SECTIONS.items()
    ]
    steps.append(BackupPluginsStage("backup_plugins", facade))
    steps.append(BackupResourcesFoldersStage("backup_resources_folders", facade))
    steps.append(CreateArchiveStage("create_archive", facade))
    return Job(name=BACKUP_JOB_NAME, steps=steps)


def build_restore_job(facade: "BackupFacade") -> Job:
    """
    Restore job: read every section group into the working catalog, check
    plugin files, then commit. Wrapped by the restore lifecycle listener.
    """
    steps = [
        RestoreSectionStage(f"restore_{group}", facade, sections)
        for group, sections in STEP_SECTIONS.items()
    ]
    steps.append(RestorePluginsStage("restore_plugins", facade))
    steps.append(RestoreCommitStage("restore_commit", facade))
    return Job(name=RESTORE_JOB_NAME, steps=steps, listeners=[RestoreJobListener(facade)])


__all__ = [
    "AbstractCatalogStage",
    "StageContext",
    "BackupSectionStage",
    "BackupPluginsStage",
    "BackupResourcesFoldersStage",
    "CreateArchiveStage",
    "RestoreSectionStage",
    "RestorePluginsStage",
    "RestoreCommitStage",
    "build_backup_job",
    "build_restore_job",
    "BACKUP_JOB_NAME",
    "RESTORE_JOB_NAME",
]

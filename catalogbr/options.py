# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Options - Job option flags and job launch parameters.

Options arrive as an ordered list of strings such as "BK_DRY_RUN" or
"BK_BEST_EFFORT=true". They are turned into string-keyed job parameters
once at launch, and every stage derives the same immutable Options bag
from those parameters.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path
from typing import Dict, Iterable, List, Mapping

import structlog

logger = structlog.get_logger()

# Job parameter keys
PARAM_OUTPUT_FILE_PATH = "output.file.path"
PARAM_INPUT_FILE_PATH = "input.file.path"
PARAM_TIME = "time"
PARAM_DRY_RUN_MODE = "BK_DRY_RUN"
PARAM_BEST_EFFORT_MODE = "BK_BEST_EFFORT"

RECOGNIZED_OPTIONS = (PARAM_DRY_RUN_MODE, PARAM_BEST_EFFORT_MODE)

JobParameters = Dict[str, str]


def option_enabled(options: Iterable[str], name: str) -> bool:
    """
    Check whether an option list enables the flag `name`.

    An option enables the flag when it starts with the flag name and either
    carries no value or its value ends with "true".
    """
    for option in options:
        if not option.startswith(name):
            continue
        if "=" not in option:
            return True
        if option.split("=", 1)[1].strip().lower().endswith("true"):
            return True
    return False


@dataclass(frozen=True)
class Options:
    """Immutable bag of recognized execution flags."""

    dry_run: bool = False
    best_effort: bool = False

    @classmethod
    def from_options(cls, options: Iterable[str] | None) -> "Options":
        options = list(options or [])
        for option in options:
            if not any(option.startswith(name) for name in RECOGNIZED_OPTIONS):
                logger.warning("unrecognized_option_ignored", option=option)
        return cls(
            dry_run=option_enabled(options, PARAM_DRY_RUN_MODE),
            best_effort=option_enabled(options, PARAM_BEST_EFFORT_MODE),
        )

    @classmethod
    def from_job_parameters(cls, params: Mapping[str, str]) -> "Options":
        """Derive the options bag from job parameters; missing keys mean False."""
        return cls(
            dry_run=str(params.get(PARAM_DRY_RUN_MODE, "false")).lower() == "true",
            best_effort=str(params.get(PARAM_BEST_EFFORT_MODE, "false")).lower() == "true",
        )

    def as_parameters(self) -> JobParameters:
        return {
            PARAM_DRY_RUN_MODE: "true" if self.dry_run else "false",
            PARAM_BEST_EFFORT_MODE: "true" if self.best_effort else "false",
        }


def parse_options(options: Iterable[str] | None) -> Options:
    """Parse a declared option list into an Options bag."""
    return Options.from_options(options)


def _timestamp() -> str:
    return str(int(datetime.now(UTC).timestamp() * 1000))


def backup_job_parameters(staging_dir: Path, options: List[str]) -> JobParameters:
    """Build the launch parameters of a backup job."""
    return {
        PARAM_OUTPUT_FILE_PATH: str(staging_dir),
        PARAM_TIME: _timestamp(),
        **parse_options(options).as_parameters(),
    }


def restore_job_parameters(staging_dir: Path, options: List[str]) -> JobParameters:
    """Build the launch parameters of a restore job."""
    return {
        PARAM_INPUT_FILE_PATH: str(staging_dir),
        PARAM_TIME: _timestamp(),
        **parse_options(options).as_parameters(),
    }

# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation so that a running
backup or restore job can never observe a configuration change midway.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List
import tempfile


class JobKind(str, Enum):
    """Kind of a backup/restore job."""

    BACKUP = "backup"
    RESTORE = "restore"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class ExecutionStatus(str, Enum):
    """Status of a job execution."""

    STARTING = "STARTING"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_running(self) -> bool:
        return self in (ExecutionStatus.STARTING, ExecutionStatus.STARTED)


class StepStatus(str, Enum):
    """Status of a single pipeline stage."""

    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class SerializationFormat(str, Enum):
    """On-disk format of serialized catalog entities."""

    XML = "xml"
    JSON = "json"


# Default admission wait slice, in seconds
DEFAULT_GATE_TIMEOUT = 300.0

# Default zstd level for .tar.zst archives
DEFAULT_ZSTD_LEVEL = 19


@dataclass(frozen=True)
class BRConfig:
    """
    Immutable configuration for the backup/restore engine.

    This configuration is frozen after creation to ensure thread safety
    and prevent accidental modifications while jobs are running.
    """

    # Required: live configuration data directory
    data_dir: Path

    # Root folder for private staging directories (backup output, restore input)
    staging_dir: Path = field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "catalogbr"
    )

    # Admission re-check slice while waiting for a running job
    gate_timeout: float = DEFAULT_GATE_TIMEOUT

    # Admission ceiling (None: one gate_timeout slice, 0: fail immediately)
    gate_max_wait: float | None = None

    # Entity serialization format
    serialization_format: SerializationFormat = SerializationFormat.XML

    # zstd level used for .tar.zst archives
    zstd_level: int = DEFAULT_ZSTD_LEVEL

    # Optional SQLite execution journal
    journal_path: Path | None = None

    # Remove staging directories once a job is over
    cleanup_staging: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if self.data_dir is None or not str(self.data_dir).strip():
            errors.append("data_dir is required")

        if self.gate_timeout <= 0:
            errors.append(f"gate_timeout must be > 0, got {self.gate_timeout}")

        if self.gate_max_wait is not None and self.gate_max_wait < 0:
            errors.append(f"gate_max_wait must be >= 0, got {self.gate_max_wait}")

        if not 1 <= self.zstd_level <= 22:
            errors.append(f"zstd_level must be between 1 and 22, got {self.zstd_level}")

        if not isinstance(self.serialization_format, SerializationFormat):
            errors.append(f"Invalid serialization_format: {self.serialization_format}")

        if self.journal_path is not None and Path(self.journal_path) == Path(self.data_dir):
            errors.append("journal_path must not be the data directory itself")

        # Raise all errors at once
        if errors:
            from catalogbr.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def admission_ceiling(self) -> float:
        """Seconds an admission may wait before failing."""
        if self.gate_max_wait is None:
            return self.gate_timeout
        return self.gate_max_wait

    def with_updates(self, **kwargs) -> "BRConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return BRConfig(**current)

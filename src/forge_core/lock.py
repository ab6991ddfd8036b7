"""Workspace lock file (forge.lock) management.

Tracks installed artifacts and the workspace paths each one owns. The
``files`` lists are the only record of ownership: a path absent from every
list is user territory.

Lock format (YAML):

    version: "1"
    lockedAt: "2026-01-01T12:00:00+00:00"
    artifacts:
      "skill:developer":
        id: developer
        type: skill
        version: 1.0.0
        registry: local
        sha256: 9f86d0...
        files:
          - .claude/skills/developer/SKILL.md
        resolvedAt: "2026-01-01T12:00:00+00:00"

Per KERNEL_PHILOSOPHY: lock location is app policy - the path is injected.
"""

import logging
from datetime import UTC
from datetime import datetime
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError

from .exceptions import ForgeError
from .schema import ID_PATTERN
from .schema import first_error_message
from .utils import atomic_write_text

logger = logging.getLogger(__name__)

LOCK_VERSION = "1"

LockableType = Literal["skill", "agent", "plugin"]


def utc_now() -> datetime:
    return datetime.now(UTC)


class LockedArtifact(BaseModel):
    """Entry in forge.lock."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(pattern=ID_PATTERN)
    type: LockableType
    version: str
    registry: str
    sha256: str = Field(pattern=r"^[a-f0-9]{64}$")
    files: list[str] = Field(default_factory=list)
    resolved_at: datetime = Field(default_factory=utc_now, alias="resolvedAt")

    @property
    def key(self) -> str:
        return f"{self.type}:{self.id}"


class LockFile(BaseModel):
    """forge.lock document."""

    model_config = ConfigDict(populate_by_name=True)

    version: Literal["1"] = LOCK_VERSION
    locked_at: datetime = Field(default_factory=utc_now, alias="lockedAt")
    artifacts: dict[str, LockedArtifact] = Field(default_factory=dict)

    def owned_files(self) -> set[str]:
        """Union of every locked artifact's files."""
        return {path for entry in self.artifacts.values() for path in entry.files}

    def add_entry(self, entry: LockedArtifact) -> None:
        """Add or replace an entry under its "type:id" key."""
        self.artifacts[entry.key] = entry

    def remove_entry(self, key: str) -> None:
        self.artifacts.pop(key, None)

    def get_entry(self, key: str) -> LockedArtifact | None:
        return self.artifacts.get(key)

    def list_entries(self) -> list[LockedArtifact]:
        return list(self.artifacts.values())

    def is_locked(self, key: str) -> bool:
        return key in self.artifacts

    def to_yaml(self) -> str:
        data = self.model_dump(mode="json", by_alias=True)
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def read_lock(lock_path: Path) -> LockFile:
    """
    Load forge.lock.

    Args:
        lock_path: Path to lock file (app determines location)

    Returns:
        Parsed lock, or an empty lock if the file doesn't exist

    Raises:
        ForgeError: LOCK_PARSE_ERROR / LOCK_INVALID for unreadable locks
    """
    if not lock_path.exists():
        logger.debug(f"No lock file at {lock_path}, starting empty")
        return LockFile()

    hint = "Delete forge.lock and run 'forge install' to regenerate it"
    try:
        data = yaml.safe_load(lock_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ForgeError(
            f"Failed to parse forge.lock at {lock_path}: {e}",
            code="LOCK_PARSE_ERROR",
            suggestion=hint,
            context={"file_path": str(lock_path)},
        ) from e

    try:
        lock = LockFile.model_validate(data or {})
    except ValidationError as e:
        raise ForgeError(
            f"Invalid forge.lock at {lock_path}: {first_error_message(e)}",
            code="LOCK_INVALID",
            suggestion=hint,
            context={"file_path": str(lock_path)},
        ) from e

    logger.debug(f"Loaded {len(lock.artifacts)} artifacts from lock file")
    return lock


def write_lock(lock_path: Path, lock: LockFile) -> LockFile:
    """Stamp ``locked_at`` and write forge.lock atomically. Returns the written lock."""
    stamped = lock.model_copy(update={"locked_at": utc_now()})
    atomic_write_text(lock_path, stamped.to_yaml())
    logger.debug(f"Saved lock file with {len(stamped.artifacts)} artifacts")
    return stamped

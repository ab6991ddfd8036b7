"""Workspace manager - forge.yaml / forge.lock IO and the file merge engine.

Merge rules for each compiled file:

1. Path not on disk -> write it
2. Path owned by the lockfile -> forge wrote it before, overwrite
3. Otherwise the file is user territory -> record a conflict and apply the
   conflict strategy:
   - overwrite: write anyway
   - backup: copy to {path}.bak, then write
   - skip / prompt: leave untouched (prompting is the caller's job)

Merge conflicts are reported, never raised.
"""

import logging
import shutil
from pathlib import Path

import yaml
from pydantic import ValidationError

from .config import ForgeConfig
from .config import default_config
from .exceptions import ForgeError
from .filesystem_adapter import write_content
from .lock import LockFile
from .lock import read_lock
from .lock import write_lock
from .models import ConflictRecord
from .models import ConflictStrategy
from .models import FileOperation
from .models import MergeReport
from .schema import first_error_message
from .utils import atomic_write_text
from .utils import compute_sha256
from .utils import is_within_root

logger = logging.getLogger(__name__)

FORGE_YAML = "forge.yaml"
FORGE_LOCK = "forge.lock"
BACKUP_SUFFIX = ".bak"


class WorkspaceManager:
    """
    Manage one workspace directory (with injected root).

    Example:
        >>> wm = WorkspaceManager(Path("/path/to/workspace"))
        >>> config = wm.read_config()
        >>> report = await wm.merge_files(operations, wm.read_lock(), "backup")
    """

    def __init__(self, workspace_root: Path, output_dir: str = "."):
        """Initialize with app-provided workspace root.

        Args:
            workspace_root: Directory holding forge.yaml and forge.lock
            output_dir: Directory (relative to the root) compiled files are merged into
        """
        self.workspace_root = Path(workspace_root)
        self.output_root = self.workspace_root / output_dir

    @property
    def config_path(self) -> Path:
        return self.workspace_root / FORGE_YAML

    @property
    def lock_path(self) -> Path:
        return self.workspace_root / FORGE_LOCK

    def read_config(self) -> ForgeConfig:
        """
        Read and validate forge.yaml.

        Raises:
            ForgeError: CONFIG_NOT_FOUND, CONFIG_PARSE_ERROR or CONFIG_INVALID
        """
        path = self.config_path
        context = {"file_path": str(path)}

        if not path.exists():
            raise ForgeError(
                f"forge.yaml not found at {path}",
                code="CONFIG_NOT_FOUND",
                suggestion="Run 'forge init <name>' to create a new workspace",
                context=context,
            )

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ForgeError(
                f"Failed to parse forge.yaml at {path}: {e}",
                code="CONFIG_PARSE_ERROR",
                suggestion=f"Check that {path} is valid YAML",
                context=context,
            ) from e

        try:
            return ForgeConfig.model_validate(data or {})
        except ValidationError as e:
            raise ForgeError(
                f"Invalid forge.yaml at {path}: {first_error_message(e)}",
                code="CONFIG_INVALID",
                suggestion="Check the forge.yaml schema - required fields: name, registries",
                context=context,
            ) from e

    def write_config(self, config: ForgeConfig) -> None:
        data = config.model_dump(mode="json", by_alias=True, exclude_none=True)
        atomic_write_text(self.config_path, yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
        logger.debug(f"Wrote {self.config_path}")

    def read_lock(self) -> LockFile:
        """Read forge.lock (empty lock if missing)."""
        return read_lock(self.lock_path)

    def write_lock(self, lock: LockFile) -> LockFile:
        """Write forge.lock with a fresh lockedAt timestamp."""
        return write_lock(self.lock_path, lock)

    def scaffold_workspace(self, name: str) -> ForgeConfig:
        """
        Create forge.yaml and an empty forge.lock.

        Raises:
            ForgeError: WORKSPACE_EXISTS if forge.yaml already exists
        """
        if self.config_path.exists():
            raise ForgeError(
                f"forge.yaml already exists at {self.config_path}",
                code="WORKSPACE_EXISTS",
                suggestion="Remove forge.yaml if you want to reinitialize, or run 'forge add' to add artifacts",
                context={"file_path": str(self.config_path)},
            )

        self.workspace_root.mkdir(parents=True, exist_ok=True)
        config = default_config(name)
        self.write_config(config)
        self.write_lock(LockFile())
        logger.info(f"Initialized workspace '{name}' at {self.workspace_root}")
        return config

    def compute_sha256(self, content: str) -> str:
        return compute_sha256(content)

    async def merge_files(
        self,
        operations: list[FileOperation],
        lock: LockFile,
        strategy: ConflictStrategy = "backup",
    ) -> MergeReport:
        """
        Apply file operations in order, respecting lockfile ownership.

        Args:
            operations: Compiled file operations (workspace-relative paths)
            lock: Lock from the previous install (ownership source of truth)
            strategy: Conflict strategy for existing, unowned files

        Returns:
            MergeReport listing written, skipped and backed-up paths plus conflicts

        Raises:
            ForgeError: UNSAFE_PATH if any path leaves the output root (nothing is written)
        """
        for op in operations:
            if not is_within_root(op.path):
                raise ForgeError(
                    f"Refusing to write outside the workspace: {op.path}",
                    code="UNSAFE_PATH",
                    suggestion=f"Check the id of {op.source_ref} in its registry",
                    context={"path": op.path},
                )

        report = MergeReport()
        owned = lock.owned_files()

        for op in operations:
            target = self.output_root / op.path

            if not target.exists():
                target.parent.mkdir(parents=True, exist_ok=True)
                write_content(target, op.content)
                report.written.append(op.path)
                continue

            if op.path in owned:
                write_content(target, op.content)
                report.written.append(op.path)
                continue

            resolution = strategy if strategy in ("overwrite", "backup") else "skip"
            report.conflicts.append(ConflictRecord(path=op.path, strategy=strategy, resolution=resolution))
            logger.info(f"Conflict on {op.path} (not owned by forge.lock): {resolution}")

            if resolution == "overwrite":
                write_content(target, op.content)
                report.written.append(op.path)
            elif resolution == "backup":
                backup_path = op.path + BACKUP_SUFFIX
                shutil.copyfile(target, self.output_root / backup_path)
                report.backed_up.append(backup_path)
                write_content(target, op.content)
                report.written.append(op.path)
            else:
                report.skipped.append(op.path)

        logger.debug(
            f"Merged {len(operations)} operations: {len(report.written)} written, "
            f"{len(report.skipped)} skipped, {len(report.conflicts)} conflicts"
        )
        return report

    async def clean_untracked(self, lock: LockFile, current_files: list[str]) -> list[str]:
        """
        Delete lock-owned files that are no longer part of the install set.

        Args:
            lock: Lock from the previous install
            current_files: Paths produced by the current install

        Returns:
            Paths that were removed
        """
        keep = set(current_files)
        removed: list[str] = []

        for path in sorted(lock.owned_files() - keep):
            if not is_within_root(path):
                logger.warning(f"Not removing {path}: outside the workspace. Check forge.lock.")
                continue

            target = self.output_root / path
            try:
                target.unlink()
                removed.append(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Could not remove {target}: {e}")

        if removed:
            logger.info(f"Removed {len(removed)} files no longer provided by any artifact")
        return removed

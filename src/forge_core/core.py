"""Forge orchestration - the operations the CLI and MCP server call.

Per KERNEL_PHILOSOPHY: Mechanism not policy - the workspace root and the git
cache location are injected; which registries to use comes from forge.yaml.

Install pipeline:
1. Read forge.yaml and forge.lock
2. Build the registry (CompositeAdapter over configured registries)
3. Resolve declared refs (fresh Resolver per run)
4. Compile to file operations for the target
5. Merge into the workspace (conflict strategy), clean files no longer emitted
6. Rebuild forge.lock from the resolved set
"""

import logging
import time
from pathlib import Path
from typing import Literal

from .compiler import ClaudeCodeStrategy
from .compiler import Compiler
from .composite_adapter import CompositeAdapter
from .config import FilesystemRegistryConfig
from .config import ForgeConfig
from .config import GitRegistryConfig
from .exceptions import ForgeError
from .filesystem_adapter import FilesystemAdapter
from .git_adapter import GitAdapter
from .lock import LockedArtifact
from .lock import LockFile
from .lock import utc_now
from .models import ArtifactRef
from .models import ArtifactSummary
from .models import ConflictStrategy
from .models import FileOperation
from .models import InstallReport
from .models import ResolvedArtifact
from .models import SearchResult
from .protocols import DataAdapter
from .registry import Registry
from .resolver import Resolver
from .utils import expand_path
from .utils import parse_ref
from .workspace import WorkspaceManager

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_DIR = "registry"


def build_lock(
    resolved: list[ResolvedArtifact], operations: list[FileOperation], workspace: WorkspaceManager
) -> LockFile:
    """
    Build a lock from scratch for a completed install.

    workspace-config artifacts are never locked. Each entry owns exactly the
    emitted paths whose source ref is that artifact, including paths the merge
    skipped on conflict; the next install overwrites those without a conflict.
    """
    lock = LockFile()
    resolved_at = utc_now()

    for artifact in resolved:
        ref = artifact.ref
        if ref.type == "workspace-config":
            continue

        files = [op.path for op in operations if op.source_ref.key == ref.key]
        lock.add_entry(
            LockedArtifact(
                id=ref.id,
                type=ref.type,
                version=artifact.bundle.meta.version,
                registry=artifact.bundle.registry,
                sha256=workspace.compute_sha256(artifact.bundle.content),
                files=files,
                resolved_at=resolved_at,
            )
        )

    return lock


class ForgeCore:
    """
    Wire registry, resolver, compiler and workspace manager together.

    Example:
        >>> forge = ForgeCore(Path("./my-workspace"))
        >>> forge.init("my-workspace")
        >>> await forge.add("skill:developer@1.0.0")
        >>> report = await forge.install()
    """

    def __init__(self, workspace_root: Path | None = None, git_cache_dir: Path | None = None):
        """Initialize with app-provided paths.

        Args:
            workspace_root: Workspace directory (defaults to the current directory)
            git_cache_dir: Base cache directory for git registries
        """
        self.workspace_root = Path(workspace_root) if workspace_root is not None else Path.cwd()
        self.git_cache_dir = git_cache_dir
        self.workspace_manager = WorkspaceManager(self.workspace_root)
        self.compiler = Compiler([ClaudeCodeStrategy()])

    def init(self, name: str) -> ForgeConfig:
        """Create forge.yaml and forge.lock for a new workspace."""
        return self.workspace_manager.scaffold_workspace(name)

    def get_config(self) -> ForgeConfig:
        return self.workspace_manager.read_config()

    async def search(self, query: str, artifact_type: str | None = None) -> list[SearchResult]:
        return await self.build_registry().search(query, artifact_type)

    async def add(self, ref_strings: str | list[str]) -> ForgeConfig:
        """
        Declare artifacts in forge.yaml.

        Artifacts missing from every registry are still added (with a warning);
        they may become available later.

        Raises:
            ForgeError: INVALID_REF for malformed refs, UNSUPPORTED_REF_TYPE for
                types forge.yaml cannot declare
        """
        refs = [parse_ref(s) for s in ([ref_strings] if isinstance(ref_strings, str) else ref_strings)]
        config = self.workspace_manager.read_config()
        registry = self.build_registry(config)

        for ref in refs:
            bucket = config.artifacts.bucket(ref.type)
            if bucket is None:
                raise ForgeError(
                    f"Artifacts of type '{ref.type}' cannot be declared in forge.yaml",
                    code="UNSUPPORTED_REF_TYPE",
                    suggestion="Declare skills, agents or plugins (e.g. skill:developer@^1.0.0)",
                    context={"ref": str(ref)},
                )

            if not await registry.adapter.exists(ref.type, ref.id):
                logger.warning(f"'{ref}' not found in any registry. Adding anyway.")

            bucket[ref.id] = ref.version
            logger.debug(f"Declared {ref}")

        self.workspace_manager.write_config(config)
        return config

    async def remove(self, ref_strings: str | list[str]) -> ForgeConfig:
        """Drop artifacts from forge.yaml. Files are cleaned on the next install."""
        refs = [parse_ref(s) for s in ([ref_strings] if isinstance(ref_strings, str) else ref_strings)]
        config = self.workspace_manager.read_config()

        for ref in refs:
            bucket = config.artifacts.bucket(ref.type)
            if bucket is not None and bucket.pop(ref.id, None) is not None:
                logger.debug(f"Removed {ref.key} from forge.yaml")

        self.workspace_manager.write_config(config)
        return config

    async def install(
        self,
        target: str | None = None,
        dry_run: bool = False,
        conflict_strategy: ConflictStrategy = "backup",
    ) -> InstallReport:
        """
        Run the full install pipeline.

        Args:
            target: Compile target (defaults to forge.yaml's target)
            dry_run: Resolve and compile only; report paths without touching disk
            conflict_strategy: Strategy for existing files not owned by forge.lock

        Returns:
            InstallReport

        Raises:
            ForgeError: Any resolution failure or unsupported target, before any
                file is touched
        """
        started = time.monotonic()
        config = self.workspace_manager.read_config()
        previous_lock = self.workspace_manager.read_lock()

        # Step 1: Resolve (fresh resolver, nothing cached across runs)
        resolver = Resolver(self.build_registry(config))
        refs = config.artifacts.refs()
        logger.info(f"Installing {len(refs)} declared artifacts into {self.workspace_root}")
        resolved = await resolver.resolve_all(refs)

        # Step 2: Compile
        operations = self.compiler.emit_all(resolved, target or config.target)

        report = InstallReport(installed=[r.ref for r in resolved])

        if dry_run:
            report.files_written = [op.path for op in operations]
        else:
            # Step 3: Merge, then drop files the previous install owned but this one doesn't emit
            workspace = WorkspaceManager(self.workspace_root, output_dir=config.output_dir)
            merge_report = await workspace.merge_files(operations, previous_lock, conflict_strategy)
            report.files_written = merge_report.written
            report.conflicts = merge_report.conflicts
            report.removed = await workspace.clean_untracked(previous_lock, [op.path for op in operations])

            # Step 4: Rebuild lock from scratch
            self.workspace_manager.write_lock(build_lock(resolved, operations, workspace))

        report.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Installed {len(report.installed)} artifacts, {len(report.files_written)} files, "
            f"{len(report.conflicts)} conflicts{' (dry run)' if dry_run else ''}"
        )
        return report

    async def resolve(self, ref_string: str) -> ResolvedArtifact:
        """Resolve a single ref string with a fresh resolver."""
        resolver = Resolver(self.build_registry())
        return await resolver.resolve(parse_ref(ref_string))

    async def list(
        self,
        scope: Literal["available", "installed"] = "available",
        artifact_type: str | None = None,
    ) -> list[ArtifactSummary]:
        """List installed (from forge.lock) or available (from the registry) artifacts."""
        if scope == "installed":
            entries = self.workspace_manager.read_lock().list_entries()
            return [
                ArtifactSummary(ref=ArtifactRef(type=e.type, id=e.id, version=e.version), name=e.id, description="")
                for e in entries
                if artifact_type is None or e.type == artifact_type
            ]

        return await self.build_registry().list(artifact_type)

    def build_registry(self, config: ForgeConfig | None = None) -> Registry:
        """
        Registry over the configured registries, in declaration (priority) order.

        Falls back to {workspace}/registry when there is no forge.yaml or it
        declares no registries.
        """
        if config is None:
            try:
                config = self.workspace_manager.read_config()
            except ForgeError as e:
                logger.debug(f"No usable forge.yaml ({e.code}), using default registry")
                config = None

        registries = config.registries if config else []
        adapters: list[DataAdapter] = [self._build_adapter(r) for r in registries]

        if not adapters:
            return Registry(FilesystemAdapter(self.workspace_root / DEFAULT_REGISTRY_DIR))

        return Registry(CompositeAdapter(adapters))

    def _build_adapter(self, registry_config: FilesystemRegistryConfig | GitRegistryConfig) -> DataAdapter:
        if isinstance(registry_config, GitRegistryConfig):
            return GitAdapter(
                url=registry_config.url,
                ref=registry_config.branch,
                registry_path=registry_config.path,
                sparse=registry_config.sparse,
                cache_dir=self.git_cache_dir,
                token_env=registry_config.token_env,
                name=registry_config.name,
            )

        root = expand_path(registry_config.path, base=self.workspace_root)
        return FilesystemAdapter(root, name=registry_config.name)

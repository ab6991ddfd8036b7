"""In-memory pipeline values.

Validated documents (metadata, forge.yaml, forge.lock) are pydantic models;
the values passed between resolver, compiler and workspace manager are plain
dataclasses.
"""

from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from typing import Literal

from .schema import ArtifactMetadata
from .schema import ArtifactType
from .schema import check_artifact_id

ConflictStrategy = Literal["overwrite", "skip", "backup", "prompt"]
ConflictResolution = Literal["overwrite", "skip", "backup"]
Target = Literal["claude-code", "cursor", "plugin"]

WILDCARD_VERSIONS = frozenset({"*", "latest", ""})


@dataclass(frozen=True)
class ArtifactRef:
    """Reference to an artifact: type:id@version.

    Raises ForgeError (INVALID_REF) when the id is not lowercase kebab-case.
    """

    type: ArtifactType
    id: str
    version: str = "*"

    def __post_init__(self) -> None:
        check_artifact_id(self.id)

    @property
    def key(self) -> str:
        """Version-independent identity used for caching and dedup."""
        return f"{self.type}:{self.id}"

    def __str__(self) -> str:
        return f"{self.type}:{self.id}@{self.version}"


@dataclass
class ArtifactBundle:
    """Metadata plus raw content. Content is never parsed."""

    meta: ArtifactMetadata
    content: str
    content_path: str
    registry: str = "local"


@dataclass
class ResolvedArtifact:
    """An artifact with its dependency tree resolved.

    Shared dependencies are the same object at every parent site.
    """

    ref: ArtifactRef
    bundle: ArtifactBundle
    dependencies: list["ResolvedArtifact"] = field(default_factory=list)


@dataclass
class FileOperation:
    """A file write produced by the compiler (path is workspace-relative)."""

    path: str
    content: str
    source_ref: ArtifactRef
    operation: Literal["create", "update"] = "create"


@dataclass
class SearchResult:
    ref: ArtifactRef
    meta: ArtifactMetadata
    score: int
    matched_on: list[str] = field(default_factory=list)


@dataclass
class ArtifactSummary:
    """Lightweight listing entry (no content)."""

    ref: ArtifactRef
    name: str
    description: str
    tags: list[str] = field(default_factory=list)


@dataclass
class ConflictRecord:
    """A file that existed on disk but was not owned by the lockfile."""

    path: str
    strategy: ConflictStrategy
    resolution: ConflictResolution


@dataclass
class MergeReport:
    written: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    backed_up: list[str] = field(default_factory=list)
    conflicts: list[ConflictRecord] = field(default_factory=list)


@dataclass
class InstallReport:
    """Result of ForgeCore.install()."""

    installed: list[ArtifactRef] = field(default_factory=list)
    files_written: list[str] = field(default_factory=list)
    conflicts: list[ConflictRecord] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    duration_ms: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class CompiledOutput:
    """Output of one EmitStrategy.emit() call."""

    operations: list[FileOperation]
    target: str
    artifact_ref: ArtifactRef

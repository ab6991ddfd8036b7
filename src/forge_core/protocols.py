"""Protocols for artifact sources and compile targets.

Per KERNEL_PHILOSOPHY: Protocol-based extensibility over configuration.
Per IMPLEMENTATION_PHILOSOPHY: Composition over inheritance.
"""

from typing import Protocol
from typing import runtime_checkable

from .models import ArtifactBundle
from .models import CompiledOutput
from .models import ResolvedArtifact
from .schema import ArtifactMetadata


@runtime_checkable
class DataAdapter(Protocol):
    """Protocol for artifact storage backends.

    Any object exposing these four coroutines qualifies. The library ships
    FilesystemAdapter, GitAdapter and CompositeAdapter; apps can provide
    others (HTTP registries, in-memory fakes for tests, etc.).
    """

    name: str

    async def list(self, artifact_type: str) -> list[ArtifactMetadata]:
        """List metadata of every artifact of a type.

        Must not raise for an empty or missing registry; returns [].
        """
        ...

    async def read(self, artifact_type: str, artifact_id: str) -> ArtifactBundle:
        """Read one artifact.

        Raises:
            ArtifactNotFoundError: If the artifact is absent
            InvalidMetadataError: If its metadata fails validation
        """
        ...

    async def exists(self, artifact_type: str, artifact_id: str) -> bool: ...

    async def write(self, artifact_type: str, artifact_id: str, bundle: ArtifactBundle) -> None:
        """Write an artifact, creating directories and overwriting unconditionally."""
        ...


@runtime_checkable
class EmitStrategy(Protocol):
    """Protocol for per-target compilers.

    Example implementations:
    - ClaudeCodeStrategy: .claude/skills and .claude/agents layout
    """

    target: str

    def emit(self, artifact: ResolvedArtifact) -> CompiledOutput: ...

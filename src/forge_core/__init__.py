"""forge-core - Resolve, compile and merge agent artifacts into workspaces.

Public API: adapters, registry, resolver, compiler, workspace manager and the
ForgeCore orchestrator consumed by the CLI and MCP server.

Per KERNEL_PHILOSOPHY: This is library mechanism, apps inject policy (paths, sources).
"""

from .compiler import ClaudeCodeStrategy
from .compiler import Compiler
from .composite_adapter import CompositeAdapter
from .config import ForgeConfig
from .core import ForgeCore
from .exceptions import AdapterError
from .exceptions import AllAdaptersFailedError
from .exceptions import ArtifactNotFoundError
from .exceptions import CircularDependencyError
from .exceptions import ForgeError
from .exceptions import InvalidMetadataError
from .exceptions import UnsupportedTargetError
from .exceptions import VersionMismatchError
from .filesystem_adapter import FilesystemAdapter
from .git_adapter import GitAdapter
from .lock import LockedArtifact
from .lock import LockFile
from .models import ArtifactBundle
from .models import ArtifactRef
from .models import ArtifactSummary
from .models import CompiledOutput
from .models import ConflictRecord
from .models import FileOperation
from .models import InstallReport
from .models import MergeReport
from .models import ResolvedArtifact
from .models import SearchResult
from .protocols import DataAdapter
from .protocols import EmitStrategy
from .registry import Registry
from .resolver import Resolver
from .schema import AgentMetadata
from .schema import PluginMetadata
from .schema import SkillMetadata
from .schema import WorkspaceConfigMetadata
from .utils import parse_ref
from .workspace import WorkspaceManager

__all__ = [
    # Orchestration
    "ForgeCore",
    "ForgeConfig",
    # Metadata
    "SkillMetadata",
    "AgentMetadata",
    "PluginMetadata",
    "WorkspaceConfigMetadata",
    # Pipeline values
    "ArtifactRef",
    "ArtifactBundle",
    "ArtifactSummary",
    "ResolvedArtifact",
    "SearchResult",
    "FileOperation",
    "CompiledOutput",
    "ConflictRecord",
    "MergeReport",
    "InstallReport",
    # Sources
    "DataAdapter",
    "FilesystemAdapter",
    "GitAdapter",
    "CompositeAdapter",
    "Registry",
    # Resolution and compilation
    "Resolver",
    "Compiler",
    "EmitStrategy",
    "ClaudeCodeStrategy",
    # Workspace and lock file
    "WorkspaceManager",
    "LockFile",
    "LockedArtifact",
    # Exceptions
    "ForgeError",
    "AdapterError",
    "AllAdaptersFailedError",
    "ArtifactNotFoundError",
    "CircularDependencyError",
    "InvalidMetadataError",
    "UnsupportedTargetError",
    "VersionMismatchError",
    # Utilities
    "parse_ref",
]

__version__ = "0.1.0"

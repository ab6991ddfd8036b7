"""Artifact resolver - Resolve artifact refs to dependency trees.

State is scoped to one install run: a cache keyed by "type:id" and an
in-progress set used purely for cycle detection. Construct a fresh Resolver
per run, or call reset() before reusing one.

Version ranges use npm semantics (^, ~, comparators, ||, x-ranges).
"""

import logging

from semantic_version import NpmSpec
from semantic_version import Version

from .exceptions import CircularDependencyError
from .exceptions import VersionMismatchError
from .models import WILDCARD_VERSIONS
from .models import ArtifactRef
from .models import ResolvedArtifact
from .registry import Registry
from .schema import AgentMetadata
from .schema import ArtifactMetadata
from .schema import PluginMetadata

logger = logging.getLogger(__name__)

TYPE_PREFIXES = ("skill", "agent", "plugin")


def version_satisfies(version: str, requested: str) -> bool:
    """Check a concrete version against an npm-style range.

    Wildcards ("*", "latest", "") always match. An unparsable range or
    version never matches.
    """
    if requested.strip() in WILDCARD_VERSIONS:
        return True
    try:
        return NpmSpec(requested).match(Version(version))
    except ValueError:
        logger.debug(f"Could not compare version '{version}' against '{requested}'")
        return False


def parse_dependency_key(key: str) -> tuple[str, str]:
    """Split an optionally type-prefixed dependency id ("agent:x") into (type, id)."""
    for prefix in TYPE_PREFIXES:
        marker = f"{prefix}:"
        if key.startswith(marker):
            return prefix, key[len(marker) :]
    return "skill", key


def extract_dependencies(meta: ArtifactMetadata) -> list[ArtifactRef]:
    """
    Declared dependencies of an artifact, in declaration order.

    - ``dependencies`` entries (type from optional prefix, default skill)
    - agents: every ``skills`` id not already an explicit dependency, as skill@*
    - plugins: member ``skills`` and ``agents``, at *
    """
    deps: list[ArtifactRef] = []

    for key, version in getattr(meta, "dependencies", {}).items():
        dep_type, dep_id = parse_dependency_key(key)
        deps.append(ArtifactRef(type=dep_type, id=dep_id, version=version))

    if isinstance(meta, AgentMetadata):
        declared = {d.id for d in deps}
        for skill_id in meta.skills:
            if skill_id not in declared:
                deps.append(ArtifactRef(type="skill", id=skill_id, version="*"))
                declared.add(skill_id)

    elif isinstance(meta, PluginMetadata):
        declared_keys = {d.key for d in deps}
        members = [ArtifactRef(type="skill", id=s, version="*") for s in meta.skills]
        members += [ArtifactRef(type="agent", id=a, version="*") for a in meta.agents]
        for member in members:
            if member.key not in declared_keys:
                deps.append(member)
                declared_keys.add(member.key)

    return deps


class Resolver:
    """
    Resolve artifact refs recursively (with injected registry).

    Example:
        >>> resolver = Resolver(registry)
        >>> resolved = await resolver.resolve(ArtifactRef("skill", "developer", "^1.0.0"))
        >>> [d.ref.id for d in resolved.dependencies]
    """

    def __init__(self, registry: Registry):
        self.registry = registry
        self._cache: dict[str, ResolvedArtifact] = {}
        self._in_progress: set[str] = set()

    def reset(self) -> None:
        """Clear per-run state. Call between independent install runs."""
        self._cache.clear()
        self._in_progress.clear()

    async def resolve(self, ref: ArtifactRef, call_stack: list[str] | None = None) -> ResolvedArtifact:
        """
        Resolve one ref, including all of its dependencies.

        A key already resolved in this run returns the cached object, even
        when ``ref.version`` differs (one version per id per run).

        Args:
            ref: Artifact to resolve
            call_stack: Keys of the artifacts currently being resolved above this one

        Returns:
            ResolvedArtifact tree

        Raises:
            CircularDependencyError: If a dependency cycle is detected
            VersionMismatchError: If the available version doesn't satisfy the range
            ArtifactNotFoundError: If the artifact doesn't exist
            InvalidMetadataError: If the artifact's metadata is invalid
        """
        stack = list(call_stack or [])
        key = ref.key

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached

        if key in self._in_progress:
            raise CircularDependencyError([*stack, key])

        self._in_progress.add(key)
        try:
            bundle = await self.registry.get(ref)

            available = bundle.meta.version
            if not version_satisfies(available, ref.version):
                raise VersionMismatchError(ref.id, ref.version, [available])

            child_stack = [*stack, key]
            dependencies = [await self.resolve(dep, child_stack) for dep in extract_dependencies(bundle.meta)]

            resolved = ResolvedArtifact(ref=ref, bundle=bundle, dependencies=dependencies)
            self._cache[key] = resolved
            logger.debug(f"Resolved {key}@{available} with {len(dependencies)} dependencies")
            return resolved
        finally:
            self._in_progress.discard(key)

    async def resolve_all(self, refs: list[ArtifactRef]) -> list[ResolvedArtifact]:
        """
        Resolve a batch of refs into one flat list, dependencies first.

        Each key appears once, at the position of its first post-order visit.
        """
        ordered: list[ResolvedArtifact] = []
        seen: set[str] = set()

        for ref in refs:
            root = await self.resolve(ref)
            self._collect_ordered(root, ordered, seen)

        return ordered

    def _collect_ordered(self, artifact: ResolvedArtifact, output: list[ResolvedArtifact], seen: set[str]) -> None:
        for dep in artifact.dependencies:
            self._collect_ordered(dep, output, seen)

        key = artifact.ref.key
        if key not in seen:
            seen.add(key)
            output.append(artifact)

"""Filesystem-backed data adapter.

Reads artifacts from a local directory tree:

    {root}/skills/{id}/metadata.yaml + SKILL.md
    {root}/agents/{id}/metadata.yaml + AGENT.md
    {root}/plugins/{id}/metadata.yaml (+ optional PLUGIN.md)
    {root}/workspace-configs/{id}/metadata.yaml (+ optional WORKSPACE.md)

Per AGENTS.md: Ruthless simplicity - direct filesystem checks, no caching.
"""

import logging
from pathlib import Path

from .exceptions import ArtifactNotFoundError
from .exceptions import ForgeError
from .exceptions import InvalidMetadataError
from .models import ArtifactBundle
from .schema import ArtifactMetadata
from .schema import check_artifact_id
from .schema import dump_metadata
from .schema import load_metadata

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.yaml"

TYPE_DIRS: dict[str, str] = {
    "skill": "skills",
    "agent": "agents",
    "plugin": "plugins",
    "workspace-config": "workspace-configs",
}

CONTENT_FILES: dict[str, str] = {
    "skill": "SKILL.md",
    "agent": "AGENT.md",
    "plugin": "PLUGIN.md",
    "workspace-config": "WORKSPACE.md",
}


def read_content(path: Path) -> str:
    """Read a content file exactly as stored (no newline translation).

    Raises:
        ForgeError: INVALID_CONTENT if the file is not valid UTF-8
    """
    try:
        return path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as e:
        raise ForgeError(
            f"Invalid content in {path}: invalid UTF-8: {e}",
            code="INVALID_CONTENT",
            suggestion=f"Re-save {path} as UTF-8",
            context={"file_path": str(path)},
        ) from e


def load_artifact_metadata(artifact_dir: Path, artifact_type: str) -> ArtifactMetadata:
    """Load {artifact_dir}/metadata.yaml and check its id matches the directory name."""
    metadata_path = artifact_dir / METADATA_FILE
    meta = load_metadata(metadata_path, artifact_type)
    if meta.id != artifact_dir.name:
        raise InvalidMetadataError(
            str(metadata_path), f"id '{meta.id}' does not match directory '{artifact_dir.name}'"
        )
    return meta


def write_content(path: Path, content: str) -> None:
    """Write a content file exactly as given (no newline translation)."""
    path.write_bytes(content.encode("utf-8"))


class FilesystemAdapter:
    """
    Data adapter over a registry directory (with injected root).

    Example:
        >>> adapter = FilesystemAdapter(Path("./registry"), name="local")
        >>> skills = await adapter.list("skill")
    """

    def __init__(self, root: Path, name: str = "local"):
        """Initialize adapter with app-provided registry root.

        Args:
            root: Registry root directory (may not exist yet)
            name: Registry name recorded in bundles and error messages
        """
        self.root = Path(root)
        self.name = name

    def __repr__(self) -> str:
        return f"FilesystemAdapter(name={self.name!r}, root={str(self.root)!r})"

    def type_dir(self, artifact_type: str) -> Path:
        return self.root / TYPE_DIRS[artifact_type]

    def artifact_dir(self, artifact_type: str, artifact_id: str) -> Path:
        """Directory of one artifact. Raises ForgeError (INVALID_REF) for a malformed id."""
        return self.type_dir(artifact_type) / check_artifact_id(artifact_id)

    async def list(self, artifact_type: str) -> list[ArtifactMetadata]:
        """
        List metadata of every valid artifact of a type.

        Invalid or unreadable entries are skipped (logged), never raised.

        Args:
            artifact_type: Artifact type to list

        Returns:
            Metadata in directory-name order (empty if the type dir is missing)
        """
        type_dir = self.type_dir(artifact_type)
        if not type_dir.is_dir():
            logger.warning(f"Registry directory not found: {type_dir}. Returning empty list.")
            return []

        results: list[ArtifactMetadata] = []
        for entry in sorted(type_dir.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue

            metadata_path = entry / METADATA_FILE
            try:
                results.append(load_artifact_metadata(entry, artifact_type))
            except ForgeError as e:
                logger.error(f"Skipping {metadata_path}: {e.message}. Fix the metadata.yaml file and re-run.")
            except OSError as e:
                logger.error(
                    f"Skipping {entry.name}: could not read {metadata_path} - {e}. "
                    "Ensure the file exists and is valid YAML."
                )

        logger.debug(f"Listed {len(results)} {artifact_type} artifacts from {self.root}")
        return results

    async def read(self, artifact_type: str, artifact_id: str) -> ArtifactBundle:
        """
        Read one artifact bundle.

        Args:
            artifact_type: Artifact type
            artifact_id: Artifact id (directory name)

        Returns:
            ArtifactBundle with validated metadata and raw content

        Raises:
            ArtifactNotFoundError: If metadata.yaml is missing
            InvalidMetadataError: If metadata.yaml is invalid or names another id
            ForgeError: INVALID_REF for a malformed id, INVALID_CONTENT for non-UTF-8 content
        """
        artifact_dir = self.artifact_dir(artifact_type, artifact_id)

        try:
            meta = load_artifact_metadata(artifact_dir, artifact_type)
        except FileNotFoundError as e:
            raise ArtifactNotFoundError(artifact_type, artifact_id, str(artifact_dir)) from e

        # Content is optional for plugins and workspace-configs
        content_file = CONTENT_FILES[artifact_type]
        content_path = artifact_dir / content_file
        content = read_content(content_path) if content_path.is_file() else ""

        return ArtifactBundle(meta=meta, content=content, content_path=content_file, registry=self.name)

    async def exists(self, artifact_type: str, artifact_id: str) -> bool:
        return (self.artifact_dir(artifact_type, artifact_id) / METADATA_FILE).is_file()

    async def write(self, artifact_type: str, artifact_id: str, bundle: ArtifactBundle) -> None:
        """Write metadata.yaml (+ content file when non-empty), overwriting."""
        artifact_dir = self.artifact_dir(artifact_type, artifact_id)
        artifact_dir.mkdir(parents=True, exist_ok=True)

        (artifact_dir / METADATA_FILE).write_text(dump_metadata(bundle.meta), encoding="utf-8")

        if bundle.content:
            write_content(artifact_dir / CONTENT_FILES[artifact_type], bundle.content)

        logger.debug(f"Wrote {artifact_type}:{artifact_id} to {artifact_dir}")

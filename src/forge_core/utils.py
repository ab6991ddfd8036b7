"""Forge utilities for ref parsing, hashing and file writes.

Per DRY: Central utilities eliminate duplicated parsing across consumers.
"""

import hashlib
import logging
import os
import posixpath
import tempfile
from pathlib import Path

from .exceptions import ForgeError
from .models import ArtifactRef
from .schema import is_valid_id

logger = logging.getLogger(__name__)

REF_TYPE_PREFIXES = ("workspace-config", "skill", "agent", "plugin")


def parse_ref(ref_string: str) -> ArtifactRef:
    """Parse an artifact reference string.

    Grammar: ``[type:]id[@version]``. Missing type defaults to ``skill``,
    missing version to ``*``.

    Args:
        ref_string: Reference such as "agent:sdlc@^1.0.0" or "developer"

    Returns:
        ArtifactRef

    Raises:
        ForgeError: INVALID_REF if the id is empty or not kebab-case

    Examples:
        >>> parse_ref("skill:developer@1.0.0")
        ArtifactRef(type='skill', id='developer', version='1.0.0')
        >>> parse_ref("developer")
        ArtifactRef(type='skill', id='developer', version='*')
    """
    artifact_type = "skill"
    remaining = ref_string.strip()

    for prefix in REF_TYPE_PREFIXES:
        if remaining.startswith(f"{prefix}:"):
            artifact_type = prefix
            remaining = remaining[len(prefix) + 1 :]
            break

    artifact_id, sep, version = remaining.partition("@")
    if not sep:
        version = "*"

    if not is_valid_id(artifact_id):
        raise ForgeError(
            f"Invalid artifact ref: '{ref_string}'",
            code="INVALID_REF",
            suggestion="Use format: skill:my-skill@1.0.0",
            context={"ref": ref_string},
        )

    return ArtifactRef(type=artifact_type, id=artifact_id, version=version or "*")


def compute_sha256(content: str) -> str:
    """Lowercase hex SHA-256 of the UTF-8 encoded content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def expand_path(path: str | Path, base: Path | None = None) -> Path:
    """Expand ``~`` and resolve relative paths against ``base`` (if given).

    Examples:
        >>> expand_path("~/registry")  # doctest: +SKIP
        PosixPath('/home/user/registry')
        >>> expand_path("registry", base=Path("/ws"))
        PosixPath('/ws/registry')
    """
    expanded = Path(path).expanduser()
    if base is not None and not expanded.is_absolute():
        return base / expanded
    return expanded


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``path`` via a temp file in the same directory + os.replace.

    Parent directories are created. A leftover temp file is removed on failure.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=str(path.parent),
            prefix=f".{path.name}.",
            delete=False,
        ) as f:
            tmp_path = Path(f.name)
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    finally:
        if tmp_path is not None and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError as e:
                logger.debug(f"Could not remove temp file {tmp_path}: {e}")


def is_within_root(relative_path: str) -> bool:
    """True if a workspace-relative POSIX path stays inside its root (lexically).

    Examples:
        >>> is_within_root(".claude/skills/a/SKILL.md")
        True
        >>> is_within_root(".claude/../../escaped")
        False
    """
    normalized = posixpath.normpath(relative_path)
    return not posixpath.isabs(normalized) and normalized != ".." and not normalized.startswith("../")

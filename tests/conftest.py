"""Shared fixtures: registry tree writer and in-memory adapter."""

from pathlib import Path

import pytest
import yaml
from forge_core import ArtifactBundle
from forge_core import ArtifactNotFoundError
from forge_core.filesystem_adapter import CONTENT_FILES
from forge_core.filesystem_adapter import TYPE_DIRS
from forge_core.schema import parse_metadata


def write_registry_artifact(
    root: Path,
    artifact_type: str,
    artifact_id: str,
    content: str | None = None,
    **fields,
) -> Path:
    """Create {root}/{type dir}/{id}/metadata.yaml (+ content file)."""
    artifact_dir = root / TYPE_DIRS[artifact_type] / artifact_id
    artifact_dir.mkdir(parents=True, exist_ok=True)

    metadata = {
        "id": artifact_id,
        "name": fields.pop("name", f"{artifact_id} {artifact_type}"),
        "version": fields.pop("version", "1.0.0"),
        "description": fields.pop("description", f"The {artifact_id} {artifact_type}"),
        "type": artifact_type,
        **fields,
    }
    (artifact_dir / "metadata.yaml").write_text(yaml.safe_dump(metadata))

    if content is None and artifact_type in ("skill", "agent"):
        content = f"# {artifact_id}\nThis is the {artifact_id} {artifact_type}.\n"
    if content is not None:
        (artifact_dir / CONTENT_FILES[artifact_type]).write_bytes(content.encode("utf-8"))

    return artifact_dir


def make_bundle(artifact_type: str, artifact_id: str, version: str = "1.0.0", content: str = "", **fields):
    meta = parse_metadata(
        artifact_type,
        {
            "id": artifact_id,
            "name": fields.pop("name", artifact_id),
            "version": version,
            "description": fields.pop("description", f"{artifact_id} description"),
            **fields,
        },
    )
    return ArtifactBundle(meta=meta, content=content, content_path=CONTENT_FILES[artifact_type])


class FakeAdapter:
    """In-memory adapter that counts calls and can be told to fail."""

    def __init__(self, name: str, bundles: list[ArtifactBundle] | None = None, fail: bool = False):
        self.name = name
        self.fail = fail
        self.bundles: dict[tuple[str, str], ArtifactBundle] = {}
        self.read_calls: list[tuple[str, str]] = []
        self.writes: list[tuple[str, str]] = []
        for bundle in bundles or []:
            self.bundles[(bundle.meta.type, bundle.meta.id)] = bundle

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError(f"{self.name} unreachable")

    async def list(self, artifact_type: str):
        self._check()
        return [b.meta for (t, _), b in self.bundles.items() if t == artifact_type]

    async def read(self, artifact_type: str, artifact_id: str) -> ArtifactBundle:
        self._check()
        self.read_calls.append((artifact_type, artifact_id))
        try:
            return self.bundles[(artifact_type, artifact_id)]
        except KeyError:
            raise ArtifactNotFoundError(artifact_type, artifact_id) from None

    async def exists(self, artifact_type: str, artifact_id: str) -> bool:
        self._check()
        return (artifact_type, artifact_id) in self.bundles

    async def write(self, artifact_type: str, artifact_id: str, bundle: ArtifactBundle) -> None:
        self._check()
        self.writes.append((artifact_type, artifact_id))
        self.bundles[(artifact_type, artifact_id)] = bundle

    def reads_of(self, artifact_id: str) -> int:
        return sum(1 for _, i in self.read_calls if i == artifact_id)


@pytest.fixture
def registry_root(tmp_path: Path) -> Path:
    root = tmp_path / "registry"
    root.mkdir()
    return root


@pytest.fixture
def write_artifact():
    return write_registry_artifact


@pytest.fixture
def bundle():
    return make_bundle


@pytest.fixture
def fake_adapter():
    return FakeAdapter

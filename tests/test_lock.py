"""Tests for forge.lock handling."""

import tempfile
from datetime import UTC
from datetime import datetime
from pathlib import Path

import pytest
import yaml
from forge_core import ForgeError
from forge_core import LockedArtifact
from forge_core import LockFile
from forge_core.lock import read_lock
from forge_core.lock import write_lock
from pydantic import ValidationError

SHA = "a" * 64


def entry(artifact_id: str, files: list[str], artifact_type: str = "skill") -> LockedArtifact:
    return LockedArtifact(id=artifact_id, type=artifact_type, version="1.0.0", registry="local", sha256=SHA, files=files)


def test_missing_lock_is_empty():
    """Test reading a lock that doesn't exist."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock = read_lock(Path(tmpdir) / "forge.lock")

        assert lock.version == "1"
        assert lock.artifacts == {}
        assert lock.owned_files() == set()


def test_entries_keyed_by_type_and_id():
    lock = LockFile()
    lock.add_entry(entry("developer", [".claude/skills/developer/SKILL.md"]))
    lock.add_entry(entry("developer", [".claude/agents/developer.md"], artifact_type="agent"))

    assert lock.is_locked("skill:developer")
    assert lock.is_locked("agent:developer")
    assert lock.get_entry("skill:developer").files == [".claude/skills/developer/SKILL.md"]
    assert len(lock.list_entries()) == 2

    lock.remove_entry("agent:developer")
    lock.remove_entry("agent:never-there")
    assert not lock.is_locked("agent:developer")


def test_owned_files_is_union():
    lock = LockFile()
    lock.add_entry(entry("a", ["x.md", "y.md"]))
    lock.add_entry(entry("b", ["y.md", "z.md"]))

    assert lock.owned_files() == {"x.md", "y.md", "z.md"}


def test_write_uses_camel_case_keys():
    """Test the on-disk format uses lockedAt / resolvedAt."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "forge.lock"
        lock = LockFile()
        lock.add_entry(entry("developer", [".claude/skills/developer/SKILL.md"]))

        write_lock(lock_path, lock)

        data = yaml.safe_load(lock_path.read_text())
        assert data["version"] == "1"
        assert "lockedAt" in data
        artifact = data["artifacts"]["skill:developer"]
        assert artifact["sha256"] == SHA
        assert "resolvedAt" in artifact
        assert artifact["files"] == [".claude/skills/developer/SKILL.md"]


def test_write_then_read():
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "forge.lock"
        lock = LockFile()
        lock.add_entry(entry("developer", ["a.md"]))

        written = write_lock(lock_path, lock)
        loaded = read_lock(lock_path)

        assert loaded.artifacts == written.artifacts
        assert loaded.locked_at == written.locked_at


def test_write_stamps_locked_at():
    """Test each write records a fresh timestamp without mutating the input."""
    with tempfile.TemporaryDirectory() as tmpdir:
        old = datetime(2020, 1, 1, tzinfo=UTC)
        lock = LockFile(locked_at=old)

        written = write_lock(Path(tmpdir) / "forge.lock", lock)

        assert written.locked_at > old
        assert lock.locked_at == old


def test_sha256_must_be_hex64():
    with pytest.raises(ValidationError):
        LockedArtifact(id="x", type="skill", version="1.0.0", registry="local", sha256="not-a-hash")


def test_workspace_config_cannot_be_locked():
    with pytest.raises(ValidationError):
        LockedArtifact(id="x", type="workspace-config", version="1.0.0", registry="local", sha256=SHA)


def test_unparsable_lock():
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "forge.lock"
        lock_path.write_text("artifacts: [unclosed\n")

        with pytest.raises(ForgeError) as exc_info:
            read_lock(lock_path)

        assert exc_info.value.code == "LOCK_PARSE_ERROR"


def test_invalid_lock():
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "forge.lock"
        lock_path.write_text('version: "2"\nartifacts: {}\n')

        with pytest.raises(ForgeError) as exc_info:
            read_lock(lock_path)

        assert exc_info.value.code == "LOCK_INVALID"
        assert "forge install" in exc_info.value.suggestion


def test_locked_id_must_be_kebab_case():
    with pytest.raises(ValidationError):
        LockedArtifact(id="../escaped", type="skill", version="1.0.0", registry="local", sha256=SHA)

"""Tests for forge utilities."""

import os
from pathlib import Path

import pytest
from forge_core import ArtifactRef
from forge_core import ForgeError
from forge_core import parse_ref
from forge_core.utils import atomic_write_text
from forge_core.utils import compute_sha256
from forge_core.utils import expand_path
from forge_core.utils import is_within_root


@pytest.mark.parametrize(
    "ref_string,expected",
    [
        ("developer", ArtifactRef(type="skill", id="developer", version="*")),
        ("developer@1.0.0", ArtifactRef(type="skill", id="developer", version="1.0.0")),
        ("skill:developer@^1.2.0", ArtifactRef(type="skill", id="developer", version="^1.2.0")),
        ("agent:sdlc", ArtifactRef(type="agent", id="sdlc", version="*")),
        ("plugin:starter@~2.0.0", ArtifactRef(type="plugin", id="starter", version="~2.0.0")),
        ("workspace-config:team@1.0.0", ArtifactRef(type="workspace-config", id="team", version="1.0.0")),
        ("developer@", ArtifactRef(type="skill", id="developer", version="*")),
        ("  developer  ", ArtifactRef(type="skill", id="developer", version="*")),
    ],
)
def test_parse_ref(ref_string, expected):
    assert parse_ref(ref_string) == expected


@pytest.mark.parametrize("ref_string", ["", "skill:", "@1.0.0", "agent:@1.0.0"])
def test_parse_ref_rejects_empty_id(ref_string):
    with pytest.raises(ForgeError) as exc_info:
        parse_ref(ref_string)

    assert exc_info.value.code == "INVALID_REF"


def test_ref_key_and_str():
    ref = parse_ref("agent:sdlc@^1.0.0")

    assert ref.key == "agent:sdlc"
    assert str(ref) == "agent:sdlc@^1.0.0"


def test_compute_sha256():
    assert compute_sha256("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    assert compute_sha256("a") != compute_sha256("a\n")


def test_expand_path(tmp_path: Path):
    assert expand_path("registry", base=tmp_path) == tmp_path / "registry"
    assert expand_path(tmp_path / "abs", base=Path("/elsewhere")) == tmp_path / "abs"
    assert expand_path("~/registry") == Path.home() / "registry"


def test_atomic_write_text(tmp_path: Path):
    """Test the write creates parents, replaces content and leaves no temp files."""
    target = tmp_path / "nested" / "forge.yaml"

    atomic_write_text(target, "first\n")
    atomic_write_text(target, "second\n")

    assert target.read_text() == "second\n"
    assert os.listdir(target.parent) == ["forge.yaml"]


@pytest.mark.parametrize("ref_string", ["x/../../escaped", "skill:../outside@1.0.0", "Developer", "agent:a b"])
def test_parse_ref_rejects_non_kebab_ids(ref_string):
    with pytest.raises(ForgeError) as exc_info:
        parse_ref(ref_string)

    assert exc_info.value.code == "INVALID_REF"


def test_artifact_ref_validates_id():
    """Test refs built directly (e.g. from dependency keys) are checked too."""
    with pytest.raises(ForgeError) as exc_info:
        ArtifactRef(type="skill", id="x/../escaped")

    assert exc_info.value.code == "INVALID_REF"


@pytest.mark.parametrize(
    "path,expected",
    [
        (".claude/skills/developer/SKILL.md", True),
        (".claude/agents/../skills/a.md", True),
        (".claude/skills/x/../../../escaped/SKILL.md", False),
        ("../escaped.md", False),
        ("..", False),
        ("/etc/passwd", False),
    ],
)
def test_is_within_root(path, expected):
    assert is_within_root(path) is expected

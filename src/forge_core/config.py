"""Workspace configuration (forge.yaml) schema.

Declares where artifacts come from (registries, highest priority first) and
which artifacts the workspace wants.
"""

from typing import Annotated
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .models import ArtifactRef
from .models import Target


class FilesystemRegistryConfig(BaseModel):
    type: Literal["filesystem"] = "filesystem"
    name: str = Field(min_length=1)
    path: str = Field(min_length=1)


class GitRegistryConfig(BaseModel):
    type: Literal["git"] = "git"
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    branch: str = "main"
    path: str = "registry"
    sparse: list[str] = Field(default_factory=list)
    token_env: str | None = None


RegistryConfig = Annotated[FilesystemRegistryConfig | GitRegistryConfig, Field(discriminator="type")]


class ArtifactDeclarations(BaseModel):
    """Artifacts requested by the workspace: id -> version range, per type."""

    skills: dict[str, str] = Field(default_factory=dict)
    agents: dict[str, str] = Field(default_factory=dict)
    plugins: dict[str, str] = Field(default_factory=dict)

    def bucket(self, artifact_type: str) -> dict[str, str] | None:
        """The mapping holding ``artifact_type`` declarations (None if not declarable)."""
        return {"skill": self.skills, "agent": self.agents, "plugin": self.plugins}.get(artifact_type)

    def refs(self) -> list[ArtifactRef]:
        """Declared refs: skills, then agents, then plugins, in file order."""
        refs = [ArtifactRef(type="skill", id=i, version=v) for i, v in self.skills.items()]
        refs += [ArtifactRef(type="agent", id=i, version=v) for i, v in self.agents.items()]
        refs += [ArtifactRef(type="plugin", id=i, version=v) for i, v in self.plugins.items()]
        return refs


class ForgeConfig(BaseModel):
    """forge.yaml document."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    version: str = "0.1.0"
    target: Target = "claude-code"
    registries: list[RegistryConfig] = Field(default_factory=list)
    artifacts: ArtifactDeclarations = Field(default_factory=ArtifactDeclarations)
    output_dir: str = Field(default=".", alias="outputDir")


def default_config(name: str) -> ForgeConfig:
    """Config written by `forge init`: one local filesystem registry, nothing declared."""
    return ForgeConfig(
        name=name,
        registries=[FilesystemRegistryConfig(name="local", path="./registry")],
    )

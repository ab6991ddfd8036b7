"""Artifact metadata schema - Parse metadata.yaml files.

Each artifact type has its own pydantic model. Metadata is validated on
every read; nothing downstream ever sees an unvalidated document.

Per AGENTS.md: Ruthless simplicity - yaml.safe_load + pydantic, minimal fields.
"""

import re
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator

from .exceptions import ForgeError
from .exceptions import InvalidMetadataError

ArtifactType = Literal["skill", "agent", "plugin", "workspace-config"]

ARTIFACT_TYPES: tuple[ArtifactType, ...] = ("skill", "agent", "plugin", "workspace-config")

ID_PATTERN = r"^[a-z0-9-]+$"
SEMVER_PATTERN = r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?(\+[a-zA-Z0-9.]+)?$"
DEPENDENCY_KEY_PATTERN = r"^((skill|agent|plugin):)?[a-z0-9-]+$"


def is_valid_id(artifact_id: str) -> bool:
    return re.fullmatch(ID_PATTERN, artifact_id) is not None


def check_artifact_id(artifact_id: str) -> str:
    """Return ``artifact_id`` if it is lowercase kebab-case.

    Ids become path segments in registries and workspaces, so anything else
    (separators, "..", uppercase) is rejected.

    Raises:
        ForgeError: INVALID_REF
    """
    if not is_valid_id(artifact_id):
        raise ForgeError(
            f"Invalid artifact id: '{artifact_id}'",
            code="INVALID_REF",
            suggestion="Artifact ids are lowercase letters, digits and hyphens (e.g. my-skill)",
            context={"id": artifact_id},
        )
    return artifact_id


def _check_referenced_ids(ids, pattern: str, what: str):
    for value in ids:
        if re.fullmatch(pattern, value) is None:
            raise ValueError(f"invalid {what} '{value}' (expected lowercase kebab-case)")
    return ids


class _BaseMetadata(BaseModel):
    """Fields shared by every artifact type."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1, pattern=ID_PATTERN)
    name: str = Field(min_length=1)
    version: str = Field(pattern=SEMVER_PATTERN)
    description: str = Field(min_length=1)
    author: str | None = None
    license: str | None = None
    tags: list[str] = Field(default_factory=list)


class SkillMetadata(_BaseMetadata):
    """Skill metadata from skills/{id}/metadata.yaml."""

    type: Literal["skill"] = "skill"
    # id (optionally prefixed with skill:/agent:/plugin:) -> semver range
    dependencies: dict[str, str] = Field(default_factory=dict)
    files: list[str] = Field(default_factory=list)
    homepage: str | None = None
    repository: str | None = None

    @field_validator("dependencies")
    @classmethod
    def _dependency_ids(cls, value: dict[str, str]) -> dict[str, str]:
        return _check_referenced_ids(value, DEPENDENCY_KEY_PATTERN, "dependency id")


class AgentMetadata(_BaseMetadata):
    """Agent metadata from agents/{id}/metadata.yaml.

    Every entry of ``skills`` is an implicit dependency on that skill.
    """

    type: Literal["agent"] = "agent"
    root_skill: str | None = Field(default=None, alias="rootSkill")
    skills: list[str] = Field(default_factory=list)
    dependencies: dict[str, str] = Field(default_factory=dict)
    homepage: str | None = None
    repository: str | None = None

    @field_validator("dependencies")
    @classmethod
    def _dependency_ids(cls, value: dict[str, str]) -> dict[str, str]:
        return _check_referenced_ids(value, DEPENDENCY_KEY_PATTERN, "dependency id")

    @field_validator("skills")
    @classmethod
    def _skill_ids(cls, value: list[str]) -> list[str]:
        return _check_referenced_ids(value, ID_PATTERN, "skill id")


class PluginMetadata(_BaseMetadata):
    """Plugin bundle metadata. Plugins have no content of their own."""

    type: Literal["plugin"] = "plugin"
    skills: list[str] = Field(default_factory=list)
    agents: list[str] = Field(default_factory=list)
    homepage: str | None = None
    repository: str | None = None

    @field_validator("skills", "agents")
    @classmethod
    def _member_ids(cls, value: list[str]) -> list[str]:
        return _check_referenced_ids(value, ID_PATTERN, "member id")


class McpServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    required: bool = True


class WorkspaceSettingsConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    retention_days: int | None = None
    naming_convention: str | None = None


class GitWorkflowConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    branch_pattern: str = "{subtype}/{id}-{slug}"
    base_branch: str = "main"
    stash_before_checkout: bool = True
    commit_format: Literal["conventional", "freeform"] = "conventional"
    pr_template: bool = True
    signed_commits: bool = False


class WorkspaceConfigMetadata(_BaseMetadata):
    """Workspace configuration artifact (never locked, never emitted)."""

    type: Literal["workspace-config"] = "workspace-config"
    description: str = ""
    plugins: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    mcp_servers: dict[str, McpServerConfig] = Field(default_factory=dict)
    settings: WorkspaceSettingsConfig = Field(default_factory=WorkspaceSettingsConfig)
    git_workflow: GitWorkflowConfig = Field(default_factory=GitWorkflowConfig)


ArtifactMetadata = SkillMetadata | AgentMetadata | PluginMetadata | WorkspaceConfigMetadata

METADATA_MODELS: dict[str, type[_BaseMetadata]] = {
    "skill": SkillMetadata,
    "agent": AgentMetadata,
    "plugin": PluginMetadata,
    "workspace-config": WorkspaceConfigMetadata,
}


def first_error_message(error: ValidationError) -> str:
    """Render the first pydantic validation error as 'field: message'."""
    errors = error.errors()
    if not errors:
        return "schema validation failed"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first['msg']}" if location else first["msg"]


def parse_metadata(artifact_type: str, data: object) -> ArtifactMetadata:
    """Validate a raw mapping against the schema for ``artifact_type``.

    Raises:
        pydantic.ValidationError: If the data does not match the schema
        KeyError: If the artifact type is unknown
    """
    model = METADATA_MODELS[artifact_type]
    return model.model_validate(data)  # type: ignore[return-value]


def load_metadata(metadata_path: Path, artifact_type: str) -> ArtifactMetadata:
    """
    Load and validate artifact metadata from metadata.yaml.

    Args:
        metadata_path: Path to metadata.yaml file
        artifact_type: Artifact type selecting the schema

    Returns:
        Validated metadata model

    Raises:
        FileNotFoundError: If metadata.yaml doesn't exist
        InvalidMetadataError: If the file is not valid YAML or fails validation
    """
    try:
        raw = metadata_path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidMetadataError(str(metadata_path), f"invalid UTF-8: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise InvalidMetadataError(str(metadata_path), f"invalid YAML: {e}") from e

    try:
        return parse_metadata(artifact_type, data)
    except ValidationError as e:
        raise InvalidMetadataError(str(metadata_path), first_error_message(e)) from e


def dump_metadata(meta: ArtifactMetadata) -> str:
    """Serialize metadata back to YAML (aliases used, unset optionals dropped)."""
    data = meta.model_dump(mode="json", by_alias=True, exclude_none=True)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)

"""Forge-specific exceptions.

Per IMPLEMENTATION_PHILOSOPHY: Clear, actionable error messages.
Every error carries a stable code and, where one exists, a remediation hint
that the CLI/MCP layers surface verbatim.
"""


class ForgeError(Exception):
    """Base exception for forge operations."""

    def __init__(
        self,
        message: str,
        code: str = "FORGE_ERROR",
        suggestion: str | None = None,
        context: dict | None = None,
    ):
        """Initialize with message, code, hint and optional context.

        Args:
            message: Human-readable error message
            code: Stable machine-readable error code
            suggestion: Optional remediation hint (e.g. which command to re-run)
            context: Optional dict with additional context (file paths, etc.)
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.suggestion = suggestion
        self.context = context or {}


class ArtifactNotFoundError(ForgeError):
    """Artifact not found in the registry."""

    def __init__(self, artifact_type: str, artifact_id: str, registry_path: str | None = None):
        super().__init__(
            f"Artifact '{artifact_type}:{artifact_id}' was not found in the registry",
            code="ARTIFACT_NOT_FOUND",
            suggestion=(
                f"Run 'forge search {artifact_id}' to find available artifacts, "
                "or check that the registry path is correct"
            ),
            context={"type": artifact_type, "id": artifact_id, "registry_path": registry_path},
        )
        self.artifact_type = artifact_type
        self.artifact_id = artifact_id


class InvalidMetadataError(ForgeError):
    """Metadata could not be parsed or failed schema validation."""

    def __init__(self, file_path: str, detail: str):
        super().__init__(
            f"Invalid metadata in {file_path}: {detail}",
            code="INVALID_METADATA",
            suggestion=f"Check that {file_path} is valid YAML and matches the expected schema",
            context={"file_path": file_path},
        )
        self.file_path = file_path
        self.detail = detail


class CircularDependencyError(ForgeError):
    """Dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]):
        super().__init__(
            f"Circular dependency detected: {' -> '.join(cycle)}",
            code="CIRCULAR_DEPENDENCY",
            suggestion="Remove or break the circular dependency chain in your artifact definitions",
            context={"cycle": list(cycle)},
        )
        self.cycle = list(cycle)


class VersionMismatchError(ForgeError):
    """No available version satisfies the requested range."""

    def __init__(self, artifact_id: str, requested: str, available: list[str]):
        super().__init__(
            f"No version of '{artifact_id}' satisfies '{requested}'. Available: {', '.join(available)}",
            code="VERSION_MISMATCH",
            suggestion=(
                "Update forge.yaml to use a compatible version range, or upgrade the artifact in the registry"
            ),
            context={"id": artifact_id},
        )
        self.artifact_id = artifact_id
        self.requested = requested
        self.available = list(available)


class AdapterError(ForgeError):
    """A data adapter failed while talking to its backend."""

    def __init__(self, adapter_name: str, detail: str, suggestion: str | None = None):
        super().__init__(
            f"Adapter '{adapter_name}' failed: {detail}",
            code="ADAPTER_ERROR",
            suggestion=suggestion
            or f"Check that the '{adapter_name}' registry is accessible and properly configured",
            context={"adapter": adapter_name},
        )
        self.adapter_name = adapter_name


class AllAdaptersFailedError(ForgeError):
    """Every adapter of a composite failed to provide an artifact."""

    def __init__(self, artifact_type: str, artifact_id: str, sources_tried: list[str]):
        super().__init__(
            f"Artifact '{artifact_type}:{artifact_id}' not found in any registry. "
            f"Sources tried: {', '.join(sources_tried)}",
            code="ALL_ADAPTERS_FAILED",
            suggestion=(
                f"Run 'forge search {artifact_id}' to check availability, "
                "or add a registry that contains this artifact"
            ),
            context={"type": artifact_type, "id": artifact_id},
        )
        self.sources_tried = list(sources_tried)


class UnsupportedTargetError(ForgeError):
    """No compiler strategy is registered for the requested target."""

    def __init__(self, target: str, supported: list[str] | None = None):
        supported_text = ", ".join(supported) if supported else "claude-code"
        super().__init__(
            f"Compiler target '{target}' is not supported",
            code="UNSUPPORTED_TARGET",
            suggestion=f"Supported targets: {supported_text}. Check forge.yaml 'target' field",
            context={"target": target},
        )
        self.target = target

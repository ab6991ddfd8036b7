"""Compiler - Emit resolved artifacts as target-specific file operations.

Strategy pattern: register one EmitStrategy per target.
"""

import logging

from .exceptions import UnsupportedTargetError
from .models import CompiledOutput
from .models import FileOperation
from .models import ResolvedArtifact
from .protocols import EmitStrategy

logger = logging.getLogger(__name__)


class ClaudeCodeStrategy:
    """
    Emit artifacts to the Claude Code layout.

    Skills: .claude/skills/{id}/SKILL.md
    Agents: .claude/agents/{id}.md
    Plugins and workspace-configs emit nothing themselves; their members are
    dependencies and emit on their own.

    Dependencies are emitted before the artifact that declared them.
    """

    target = "claude-code"

    def emit(self, artifact: ResolvedArtifact) -> CompiledOutput:
        operations: list[FileOperation] = []
        self._emit_artifact(artifact, operations)
        return CompiledOutput(operations=operations, target=self.target, artifact_ref=artifact.ref)

    def _emit_artifact(self, artifact: ResolvedArtifact, operations: list[FileOperation]) -> None:
        for dep in artifact.dependencies:
            self._emit_artifact(dep, operations)

        ref = artifact.ref
        if ref.type == "skill":
            path = f".claude/skills/{ref.id}/SKILL.md"
        elif ref.type == "agent":
            path = f".claude/agents/{ref.id}.md"
        else:
            return

        operations.append(FileOperation(path=path, content=artifact.bundle.content, source_ref=ref))


class Compiler:
    """
    Compile resolved artifacts with per-target strategies.

    Example:
        >>> compiler = Compiler()
        >>> compiler.register(ClaudeCodeStrategy())
        >>> operations = compiler.emit_all(resolved, "claude-code")
    """

    def __init__(self, strategies: list[EmitStrategy] | None = None):
        self._strategies: dict[str, EmitStrategy] = {}
        for strategy in strategies or []:
            self.register(strategy)

    def register(self, strategy: EmitStrategy) -> None:
        """Register (or replace) the strategy for ``strategy.target``."""
        self._strategies[strategy.target] = strategy

    @property
    def targets(self) -> list[str]:
        return list(self._strategies)

    def emit(self, artifact: ResolvedArtifact, target: str) -> CompiledOutput:
        """
        Emit one artifact (and its dependency tree) for a target.

        Raises:
            UnsupportedTargetError: If no strategy is registered for target
        """
        strategy = self._strategies.get(target)
        if strategy is None:
            raise UnsupportedTargetError(target, self.targets)
        return strategy.emit(artifact)

    def emit_all(self, artifacts: list[ResolvedArtifact], target: str) -> list[FileOperation]:
        """
        Emit many artifacts, deduplicating operations by path.

        Later artifacts override earlier ones at the same path.
        """
        by_path: dict[str, FileOperation] = {}
        for artifact in artifacts:
            for op in self.emit(artifact, target).operations:
                by_path[op.path] = op

        logger.debug(f"Compiled {len(artifacts)} artifacts to {len(by_path)} file operations for {target}")
        return list(by_path.values())

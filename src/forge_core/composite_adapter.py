"""Composite data adapter - priority-ordered chain of adapters.

- read() / exists(): adapters in priority order, first success wins
- list(): every adapter queried, merged, deduplicated by id (higher priority wins)
- write(): single designated writable adapter

A failing adapter never aborts the chain. Each call is captured as an
AdapterAttempt and the aggregate outcome is decided once over all attempts.
"""

import logging
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic
from typing import TypeVar

from .exceptions import AllAdaptersFailedError
from .models import ArtifactBundle
from .protocols import DataAdapter
from .schema import ArtifactMetadata

logger = logging.getLogger(__name__)

T = TypeVar("T")


def adapter_name(adapter: DataAdapter) -> str:
    return getattr(adapter, "name", None) or type(adapter).__name__


@dataclass
class AdapterAttempt(Generic[T]):
    """Outcome of one call against one adapter."""

    adapter: str
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def attempt(adapter: DataAdapter, call: Callable[[DataAdapter], Awaitable[T]]) -> AdapterAttempt[T]:
    """Run ``call`` against ``adapter`` and capture the result or the failure."""
    name = adapter_name(adapter)
    try:
        return AdapterAttempt(adapter=name, value=await call(adapter))
    except Exception as e:
        return AdapterAttempt(adapter=name, error=e)


class CompositeAdapter:
    """
    Chain multiple data adapters with priority ordering.

    Example:
        >>> composite = CompositeAdapter([local_adapter, git_adapter])
        >>> skills = await composite.list("skill")  # merged from both
    """

    def __init__(self, adapters: list[DataAdapter], writable_index: int = 0, name: str = "composite"):
        """Initialize with adapters in priority order.

        Args:
            adapters: Adapters, index 0 = highest priority
            writable_index: Index of the adapter receiving write() calls
            name: Name used when this composite is itself nested

        Raises:
            ValueError: If no adapters are given or writable_index is out of bounds
        """
        if not adapters:
            raise ValueError("CompositeAdapter requires at least one adapter")

        if writable_index < 0 or writable_index >= len(adapters):
            raise ValueError(f"writable_index {writable_index} is out of bounds (0-{len(adapters) - 1})")

        self.adapters = list(adapters)
        self.writable_index = writable_index
        self.name = name

    @property
    def writable_adapter(self) -> DataAdapter:
        return self.adapters[self.writable_index]

    async def list(self, artifact_type: str) -> list[ArtifactMetadata]:
        """List from every adapter; first occurrence of an id wins."""
        seen: dict[str, ArtifactMetadata] = {}

        for adapter in self.adapters:
            result = await attempt(adapter, lambda a: a.list(artifact_type))
            if not result.ok:
                logger.warning(
                    f"Adapter '{result.adapter}' failed during list({artifact_type}): {result.error}. "
                    "Trying next adapter."
                )
                continue

            for meta in result.value or []:
                if meta.id not in seen:
                    seen[meta.id] = meta

        return list(seen.values())

    async def read(self, artifact_type: str, artifact_id: str) -> ArtifactBundle:
        """
        Read from the first adapter that succeeds.

        Raises:
            AllAdaptersFailedError: If every adapter failed
        """
        attempts: list[AdapterAttempt[ArtifactBundle]] = []

        for adapter in self.adapters:
            result = await attempt(adapter, lambda a: a.read(artifact_type, artifact_id))
            if result.ok and result.value is not None:
                return result.value

            attempts.append(result)
            logger.warning(
                f"{result.adapter}.read({artifact_type}, {artifact_id}) failed: {result.error}. "
                "Trying next adapter."
            )

        raise AllAdaptersFailedError(artifact_type, artifact_id, [a.adapter for a in attempts])

    async def exists(self, artifact_type: str, artifact_id: str) -> bool:
        """True on the first adapter reporting the artifact; False if none do."""
        for adapter in self.adapters:
            result = await attempt(adapter, lambda a: a.exists(artifact_type, artifact_id))
            if not result.ok:
                logger.warning(
                    f"{result.adapter}.exists({artifact_type}, {artifact_id}) failed: {result.error}. "
                    "Trying next adapter."
                )
                continue
            if result.value:
                return True

        return False

    async def write(self, artifact_type: str, artifact_id: str, bundle: ArtifactBundle) -> None:
        await self.writable_adapter.write(artifact_type, artifact_id, bundle)

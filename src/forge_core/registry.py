"""Registry - search and fetch over a data adapter.

Scoring (case-insensitive substring matching, additive across dimensions):

    id exact 100, id substring 80
    name exact 75, name substring 50
    description substring 25
    any tag substring 15
"""

import logging

from .exceptions import ArtifactNotFoundError
from .models import ArtifactBundle
from .models import ArtifactRef
from .models import ArtifactSummary
from .models import SearchResult
from .protocols import DataAdapter
from .schema import ARTIFACT_TYPES
from .schema import ArtifactMetadata

logger = logging.getLogger(__name__)


def score_metadata(meta: ArtifactMetadata, query: str) -> tuple[int, list[str]]:
    """Score one artifact against a lowercased query.

    Returns:
        (score, matched dimensions in id/name/description/tags order)
    """
    score = 0
    matched_on: list[str] = []

    artifact_id = meta.id.lower()
    if artifact_id == query:
        score += 100
        matched_on.append("id")
    elif query in artifact_id:
        score += 80
        matched_on.append("id")

    name = meta.name.lower()
    if name == query:
        score += 75
        matched_on.append("name")
    elif query in name:
        score += 50
        matched_on.append("name")

    if query in meta.description.lower():
        score += 25
        matched_on.append("description")

    if any(query in tag.lower() for tag in meta.tags):
        score += 15
        matched_on.append("tags")

    return score, matched_on


class Registry:
    """
    Query layer over one adapter (normally a CompositeAdapter).

    Example:
        >>> registry = Registry(FilesystemAdapter(Path("./registry")))
        >>> results = await registry.search("developer")
        >>> bundle = await registry.get(ArtifactRef("skill", "developer", "1.0.0"))
    """

    def __init__(self, adapter: DataAdapter):
        self.adapter = adapter

    async def search(self, query: str, artifact_type: str | None = None) -> list[SearchResult]:
        """
        Search artifacts, best match first.

        Args:
            query: Free text (case-insensitive substring matching)
            artifact_type: Optional type filter; all types when None

        Returns:
            Results with score > 0, sorted by score descending
        """
        types = [artifact_type] if artifact_type else list(ARTIFACT_TYPES)
        lowered = query.lower()
        results: list[SearchResult] = []

        for t in types:
            for meta in await self.adapter.list(t):
                score, matched_on = score_metadata(meta, lowered)
                if score > 0:
                    results.append(
                        SearchResult(
                            ref=ArtifactRef(type=t, id=meta.id, version=meta.version),
                            meta=meta,
                            score=score,
                            matched_on=matched_on,
                        )
                    )

        results.sort(key=lambda r: r.score, reverse=True)
        logger.debug(f"Search '{query}' matched {len(results)} artifacts")
        return results

    async def get(self, ref: ArtifactRef) -> ArtifactBundle:
        """
        Fetch a single artifact bundle.

        Raises:
            ArtifactNotFoundError: If the adapter reports the artifact absent
        """
        if not await self.adapter.exists(ref.type, ref.id):
            raise ArtifactNotFoundError(ref.type, ref.id)
        return await self.adapter.read(ref.type, ref.id)

    async def list(self, artifact_type: str | None = None) -> list[ArtifactSummary]:
        """List lightweight summaries, every type when none is given."""
        types = [artifact_type] if artifact_type else list(ARTIFACT_TYPES)
        summaries: list[ArtifactSummary] = []

        for t in types:
            for meta in await self.adapter.list(t):
                summaries.append(
                    ArtifactSummary(
                        ref=ArtifactRef(type=t, id=meta.id, version=meta.version),
                        name=meta.name,
                        description=meta.description,
                        tags=list(meta.tags),
                    )
                )

        return summaries

    async def publish(self, artifact_type: str, artifact_id: str, bundle: ArtifactBundle) -> None:
        """Publish a bundle through the adapter's write target."""
        await self.adapter.write(artifact_type, artifact_id, bundle)
        logger.info(f"Published {artifact_type}:{artifact_id}@{bundle.meta.version}")
